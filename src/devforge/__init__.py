"""Devforge - step-gated project wizard.

Takes a project from a free-text idea through an AI-generated plan, a new
GitHub repository, generated documentation and scaffold, to a Netlify
deployment. Each step is gated on explicit user approval.
"""

__version__ = "0.1.0"
