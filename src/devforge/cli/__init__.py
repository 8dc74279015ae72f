"""Command-line interface for the Devforge wizard."""
