"""Rule templates matched to a plan's tech stack.

Policy generation starts from a baseline assembled here: every template whose
tag appears in the plan's tech stack contributes its rules, followed by the
user's saved presets. The AI backend then refines that baseline.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from devforge.workflow.models import RulePreset, RuleSet, TechChoice

_SECTIONS = ("code_style_rules", "architecture_rules", "testing_rules", "dos", "donts")


@dataclass(frozen=True)
class RuleTemplate:
    """Rules contributed when ``tag`` occurs in the tech stack."""

    tag: str
    label: str
    rules: RuleSet


RULE_TEMPLATES: tuple[RuleTemplate, ...] = (
    RuleTemplate(
        tag="typescript",
        label="TypeScript",
        rules=RuleSet(
            code_style_rules=[
                "Use TypeScript strict mode with no implicit any",
                "Prefer interfaces over type aliases for object shapes",
                "Use explicit return types on exported functions",
            ],
            architecture_rules=[
                "Keep type definitions in dedicated types.ts files",
            ],
            dos=["Use discriminated unions for state variants"],
            donts=["Never use the any type; use unknown and narrow"],
        ),
    ),
    RuleTemplate(
        tag="react",
        label="React",
        rules=RuleSet(
            code_style_rules=[
                "Use functional components exclusively",
                "Use named exports for components",
                "Use destructured props in function signatures",
            ],
            architecture_rules=[
                "Place components in src/components/ organized by feature",
                "Keep business logic out of components; use custom hooks",
            ],
            dos=["Prefer controlled components for forms"],
            donts=["Never mutate state directly; always create new objects/arrays"],
        ),
    ),
    RuleTemplate(
        tag="vue",
        label="Vue",
        rules=RuleSet(
            code_style_rules=["Use Composition API with <script setup> syntax"],
            architecture_rules=["Use Pinia for global state management"],
            dos=["Use computed properties for derived state"],
            donts=["Never use Options API in new code"],
        ),
    ),
    RuleTemplate(
        tag="next",
        label="Next.js",
        rules=RuleSet(
            code_style_rules=["Use the App Router (app/ directory) for all routes"],
            architecture_rules=[
                "Use server actions for form mutations",
                "Keep API routes in app/api/ for external-facing endpoints only",
            ],
            donts=["Never import server-only code in Client Components"],
        ),
    ),
    RuleTemplate(
        tag="node",
        label="Node.js",
        rules=RuleSet(
            code_style_rules=["Use ES modules (import/export), not CommonJS"],
            architecture_rules=[
                "Separate route handlers, business logic, and data access into distinct layers",
                "Use environment variables for all configuration; never hardcode secrets",
            ],
            dos=["Validate all external input (request bodies, query params, env vars)"],
            donts=["Never commit .env files; use .env.example as a template"],
        ),
    ),
    RuleTemplate(
        tag="tailwind",
        label="Tailwind CSS",
        rules=RuleSet(
            code_style_rules=["Use Tailwind utility classes; avoid custom CSS unless necessary"],
            donts=["Avoid arbitrary values ([23px]); use the design system scale"],
        ),
    ),
    RuleTemplate(
        tag="python",
        label="Python",
        rules=RuleSet(
            code_style_rules=[
                "Follow PEP 8; format with black and lint with ruff",
                "Use type hints on all function signatures",
            ],
            testing_rules=["Write pytest tests next to every new module"],
            dos=["Use dataclasses or Pydantic models for structured data"],
            donts=["Never use mutable default arguments"],
        ),
    ),
    RuleTemplate(
        tag="prisma",
        label="Prisma",
        rules=RuleSet(
            architecture_rules=["Keep the Prisma schema in prisma/schema.prisma"],
            dos=["Use Prisma migrations for schema changes"],
        ),
    ),
)


def merge_rule_sets(rule_sets: Iterable[RuleSet]) -> RuleSet:
    """Concatenate rule sets section by section, dropping duplicate rules."""
    merged: dict[str, list[str]] = {section: [] for section in _SECTIONS}
    for rule_set in rule_sets:
        for section in _SECTIONS:
            for rule in getattr(rule_set, section):
                if rule not in merged[section]:
                    merged[section].append(rule)
    return RuleSet(**merged)


def templates_for_stack(tech_stack: Iterable[TechChoice]) -> list[RuleTemplate]:
    """Return every template whose tag occurs in the tech stack text."""
    stack_text = " ".join(f"{t.category} {t.choice}" for t in tech_stack).lower()
    return [tpl for tpl in RULE_TEMPLATES if tpl.tag in stack_text]


def baseline_rules(
    tech_stack: Iterable[TechChoice],
    presets: Iterable[RulePreset] = (),
) -> RuleSet:
    """Merge matched template rules with the user's saved presets."""
    sources = [tpl.rules for tpl in templates_for_stack(tech_stack)]
    sources.extend(preset.rules for preset in presets)
    return merge_rule_sets(sources)
