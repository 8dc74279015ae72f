"""Prompt templates and input mapping for each generation kind."""

from __future__ import annotations

import enum
import json
from typing import Any

from langchain_core.prompts import ChatPromptTemplate

from devforge.workflow.models import IdeaInput, ProjectPlan, RuleSet


class GenerationKind(str, enum.Enum):
    """Content the AI backend is asked to produce."""

    plan = "plan"
    docs = "docs"
    scaffold = "scaffold"
    policy = "policy"
    deploy_config = "deploy_config"


PLANNER_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a senior software architect helping a solo developer plan a new project.\n"
            "Given the developer's idea, generate a structured project plan.\n"
            "Be practical and opinionated: recommend specific technologies, not vague categories.\n"
            "Focus on MVP scope. Be concise.",
        ),
        (
            "human",
            "Project Idea:\n{description}\n\n"
            "Tags: {tags}\nConstraints: {constraints}\nGoals: {goals}",
        ),
    ]
)

DOCS_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a technical writer creating project documentation.\n"
            "Given a project plan, generate professional, developer-friendly documentation.\n"
            "Use clear markdown formatting. Be concise but thorough.",
        ),
        ("human", "Project Plan:\n{plan_json}\n\nRepository: {repo_name}\nTech Stack:\n{tech_stack}"),
    ]
)

SCAFFOLD_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a senior engineer generating the smallest runnable starter app for a plan.\n"
            "Return every file needed to install, build and run it, plus the build command\n"
            "and the directory the build writes the static site to.\n"
            "Keep it minimal: one page per must-have feature, no placeholder tests.",
        ),
        ("human", "Summary:\n{summary}\n\nFeatures:\n{features}\n\nTech Stack:\n{tech_stack}"),
    ]
)

POLICY_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a staff engineer writing the rules an AI coding assistant must follow\n"
            "in this repository. Start from the baseline rules, keep the ones that apply,\n"
            "add project-specific rules, and respect any existing rules the team already has.",
        ),
        (
            "human",
            "Project Plan:\n{plan_json}\n\nBaseline Rules:\n{baseline_rules}\n\n"
            "Existing Rules:\n{existing_rules}",
        ),
    ]
)

DEPLOY_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a DevOps engineer generating deployment configuration.\n"
            "Given the project's tech stack, generate a netlify.toml and identify required "
            "environment variables.",
        ),
        (
            "human",
            "Tech Stack:\n{tech_stack}\n\nProject Type: {project_type}\n"
            "Has Server-Side Routes: {has_api}",
        ),
    ]
)

PROMPTS: dict[GenerationKind, ChatPromptTemplate] = {
    GenerationKind.plan: PLANNER_PROMPT,
    GenerationKind.docs: DOCS_PROMPT,
    GenerationKind.scaffold: SCAFFOLD_PROMPT,
    GenerationKind.policy: POLICY_PROMPT,
    GenerationKind.deploy_config: DEPLOY_PROMPT,
}


def _joined(values: list[str]) -> str:
    return ", ".join(values) or "none"


def _plan_json(plan: ProjectPlan) -> str:
    return json.dumps(plan.model_dump(mode="json"), indent=2)


def _rules_text(rules: RuleSet) -> str:
    if rules.is_empty():
        return "none"
    return json.dumps(rules.model_dump(mode="json"), indent=2)


def build_prompt_variables(kind: GenerationKind, payload: dict[str, Any]) -> dict[str, str]:
    """Map a step payload onto the variables of the kind's prompt template.

    Raises:
        KeyError: If the payload lacks an input the kind requires.
    """
    if kind == GenerationKind.plan:
        idea: IdeaInput = payload["idea"]
        return {
            "description": idea.description,
            "tags": _joined(idea.tags),
            "constraints": _joined(idea.constraints),
            "goals": _joined(idea.goals),
        }

    if kind == GenerationKind.deploy_config:
        return {
            "tech_stack": payload["tech_stack"],
            "project_type": payload.get("project_type", "web-app"),
            "has_api": str(payload.get("has_api", True)).lower(),
        }

    plan: ProjectPlan = payload["plan"]
    if kind == GenerationKind.docs:
        return {
            "plan_json": _plan_json(plan),
            "repo_name": payload["repo_name"],
            "tech_stack": plan.tech_stack_summary("\n"),
        }
    if kind == GenerationKind.scaffold:
        return {
            "summary": plan.summary,
            "features": "\n".join(f"- {f.name}: {f.description}" for f in plan.mvp_features),
            "tech_stack": plan.tech_stack_summary("\n"),
        }
    return {
        "plan_json": _plan_json(plan),
        "baseline_rules": _rules_text(payload.get("baseline", RuleSet())),
        "existing_rules": payload.get("existing_rules") or "none",
    }
