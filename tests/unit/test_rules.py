"""Unit tests for rule templates and baseline assembly."""

from __future__ import annotations

from devforge.workflow.models import RulePreset, RuleSet, TechChoice
from devforge.workflow.rules import baseline_rules, merge_rule_sets, templates_for_stack


def _stack(*choices: str) -> list[TechChoice]:
    return [TechChoice(category="Stack", choice=c, rationale="") for c in choices]


def test_templates_match_stack_text() -> None:
    tags = [t.tag for t in templates_for_stack(_stack("Next.js with TypeScript", "Tailwind CSS"))]
    assert tags == ["typescript", "next", "tailwind"]


def test_no_templates_for_unknown_stack() -> None:
    assert templates_for_stack(_stack("COBOL")) == []


def test_merge_drops_duplicates_and_keeps_order() -> None:
    merged = merge_rule_sets(
        [
            RuleSet(dos=["a", "b"]),
            RuleSet(dos=["b", "c"], donts=["x"]),
        ]
    )
    assert merged.dos == ["a", "b", "c"]
    assert merged.donts == ["x"]


def test_baseline_includes_presets_after_templates() -> None:
    preset = RulePreset(name="team", rules=RuleSet(testing_rules=["Cover every bug with a test"]))

    baseline = baseline_rules(_stack("Python"), [preset])

    assert "Write pytest tests next to every new module" in baseline.testing_rules
    assert baseline.testing_rules[-1] == "Cover every bug with a test"
