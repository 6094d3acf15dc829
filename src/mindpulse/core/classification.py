"""
Priority-ordered classification of samples into discrete state labels.

Rules are evaluated top to bottom and the first match wins; list order is the
only tie-break between channels. Thresholds are plain configuration, e.g.::

    rules:
      - label: Drowsy
        color: "#95E1D3"
        when:
          - {channel: drowsiness, op: ">", value: 70}
      - label: Focused
        color: "#FF6B6B"
        when:
          - {channel: attention, op: ">", value: 70}
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Tuple

from .models import Sample

__all__ = [
    "Label",
    "NEUTRAL",
    "Threshold",
    "ClassificationRule",
    "ClassificationRuleSet",
    "rule_from_mapping",
    "rules_from_config",
    "default_brain_state_rules",
]

Predicate = Callable[[Sample], bool]

_OPERATORS: Mapping[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Label:
    name: str
    color: str = "#808080"


NEUTRAL = Label("Neutral", "#808080")


@dataclass(frozen=True)
class Threshold:
    """Single ``channel <op> value`` comparison; missing channels never match."""

    channel: str
    op: str
    value: float

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported operator {self.op!r}; expected one of {sorted(_OPERATORS)}")

    def __call__(self, sample: Sample) -> bool:
        if self.channel not in sample.values:
            return False
        return _OPERATORS[self.op](sample.values[self.channel], float(self.value))


@dataclass(frozen=True)
class ClassificationRule:
    """A predicate plus the label it assigns."""

    label: Label
    conditions: Tuple[Predicate, ...] = field(default_factory=tuple)

    @classmethod
    def when(cls, name: str, color: str, *conditions: Predicate) -> "ClassificationRule":
        return cls(Label(name, color), tuple(conditions))

    def matches(self, sample: Sample) -> bool:
        # All conditions must hold; an empty rule is a catch-all.
        return all(cond(sample) for cond in self.conditions)


class ClassificationRuleSet:
    """Ordered rule list with a default label for samples no rule matches."""

    def __init__(self, rules: Iterable[ClassificationRule], default: Label = NEUTRAL) -> None:
        self._rules: Tuple[ClassificationRule, ...] = tuple(rules)
        self._default = default

    @property
    def rules(self) -> Tuple[ClassificationRule, ...]:
        return self._rules

    @property
    def default(self) -> Label:
        return self._default

    @property
    def labels(self) -> Tuple[Label, ...]:
        return tuple(rule.label for rule in self._rules) + (self._default,)

    def classify(self, sample: Sample) -> Label:
        for rule in self._rules:
            if rule.matches(sample):
                return rule.label
        return self._default

    def __len__(self) -> int:
        return len(self._rules)


def rule_from_mapping(data: Mapping[str, Any]) -> ClassificationRule:
    """Build a rule from ``{label, color, when: [{channel, op, value}, ...]}``."""
    try:
        name = str(data["label"])
    except KeyError:
        raise ValueError(f"Rule is missing 'label': {data!r}") from None
    color = str(data.get("color", NEUTRAL.color))
    conditions = []
    for cond in data.get("when") or ():
        if not isinstance(cond, Mapping):
            raise ValueError(f"Rule condition must be a mapping, got {cond!r}")
        try:
            conditions.append(Threshold(str(cond["channel"]), str(cond.get("op", ">")), float(cond["value"])))
        except KeyError as exc:
            raise ValueError(f"Rule condition {cond!r} is missing {exc.args[0]!r}") from None
    return ClassificationRule(Label(name, color), tuple(conditions))


def rules_from_config(
    rules: Optional[Sequence[Mapping[str, Any]]],
    *,
    default: Label = NEUTRAL,
) -> ClassificationRuleSet:
    """Build a rule set from config mappings; ``None``/empty gives the brain-state defaults."""
    if not rules:
        return default_brain_state_rules()
    return ClassificationRuleSet((rule_from_mapping(r) for r in rules), default=default)


def default_brain_state_rules() -> ClassificationRuleSet:
    """Rule list used by the EEG simulator view."""
    return ClassificationRuleSet(
        [
            ClassificationRule.when("Highly Focused", "#FF6B6B", Threshold("attention", ">", 70)),
            ClassificationRule.when("Deeply Relaxed", "#4ECDC4", Threshold("relaxation", ">", 70)),
            ClassificationRule.when("Drowsy", "#95E1D3", Threshold("drowsiness", ">", 60)),
            ClassificationRule.when("Engaged", "#FFD93D", Threshold("engagement", ">", 70)),
            ClassificationRule.when(
                "Active Learning",
                "#F38181",
                Threshold("attention", ">", 50),
                Threshold("engagement", ">", 50),
            ),
        ]
    )
