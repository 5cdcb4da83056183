"""Threshold alerts evaluated against a snapshot's metrics bundle."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from folio_analytics.models import PortfolioMetrics

# rule type -> (metric attribute, breach test)
ALERT_TYPES = {
    "vol_gt": ("annualized_volatility", lambda value, threshold: value > threshold),
    "maxdd_lt": ("max_drawdown", lambda value, threshold: value < threshold),
    "var_gt": ("var_95", lambda value, threshold: value > threshold),
}


@dataclass(frozen=True)
class AlertRule:
    type: str
    threshold: float
    rule_id: str | None = None

    def __post_init__(self):
        if self.type not in ALERT_TYPES:
            raise ValueError(f"Invalid alert type '{self.type}', expected one of {list(ALERT_TYPES)}")
        try:
            threshold = float(self.threshold)
        except (TypeError, ValueError):
            raise ValueError("Threshold must be a finite number.") from None
        if not math.isfinite(threshold):
            raise ValueError("Threshold must be a finite number.")
        object.__setattr__(self, "threshold", threshold)

    @classmethod
    def parse(cls, text: str) -> AlertRule:
        """Build a rule from ``"type:threshold"`` (e.g. ``"vol_gt:0.25"``)."""
        kind, sep, threshold = text.partition(":")
        if not sep:
            raise ValueError(f"Alert rule must look like type:threshold, got '{text}'")
        return cls(type=kind.strip(), threshold=threshold.strip())


@dataclass(frozen=True)
class TriggeredAlert:
    rule_id: str | None
    type: str
    threshold: float
    value: float


def check_alerts(rules: Iterable[AlertRule], metrics: PortfolioMetrics) -> list[TriggeredAlert]:
    """Return the rules whose metric breaches the threshold."""
    triggered = []
    for rule in rules:
        attr, breached = ALERT_TYPES[rule.type]
        value = getattr(metrics, attr, None)
        if value is None or not math.isfinite(value):
            continue
        if breached(value, rule.threshold):
            triggered.append(TriggeredAlert(rule.rule_id, rule.type, rule.threshold, float(value)))
    return triggered
