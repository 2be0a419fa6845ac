# Overview: Result type for best-effort side effects (stock moves, audit writes).

from __future__ import annotations

from dataclasses import dataclass, field


APPLIED = "applied"
SKIPPED = "skipped"


@dataclass(frozen=True)
class SideEffectOutcome:
    """
    What happened to a secondary write attached to a primary operation.

    Secondary bookkeeping never fails the primary operation; instead the
    outcome travels back in the response so callers can see partial work.
    """
    status: str
    effect: str
    reason: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def applied(cls, effect: str, **details) -> "SideEffectOutcome":
        return cls(status=APPLIED, effect=effect, details=details)

    @classmethod
    def skipped(cls, effect: str, reason: str, **details) -> "SideEffectOutcome":
        return cls(status=SKIPPED, effect=effect, reason=reason, details=details)

    @property
    def is_applied(self) -> bool:
        return self.status == APPLIED

    def to_dict(self) -> dict:
        data = {"status": self.status, "effect": self.effect, **self.details}
        if self.reason:
            data["reason"] = self.reason
        return data
