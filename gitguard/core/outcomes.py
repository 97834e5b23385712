"""Explicit result of a best-effort side effect. Recorded for observability, never raised to the caller."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SideEffectOutcome:
    name: str
    succeeded: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, name: str) -> "SideEffectOutcome":
        return cls(name=name, succeeded=True)

    @classmethod
    def failed(cls, name: str, error: BaseException | str) -> "SideEffectOutcome":
        return cls(name=name, succeeded=False, error=str(error))

    @classmethod
    def skipped(cls, name: str) -> "SideEffectOutcome":
        return cls(name=name, succeeded=True, error="skipped")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "succeeded": self.succeeded, "error": self.error}
