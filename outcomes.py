from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class Outcome:
    """Result of a library operation, ready to be flashed to the user."""

    success: bool
    message: str
    category: str = "success"
    error: Optional[str] = None
    entity: Any = None

    def __bool__(self):
        return self.success

    @classmethod
    def ok(cls, message, entity=None, category="success"):
        return cls(True, message, category=category, entity=entity)

    @classmethod
    def failed(cls, exc):
        return cls(False, str(exc), category=exc.category, error=exc.kind)


@dataclass
class ReturnOutcome(Outcome):
    fine: float = 0.0
    transaction_id: Optional[str] = None
