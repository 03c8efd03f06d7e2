from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, List, Optional

OK = "ok"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class UnitOutcome:
    """
    Result of one upstream unit of work (a page, a block, a transaction).
    """

    key: Hashable
    status: str
    value: Any = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OK


@dataclass
class BatchReport:

    outcomes: List[UnitOutcome] = field(default_factory=list)
    groups: int = 0
    truncated: bool = False

    def extend(self, outcomes: List[UnitOutcome]) -> None:
        self.outcomes.extend(outcomes)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def succeeded(self) -> int:
        return self.count(OK)

    @property
    def skipped(self) -> int:
        return self.count(SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(FAILED)

    def failures(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]
