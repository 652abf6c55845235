from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Move:
    """Relocate (and possibly rename) the file."""

    folder: str
    name: str


@dataclass(frozen=True)
class Skip:
    reason: str = "skipped"


@dataclass(frozen=True)
class Quit:
    pass


DecisionOutcome = Move | Skip | Quit


class RunStatus(str, Enum):
    """How a reorganization run ended."""

    COMPLETED = "completed"
    QUIT = "quit"
    CANCELLED = "cancelled"
    BUDGET_EXCEEDED = "budget_exceeded"
    NOTHING_TO_DO = "nothing_to_do"


@dataclass
class RunSummary:
    status: RunStatus = RunStatus.COMPLETED
    organized: int = 0
    skipped: int = 0
    total: int = 0
    backed_up: int = 0
    backup_failures: int = 0
