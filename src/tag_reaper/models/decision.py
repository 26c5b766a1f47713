"""Model for retention groups and per-tag deletion decisions."""

from dataclasses import dataclass, field
from enum import Enum

from .pattern import Pattern
from .tag import Tag


class Outcome(Enum):
    """What happened (or would happen) to a tag."""

    KEPT = "kept"
    MARKED = "marked for deletion"
    WOULD_DELETE = "would delete"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass
class RetentionGroup:
    """Tags of one repository matching one pattern, most recent first.

    The first ``keep_count`` members are kept; the rest are candidates
    for deletion.
    """

    pattern: Pattern
    repository: str
    keep_count: int
    members: list[Tag] = field(default_factory=list)

    @property
    def kept(self) -> list[Tag]:
        return self.members[: self.keep_count]

    @property
    def doomed(self) -> list[Tag]:
        return self.members[self.keep_count :]


@dataclass
class DeletionDecision:
    """Pairs a tag with its outcome for this run.

    ``patterns`` lists the sources of every pattern whose group the tag
    belongs to.  ``error`` is only set when the outcome is `Outcome.FAILED`.
    """

    repository: str
    tag: Tag
    outcome: Outcome
    patterns: list[str] = field(default_factory=list)
    error: Exception | None = None

    @property
    def reason(self) -> str:
        if self.error is None:
            return ""
        return f"{type(self.error).__name__}: {self.error}"

    def __str__(self) -> str:
        line = f"[{self.repository}] {self.tag}: {self.outcome.value}"
        if self.error is not None:
            line += f" ({self.reason})"
        return line
