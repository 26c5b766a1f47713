"""Accumulated results of a reaping run."""

import threading
from collections import Counter

from ..exceptions import RegistryError
from .decision import DeletionDecision, Outcome


class ReaperReport:
    """Decisions and failures gathered from all repositories.

    Workers add to the report concurrently, so every access goes through a
    lock.  Repositories may arrive in any order.
    """

    def __init__(self, *, dry_run: bool = True) -> None:
        self.dry_run = dry_run
        self._decisions: list[DeletionDecision] = []
        self._failed_repositories: dict[str, RegistryError] = {}
        self._lock = threading.Lock()

    def add_decisions(self, decisions: list[DeletionDecision]) -> None:
        with self._lock:
            self._decisions.extend(decisions)

    def add_failed_repository(self, name: str, exc: RegistryError) -> None:
        with self._lock:
            self._failed_repositories[name] = exc

    @property
    def decisions(self) -> list[DeletionDecision]:
        with self._lock:
            return list(self._decisions)

    @property
    def failed_repositories(self) -> dict[str, RegistryError]:
        with self._lock:
            return dict(self._failed_repositories)

    def counts(self) -> dict[Outcome, int]:
        counter = Counter(d.outcome for d in self.decisions)
        return {x: counter[x] for x in Outcome}

    def tags(self, outcome: Outcome) -> set[tuple[str, str]]:
        """Return (repository, tag) pairs with the given outcome."""
        return {
            (d.repository, d.tag.name)
            for d in self.decisions
            if d.outcome == outcome
        }

    @property
    def failed(self) -> bool:
        """Whether anything that should have happened did not."""
        return bool(self.failed_repositories) or self.deletion_failed

    @property
    def deletion_failed(self) -> bool:
        """Whether any tag could not be deleted."""
        return any(d.outcome == Outcome.FAILED for d in self.decisions)

    def render(self) -> str:
        counts = self.counts()
        lines: list[str] = []
        by_repo: dict[str, list[DeletionDecision]] = {}
        for decision in self.decisions:
            by_repo.setdefault(decision.repository, []).append(decision)
        for repository in sorted(by_repo):
            headline = f"Tags in {repository}:"
            lines.extend((headline, "-" * len(headline)))
            decisions = by_repo[repository]
            width = max(len(d.tag.name) for d in decisions)
            for d in decisions:
                line = f"{d.tag.name.ljust(width)}  {d.outcome.value}"
                if d.error is not None:
                    line += f" ({d.reason})"
                lines.append(line)
            lines.append("")
        failed_repos = self.failed_repositories
        if failed_repos:
            lines.append("The following repositories could not be processed:")
            for name in sorted(failed_repos):
                exc = failed_repos[name]
                lines.append(f"\t{name}: {type(exc).__name__}: {exc}")
            lines.append("")
        lines.append(f"Kept {counts[Outcome.KEPT]} tag(s)")
        if self.dry_run:
            lines.append(
                f"Found {counts[Outcome.WOULD_DELETE]} tag(s) to delete"
            )
        else:
            lines.append(f"Deleted {counts[Outcome.DELETED]} tag(s)")
        lines.append(f"Failed on {counts[Outcome.FAILED]} tag(s)")
        if self.dry_run:
            lines.append(
                "Delete flag (-d/--delete) not specified, none of the above"
                " have actually been deleted."
            )
        else:
            lines.append(
                "Remember to run garbage collection on your registry to"
                " ensure that files get removed on disk."
            )
        return "\n".join(lines)
