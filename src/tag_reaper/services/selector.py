"""Choose which tags to keep and which to delete."""

from typing import Any

import structlog

from ..models.decision import DeletionDecision, Outcome, RetentionGroup
from ..models.pattern import Pattern
from ..models.tag import Tag


class RetentionSelector:
    """Keep the most recent tags of each retention group.

    Parameters
    ----------
    keep_count
        Number of tags to keep in each group.
    semver
        If true, order tags by semantic version.  Otherwise order them by
        name.

    Notes
    -----
    Recency is inferred from the tag name.  By name, the lexicographically
    greatest tag is the most recent.  By semantic version, the highest
    version is, and tags that are not semantic versions are dropped from
    the group: they are neither kept nor deleted.

    Ties keep the order in which the registry listed the tags.
    """

    def __init__(self, keep_count: int, *, semver: bool = False) -> None:
        if keep_count < 1:
            raise ValueError(f"keep_count must be positive, not {keep_count}")
        self._keep_count = keep_count
        self._semver = semver
        self._logger = structlog.get_logger(__name__)

    def build_group(
        self, pattern: Pattern, repository: str, tags: list[Tag]
    ) -> RetentionGroup:
        """Order the tags matching one pattern, most recent first."""
        keyed: list[tuple[Any, Tag]] = []
        for tag in sorted(tags, key=lambda t: t.index):
            if self._semver:
                version = tag.version()
                if version is None:
                    self._logger.debug(
                        f"[{repository}] {tag.name} is not a semantic version;"
                        " ignoring it"
                    )
                    continue
                keyed.append((version, tag))
            else:
                keyed.append((tag.name, tag))
        # Stable, also with reverse=True.
        keyed.sort(key=lambda x: x[0], reverse=True)
        return RetentionGroup(
            pattern=pattern,
            repository=repository,
            keep_count=self._keep_count,
            members=[x[1] for x in keyed],
        )

    def select(
        self, repository: str, groups: dict[Pattern, list[Tag]]
    ) -> tuple[list[RetentionGroup], list[DeletionDecision]]:
        """Decide the fate of every tag in any group.

        A tag is marked for deletion only if every group it belongs to
        would delete it.  Being kept by a single group protects it.

        Returns
        -------
        tuple
            The retention groups, and one decision per grouped tag (either
            `Outcome.KEPT` or `Outcome.MARKED`) in registry order.
        """
        built = [self.build_group(p, repository, t) for p, t in groups.items()]
        kept: set[str] = set()
        members: dict[str, Tag] = {}
        patterns: dict[str, list[str]] = {}
        for group in built:
            for tag in group.members:
                members[tag.name] = tag
                patterns.setdefault(tag.name, []).append(group.pattern.source)
            kept.update(t.name for t in group.kept)
            if group.doomed:
                self._logger.debug(
                    f"[{repository}] {len(group.doomed)} tags beyond"
                    f" {self._keep_count} for pattern {group.pattern}"
                )

        decisions = [
            DeletionDecision(
                repository=repository,
                tag=tag,
                outcome=Outcome.KEPT if name in kept else Outcome.MARKED,
                patterns=patterns[name],
            )
            for name, tag in sorted(members.items(), key=lambda x: x[1].index)
        ]
        return built, decisions
