"""Decide which repositories and tags are eligible for reaping."""

from collections.abc import Iterator

from ..models.pattern import Pattern
from ..models.tag import Repository, Tag


class TagClassifier:
    """Filter repositories by image pattern and tags by tag pattern.

    With no image patterns every repository is eligible; otherwise a
    repository must match at least one of them.  With no tag patterns no
    tag is eligible at all: an empty filter means "touch nothing", not
    "touch everything".
    """

    def __init__(
        self,
        tag_patterns: list[Pattern],
        image_patterns: list[Pattern] | None = None,
    ) -> None:
        self._tag_patterns = tag_patterns
        self._image_patterns = image_patterns or []

    def eligible_repository(self, name: str) -> bool:
        if not self._image_patterns:
            return True
        return any(p.matches(name) for p in self._image_patterns)

    def eligible_tags(
        self, repository: Repository
    ) -> Iterator[tuple[Repository, Tag]]:
        """Yield each (repository, tag) pair matching any tag pattern."""
        if not self.eligible_repository(repository.name):
            return
        for tag in repository.tags:
            if any(p.matches(tag.name) for p in self._tag_patterns):
                yield repository, tag

    def classify(self, repository: Repository) -> dict[Pattern, list[Tag]]:
        """Sort a repository's tags into one group per matching pattern.

        A tag matching several patterns is in each of their groups.
        Patterns matching nothing are left out.  Tags stay in registry
        order.
        """
        groups: dict[Pattern, list[Tag]] = {}
        for _, tag in self.eligible_tags(repository):
            for pattern in self._tag_patterns:
                if pattern.matches(tag.name):
                    groups.setdefault(pattern, []).append(tag)
        # Keep groups in the order the patterns were configured.
        return {p: groups[p] for p in self._tag_patterns if p in groups}
