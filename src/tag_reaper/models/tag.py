"""Model for repositories and the tags within them."""

from dataclasses import dataclass, field
from typing import Self

import semver


@dataclass
class Tag:
    """A tag within a repository.

    Tags carry no timestamp; recency is inferred from the name alone.
    ``index`` is the position in which the registry listed the tag, and
    is used to break ties between tags that sort equal.  The manifest
    digest is only filled in once deletion is being considered.
    """

    name: str
    index: int = 0
    digest: str | None = None

    def version(self) -> semver.Version | None:
        """Parse the tag as a semantic version.

        Leading ``v`` characters are ignored, so ``v1.2.3`` is version
        1.2.3.  Returns `None` for tags that are not semantic versions.
        """
        try:
            return semver.Version.parse(self.name.lstrip("v"))
        except (ValueError, TypeError):
            return None

    def __str__(self) -> str:
        if self.digest is None:
            return self.name
        colon_pos = self.digest.find(":")
        dig = self.digest[1 + colon_pos :]
        if len(dig) > 8:
            dig = dig[:8] + "..."
        return f"{self.name} <{dig}>"


@dataclass
class Repository:
    """A repository (image name) and its tags, in registry order."""

    name: str
    tags: list[Tag] = field(default_factory=list)

    @classmethod
    def from_tag_names(cls, name: str, tag_names: list[str]) -> Self:
        return cls(
            name=name,
            tags=[Tag(name=t, index=i) for i, t in enumerate(tag_names)],
        )

    def tag(self, name: str) -> Tag | None:
        for tag in self.tags:
            if tag.name == name:
                return tag
        return None
