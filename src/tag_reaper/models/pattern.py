"""Regular expressions used to select repositories and tags."""

import re
from dataclasses import dataclass
from typing import Self


@dataclass(frozen=True)
class Pattern:
    """A compiled regular expression that remembers its source.

    Patterns match anywhere in the name (``re.search``); anchor them with
    ``^`` and ``$`` to match whole names.
    """

    source: str
    regex: re.Pattern[str]

    @classmethod
    def from_str(cls, source: str) -> Self:
        try:
            regex = re.compile(source)
        except re.error as exc:
            raise ValueError(f"Invalid regex /{source}/: {exc}") from exc
        return cls(source=source, regex=regex)

    def matches(self, name: str) -> bool:
        return self.regex.search(name) is not None

    def __str__(self) -> str:
        return f"/{self.source}/"
