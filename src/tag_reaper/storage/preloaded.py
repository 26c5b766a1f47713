"""Registry client serving repository contents from a JSON dump."""

import json
import threading
from pathlib import Path
from typing import Self

from ..exceptions import RegistryNotFoundError
from .registry import ContainerRegistryClient


class PreloadedRegistryClient(ContainerRegistryClient):
    """In-memory registry.

    Contents map repository name to a map of tag to digest, in registry
    order.  Deleting a digest removes every tag pointing at it, which is
    what a real registry does.
    """

    def __init__(
        self, contents: dict[str, dict[str, str]], name: str = "preloaded"
    ) -> None:
        super().__init__()
        self.name = name
        self._contents = {k: dict(v) for k, v in contents.items()}
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, inputfile: Path) -> Self:
        inp = json.loads(inputfile.read_text())
        data = inp.get("data") if isinstance(inp, dict) else None
        if not isinstance(data, dict) or not all(
            isinstance(x, dict) for x in data.values()
        ):
            raise ValueError(
                f"{inputfile} is not a registry dump: no 'data' section"
                " mapping repositories to tags"
            )
        metadata = inp.get("metadata") or {}
        name = metadata.get("registry", str(inputfile))
        client = cls(data, name=name)
        count = len(client._contents)
        client._logger.debug(
            f"Ingested {count} repositor{'ies' if count != 1 else 'y'}"
        )
        return client

    @property
    def contents(self) -> dict[str, dict[str, str]]:
        with self._lock:
            return {k: dict(v) for k, v in self._contents.items()}

    def list_repositories(self) -> list[str]:
        with self._lock:
            return list(self._contents)

    def list_tags(self, repository: str) -> list[str]:
        with self._lock:
            return list(self._repository(repository))

    def resolve_digest(self, repository: str, tag: str) -> str:
        with self._lock:
            tags = self._repository(repository)
            if tag not in tags:
                raise RegistryNotFoundError(
                    f"No tag {repository}:{tag}", status=404
                )
            return tags[tag]

    def delete_manifest(self, repository: str, digest: str) -> None:
        with self._lock:
            tags = self._repository(repository)
            victims = [t for t, d in tags.items() if d == digest]
            if not victims:
                raise RegistryNotFoundError(
                    f"No manifest {repository}@{digest}", status=404
                )
            for tag in victims:
                del tags[tag]

    def _repository(self, repository: str) -> dict[str, str]:
        if repository not in self._contents:
            raise RegistryNotFoundError(
                f"No repository {repository}", status=404
            )
        return self._contents[repository]
