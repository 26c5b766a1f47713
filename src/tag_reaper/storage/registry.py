"""Abstract superclass for container registry clients."""

import json
from abc import abstractmethod
from pathlib import Path

import structlog

from ..exceptions import RegistryNotFoundError


class ContainerRegistryClient:
    """Collection of methods we expect any registry client to provide.

    These are synchronous.  The reaper fans repositories out over a
    bounded thread pool instead; registries generally rate-limit requests,
    so blasting out a thousand DELETE requests in parallel is not going to
    work as well as you might hope.

    Every method raises a subclass of `~tag_reaper.exceptions.RegistryError`
    when the registry does not cooperate.
    """

    name: str = "registry"

    @abstractmethod
    def list_repositories(self) -> list[str]:
        """Return the name of every repository in the registry."""
        ...

    @abstractmethod
    def list_tags(self, repository: str) -> list[str]:
        """Return every tag of a repository, in registry order.

        All pages are fetched before returning.
        """
        ...

    @abstractmethod
    def resolve_digest(self, repository: str, tag: str) -> str:
        """Return the manifest digest a tag currently points to."""
        ...

    @abstractmethod
    def delete_manifest(self, repository: str, digest: str) -> None:
        """Delete a manifest (and thereby every tag pointing to it)."""
        ...

    def close(self) -> None:
        """Release any held resources."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger(__name__)

    def dump_contents(self, outputfile: Path) -> None:
        """Write JSON of every repository's tags and their digests.

        The result can be used as the ``input_file`` of a later run.
        """
        data: dict[str, dict[str, str]] = {}
        for repository in self.list_repositories():
            tags: dict[str, str] = {}
            for tag in self.list_tags(repository):
                try:
                    tags[tag] = self.resolve_digest(repository, tag)
                except RegistryNotFoundError:
                    self._logger.warning(
                        f"Tag {repository}:{tag} vanished during dump"
                    )
            data[repository] = tags
        dd = {"metadata": {"registry": self.name}, "data": data}
        outputfile.write_text(json.dumps(dd, indent=2))
        self._logger.debug(f"Dumped {len(data)} repositories to {outputfile}")
