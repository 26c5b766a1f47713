"""Carry out (or simulate) the deletion of marked tags."""

import structlog

from ..exceptions import (
    DigestConflictError,
    RegistryAuthError,
    RegistryError,
    RegistryNotFoundError,
)
from ..models.decision import DeletionDecision, Outcome
from ..models.tag import Repository, Tag
from ..storage.registry import ContainerRegistryClient


class DeletionOrchestrator:
    """Delete tags marked for deletion, one repository at a time.

    Registries only delete manifests by digest, so each marked tag is
    first resolved to its digest.  Deleting a manifest removes every tag
    pointing to it.  Marked tags sharing a digest are therefore deleted
    with a single request, and a marked tag sharing its digest with any
    tag that survives the run (kept, or never considered) is not deleted
    at all; it is reported as failed with a
    `~tag_reaper.exceptions.DigestConflictError`.

    Any failure other than an authentication failure is recorded on the
    affected tags and processing continues.  Authentication failures
    propagate, since nothing else is going to work either.  Nothing is
    retried.
    """

    def __init__(
        self, client: ContainerRegistryClient, *, dry_run: bool = True
    ) -> None:
        self._client = client
        self._dry_run = dry_run
        self._logger = structlog.get_logger(__name__)

    def execute(
        self, repository: Repository, decisions: list[DeletionDecision]
    ) -> list[DeletionDecision]:
        """Act on the decisions for one repository.

        Decisions marked for deletion are updated in place to
        `Outcome.WOULD_DELETE` (dry run), `Outcome.DELETED`, or
        `Outcome.FAILED`.  Kept decisions are left alone.
        """
        name = repository.name
        marked = [d for d in decisions if d.outcome == Outcome.MARKED]
        if not marked:
            self._logger.info(f"[{name}] No tags eligible for deletion")
            return decisions
        dry = " (not really)" if self._dry_run else ""

        by_digest: dict[str, list[DeletionDecision]] = {}
        for decision in marked:
            try:
                digest = self._resolve(name, decision.tag)
            except RegistryAuthError:
                raise
            except RegistryError as exc:
                self._fail(decision, exc)
                continue
            by_digest.setdefault(digest, []).append(decision)
        if not by_digest:
            return decisions

        doomed = {d.tag.name for d in marked}
        survivors = [t for t in repository.tags if t.name not in doomed]
        try:
            protected = self._protected_digests(name, survivors)
        except RegistryAuthError:
            raise
        except RegistryError as exc:
            # Without the surviving digests we cannot tell what is safe.
            for victims in by_digest.values():
                for decision in victims:
                    self._fail(decision, exc)
            return decisions

        count = 0
        for digest, victims in by_digest.items():
            if digest in protected:
                conflict = DigestConflictError(
                    f"Digest {digest} is also tagged "
                    + ", ".join(sorted(protected[digest]))
                )
                for decision in victims:
                    self._fail(decision, conflict)
                continue
            names = ", ".join(d.tag.name for d in victims)
            self._logger.debug(f"[{name}] Deleting {names}{dry}")
            if self._dry_run:
                outcome = Outcome.WOULD_DELETE
            else:
                try:
                    self._client.delete_manifest(name, digest)
                except RegistryAuthError:
                    raise
                except RegistryError as exc:
                    for decision in victims:
                        self._fail(decision, exc)
                    continue
                outcome = Outcome.DELETED
            for decision in victims:
                decision.outcome = outcome
            count += len(victims)
        self._logger.info(f"[{name}] Deleted {count} tags{dry}")
        return decisions

    def _resolve(self, repository: str, tag: Tag) -> str:
        if tag.digest is None:
            tag.digest = self._client.resolve_digest(repository, tag.name)
        return tag.digest

    def _protected_digests(
        self, repository: str, survivors: list[Tag]
    ) -> dict[str, set[str]]:
        protected: dict[str, set[str]] = {}
        for tag in survivors:
            try:
                digest = self._resolve(repository, tag)
            except RegistryNotFoundError:
                # Gone already; nothing left to protect.
                continue
            protected.setdefault(digest, set()).add(tag.name)
        return protected

    def _fail(self, decision: DeletionDecision, exc: RegistryError) -> None:
        decision.outcome = Outcome.FAILED
        decision.error = exc
        self._logger.warning(
            f"[{decision.repository}] Could not delete {decision.tag.name}",
            error=str(exc),
        )
