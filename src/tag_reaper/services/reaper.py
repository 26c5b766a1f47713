"""Provides reaping services for a container registry configuration."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

import structlog

from ..config import ReaperConfig
from ..exceptions import RegistryAuthError, RegistryError
from ..models.decision import DeletionDecision
from ..models.report import ReaperReport
from ..models.tag import Repository
from ..storage.docker import DockerRegistryClient
from ..storage.preloaded import PreloadedRegistryClient
from ..storage.registry import ContainerRegistryClient
from .classifier import TagClassifier
from .orchestrator import DeletionOrchestrator
from .selector import RetentionSelector


class Reaper:
    """Provides the mechanism to implement a tag retention policy.

    Parameters
    ----------
    cfg
        Reaper configuration.
    client
        Registry client to use.  If not supplied, one is built from the
        configuration: a preloaded client if ``input_file`` is set, and an
        HTTP client otherwise.
    """

    def __init__(
        self,
        cfg: ReaperConfig,
        client: ContainerRegistryClient | None = None,
    ) -> None:
        # Establish debugging and dry-run first.
        self._debug = cfg.debug
        self._dry_run = cfg.dry_run

        log_level = logging.DEBUG if self._debug else logging.INFO
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(log_level)
        )

        if client is None:
            if cfg.input_file:
                client = PreloadedRegistryClient.from_file(cfg.input_file)
            else:
                client = DockerRegistryClient(cfg)
        self._client = client
        self.name = client.name
        self._workers = cfg.workers

        self._classifier = TagClassifier(
            cfg.tag_patterns, image_patterns=cfg.image_patterns
        )
        self._has_tag_patterns = bool(cfg.tags)
        self._selector = RetentionSelector(cfg.max_per_tag, semver=cfg.semver)
        self._orchestrator = DeletionOrchestrator(
            client, dry_run=self._dry_run
        )

        self._logger = structlog.get_logger(f"reaper-{self.name}")
        self._logger.debug(f"Initialized logging for reaper {self.name}")

    def close(self) -> None:
        self._client.close()

    def dump(self, outputfile: Path) -> None:
        """Write the registry contents to a file usable as ``input_file``."""
        self._client.dump_contents(outputfile)

    def reap_repository(self, name: str) -> list[DeletionDecision]:
        """Fetch, classify, select, and delete for a single repository."""
        repository = Repository.from_tag_names(
            name, self._client.list_tags(name)
        )
        self._logger.debug(f"[{name}] Found {len(repository.tags)} tags")
        groups = self._classifier.classify(repository)
        if not groups:
            self._logger.info(f"[{name}] No tags match any tag pattern")
            return []
        _, decisions = self._selector.select(name, groups)
        return self._orchestrator.execute(repository, decisions)

    def reap(self) -> ReaperReport:
        """Sweep every eligible repository in the registry.

        Repositories are handled concurrently, by at most ``workers``
        threads.  An authentication failure anywhere aborts the run;
        other registry failures are recorded in the report against the
        repository they hit.
        """
        report = ReaperReport(dry_run=self._dry_run)
        if not self._has_tag_patterns:
            self._logger.warning("No tag patterns given; nothing to do")
            return report
        repositories = [
            x
            for x in self._client.list_repositories()
            if self._classifier.eligible_repository(x)
        ]
        self._logger.info(
            f"Reaping {len(repositories)} repositories at {self.name}"
        )
        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            futures: dict[Future[list[DeletionDecision]], str] = {
                executor.submit(self.reap_repository, x): x
                for x in repositories
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    report.add_decisions(future.result())
                except RegistryAuthError:
                    executor.shutdown(cancel_futures=True)
                    raise
                except RegistryError as exc:
                    self._logger.error(
                        f"[{name}] Could not process repository",
                        error=str(exc),
                    )
                    report.add_failed_repository(name, exc)
        return report
