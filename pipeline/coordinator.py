"""
LECTIO - Import Coordinator

Runs independent versions in parallel. Versions share only the immutable
registry and alias table; each one's stages stay sequential inside its own
transactioner run, and one version failing never affects another.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from config import Config, get_config
from data.aliases import load_alias_file
from data.registry import CanonicalBookRegistry, default_registry
from data.schemas import Version
from db.interfaces import VerseStore
from integrations.xml_parser import Source
from pipeline.detector import VerseBaseline
from pipeline.resolver import AliasResolver, AliasTable
from pipeline.transactioner import CancellationToken, CommitPolicy, ImportResult, ImportTransactioner

logger = logging.getLogger("lectio.pipeline.coordinator")


@dataclass
class ImportJob:
    """One version to import from one source document."""
    version: Version
    source: Source
    baseline: Optional[VerseBaseline] = None


@dataclass
class VersionOutcome:
    """Result or error of one version's run."""
    version_code: str
    result: Optional[ImportResult] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_registry(config: Optional[Config] = None) -> CanonicalBookRegistry:
    config = config or get_config()
    if config.imports.canon_file:
        return CanonicalBookRegistry.from_json(config.imports.canon_file)
    return default_registry()


def build_resolver(registry: CanonicalBookRegistry, config: Optional[Config] = None) -> AliasResolver:
    config = config or get_config()
    entries = load_alias_file(config.imports.alias_file) if config.imports.alias_file else []
    return AliasResolver(AliasTable(registry, entries), config.imports.fuzzy_threshold)


def build_transactioner(
    store: VerseStore,
    config: Optional[Config] = None,
    policy: Optional[CommitPolicy] = None,
) -> ImportTransactioner:
    """Wire registry, aliases and transactioner from configuration."""
    config = config or get_config()
    registry = build_registry(config)
    resolver = build_resolver(registry, config)
    return ImportTransactioner.from_config(store, registry, resolver, config.imports, policy)


def default_baseline(
    store: VerseStore,
    config: Optional[Config] = None,
    baseline_version: Optional[str] = None,
) -> Optional[VerseBaseline]:
    """
    Baseline for verse-count anomalies: a committed reference version when
    named, otherwise the configured count file, otherwise none.
    """
    config = config or get_config()
    if baseline_version:
        return VerseBaseline.from_store(store, baseline_version)
    if config.imports.baseline_file:
        return VerseBaseline.from_json(config.imports.baseline_file)
    return None


class ImportCoordinator:
    """
    Usage:
        coordinator = ImportCoordinator(build_transactioner(store), max_workers=2)
        outcomes = coordinator.run_all([ImportJob(kjv, "kjv.xml"), ImportJob(afr, "afr53.xml")])
    """

    def __init__(self, transactioner: ImportTransactioner, max_workers: int = 2):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.transactioner = transactioner
        self.max_workers = max_workers

    def run_all(
        self,
        jobs: Sequence[ImportJob],
        cancel: Optional[CancellationToken] = None,
    ) -> Dict[str, VersionOutcome]:
        """Import every job; outcomes keyed by version code in job order."""
        codes = [job.version.code for job in jobs]
        duplicates = sorted({c for c in codes if codes.count(c) > 1})
        if duplicates:
            raise ValueError(f"Versions listed more than once: {', '.join(duplicates)}")

        outcomes: Dict[str, VersionOutcome] = {code: VersionOutcome(code) for code in codes}
        if not jobs:
            return outcomes

        workers = min(self.max_workers, len(jobs))
        logger.info("Importing %d versions with %d workers", len(jobs), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lectio-import") as executor:
            futures = {
                executor.submit(self.transactioner.run, job.version, job.source, job.baseline, cancel):
                    job.version.code
                for job in jobs
            }
            for future in as_completed(futures):
                code = futures[future]
                try:
                    outcomes[code].result = future.result()
                except Exception as e:
                    outcomes[code].error = e
                    logger.warning("Version %s did not commit: %s", code, e)

        failed = [code for code, outcome in outcomes.items() if not outcome.ok]
        logger.info("Imported %d of %d versions", len(jobs) - len(failed), len(jobs))
        return outcomes

    def failed(self, outcomes: Dict[str, VersionOutcome]) -> List[str]:
        return [code for code, outcome in outcomes.items() if not outcome.ok]
