"""
LECTIO - Pipeline Module

Import pipeline for one version:
- resolver: book tokens -> canonical book ids (exact, then fuzzy)
- detector: conflict and completeness report over the resolved set
- transactioner: state machine, commit gate, batched idempotent writes
- coordinator: parallel imports across versions
- lookup: reference -> stored text, stored record -> reference
"""

from pipeline.resolver import (
    AliasResolver,
    AliasTable,
    ResolvedSet,
    Resolution,
    Unresolved,
    normalize_token,
)
from pipeline.detector import CompletenessDetector, VerseBaseline
from pipeline.transactioner import (
    CancellationToken,
    CommitPolicy,
    ImportResult,
    ImportTransactioner,
    advance,
    can_transition,
    writer_lock,
)
from pipeline.coordinator import (
    ImportCoordinator,
    ImportJob,
    VersionOutcome,
    build_registry,
    build_resolver,
    build_transactioner,
    default_baseline,
)
from pipeline.lookup import ChapterRange, NotFound, ReferenceLookup, parse_reference

__all__ = [
    # Resolver
    "AliasResolver",
    "AliasTable",
    "ResolvedSet",
    "Resolution",
    "Unresolved",
    "normalize_token",
    # Detector
    "CompletenessDetector",
    "VerseBaseline",
    # Transactioner
    "CancellationToken",
    "CommitPolicy",
    "ImportResult",
    "ImportTransactioner",
    "advance",
    "can_transition",
    "writer_lock",
    # Coordinator
    "ImportCoordinator",
    "ImportJob",
    "VersionOutcome",
    "build_registry",
    "build_resolver",
    "build_transactioner",
    "default_baseline",
    # Lookup
    "ChapterRange",
    "NotFound",
    "ReferenceLookup",
    "parse_reference",
]
