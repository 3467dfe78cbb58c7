"""
MotorPilot Adapters

Collaborator protocols and the bundled reference adapters.

Usage:
    from motorpilot.adapters import (
        StaticRetriever, InMemoryClaimStore, InMemoryViolationStore,
        StaticRateTable,
    )
"""
from __future__ import annotations

from .base import (
    ClaimStore,
    CommitResult,
    RateTable,
    RetrievalHit,
    RetrievalKind,
    RetrievalQuery,
    Retriever,
    TariffRate,
    ViolationHistoryStore,
)
from .rates import StaticRateTable, band_value
from .retrieval import (
    StaticRetriever,
    StaticTariff,
    TariffLookup,
    TariffMatch,
    lookup_tariffs,
    normalize_part_name,
    resolve_clause_book,
    top_hits,
)
from .stores import InMemoryClaimStore, InMemoryViolationStore

__all__ = [
    # Protocols
    "ClaimStore",
    "CommitResult",
    "RateTable",
    "RetrievalHit",
    "RetrievalKind",
    "RetrievalQuery",
    "Retriever",
    "TariffRate",
    "ViolationHistoryStore",
    # Rates
    "StaticRateTable",
    "band_value",
    # Retrieval
    "StaticRetriever",
    "StaticTariff",
    "TariffLookup",
    "TariffMatch",
    "lookup_tariffs",
    "normalize_part_name",
    "resolve_clause_book",
    "top_hits",
    # Stores
    "InMemoryClaimStore",
    "InMemoryViolationStore",
]
