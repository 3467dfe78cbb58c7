"""
MotorPilot Tariff and Clause Retrieval

Resolves tariffs and clause citations for a claim through the Retriever
capability, falling back to the static tables from the configuration pack
when the retrieval backend is unavailable.

Key features:
- StaticRetriever: Retriever backed by the pack's tariff/clause tables
- Deterministic top-hit selection (relevance, then document id, section)
- Fallback is never silent: the lookup records TariffSource.STATIC_FALLBACK
  and the claim is forced to manual review downstream
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from ..exceptions import RetrievalUnavailable
from ..models import Citation, ClauseBook, ClauseKey, CoverageType, TariffSource
from .base import RetrievalHit, RetrievalKind, RetrievalQuery, Retriever, TariffRate

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s\-/]+")


def normalize_part_name(name: str) -> str:
    """
    Standardize a part name for tariff matching.

    Example:
        >>> normalize_part_name("  Front Bumper-Cover ")
        'front_bumper_cover'
    """
    return _SEPARATORS.sub("_", name.strip().lower()).strip("_")


def _rank_key(hit: RetrievalHit) -> tuple[Decimal, str, str, int]:
    # Highest relevance first; ties broken by document, section, page
    return (
        -hit.relevance_score,
        hit.citation.document_id,
        hit.citation.section or "",
        hit.citation.page or 0,
    )


def top_hits(hits: Iterable[RetrievalHit], min_relevance: Decimal = Decimal("0")) -> dict[str, RetrievalHit]:
    """Pick the best hit per term, ignoring hits below ``min_relevance``."""
    best: dict[str, RetrievalHit] = {}
    for hit in sorted(hits, key=_rank_key):
        if hit.relevance_score < min_relevance:
            continue
        best.setdefault(hit.term, hit)
    return best


# =============================================================================
# Static Retriever
# =============================================================================

@dataclass(frozen=True)
class StaticTariff:
    """One row of the static tariff table."""
    part_name: str
    tariff: TariffRate
    citation: Citation


@dataclass
class StaticRetriever:
    """
    Retriever backed by the configuration pack's static tables.

    Serves as the bundled Retriever and as the fallback when the real
    retrieval backend fails. Matches are exact on the standardized name,
    with relevance 1.
    """
    tariffs: dict[str, StaticTariff] = field(default_factory=dict)
    clauses: dict[ClauseKey, tuple[str, Citation]] = field(default_factory=dict)

    def search(self, query: RetrievalQuery) -> list[RetrievalHit]:
        hits: list[RetrievalHit] = []
        for term in query.terms:
            if query.kind == RetrievalKind.TARIFF:
                row = self.tariffs.get(normalize_part_name(term))
                if row is not None:
                    hits.append(RetrievalHit(
                        term=term,
                        relevance_score=Decimal("1"),
                        citation=row.citation,
                        tariff=row.tariff,
                    ))
            else:
                try:
                    key = ClauseKey(term)
                except ValueError:
                    continue
                if key in self.clauses:
                    text, citation = self.clauses[key]
                    hits.append(RetrievalHit(
                        term=term,
                        relevance_score=Decimal("1"),
                        citation=citation,
                        clause_text=text,
                    ))
        return hits


# =============================================================================
# Tariff Lookup
# =============================================================================

@dataclass(frozen=True)
class TariffMatch:
    """Tariff resolved for one detected part."""
    part_key: str
    cost: Decimal
    citation: Citation


@dataclass(frozen=True)
class TariffLookup:
    """Tariffs resolved for a claim, keyed by standardized part name."""
    matches: dict[str, TariffMatch]
    source: TariffSource = TariffSource.RETRIEVAL

    def get(self, part_name: str) -> Optional[TariffMatch]:
        return self.matches.get(normalize_part_name(part_name))

    @property
    def fallback_used(self) -> bool:
        return self.source == TariffSource.STATIC_FALLBACK


def _search_with_fallback(
    retriever: Retriever,
    fallback: Retriever,
    query: RetrievalQuery,
    claim_id: Optional[str],
) -> tuple[list[RetrievalHit], TariffSource]:
    try:
        return retriever.search(query), TariffSource.RETRIEVAL
    except RetrievalUnavailable as e:
        logger.warning(
            "Retrieval unavailable, using static %s table",
            query.kind.value,
            extra={"claim_id": claim_id, "stage": "retrieval", "error_code": e.code},
        )
        return fallback.search(query), TariffSource.STATIC_FALLBACK


def lookup_tariffs(
    retriever: Retriever,
    fallback: Retriever,
    part_names: Iterable[str],
    coverage_type: CoverageType,
    min_relevance: Decimal = Decimal("0"),
    claim_id: Optional[str] = None,
) -> TariffLookup:
    """
    Resolve a tariff for each part name.

    Parts without a hit (or only hits below ``min_relevance``) are simply
    absent from the lookup; the valuator marks them UNMATCHED_TARIFF.
    """
    terms = tuple(dict.fromkeys(normalize_part_name(n) for n in part_names))
    query = RetrievalQuery(kind=RetrievalKind.TARIFF, terms=terms, coverage_type=coverage_type)
    hits, source = _search_with_fallback(retriever, fallback, query, claim_id)

    tariff_hits = [h for h in hits if h.tariff is not None]
    matches: dict[str, TariffMatch] = {}
    for term, hit in top_hits(tariff_hits, min_relevance).items():
        key = normalize_part_name(term)
        matches[key] = TariffMatch(part_key=key, cost=hit.tariff.total, citation=hit.citation)
    return TariffLookup(matches=matches, source=source)


def resolve_clause_book(
    retriever: Retriever,
    fallback: Retriever,
    coverage_type: CoverageType,
    policy_document_id: str,
    claim_id: Optional[str] = None,
) -> tuple[ClauseBook, TariffSource]:
    """Retrieve the top citation for every clause key."""
    query = RetrievalQuery(
        kind=RetrievalKind.CLAUSE,
        terms=tuple(k.value for k in ClauseKey),
        coverage_type=coverage_type,
    )
    hits, source = _search_with_fallback(retriever, fallback, query, claim_id)

    clauses: dict[ClauseKey, Citation] = {}
    for term, hit in top_hits(h for h in hits if h.clause_text is not None).items():
        try:
            clauses[ClauseKey(term)] = hit.citation
        except ValueError:
            logger.debug("Ignoring clause hit for unknown key %s", term)
    return ClauseBook(clauses=clauses, policy_document_id=policy_document_id), source
