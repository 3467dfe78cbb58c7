"""
MotorPilot Citations

First-class citations for policy wording, tariff schedules and regulations.
Every quote and decision cites its sources, making outputs defensible.

Key components:
- Citation: a reference to a source document with optional section/page
- Explanation: summary + detail lines + citations
- ClauseBook: the clause citations resolved for one claim, keyed by ClauseKey

The excerpt hash enables verification that the cited text hasn't changed
since the decision was made.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..canon import excerpt_hash
from .enums import ClauseKey


# =============================================================================
# Citation
# =============================================================================

@dataclass(frozen=True)
class Citation:
    """
    A citation to a source document.

    Attributes:
        document_id: Identifier of the cited document (policy wording, tariff
            schedule, regulator circular)
        section: Section/paragraph reference
        page: Page number within the document
        excerpt: Short excerpt of the relevant text
        excerpt_hash: SHA-256 of the normalized excerpt
        relevance_score: Retrieval relevance (0-1) when the citation came
            from the retrieval collaborator
    """
    document_id: str
    section: Optional[str] = None
    page: Optional[int] = None
    excerpt: str = ""
    excerpt_hash: str = ""
    relevance_score: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.excerpt and not self.excerpt_hash:
            object.__setattr__(self, "excerpt_hash", excerpt_hash(self.excerpt))

    @property
    def key(self) -> tuple[str, str, int]:
        """Identity used for de-duplication: document, section, page."""
        return (self.document_id, self.section or "", self.page or 0)

    @property
    def short_citation(self) -> str:
        """Generate a short citation string for display."""
        parts = [self.document_id]
        if self.section:
            parts.append(f"§{self.section}")
        if self.page is not None:
            parts.append(f"p.{self.page}")
        return ", ".join(parts)

    def verify_excerpt(self, text: str) -> bool:
        """Check that provided text matches the stored excerpt hash."""
        if not self.excerpt_hash:
            return False
        return excerpt_hash(text) == self.excerpt_hash

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"document_id": self.document_id}
        if self.section:
            result["section"] = self.section
        if self.page is not None:
            result["page"] = self.page
        if self.excerpt:
            result["excerpt"] = self.excerpt
            result["excerpt_hash"] = self.excerpt_hash
        if self.relevance_score is not None:
            result["relevance_score"] = str(self.relevance_score)
        return result


def dedupe_citations(citations: Iterable[Citation]) -> tuple[Citation, ...]:
    """Drop repeated citations (same document/section/page), keeping order."""
    seen: set[tuple[str, str, int]] = set()
    unique: list[Citation] = []
    for citation in citations:
        if citation.key in seen:
            continue
        seen.add(citation.key)
        unique.append(citation)
    return tuple(unique)


# =============================================================================
# Explanation
# =============================================================================

@dataclass(frozen=True)
class Explanation:
    """
    Machine-checkable justification attached to every quote and decision.

    Attributes:
        summary: One-line outcome statement
        details: Ordered detail lines (one per factor, part, limit, indicator)
        citations: De-duplicated citations backing the details
    """
    summary: str
    details: tuple[str, ...] = ()
    citations: tuple[Citation, ...] = ()

    @property
    def has_citations(self) -> bool:
        return bool(self.citations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "details": list(self.details),
            "citations": [c.to_dict() for c in self.citations],
        }


# =============================================================================
# Clause Book
# =============================================================================

@dataclass(frozen=True)
class ClauseBook:
    """
    Clause citations resolved for a single claim.

    Built once per claim from the retrieval collaborator (or the static
    fallback table) so every stage cites the same text. Lookups for a clause
    that was not retrieved fall back to the policy schedule citation, so a
    reduction is never left uncited.
    """
    clauses: dict[ClauseKey, Citation] = field(default_factory=dict)
    policy_document_id: str = "policy-schedule"

    def get(self, key: ClauseKey) -> Citation:
        citation = self.clauses.get(key)
        if citation is not None:
            return citation
        return Citation(
            document_id=self.policy_document_id,
            section=key.value.replace("_", " ").title(),
        )

    def has(self, key: ClauseKey) -> bool:
        return key in self.clauses

    def __len__(self) -> int:
        return len(self.clauses)
