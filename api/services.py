"""
Service wiring: one configuration pack, the bundled stores and both pipelines.

The service runs in demo mode on the in-memory adapters. Production
deployments swap the stores and retriever for their own implementations of
the same protocols.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from fastapi import Request

from motorpilot.adapters import InMemoryClaimStore, InMemoryViolationStore
from motorpilot.engine import ClaimsPipeline, UnderwritingPipeline
from motorpilot.models import ClaimSubmission, EngineConfig
from motorpilot.packs import ConfigPack, load_config_pack, load_default_pack


@dataclass
class Services:
    """Everything the routes need, held on ``app.state.services``."""
    pack: ConfigPack
    config: EngineConfig
    violation_store: InMemoryViolationStore
    claim_store: InMemoryClaimStore
    underwriting: UnderwritingPipeline
    claims: ClaimsPipeline
    # Submissions by claim id, kept so a suspended claim can be re-decided
    submissions: dict[str, ClaimSubmission] = field(default_factory=dict)


def build_services(
    pack_path: Optional[str] = None,
    decision_timeout_seconds: Optional[float] = None,
) -> Services:
    """
    Load the configuration pack and wire the pipelines.

    Args:
        pack_path: Pack file to load; the bundled pack when omitted
        decision_timeout_seconds: Overrides the pack's claim deadline
    """
    pack = load_config_pack(pack_path) if pack_path else load_default_pack()
    config = pack.config
    if decision_timeout_seconds is not None:
        config = replace(
            config,
            decision=replace(config.decision, decision_timeout_seconds=decision_timeout_seconds),
        )

    violation_store = InMemoryViolationStore()
    claim_store = InMemoryClaimStore()
    return Services(
        pack=pack,
        config=config,
        violation_store=violation_store,
        claim_store=claim_store,
        underwriting=UnderwritingPipeline(violation_store, config=config),
        claims=ClaimsPipeline(
            claim_store=claim_store,
            retriever=pack.static_retriever(),
            fallback_retriever=pack.static_retriever(),
            config=config,
        ),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the wired services."""
    return request.app.state.services
