"""
MotorPilot Exception Hierarchy

Domain-specific exceptions for underwriting and claim decisioning.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: MP_<CATEGORY>

Payloads carry identifiers only (claim, policy, applicant, stage). Raw
claimant values are left to the caller's masking layer.

Policy-limit breaches are NOT exceptions: they are ordinary decision
outcomes (partial approval or denial).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class MotorPilotError(Exception):
    """
    Base exception for all MotorPilot errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (MP_*)
        details: Additional context about the error (identifiers only)
        claim_id: Associated claim ID if applicable
        stage: Pipeline stage that raised the error
    """
    message: str
    code: str = "MP_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    claim_id: Optional[str] = None
    stage: Optional[str] = None

    # Whether the orchestration layer should retry the call
    retryable: bool = False

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.stage:
            parts.append(f"(stage: {self.stage})")
        if self.claim_id:
            parts.append(f"(claim: {self.claim_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            result["details"] = self.details
        if self.claim_id:
            result["claim_id"] = self.claim_id
        if self.stage:
            result["stage"] = self.stage
        return result


# =============================================================================
# Input Errors
# =============================================================================

@dataclass
class ValidationError(MotorPilotError):
    """Malformed or out-of-range input. Never retried."""
    code: str = "MP_VALIDATION_ERROR"

    @property
    def field_name(self) -> Optional[str]:
        """Name of the offending field, if known."""
        return self.details.get("field")


# =============================================================================
# External Collaborator Errors
# =============================================================================

@dataclass
class DataUnavailable(MotorPilotError):
    """An external store (violation history, policy store) failed."""
    code: str = "MP_DATA_UNAVAILABLE"
    retryable: bool = True


@dataclass
class RetrievalUnavailable(MotorPilotError):
    """Tariff/clause retrieval failed; callers fall back to the static table."""
    code: str = "MP_RETRIEVAL_UNAVAILABLE"
    retryable: bool = True


# =============================================================================
# Computation Errors
# =============================================================================

@dataclass
class ComputationError(MotorPilotError):
    """Timeout or internal fault. Nothing is committed when raised."""
    code: str = "MP_COMPUTATION_ERROR"
    retryable: bool = True


@dataclass
class InvalidTransitionError(MotorPilotError):
    """Claim lifecycle transition not allowed from the current state."""
    code: str = "MP_INVALID_TRANSITION"


@dataclass
class ClaimNotFoundError(MotorPilotError):
    """No decision recorded for the requested claim."""
    code: str = "MP_CLAIM_NOT_FOUND"


# =============================================================================
# Configuration Pack Errors
# =============================================================================

@dataclass
class ConfigLoadError(MotorPilotError):
    """Failed to load a configuration pack from file."""
    code: str = "MP_CONFIG_LOAD_ERROR"


@dataclass
class ConfigValidationError(MotorPilotError):
    """Configuration pack schema validation failed."""
    code: str = "MP_CONFIG_VALIDATION_ERROR"


@dataclass
class ConfigVersionMismatch(MotorPilotError):
    """Configuration pack schema version is incompatible."""
    code: str = "MP_CONFIG_VERSION_MISMATCH"
