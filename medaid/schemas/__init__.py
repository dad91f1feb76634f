"""Pydantic schemas for request/response validation."""
from medaid.schemas.provider import (
    ProviderCreate,
    ProviderUpdate,
    ProviderResponse,
    ProviderConfig,
)
from medaid.schemas.claim import (
    ClaimItem,
    ClaimSubmissionRequest,
    DirectClaimResponse,
    ClaimStatusResponse,
    PublicClaimStatusResponse,
    ClaimResponse,
    ClaimStatusUpdate,
)
from medaid.schemas.membership import (
    MembershipValidationRequest,
    MembershipBenefits,
    MembershipValidationResponse,
)
from medaid.schemas.gateway import ProviderResult
from medaid.schemas.webhook import WebhookPayload, WebhookOutcome, WebhookAck
from medaid.schemas.pagination import (
    PaginationParams,
    PaginationMeta,
    PaginatedResponse,
)

__all__ = [
    # Provider schemas
    "ProviderCreate",
    "ProviderUpdate",
    "ProviderResponse",
    "ProviderConfig",
    # Claim schemas
    "ClaimItem",
    "ClaimSubmissionRequest",
    "DirectClaimResponse",
    "ClaimStatusResponse",
    "PublicClaimStatusResponse",
    "ClaimResponse",
    "ClaimStatusUpdate",
    # Membership schemas
    "MembershipValidationRequest",
    "MembershipBenefits",
    "MembershipValidationResponse",
    # Gateway / webhook schemas
    "ProviderResult",
    "WebhookPayload",
    "WebhookOutcome",
    "WebhookAck",
    # Pagination schemas
    "PaginationParams",
    "PaginationMeta",
    "PaginatedResponse",
]
