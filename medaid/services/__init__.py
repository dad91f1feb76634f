"""Service layer for business logic."""
from medaid.services.provider_service import ProviderService
from medaid.services.claim_service import ClaimService
from medaid.services.claim_submission_service import ClaimSubmissionService
from medaid.services.membership_service import MembershipService
from medaid.services.webhook_service import WebhookService

__all__ = [
    "ProviderService",
    "ClaimService",
    "ClaimSubmissionService",
    "MembershipService",
    "WebhookService",
]
