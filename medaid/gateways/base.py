"""Provider gateway interface."""
from abc import ABC, abstractmethod
from typing import Optional

from medaid.schemas.claim import ClaimSubmissionRequest
from medaid.schemas.gateway import ProviderResult
from medaid.schemas.membership import MembershipValidationResponse
from medaid.schemas.provider import ProviderConfig


class ProviderGateway(ABC):
    """
    Boundary between claim processing and a medical aid provider's API.

    Implementations raise ``ProviderUnavailableException`` when the provider
    cannot be reached after their own retry policy; any other provider-side
    refusal is reported through the returned result.
    """

    @abstractmethod
    async def submit_claim(
        self,
        provider: ProviderConfig,
        request: ClaimSubmissionRequest,
        claim_number: str,
    ) -> ProviderResult:
        """Submit a claim and return the provider's decision."""

    @abstractmethod
    async def validate_membership(
        self,
        provider: ProviderConfig,
        membership_number: str,
        dependent_code: Optional[str] = None,
    ) -> MembershipValidationResponse:
        """Check a member's eligibility with the provider."""
