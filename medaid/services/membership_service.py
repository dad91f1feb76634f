"""Membership eligibility checks."""
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from medaid.gateways import get_gateway
from medaid.gateways.base import ProviderGateway
from medaid.schemas.membership import MembershipValidationResponse
from medaid.schemas.provider import ProviderConfig
from medaid.services.provider_service import ProviderService
from medaid.utils.logging_config import get_logger

logger = get_logger(__name__)


class MembershipService:
    """Validates a member against a provider before a claim is submitted."""

    def __init__(
        self,
        db: AsyncSession,
        provider_service: Optional[ProviderService] = None,
        gateway_factory: Callable[[ProviderConfig], ProviderGateway] = get_gateway,
    ):
        self.db = db
        self.provider_service = provider_service or ProviderService(db)
        self.gateway_factory = gateway_factory

    async def validate_membership(
        self,
        provider_id: int,
        membership_number: str,
        dependent_code: Optional[str] = None,
    ) -> MembershipValidationResponse:
        """
        Check a membership number with the provider.

        Providers without real-time validation are passed through as valid;
        this is not an eligibility guarantee.

        Args:
            provider_id: Provider ID
            membership_number: Member's scheme number
            dependent_code: Optional dependent sub-identifier

        Returns:
            Validation outcome, never raises
        """
        try:
            provider = await self.provider_service.get_provider_config(provider_id)
            if provider is None or not provider.real_time_validation:
                return MembershipValidationResponse(
                    valid=True,
                    message="Real-time validation not available",
                )

            gateway = self.gateway_factory(provider)
            result = await gateway.validate_membership(provider, membership_number, dependent_code)

            logger.info(
                f"Membership check with {provider.code}: {'valid' if result.valid else 'invalid'}",
                extra={"extra_fields": {"provider_id": provider_id, "dependent_code": dependent_code}},
            )
            return result
        except Exception as exc:
            logger.error(
                f"Membership validation failed for provider {provider_id}: {exc}",
                exc_info=True,
            )
            return MembershipValidationResponse(
                valid=False,
                message="Validation service unavailable",
            )
