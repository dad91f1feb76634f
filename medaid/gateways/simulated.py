"""In-process provider simulator used for test-mode providers."""
import asyncio
import random
import string
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Optional

from medaid.config import settings
from medaid.gateways.base import ProviderGateway
from medaid.models.enums import ClaimStatus
from medaid.schemas.claim import ClaimSubmissionRequest
from medaid.schemas.common import CENT, round2
from medaid.schemas.gateway import ProviderResult
from medaid.schemas.membership import MembershipBenefits, MembershipValidationResponse
from medaid.schemas.provider import ProviderConfig
from medaid.utils.logging_config import get_logger
from medaid.utils.timeutils import epoch_ms

logger = get_logger(__name__)

MIN_COVERAGE = Decimal("0.80")
MAX_COVERAGE = Decimal("0.95")
MEMBERSHIP_SUCCESS_RATE = 0.9

APPROVAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


class SimulatedProviderGateway(ProviderGateway):
    """
    Models a provider's adjudication with a latency delay and an
    auto-approval rule.

    Claims at or under the provider's auto-approval limit are approved with
    80-95% coverage; larger claims go to the provider's manual review queue.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        min_delay_ms: Optional[int] = None,
        max_delay_ms: Optional[int] = None,
    ):
        self.rng = rng or random.Random()
        self.min_delay_ms = settings.SIMULATOR_MIN_DELAY_MS if min_delay_ms is None else min_delay_ms
        self.max_delay_ms = settings.SIMULATOR_MAX_DELAY_MS if max_delay_ms is None else max_delay_ms

    async def _simulate_latency(self) -> None:
        if self.max_delay_ms <= 0:
            return
        delay_ms = self.rng.uniform(self.min_delay_ms, self.max_delay_ms)
        await asyncio.sleep(delay_ms / 1000)

    def _approval_code(self) -> str:
        return "APP-" + "".join(self.rng.choice(APPROVAL_CODE_ALPHABET) for _ in range(9))

    def covered_amount(self, total_amount: Decimal) -> Decimal:
        """
        Pick the covered share of a claim.

        The rounded amount is clamped so it stays within 80-95% of the
        total even after rounding to cents. Totals under 0.05 can have no
        whole-cent amount in that band; they get the smallest cent amount
        of at least 80%, which covers them in full.
        """
        percentage = Decimal(str(self.rng.uniform(float(MIN_COVERAGE), float(MAX_COVERAGE))))
        covered = round2(total_amount * percentage)
        lower = (total_amount * MIN_COVERAGE).quantize(CENT, rounding=ROUND_CEILING)
        upper = (total_amount * MAX_COVERAGE).quantize(CENT, rounding=ROUND_FLOOR)
        if lower > upper:
            return lower
        return min(max(covered, lower), upper)

    async def submit_claim(
        self,
        provider: ProviderConfig,
        request: ClaimSubmissionRequest,
        claim_number: str,
    ) -> ProviderResult:
        await self._simulate_latency()

        limit = provider.auto_approval_limit
        if limit is None:
            limit = settings.DEFAULT_AUTO_APPROVAL_LIMIT
        total_amount = request.total_amount
        provider_claim_id = f"{provider.code}-{epoch_ms()}"

        if total_amount <= limit:
            covered = self.covered_amount(total_amount)
            logger.debug(
                f"Simulator auto-approved {claim_number}",
                extra={"extra_fields": {"total_amount": str(total_amount), "covered_amount": str(covered)}},
            )
            return ProviderResult(
                success=True,
                status=ClaimStatus.APPROVED.value,
                message="Claim approved automatically",
                provider_claim_id=provider_claim_id,
                authorization_number=f"AUTH-{claim_number}",
                covered_amount=covered,
                patient_responsibility=total_amount - covered,
                approval_code=self._approval_code(),
            )

        return ProviderResult(
            success=True,
            status=ClaimStatus.PENDING_REVIEW.value,
            message="Claim submitted for manual review - amount exceeds auto-approval limit",
            provider_claim_id=provider_claim_id,
            authorization_number=f"REV-{claim_number}",
        )

    async def validate_membership(
        self,
        provider: ProviderConfig,
        membership_number: str,
        dependent_code: Optional[str] = None,
    ) -> MembershipValidationResponse:
        await self._simulate_latency()

        if self.rng.random() < MEMBERSHIP_SUCCESS_RATE:
            return MembershipValidationResponse(
                valid=True,
                message="Membership validated successfully",
                benefits=MembershipBenefits(
                    annual_limit=Decimal("50000"),
                    remaining_benefit=Decimal("35000"),
                    copayment_percentage=20,
                    chronic_medicines_covered=True,
                ),
            )

        return MembershipValidationResponse(
            valid=False,
            message="Invalid membership number or membership expired",
        )
