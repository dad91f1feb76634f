"""Direct claim submission workflow."""
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.exceptions import MedAidException, ProviderUnavailableException
from medaid.gateways import get_gateway
from medaid.gateways.base import ProviderGateway
from medaid.models.claim import MedicalAidClaim
from medaid.models.enums import (
    ClaimStatus,
    IntegrationStatus,
    SubmissionOutcome,
    can_transition,
    parse_status,
)
from medaid.repositories.claim_repository import ClaimRepository
from medaid.schemas.claim import ClaimSubmissionRequest, DirectClaimResponse
from medaid.schemas.gateway import ProviderResult
from medaid.schemas.provider import ProviderConfig
from medaid.services.provider_service import ProviderService
from medaid.utils.claim_numbers import MANUAL_PROVIDER_CODE, ClaimNumberGenerator, claim_number_generator
from medaid.utils.logging_config import claim_number_context, get_logger

logger = get_logger(__name__)

# Fresh claim numbers tried before giving up on a unique-constraint clash
CLAIM_NUMBER_ATTEMPTS = 3

GENERIC_FAILURE_MESSAGE = "Failed to submit claim to medical aid provider"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class ClaimSubmissionService:
    """
    Orchestrates a claim from submission to the provider's first decision.

    Providers that support direct integration are called through their
    gateway and the claim is updated with the outcome; all others get a
    claim queued for manual processing. Every outcome, including failures,
    is reported as a ``DirectClaimResponse``.
    """

    def __init__(
        self,
        db: AsyncSession,
        provider_service: Optional[ProviderService] = None,
        gateway_factory: Callable[[ProviderConfig], ProviderGateway] = get_gateway,
        number_generator: ClaimNumberGenerator = claim_number_generator,
    ):
        self.db = db
        self.repository = ClaimRepository(db)
        self.provider_service = provider_service or ProviderService(db)
        self.gateway_factory = gateway_factory
        self.number_generator = number_generator

    async def submit_direct_claim(self, request: ClaimSubmissionRequest) -> DirectClaimResponse:
        """
        Submit a claim to its medical aid provider.

        Args:
            request: Validated claim submission

        Returns:
            Submission outcome
        """
        started = time.perf_counter()
        claim_ref: Optional[Tuple[int, str]] = None

        try:
            provider = await self.provider_service.get_provider_config(request.provider_id)
            if provider is None:
                logger.warning(
                    f"Claim submission for unknown provider {request.provider_id}",
                    extra={"extra_fields": {"patient_id": request.patient_id}},
                )
                return DirectClaimResponse(
                    success=False,
                    status=SubmissionOutcome.ERROR.value,
                    message="Medical aid provider not found",
                    processing_time=_elapsed_ms(started),
                )

            if not provider.can_submit_directly:
                return await self._submit_manual(request, provider, started)

            claim = await self._create_claim(
                request,
                provider.code,
                status=ClaimStatus.PROCESSING.value,
                is_direct_submission=True,
                integration_status=IntegrationStatus.SUBMITTING.value,
                submission_data=request.submission_payload(),
            )
            claim_ref = (claim.id, claim.claim_number)

            token = claim_number_context.set(claim.claim_number)
            try:
                return await self._submit_to_provider(claim, provider, request, started)
            finally:
                claim_number_context.reset(token)

        except Exception as exc:
            logger.error(
                f"Direct claim submission error: {exc}",
                exc_info=True,
                extra={"extra_fields": {
                    "provider_id": request.provider_id,
                    "claim_number": claim_ref[1] if claim_ref else None,
                }},
            )
            await self.db.rollback()
            if claim_ref is not None:
                await self._mark_failed(claim_ref[0], claim_ref[1], exc)

            public_error = exc.message if isinstance(exc, MedAidException) else "Unexpected error while processing claim"
            return DirectClaimResponse(
                success=False,
                status=SubmissionOutcome.ERROR.value,
                message=GENERIC_FAILURE_MESSAGE,
                processing_time=_elapsed_ms(started),
                claim_id=claim_ref[0] if claim_ref else None,
                claim_number=claim_ref[1] if claim_ref else None,
                errors=[public_error],
            )

    async def _create_claim(
        self, request: ClaimSubmissionRequest, provider_code: str, **fields: Any
    ) -> MedicalAidClaim:
        """Insert and commit a claim row under a freshly generated claim number."""
        for attempt in range(CLAIM_NUMBER_ATTEMPTS):
            claim_number = self.number_generator.generate(provider_code)
            try:
                claim = await self.repository.create(
                    claim_number=claim_number,
                    patient_id=request.patient_id,
                    provider_id=request.provider_id,
                    order_id=request.order_id,
                    prescription_id=request.prescription_id,
                    membership_number=request.membership_number,
                    dependent_code=request.dependent_code,
                    total_amount=request.total_amount,
                    **fields,
                )
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                if attempt + 1 == CLAIM_NUMBER_ATTEMPTS:
                    raise
                logger.warning(f"Claim number collision on {claim_number}, regenerating")
                continue

            logger.info(
                f"Claim {claim_number} created with status {claim.status}",
                extra={"extra_fields": {
                    "claim_id": claim.id,
                    "patient_id": request.patient_id,
                    "provider_id": request.provider_id,
                    "total_amount": str(request.total_amount),
                }},
            )
            return claim

    async def _submit_manual(
        self, request: ClaimSubmissionRequest, provider: ProviderConfig, started: float
    ) -> DirectClaimResponse:
        """Queue a claim for offline processing; no provider call is made."""
        logger.info(
            f"Provider {provider.code} does not support direct claims, falling back to manual processing"
        )
        claim = await self._create_claim(
            request,
            MANUAL_PROVIDER_CODE,
            status=ClaimStatus.PENDING_PATIENT_AUTH.value,
            is_direct_submission=False,
            integration_status=IntegrationStatus.MANUAL.value,
            submission_data=request.submission_payload(include_clinical_codes=False),
        )
        return DirectClaimResponse(
            success=True,
            claim_id=claim.id,
            claim_number=claim.claim_number,
            status=SubmissionOutcome.MANUAL_PROCESSING.value,
            message="Claim created for manual processing - provider does not support direct integration",
            processing_time=_elapsed_ms(started),
        )

    async def _submit_to_provider(
        self,
        claim: MedicalAidClaim,
        provider: ProviderConfig,
        request: ClaimSubmissionRequest,
        started: float,
    ) -> DirectClaimResponse:
        gateway = self.gateway_factory(provider)
        try:
            result = await gateway.submit_claim(provider, request, claim.claim_number)
        except ProviderUnavailableException as exc:
            return await self._route_to_review(claim, exc, started)

        fields = self._result_fields(claim, result)
        fields["processing_duration_ms"] = _elapsed_ms(started)
        claim = await self._apply_outcome(claim, fields)
        await self.db.commit()

        logger.info(
            f"Provider {provider.code} answered {result.status} for {claim.claim_number}",
            extra={"extra_fields": {
                "claim_id": claim.id,
                "stored_status": claim.status,
                "integration_status": claim.integration_status,
                "processing_duration_ms": claim.processing_duration_ms,
            }},
        )
        return self._build_response(claim, result, started)

    def _result_fields(self, claim: MedicalAidClaim, result: ProviderResult) -> Dict[str, Any]:
        """Translate a provider result into claim columns."""
        parsed = parse_status(result.status)
        if parsed is None or not can_transition(ClaimStatus.PROCESSING, parsed):
            logger.warning(f"Provider returned unexpected status {result.status!r}; routing to manual review")
            parsed = ClaimStatus.PENDING_REVIEW

        covered = result.covered_amount
        responsibility = result.patient_responsibility
        approval_code = result.approval_code
        if not self._amounts_fit(claim.total_amount, covered, responsibility):
            logger.warning(
                f"Provider amounts covered={covered} responsibility={responsibility} do not fit "
                f"claim total {claim.total_amount}; routing to manual review"
            )
            parsed = ClaimStatus.PENDING_REVIEW
            covered = responsibility = approval_code = None
        elif covered is not None:
            expected = claim.total_amount - covered
            if responsibility is None or responsibility != expected:
                responsibility = expected

        return {
            "status": parsed.value,
            "provider_claim_id": result.provider_claim_id,
            "authorization_number": result.authorization_number,
            "covered_amount": covered,
            "patient_responsibility": responsibility,
            "approval_code": approval_code,
            "response_data": result.model_dump(mode="json", by_alias=True),
            "integration_status": (
                IntegrationStatus.SUCCESS.value if result.success else IntegrationStatus.FAILED.value
            ),
            "auto_processed": True,
            "real_time_validated": True,
        }

    @staticmethod
    def _amounts_fit(
        total: Decimal, covered: Optional[Decimal], responsibility: Optional[Decimal]
    ) -> bool:
        """Reported amounts must lie between zero and the claim total."""
        # Patient responsibility is derived from covered when both are given
        amount = covered if covered is not None else responsibility
        return amount is None or Decimal("0") <= amount <= total

    async def _apply_outcome(self, claim: MedicalAidClaim, fields: Dict[str, Any]) -> MedicalAidClaim:
        """
        Write the provider outcome with a compare-and-swap.

        When a webhook has already moved the claim, its state is kept and
        only bookkeeping and identifiers that are still empty are filled in.
        """
        updated = await self.repository.update_if_version(claim.id, claim.version, **fields)
        if updated is not None:
            return updated

        await self.db.refresh(claim)
        logger.warning(
            f"Claim {claim.claim_number} changed during submission (now {claim.status}); keeping newer state",
            extra={"extra_fields": {"version": claim.version}},
        )
        backfill = {
            name: fields[name]
            for name in ("provider_claim_id", "authorization_number")
            if getattr(claim, name) is None and fields.get(name) is not None
        }
        backfill.update(
            integration_status=fields["integration_status"],
            auto_processed=True,
            real_time_validated=True,
            processing_duration_ms=fields.get("processing_duration_ms"),
        )
        updated = await self.repository.update_if_version(claim.id, claim.version, **backfill)
        if updated is None:
            await self.db.refresh(claim)
            return claim
        return updated

    async def _route_to_review(
        self, claim: MedicalAidClaim, exc: ProviderUnavailableException, started: float
    ) -> DirectClaimResponse:
        """Provider unreachable after retries: park the claim for manual review."""
        logger.warning(
            f"Provider unavailable for {claim.claim_number}; routing to manual review",
            extra={"extra_fields": {"attempts": exc.attempts, "last_error": exc.last_error}},
        )
        fields = {
            "status": ClaimStatus.PENDING_REVIEW.value,
            "integration_status": IntegrationStatus.FAILED.value,
            "notes": f"Provider unavailable after {exc.attempts} attempt(s)",
            "response_data": {"error": exc.last_error, "attempts": exc.attempts},
            "processing_duration_ms": _elapsed_ms(started),
        }
        updated = await self.repository.update_if_version(claim.id, claim.version, **fields)
        if updated is None:
            await self.db.refresh(claim)
        else:
            claim = updated
        await self.db.commit()

        return DirectClaimResponse(
            success=True,
            claim_id=claim.id,
            claim_number=claim.claim_number,
            authorization_number=claim.authorization_number,
            status=claim.status,
            message="Provider unavailable - claim queued for manual review",
            processing_time=_elapsed_ms(started),
            covered_amount=claim.covered_amount,
            patient_responsibility=claim.patient_responsibility,
            errors=[exc.message],
        )

    async def _mark_failed(self, claim_id: int, claim_number: str, exc: Exception) -> None:
        """
        Compensate for a failure after the claim row was committed.

        A claim still PROCESSING is moved to manual review so it does not
        linger; failures here are logged and left for the stale-claim reaper.
        """
        try:
            claim = await self.repository.get_by_id(claim_id)
            if claim is None:
                return
            fields: Dict[str, Any] = {
                "integration_status": IntegrationStatus.FAILED.value,
                "notes": f"Submission failed: {exc.__class__.__name__}",
            }
            if claim.status == ClaimStatus.PROCESSING.value:
                fields["status"] = ClaimStatus.PENDING_REVIEW.value
            if await self.repository.update_if_version(claim.id, claim.version, **fields) is not None:
                await self.db.commit()
                logger.info(f"Claim {claim_number} marked FAILED after submission error")
        except Exception:
            logger.error(
                f"Could not mark claim {claim_number} as failed; the stale-claim reaper will pick it up",
                exc_info=True,
            )
            await self.db.rollback()

    @staticmethod
    def _build_response(
        claim: MedicalAidClaim, result: ProviderResult, started: float
    ) -> DirectClaimResponse:
        covered: Optional[Decimal] = claim.covered_amount
        return DirectClaimResponse(
            success=result.success,
            claim_id=claim.id,
            claim_number=claim.claim_number,
            provider_claim_id=claim.provider_claim_id,
            authorization_number=claim.authorization_number,
            status=claim.status,
            message=result.message,
            processing_time=_elapsed_ms(started),
            covered_amount=covered,
            patient_responsibility=claim.patient_responsibility,
            approval_code=claim.approval_code,
            errors=result.errors or None,
        )
