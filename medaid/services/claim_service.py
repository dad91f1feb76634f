"""Claim lookup and lifecycle management."""
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from medaid.config import settings
from medaid.exceptions import (
    ConcurrencyConflictException,
    InvalidStateTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from medaid.models.enums import ClaimStatus, IntegrationStatus, can_transition, is_terminal
from medaid.repositories.claim_repository import ClaimRepository
from medaid.schemas.claim import (
    ClaimResponse,
    ClaimStatusResponse,
    ClaimStatusUpdate,
    PublicClaimStatusResponse,
)
from medaid.schemas.pagination import PaginatedResponse, PaginationParams
from medaid.utils.logging_config import get_logger
from medaid.utils.timeutils import utcnow

logger = get_logger(__name__)

STALE_CLAIM_NOTE = "Provider response not recorded; routed to manual review"


class ClaimService:
    """Service for reading claims and moving them through their lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = ClaimRepository(db)

    async def get_claim_status(self, claim_number: str) -> ClaimStatusResponse:
        """
        Look up a claim's current status by claim number.

        Args:
            claim_number: Claim number (CLM-...)

        Returns:
            Status summary; ``found`` is False when no claim matches
        """
        claim = await self.repository.get_by_claim_number(claim_number)
        if claim is None:
            return ClaimStatusResponse(found=False, message="Claim not found")

        return ClaimStatusResponse(
            found=True,
            claim_number=claim.claim_number,
            status=claim.status,
            total_amount=claim.total_amount,
            covered_amount=claim.covered_amount,
            patient_responsibility=claim.patient_responsibility,
            approval_code=claim.approval_code,
            submission_date=claim.claim_date,
            last_updated=claim.last_updated,
            is_direct_submission=claim.is_direct_submission,
            processing_time=claim.processing_duration_ms,
        )

    async def get_public_claim_status(self, claim_number: str) -> PublicClaimStatusResponse:
        claim = await self.repository.get_by_claim_number(claim_number)
        if claim is None:
            raise ResourceNotFoundException("Claim", claim_number)
        return PublicClaimStatusResponse.model_validate(claim)

    async def get_claim(self, claim_id: int) -> ClaimResponse:
        claim = await self.repository.get_by_id(claim_id)
        if claim is None:
            raise ResourceNotFoundException("Claim", str(claim_id))
        return ClaimResponse.model_validate(claim)

    async def get_patient_claims(
        self, patient_id: int, params: PaginationParams
    ) -> PaginatedResponse[ClaimResponse]:
        """
        List a patient's claims, newest first.

        Args:
            patient_id: Patient identifier
            params: Pagination parameters

        Returns:
            Page of claims with pagination metadata
        """
        claims = await self.repository.get_by_patient_id(
            patient_id, skip=params.skip, limit=params.limit
        )
        total = await self.repository.count_by_patient_id(patient_id)
        return PaginatedResponse[ClaimResponse].create(
            items=[ClaimResponse.model_validate(claim) for claim in claims],
            total_items=total,
            params=params,
        )

    async def update_claim_status(self, claim_id: int, update: ClaimStatusUpdate) -> ClaimResponse:
        """
        Apply a manual status change.

        Setting a claim to the status it already has is accepted and only
        updates the supplied fields.

        Args:
            claim_id: Claim ID
            update: New status and optional outcome details

        Returns:
            Updated claim

        Raises:
            ResourceNotFoundException: If the claim does not exist
            InvalidStateTransitionException: If the lifecycle forbids the change
            ConcurrencyConflictException: If the claim changed concurrently
            ValidationException: If the covered amount exceeds the claim total
        """
        claim = await self.repository.get_by_id(claim_id)
        if claim is None:
            raise ResourceNotFoundException("Claim", str(claim_id))

        if update.expected_version is not None and update.expected_version != claim.version:
            raise ConcurrencyConflictException(claim.claim_number, update.expected_version)

        current = ClaimStatus(claim.status)
        if update.status != current and not can_transition(current, update.status):
            raise InvalidStateTransitionException(current.value, update.status.value)
        if is_terminal(current) and update.covered_amount is not None:
            raise ValidationException(
                f"Amounts of a {current.value} claim cannot change", field="coveredAmount"
            )

        fields: Dict[str, Any] = {"status": update.status.value}
        if update.covered_amount is not None:
            if update.covered_amount > claim.total_amount:
                raise ValidationException(
                    "Covered amount cannot exceed the claim total", field="coveredAmount"
                )
            fields["covered_amount"] = update.covered_amount
            fields["patient_responsibility"] = claim.total_amount - update.covered_amount
        if update.notes is not None:
            fields["notes"] = update.notes
        if update.rejection_reason is not None:
            fields["rejection_reason"] = update.rejection_reason
        if update.approval_code is not None:
            fields["approval_code"] = update.approval_code

        try:
            updated = await self.repository.update_if_version(claim.id, claim.version, **fields)
            if updated is None:
                raise ConcurrencyConflictException(claim.claim_number, claim.version)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Claim {updated.claim_number} status updated: {current.value} -> {update.status.value}",
            extra={"extra_fields": {"claim_id": claim_id, "version": updated.version}},
        )
        return ClaimResponse.model_validate(updated)

    async def reap_stale_claims(self, older_than_seconds: Optional[int] = None) -> int:
        """
        Route claims stuck in PROCESSING to manual review.

        A claim stays in PROCESSING only if the process handling its
        submission died before recording the provider's answer.

        Args:
            older_than_seconds: Age after which a PROCESSING claim is stale

        Returns:
            Number of claims moved to PENDING_REVIEW
        """
        if older_than_seconds is None:
            older_than_seconds = settings.CLAIM_STALE_AFTER_SECONDS
        cutoff = utcnow() - timedelta(seconds=older_than_seconds)

        stale = await self.repository.get_stale_processing(cutoff)
        reaped = 0
        for claim in stale:
            updated = await self.repository.update_if_version(
                claim.id,
                claim.version,
                status=ClaimStatus.PENDING_REVIEW.value,
                integration_status=IntegrationStatus.FAILED.value,
                notes=STALE_CLAIM_NOTE,
            )
            if updated is None:
                # Someone else resolved it meanwhile
                continue
            reaped += 1
            logger.warning(
                f"Stale claim {claim.claim_number} routed to manual review",
                extra={"extra_fields": {"claim_id": claim.id}},
            )

        await self.db.commit()
        if reaped:
            logger.info(f"Reaped {reaped} stale claim(s)")
        return reaped
