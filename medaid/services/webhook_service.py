"""Reconciliation of provider webhook callbacks."""
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.config import settings
from medaid.models.claim import MedicalAidClaim
from medaid.models.enums import ClaimStatus, can_transition, is_terminal, parse_status
from medaid.repositories.claim_repository import ClaimRepository
from medaid.schemas.webhook import WebhookOutcome, WebhookPayload
from medaid.utils.logging_config import get_logger
from medaid.utils.timeutils import as_utc, utcnow

logger = get_logger(__name__)


class WebhookService:
    """
    Applies asynchronous status updates pushed by providers.

    Deliveries are best effort: problems are logged and reported as an
    outcome, never raised. Updates go through a compare-and-swap on the
    claim version, and deliveries that are older than the last applied
    event, or that would move a claim backwards, are dropped as stale.
    """

    def __init__(self, db: AsyncSession, max_attempts: Optional[int] = None):
        self.db = db
        self.repository = ClaimRepository(db)
        self.max_attempts = max_attempts or settings.WEBHOOK_MAX_CAS_ATTEMPTS

    async def process_webhook(self, provider_id: int, webhook_data: Dict[str, Any]) -> WebhookOutcome:
        """
        Reconcile a webhook delivery against its claim.

        Args:
            provider_id: Provider the webhook was delivered for
            webhook_data: Raw JSON payload

        Returns:
            What happened to the delivery
        """
        try:
            return await self._process(provider_id, webhook_data)
        except Exception as exc:
            logger.error(
                f"Webhook processing error: {exc}",
                exc_info=True,
                extra={"extra_fields": {"provider_id": provider_id}},
            )
            await self.db.rollback()
            return WebhookOutcome.REJECTED

    async def _process(self, provider_id: int, webhook_data: Dict[str, Any]) -> WebhookOutcome:
        try:
            payload = WebhookPayload.model_validate(webhook_data)
        except ValidationError as exc:
            logger.warning(
                f"Malformed webhook payload from provider {provider_id}: {exc.error_count()} error(s)"
            )
            return WebhookOutcome.REJECTED

        claim_number = payload.resolved_claim_number
        if not claim_number:
            logger.warning(f"No claim number in webhook data from provider {provider_id}")
            return WebhookOutcome.REJECTED

        new_status = parse_status(payload.status)
        if new_status is None:
            logger.warning(f"Webhook for {claim_number} carries unknown status {payload.status!r}")
            return WebhookOutcome.REJECTED

        claim = await self.repository.get_by_claim_number(claim_number)
        if claim is None:
            logger.warning(f"Webhook for unknown claim {claim_number}")
            return WebhookOutcome.NOT_FOUND

        if claim.provider_id != provider_id:
            logger.warning(
                f"Webhook from provider {provider_id} for claim {claim_number} owned by provider {claim.provider_id}"
            )
            return WebhookOutcome.REJECTED

        for attempt in range(self.max_attempts):
            if attempt:
                await self.db.refresh(claim)

            reason = self._stale_reason(claim, payload, new_status)
            if reason:
                logger.info(f"Ignoring webhook for {claim_number}: {reason}")
                return WebhookOutcome.STALE

            fields = self._update_fields(claim, payload, new_status)
            if fields is None:
                return WebhookOutcome.REJECTED

            updated = await self.repository.update_if_version(claim.id, claim.version, **fields)
            if updated is not None:
                await self.db.commit()
                logger.info(
                    f"Webhook processed for claim {claim_number}: {new_status.value}",
                    extra={"extra_fields": {"claim_id": claim.id, "version": updated.version}},
                )
                return WebhookOutcome.APPLIED

            logger.info(f"Claim {claim_number} changed while applying webhook, retrying")

        logger.error(f"Gave up applying webhook for {claim_number} after {self.max_attempts} attempts")
        return WebhookOutcome.CONFLICT

    @staticmethod
    def _stale_reason(
        claim: MedicalAidClaim, payload: WebhookPayload, new_status: ClaimStatus
    ) -> Optional[str]:
        current = ClaimStatus(claim.status)

        event_at = as_utc(payload.event_timestamp)
        last_event_at = as_utc(claim.provider_event_at)
        if event_at is not None and last_event_at is not None and event_at <= last_event_at:
            return f"event at {event_at.isoformat()} is not newer than {last_event_at.isoformat()}"

        if new_status == current:
            if is_terminal(current):
                return f"claim already {current.value}"
            return None

        if not can_transition(current, new_status):
            return f"transition {current.value} -> {new_status.value} not allowed"
        return None

    @staticmethod
    def _update_fields(
        claim: MedicalAidClaim, payload: WebhookPayload, new_status: ClaimStatus
    ) -> Optional[Dict[str, Any]]:
        """Columns to write; fields the provider left out keep their values."""
        fields: Dict[str, Any] = {
            "status": new_status.value,
            "response_data": payload.model_dump(mode="json", by_alias=True, exclude_none=True),
            "webhook_received_at": utcnow(),
        }
        if payload.event_timestamp is not None:
            fields["provider_event_at"] = payload.event_timestamp

        covered = payload.covered_amount
        if covered is not None:
            if covered > claim.total_amount:
                logger.warning(
                    f"Webhook for {claim.claim_number} covers {covered}, more than the claim total {claim.total_amount}"
                )
                return None
            fields["covered_amount"] = covered
            fields["patient_responsibility"] = claim.total_amount - covered
        elif payload.patient_responsibility is not None:
            if payload.patient_responsibility > claim.total_amount:
                logger.warning(
                    f"Webhook for {claim.claim_number} leaves the patient {payload.patient_responsibility}, "
                    f"more than the claim total {claim.total_amount}"
                )
                return None
            fields["patient_responsibility"] = payload.patient_responsibility
            fields["covered_amount"] = claim.total_amount - payload.patient_responsibility

        if payload.approval_code is not None:
            fields["approval_code"] = payload.approval_code
        if payload.rejection_reason is not None:
            fields["rejection_reason"] = payload.rejection_reason
        return fields
