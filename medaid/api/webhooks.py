"""Provider webhook endpoint."""
import json

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.config import settings
from medaid.database import get_db
from medaid.exceptions import (
    ResourceNotFoundException,
    ValidationException,
    WebhookAuthenticationException,
)
from medaid.schemas.provider import ProviderConfig
from medaid.schemas.webhook import WebhookAck, WebhookOutcome
from medaid.services.provider_service import ProviderService
from medaid.services.webhook_service import WebhookService
from medaid.tasks.claim_tasks import process_provider_webhook
from medaid.utils.logging_config import get_logger
from medaid.utils.rate_limit import limiter
from medaid.utils.signatures import SIGNATURE_HEADER, verify_signature

router = APIRouter(prefix="/medical-aid/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


def _authenticate(provider: ProviderConfig, body: bytes, signature: str) -> None:
    if provider.webhook_secret:
        if not verify_signature(provider.webhook_secret, body, signature):
            logger.warning(
                f"Rejected webhook with bad signature for provider {provider.code}",
                extra={"extra_fields": {"provider_id": provider.id, "signed": bool(signature)}},
            )
            raise WebhookAuthenticationException()
        return

    if not settings.WEBHOOK_ALLOW_UNSIGNED:
        logger.warning(f"Rejected unsigned webhook for provider {provider.code}: no webhook secret configured")
        raise WebhookAuthenticationException("Webhook signing is not configured for this provider")


@router.post("/{provider_id}", response_model=WebhookAck, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(settings.RATE_LIMIT_WEBHOOK)
async def receive_webhook(
    request: Request,
    provider_id: int,
    db: AsyncSession = Depends(get_db),
):
    """
    Accept a status callback from a medical aid provider.

    The raw body must be signed with the provider's webhook secret in the
    ``X-Provider-Signature`` header (``sha256=<hex>``). Accepted deliveries
    are processed in the background; problems while applying them are
    logged, not returned to the provider.

    Args:
        request: Incoming request (raw body is needed for the signature)
        provider_id: Provider the callback belongs to
        db: Database session

    Returns:
        Acknowledgement with the processing outcome, or ``queued``
    """
    provider = await ProviderService(db).get_provider_config(provider_id)
    if provider is None:
        raise ResourceNotFoundException("Provider", str(provider_id))

    body = await request.body()
    _authenticate(provider, body, request.headers.get(SIGNATURE_HEADER, ""))

    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationException("Webhook body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationException("Webhook body must be a JSON object")

    if settings.WEBHOOK_DISPATCH == "inline":
        outcome = await WebhookService(db).process_webhook(provider_id, payload)
    else:
        task = process_provider_webhook.delay(provider_id, payload)
        logger.info(
            f"Webhook queued for provider {provider.code}: {task.id}",
            extra={"extra_fields": {"task_id": task.id, "provider_id": provider_id}},
        )
        outcome = WebhookOutcome.QUEUED

    return WebhookAck(outcome=outcome)
