"""Celery tasks for claim processing."""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from medaid.celery_app import celery_app
from medaid.config import settings
from medaid.schemas.webhook import WebhookOutcome
from medaid.services.claim_service import ClaimService
from medaid.services.webhook_service import WebhookService
from medaid.utils.logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    Database session for a single task run.

    Each ``asyncio.run`` call gets its own event loop, so the engine is
    created and disposed per run rather than shared with the web process.
    """
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
    )
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    try:
        async with session_factory() as session:
            yield session
    finally:
        await engine.dispose()


async def process_provider_webhook_async(provider_id: int, payload: Dict[str, Any]) -> WebhookOutcome:
    async with get_async_session() as session:
        return await WebhookService(session).process_webhook(provider_id, payload)


async def reap_stale_claims_async() -> int:
    async with get_async_session() as session:
        return await ClaimService(session).reap_stale_claims()


@celery_app.task(
    name="medaid.tasks.claim_tasks.process_provider_webhook",
    bind=True,
    max_retries=5,
    default_retry_delay=30,
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
)
def process_provider_webhook(self, provider_id: int, payload: Dict[str, Any]) -> str:
    """
    Apply a provider webhook delivery.

    Deliveries that keep losing the version race are retried later;
    every other outcome is final.

    Args:
        self: Task instance (bound)
        provider_id: Provider the webhook was delivered for
        payload: Raw webhook JSON

    Returns:
        Webhook outcome value
    """
    logger.info(
        f"Celery task started: process_provider_webhook - provider {provider_id}",
        extra={"extra_fields": {"task_id": self.request.id, "retries": self.request.retries}},
    )

    outcome = asyncio.run(process_provider_webhook_async(provider_id, payload))

    if outcome == WebhookOutcome.CONFLICT:
        logger.warning(
            "Webhook lost repeated version conflicts, scheduling retry",
            extra={"extra_fields": {"task_id": self.request.id, "provider_id": provider_id}},
        )
        raise self.retry()

    logger.info(
        f"Celery task completed: process_provider_webhook - {outcome.value}",
        extra={"extra_fields": {"task_id": self.request.id, "provider_id": provider_id}},
    )
    return outcome.value


@celery_app.task(
    name="medaid.tasks.claim_tasks.reap_stale_claims",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_jitter=True,
)
def reap_stale_claims(self) -> Dict[str, Any]:
    """Route claims abandoned in PROCESSING to manual review."""
    logger.info(
        "Celery task started: reap_stale_claims",
        extra={"extra_fields": {"task_id": self.request.id}},
    )
    try:
        reaped = asyncio.run(reap_stale_claims_async())
    except Exception as exc:
        logger.error(
            f"Celery task failed: reap_stale_claims - {exc}",
            exc_info=True,
            extra={"extra_fields": {"task_id": self.request.id, "retries": self.request.retries}},
        )
        raise

    logger.info(
        "Celery task completed: reap_stale_claims",
        extra={"extra_fields": {"reaped": reaped}},
    )
    return {"status": "success", "reaped": reaped}
