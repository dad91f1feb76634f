"""Celery tasks for background processing."""
from medaid.tasks.claim_tasks import process_provider_webhook, reap_stale_claims

__all__ = [
    "process_provider_webhook",
    "reap_stale_claims",
]
