"""Tests for Celery wiring."""
import pytest

from medaid.celery_app import celery_app
from medaid.tasks import process_provider_webhook, reap_stale_claims


@pytest.mark.unit
def test_tasks_are_registered():
    assert process_provider_webhook.name in celery_app.tasks
    assert reap_stale_claims.name in celery_app.tasks


@pytest.mark.unit
def test_reaper_is_scheduled():
    entry = celery_app.conf.beat_schedule["reap-stale-claims"]

    assert entry["task"] == reap_stale_claims.name
    assert entry["schedule"].minute == set(range(0, 60, 5))
