"""Tests for repositories."""
from datetime import timedelta

import pytest

from medaid.models import ClaimStatus
from medaid.repositories.claim_repository import ClaimRepository
from medaid.repositories.provider_repository import ProviderRepository
from medaid.utils.timeutils import utcnow


@pytest.mark.unit
async def test_update_if_version_bumps_version(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider)
    repository = ClaimRepository(db_session)

    updated = await repository.update_if_version(
        claim.id, 1, status=ClaimStatus.APPROVED.value, claim_number="CLM-HIJACK"
    )
    await db_session.commit()

    assert updated is not None
    assert updated.version == 2
    assert updated.status == ClaimStatus.APPROVED.value
    assert updated.claim_number == claim.claim_number


@pytest.mark.unit
async def test_update_if_version_rejects_stale_version(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider)
    repository = ClaimRepository(db_session)

    assert await repository.update_if_version(claim.id, 1, notes="first") is not None
    assert await repository.update_if_version(claim.id, 1, notes="second") is None

    current = await repository.get_by_id(claim.id)
    assert current.notes == "first"
    assert current.version == 2


@pytest.mark.unit
async def test_patient_claims_are_paginated_newest_first(db_session, direct_provider, make_claim):
    now = utcnow()
    for days in range(5):
        await make_claim(direct_provider, patient_id=9, claim_date=now - timedelta(days=days))
    await make_claim(direct_provider, patient_id=10)

    repository = ClaimRepository(db_session)
    page = await repository.get_by_patient_id(9, skip=0, limit=2)

    assert await repository.count_by_patient_id(9) == 5
    assert len(page) == 2
    assert page[0].claim_date >= page[1].claim_date


@pytest.mark.unit
async def test_get_stale_processing(db_session, direct_provider, make_claim, stale_timestamp):
    old = await make_claim(direct_provider, last_updated=stale_timestamp)
    await make_claim(direct_provider)
    await make_claim(
        direct_provider, status=ClaimStatus.APPROVED.value, last_updated=stale_timestamp
    )

    stale = await ClaimRepository(db_session).get_stale_processing(utcnow() - timedelta(minutes=5))

    assert [claim.id for claim in stale] == [old.id]


@pytest.mark.unit
async def test_provider_update_clears_fields(db_session, direct_provider):
    repository = ProviderRepository(db_session)

    updated = await repository.update(direct_provider.id, name="Cimas", api_endpoint=None)

    assert updated.name == "Cimas"
    assert updated.api_endpoint is None
    assert updated.webhook_secret == "cim-webhook-secret"
    assert await repository.update(9999, name="Nobody") is None
