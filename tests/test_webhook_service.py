"""Tests for provider webhook reconciliation."""
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from medaid.models import ClaimStatus, MedicalAidClaim
from medaid.repositories.claim_repository import ClaimRepository
from medaid.schemas.webhook import WebhookOutcome
from medaid.services.webhook_service import WebhookService
from medaid.utils.timeutils import as_utc, utcnow


async def reload(db_session, claim_id):
    claim = await ClaimRepository(db_session).get_by_id(claim_id)
    await db_session.refresh(claim)
    return claim


@pytest.mark.unit
async def test_webhook_updates_claim(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider, total_amount=Decimal("500.00"))

    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id,
        {
            "claimNumber": claim.claim_number,
            "status": "APPROVED",
            "coveredAmount": 420.00,
            "approvalCode": "CIM-OK-1",
            "schemeReference": "S-77",
        },
    )

    assert outcome == WebhookOutcome.APPLIED
    claim = await reload(db_session, claim.id)
    assert claim.status == ClaimStatus.APPROVED.value
    assert claim.covered_amount == Decimal("420.00")
    assert claim.patient_responsibility == Decimal("80.00")
    assert claim.approval_code == "CIM-OK-1"
    assert claim.response_data["schemeReference"] == "S-77"
    assert claim.webhook_received_at is not None
    assert claim.version == 2


@pytest.mark.unit
async def test_reference_number_identifies_claim(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider, status=ClaimStatus.PENDING_REVIEW.value)

    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id,
        {"referenceNumber": claim.claim_number, "status": "rejected", "rejectionReason": "Not covered"},
    )

    assert outcome == WebhookOutcome.APPLIED
    claim = await reload(db_session, claim.id)
    assert claim.status == ClaimStatus.REJECTED.value
    assert claim.rejection_reason == "Not covered"


@pytest.mark.unit
async def test_missing_fields_keep_existing_values(db_session, direct_provider, make_claim):
    claim = await make_claim(
        direct_provider,
        status=ClaimStatus.APPROVED.value,
        covered_amount=Decimal("400.00"),
        patient_responsibility=Decimal("100.00"),
        approval_code="APP-ORIGINAL",
    )

    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id, {"claimNumber": claim.claim_number, "status": "PAID"}
    )

    assert outcome == WebhookOutcome.APPLIED
    claim = await reload(db_session, claim.id)
    assert claim.status == ClaimStatus.PAID.value
    assert claim.covered_amount == Decimal("400.00")
    assert claim.approval_code == "APP-ORIGINAL"


@pytest.mark.unit
async def test_missing_claim_number_is_rejected(db_session, direct_provider):
    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id, {"status": "APPROVED"}
    )
    assert outcome == WebhookOutcome.REJECTED


@pytest.mark.unit
async def test_unknown_claim_is_not_found(db_session, direct_provider):
    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id, {"claimNumber": "CLM-CIM-202401-999999", "status": "APPROVED"}
    )
    assert outcome == WebhookOutcome.NOT_FOUND


@pytest.mark.unit
async def test_webhook_from_other_provider_is_rejected(
    db_session, direct_provider, manual_provider, make_claim
):
    claim = await make_claim(direct_provider)

    outcome = await WebhookService(db_session).process_webhook(
        manual_provider.id, {"claimNumber": claim.claim_number, "status": "APPROVED"}
    )

    assert outcome == WebhookOutcome.REJECTED
    assert (await reload(db_session, claim.id)).status == ClaimStatus.PROCESSING.value


@pytest.mark.unit
@pytest.mark.parametrize(
    "payload",
    [
        {"status": "ON_HOLD"},
        {"status": "APPROVED", "coveredAmount": -5},
        {"status": "APPROVED", "coveredAmount": 900.00},
        {"status": "APPROVED", "patientResponsibility": 900},
    ],
)
async def test_invalid_updates_are_rejected(db_session, direct_provider, make_claim, payload):
    claim = await make_claim(direct_provider, total_amount=Decimal("500.00"))

    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id, {"claimNumber": claim.claim_number, **payload}
    )

    assert outcome == WebhookOutcome.REJECTED
    claim = await reload(db_session, claim.id)
    assert claim.status == ClaimStatus.PROCESSING.value
    assert claim.version == 1


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,incoming",
    [
        (ClaimStatus.PAID, "APPROVED"),
        (ClaimStatus.REJECTED, "REJECTED"),
        (ClaimStatus.APPROVED, "PENDING_REVIEW"),
        (ClaimStatus.PENDING_PATIENT_AUTH, "PAID"),
    ],
)
async def test_backward_or_terminal_updates_are_stale(
    db_session, direct_provider, make_claim, current, incoming
):
    claim = await make_claim(direct_provider, status=current.value)

    outcome = await WebhookService(db_session).process_webhook(
        direct_provider.id, {"claimNumber": claim.claim_number, "status": incoming}
    )

    assert outcome == WebhookOutcome.STALE
    assert (await reload(db_session, claim.id)).status == current.value


@pytest.mark.unit
async def test_out_of_order_events_are_stale(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider, status=ClaimStatus.PENDING_REVIEW.value)
    service = WebhookService(db_session)
    newer = utcnow()
    older = newer - timedelta(minutes=2)

    first = await service.process_webhook(
        direct_provider.id,
        {"claimNumber": claim.claim_number, "status": "APPROVED", "eventTimestamp": newer.isoformat()},
    )
    replay = await service.process_webhook(
        direct_provider.id,
        {"claimNumber": claim.claim_number, "status": "APPROVED", "eventTimestamp": newer.isoformat()},
    )
    late = await service.process_webhook(
        direct_provider.id,
        {"claimNumber": claim.claim_number, "status": "REJECTED", "eventTimestamp": older.isoformat()},
    )

    assert (first, replay, late) == (WebhookOutcome.APPLIED, WebhookOutcome.STALE, WebhookOutcome.STALE)
    claim = await reload(db_session, claim.id)
    assert claim.status == ClaimStatus.APPROVED.value
    assert as_utc(claim.provider_event_at) == newer


@pytest.mark.unit
async def test_concurrent_change_is_retried(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider, status=ClaimStatus.PENDING_REVIEW.value)
    repository = ClaimRepository(db_session)
    original = repository.update_if_version
    calls = []

    async def racing_update(claim_id, expected_version, **fields):
        calls.append(expected_version)
        if len(calls) == 1:
            # Another writer bumps the version first
            await db_session.execute(
                update(MedicalAidClaim)
                .where(MedicalAidClaim.id == claim_id)
                .values(version=MedicalAidClaim.version + 1, notes="touched")
                .execution_options(synchronize_session=False)
            )
        return await original(claim_id, expected_version, **fields)

    service = WebhookService(db_session)
    service.repository.update_if_version = racing_update

    outcome = await service.process_webhook(
        direct_provider.id, {"claimNumber": claim.claim_number, "status": "APPROVED"}
    )

    assert outcome == WebhookOutcome.APPLIED
    assert calls == [1, 2]
    claim = await reload(db_session, claim.id)
    assert claim.status == ClaimStatus.APPROVED.value
    assert claim.notes == "touched"
    assert claim.version == 3


@pytest.mark.unit
async def test_persistent_conflict_gives_up(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider, status=ClaimStatus.PENDING_REVIEW.value)

    async def always_conflicts(claim_id, expected_version, **fields):
        return None

    service = WebhookService(db_session, max_attempts=2)
    service.repository.update_if_version = always_conflicts

    outcome = await service.process_webhook(
        direct_provider.id, {"claimNumber": claim.claim_number, "status": "APPROVED"}
    )

    assert outcome == WebhookOutcome.CONFLICT
