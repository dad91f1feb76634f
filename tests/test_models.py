"""Tests for the claim lifecycle and database models."""
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from medaid.models import ClaimStatus, MedicalAidClaim
from medaid.models.enums import TERMINAL_STATUSES, can_transition, is_terminal, parse_status


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,target",
    [
        (ClaimStatus.PROCESSING, ClaimStatus.APPROVED),
        (ClaimStatus.PROCESSING, ClaimStatus.PENDING_REVIEW),
        (ClaimStatus.PENDING_PATIENT_AUTH, ClaimStatus.CLAIM_SUBMITTED),
        (ClaimStatus.CLAIM_SUBMITTED, ClaimStatus.PAID),
        (ClaimStatus.PENDING_REVIEW, ClaimStatus.REJECTED),
        (ClaimStatus.APPROVED, ClaimStatus.PAID),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,target",
    [
        (ClaimStatus.APPROVED, ClaimStatus.PENDING_REVIEW),
        (ClaimStatus.REJECTED, ClaimStatus.APPROVED),
        (ClaimStatus.PAID, ClaimStatus.APPROVED),
        (ClaimStatus.PENDING_PATIENT_AUTH, ClaimStatus.PAID),
        (ClaimStatus.PROCESSING, ClaimStatus.PAID),
    ],
)
def test_forbidden_transitions(current, target):
    assert not can_transition(current, target)


@pytest.mark.unit
def test_terminal_statuses():
    assert TERMINAL_STATUSES == {ClaimStatus.REJECTED, ClaimStatus.PAID}
    assert is_terminal(ClaimStatus.PAID)
    assert not is_terminal(ClaimStatus.APPROVED)


@pytest.mark.unit
def test_parse_status_normalises_case_and_rejects_unknown():
    assert parse_status(" approved ") is ClaimStatus.APPROVED
    assert parse_status("ON_HOLD") is None
    assert parse_status(None) is None


@pytest.mark.unit
async def test_claim_defaults(db_session, direct_provider, make_claim):
    claim = await make_claim(direct_provider)

    assert claim.id is not None
    assert claim.version == 1
    assert claim.claim_date is not None
    assert claim.last_updated is not None
    assert claim.auto_processed is False
    assert claim.total_amount == Decimal("500.00")


@pytest.mark.unit
async def test_claim_number_is_unique(db_session, direct_provider, make_claim):
    first = await make_claim(direct_provider)

    duplicate = MedicalAidClaim(
        claim_number=first.claim_number,
        patient_id=7,
        provider_id=direct_provider.id,
        membership_number="CIM-1",
        total_amount=Decimal("10.00"),
    )
    db_session.add(duplicate)

    with pytest.raises(IntegrityError):
        await db_session.commit()

    await db_session.rollback()
