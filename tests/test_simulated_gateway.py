"""Tests for the provider simulator."""
import random
from decimal import Decimal

import pytest

from medaid.gateways.simulated import SimulatedProviderGateway
from medaid.models import ClaimStatus
from medaid.schemas.claim import ClaimSubmissionRequest
from medaid.schemas.provider import ProviderConfig


def make_provider(**overrides):
    fields = dict(
        id=1,
        name="Cimas Medical Aid",
        code="CIM",
        api_endpoint="https://api.cimas.example/v1",
        supports_direct_claims=True,
        test_mode=True,
        auto_approval_limit=Decimal("1000.00"),
    )
    fields.update(overrides)
    return ProviderConfig(**fields)


def make_request(total):
    return ClaimSubmissionRequest(
        patient_id=42,
        provider_id=1,
        membership_number="CIM-0012345",
        total_amount=Decimal(total),
    )


def make_gateway(seed=1):
    return SimulatedProviderGateway(rng=random.Random(seed), min_delay_ms=0, max_delay_ms=0)


@pytest.mark.unit
async def test_claim_within_limit_is_approved():
    result = await make_gateway().submit_claim(
        make_provider(), make_request("850.00"), "CLM-CIM-202401-000001"
    )

    assert result.success is True
    assert result.status == ClaimStatus.APPROVED.value
    assert result.message == "Claim approved automatically"
    assert result.authorization_number == "AUTH-CLM-CIM-202401-000001"
    assert result.provider_claim_id.startswith("CIM-")
    assert result.approval_code.startswith("APP-")
    assert len(result.approval_code) == 13
    assert result.covered_amount + result.patient_responsibility == Decimal("850.00")


@pytest.mark.unit
async def test_claim_at_limit_is_approved():
    result = await make_gateway().submit_claim(
        make_provider(), make_request("1000.00"), "CLM-CIM-202401-000002"
    )
    assert result.status == ClaimStatus.APPROVED.value


@pytest.mark.unit
async def test_claim_over_limit_goes_to_review():
    result = await make_gateway().submit_claim(
        make_provider(), make_request("1500.00"), "CLM-CIM-202401-000003"
    )

    assert result.success is True
    assert result.status == ClaimStatus.PENDING_REVIEW.value
    assert result.authorization_number == "REV-CLM-CIM-202401-000003"
    assert result.covered_amount is None
    assert result.approval_code is None


@pytest.mark.unit
async def test_missing_limit_uses_default():
    provider = make_provider(auto_approval_limit=None)
    gateway = make_gateway()

    under = await gateway.submit_claim(provider, make_request("999.99"), "CLM-CIM-202401-000004")
    over = await gateway.submit_claim(provider, make_request("1000.01"), "CLM-CIM-202401-000005")

    assert under.status == ClaimStatus.APPROVED.value
    assert over.status == ClaimStatus.PENDING_REVIEW.value


@pytest.mark.unit
@pytest.mark.parametrize("total", ["0.07", "0.10", "1.00", "19.99", "333.33", "1000.00"])
def test_coverage_stays_within_bounds(total):
    total = Decimal(total)
    for seed in range(50):
        covered = make_gateway(seed).covered_amount(total)
        assert total * Decimal("0.80") <= covered <= total * Decimal("0.95")
        assert covered == covered.quantize(Decimal("0.01"))
        assert covered <= total


@pytest.mark.unit
async def test_membership_validation_returns_benefits():
    rng = random.Random()
    rng.random = lambda: 0.1
    gateway = SimulatedProviderGateway(rng=rng, min_delay_ms=0, max_delay_ms=0)

    result = await gateway.validate_membership(make_provider(), "CIM-0012345")

    assert result.valid is True
    assert result.benefits.annual_limit == Decimal("50000")
    assert result.benefits.copayment_percentage == 20


@pytest.mark.unit
async def test_membership_validation_can_fail():
    rng = random.Random()
    rng.random = lambda: 0.95
    gateway = SimulatedProviderGateway(rng=rng, min_delay_ms=0, max_delay_ms=0)

    result = await gateway.validate_membership(make_provider(), "CIM-0012345")

    assert result.valid is False
    assert result.benefits is None


@pytest.mark.unit
@pytest.mark.parametrize("total", ["0.01", "0.02", "0.03", "0.04"])
def test_tiny_totals_are_covered_in_full(total):
    total = Decimal(total)
    for seed in range(20):
        assert make_gateway(seed).covered_amount(total) == total
