"""Tests for the HTTP provider gateway."""
import json
from decimal import Decimal

import httpx
import pytest

from medaid.exceptions import ProviderUnavailableException
from medaid.gateways.http import HttpProviderGateway
from medaid.models import ClaimStatus
from medaid.schemas.claim import ClaimSubmissionRequest
from medaid.schemas.provider import ProviderConfig

PROVIDER = ProviderConfig(
    id=3,
    name="PSMAS",
    code="PSM",
    api_endpoint="https://api.psmas.example/v2/",
    api_key="psm-key",
    supports_direct_claims=True,
    test_mode=False,
)

REQUEST = ClaimSubmissionRequest(
    patient_id=42,
    provider_id=3,
    membership_number="PSM-778899",
    total_amount=Decimal("250.00"),
    diagnosis_code="E11.9",
)


class Recorder:
    """Mock transport handler replaying queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_gateway(handler, max_retries=2):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    gateway = HttpProviderGateway(
        timeout=1.0,
        max_retries=max_retries,
        backoff_seconds=0.5,
        transport=httpx.MockTransport(handler),
        sleep=fake_sleep,
    )
    return gateway, sleeps


@pytest.mark.unit
async def test_submit_claim_posts_json_with_bearer_token():
    handler = Recorder(
        httpx.Response(
            200,
            json={
                "success": True,
                "status": "APPROVED",
                "message": "Approved",
                "providerClaimId": "PSM-991",
                "coveredAmount": 200.0,
                "patientResponsibility": 50.0,
                "approvalCode": "OK-1",
            },
        )
    )
    gateway, _ = make_gateway(handler)

    result = await gateway.submit_claim(PROVIDER, REQUEST, "CLM-PSM-202401-000001")

    sent = handler.requests[0]
    body = json.loads(sent.content)
    assert str(sent.url) == "https://api.psmas.example/v2/claims"
    assert sent.headers["Authorization"] == "Bearer psm-key"
    assert body["claimNumber"] == "CLM-PSM-202401-000001"
    assert body["membershipNumber"] == "PSM-778899"
    assert body["diagnosisCode"] == "E11.9"
    assert result.status == "APPROVED"
    assert result.provider_claim_id == "PSM-991"
    assert result.covered_amount == Decimal("200.0")


@pytest.mark.unit
async def test_transient_failures_are_retried_with_backoff():
    handler = Recorder(
        httpx.ConnectError("connection refused"),
        httpx.Response(503, text="busy"),
        httpx.Response(200, json={"success": True, "status": "PENDING_REVIEW", "message": "Queued"}),
    )
    gateway, sleeps = make_gateway(handler)

    result = await gateway.submit_claim(PROVIDER, REQUEST, "CLM-PSM-202401-000002")

    assert result.status == "PENDING_REVIEW"
    assert len(handler.requests) == 3
    assert sleeps == [0.5, 1.0]


@pytest.mark.unit
async def test_exhausted_retries_raise_provider_unavailable():
    handler = Recorder(*[httpx.Response(502) for _ in range(3)])
    gateway, sleeps = make_gateway(handler)

    with pytest.raises(ProviderUnavailableException) as exc_info:
        await gateway.submit_claim(PROVIDER, REQUEST, "CLM-PSM-202401-000003")

    assert exc_info.value.attempts == 3
    assert exc_info.value.provider_code == "PSM"
    assert exc_info.value.status_code == 503
    assert len(sleeps) == 2


@pytest.mark.unit
async def test_client_error_is_not_retried():
    handler = Recorder(httpx.Response(400, json={"errors": ["Unknown member"]}))
    gateway, sleeps = make_gateway(handler)

    result = await gateway.submit_claim(PROVIDER, REQUEST, "CLM-PSM-202401-000004")

    assert result.success is False
    assert result.status == ClaimStatus.PENDING_REVIEW.value
    assert result.errors == ["Unknown member"]
    assert sleeps == []


@pytest.mark.unit
async def test_unreadable_response_routes_to_review():
    handler = Recorder(httpx.Response(200, text="<html>oops</html>"))
    gateway, _ = make_gateway(handler)

    result = await gateway.submit_claim(PROVIDER, REQUEST, "CLM-PSM-202401-000005")

    assert result.success is False
    assert result.status == ClaimStatus.PENDING_REVIEW.value


@pytest.mark.unit
async def test_membership_not_found_is_invalid():
    handler = Recorder(httpx.Response(404, json={"message": "No such member"}))
    gateway, _ = make_gateway(handler)

    result = await gateway.validate_membership(PROVIDER, "PSM-000000")

    assert result.valid is False
    assert str(handler.requests[0].url).endswith("/members/validate")


@pytest.mark.unit
async def test_membership_valid_with_benefits():
    handler = Recorder(
        httpx.Response(
            200,
            json={
                "valid": True,
                "message": "Active member",
                "benefits": {
                    "annualLimit": 80000,
                    "remainingBenefit": 12000.5,
                    "copaymentPercentage": 10,
                    "chronicMedicinesCovered": False,
                },
            },
        )
    )
    gateway, _ = make_gateway(handler)

    result = await gateway.validate_membership(PROVIDER, "PSM-778899", "01")

    assert result.valid is True
    assert result.benefits.copayment_percentage == 10
    assert json.loads(handler.requests[0].content)["dependentCode"] == "01"
