"""Tests for webhook signatures."""
import pytest

from medaid.utils.signatures import sign_payload, verify_signature

BODY = b'{"claimNumber":"CLM-CIM-202401-000001","status":"APPROVED"}'


@pytest.mark.unit
def test_signature_round_trip():
    signature = sign_payload("secret", BODY)

    assert signature.startswith("sha256=")
    assert verify_signature("secret", BODY, signature)


@pytest.mark.unit
def test_signature_rejects_wrong_secret_and_tampering():
    signature = sign_payload("secret", BODY)

    assert not verify_signature("other-secret", BODY, signature)
    assert not verify_signature("secret", BODY + b" ", signature)


@pytest.mark.unit
@pytest.mark.parametrize("header", [None, "", "md5=abc", sign_payload("secret", BODY)[7:]])
def test_signature_requires_prefixed_header(header):
    assert not verify_signature("secret", BODY, header)
