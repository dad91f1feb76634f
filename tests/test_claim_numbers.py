"""Tests for claim number generation."""
import re
from datetime import datetime, timezone

import pytest

from medaid.utils.claim_numbers import MANUAL_PROVIDER_CODE, ClaimNumberGenerator, generate_claim_number

CLAIM_NUMBER_PATTERN = re.compile(r"^CLM-[A-Z0-9]+-\d{6}-\d{6}$")


def fixed_clock(value):
    return lambda: value


@pytest.mark.unit
def test_claim_number_format():
    generator = ClaimNumberGenerator(
        clock_ms=fixed_clock(1_717_000_123_456),
        now=lambda: datetime(2024, 3, 9, tzinfo=timezone.utc),
    )

    number = generator.generate("CIM")

    assert number == "CLM-CIM-202403-123456"
    assert CLAIM_NUMBER_PATTERN.match(number)


@pytest.mark.unit
def test_manual_claims_use_reserved_code():
    generator = ClaimNumberGenerator()
    assert generator.generate(MANUAL_PROVIDER_CODE).startswith("CLM-MAN-")


@pytest.mark.unit
def test_numbers_unique_within_same_millisecond():
    generator = ClaimNumberGenerator(clock_ms=fixed_clock(1_000_000_000_000))

    numbers = {generator.generate("CIM") for _ in range(500)}

    assert len(numbers) == 500


@pytest.mark.unit
def test_clock_going_backwards_does_not_repeat():
    ticks = iter([5_000_000, 4_000_000, 4_000_001])
    generator = ClaimNumberGenerator(clock_ms=lambda: next(ticks))

    first = generator.generate("PSM")
    second = generator.generate("PSM")
    third = generator.generate("PSM")

    assert len({first, second, third}) == 3


@pytest.mark.unit
def test_suffix_is_zero_padded():
    generator = ClaimNumberGenerator(clock_ms=fixed_clock(42))
    assert generator.generate("CIM").endswith("-000042")


@pytest.mark.unit
def test_module_generator_is_shared():
    first = generate_claim_number("CIM")
    second = generate_claim_number("CIM")

    assert CLAIM_NUMBER_PATTERN.match(first)
    assert first != second
