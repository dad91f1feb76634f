"""Pydantic schemas for membership validation."""
from typing import Optional

from pydantic import Field

from medaid.schemas.common import CamelModel, Money


class MembershipValidationRequest(CamelModel):
    provider_id: int
    membership_number: str = Field(..., min_length=1, max_length=100)
    dependent_code: Optional[str] = Field(None, max_length=20)


class MembershipBenefits(CamelModel):
    """Benefit summary reported by a provider for a valid member."""

    annual_limit: Money
    remaining_benefit: Money
    copayment_percentage: int = Field(..., ge=0, le=100)
    chronic_medicines_covered: bool


class MembershipValidationResponse(CamelModel):
    valid: bool
    message: str
    benefits: Optional[MembershipBenefits] = None
