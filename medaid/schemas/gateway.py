"""Typed results exchanged with provider gateways."""
from typing import List, Optional

from pydantic import Field

from medaid.schemas.common import CamelModel, Money


class ProviderResult(CamelModel):
    """A provider's answer to a claim submission."""

    success: bool
    status: str
    message: str
    provider_claim_id: Optional[str] = None
    authorization_number: Optional[str] = None
    covered_amount: Optional[Money] = None
    patient_responsibility: Optional[Money] = None
    approval_code: Optional[str] = None
    errors: List[str] = Field(default_factory=list)
