"""Pydantic schemas for medical aid claim endpoints."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from medaid.models.enums import ClaimStatus
from medaid.schemas.common import CamelModel, Money, round2

ITEM_TOTAL_TOLERANCE = Decimal("0.01")


class ClaimItem(CamelModel):
    """A dispensed medicine line carried inside a claim submission."""

    medicine_id: int
    medicine_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., gt=0)
    unit_price: Money = Field(..., ge=0)
    total_price: Money = Field(..., ge=0)
    nappi_code: Optional[str] = Field(None, max_length=20, description="National pharmaceutical product code")
    dosage: Optional[str] = Field(None, max_length=255)


class ClaimSubmissionRequest(CamelModel):
    """Request body for a direct claim submission."""

    patient_id: int
    provider_id: int
    membership_number: str = Field(..., min_length=1, max_length=100)
    total_amount: Money = Field(..., gt=0)
    benefit_type: str = Field(default="PHARMACY", max_length=50)
    service_date: date = Field(default_factory=date.today)
    items: List[ClaimItem] = Field(default_factory=list)
    order_id: Optional[int] = None
    prescription_id: Optional[int] = None
    dependent_code: Optional[str] = Field(None, max_length=20)
    diagnosis_code: Optional[str] = Field(None, max_length=20)
    treatment_code: Optional[str] = Field(None, max_length=20)

    @field_validator("total_amount")
    @classmethod
    def round_total(cls, v: Decimal) -> Decimal:
        v = round2(v)
        if v <= 0:
            raise ValueError("totalAmount must be at least 0.01")
        return v

    @model_validator(mode="after")
    def check_items_total(self) -> "ClaimSubmissionRequest":
        # An empty item list is accepted; a non-empty one must add up
        if self.items:
            items_total = sum((item.total_price for item in self.items), Decimal("0"))
            if abs(items_total - self.total_amount) > ITEM_TOTAL_TOLERANCE:
                raise ValueError(
                    f"totalAmount {self.total_amount} does not match sum of item totals {items_total}"
                )
        return self

    def submission_payload(self, include_clinical_codes: bool = True) -> Dict[str, Any]:
        """Opaque JSON stored on the claim as ``submission_data``."""
        payload: Dict[str, Any] = {
            "items": [item.model_dump(mode="json", by_alias=True) for item in self.items],
            "benefitType": self.benefit_type,
            "serviceDate": self.service_date.isoformat(),
        }
        if include_clinical_codes:
            payload["diagnosisCode"] = self.diagnosis_code
            payload["treatmentCode"] = self.treatment_code
        return payload


class DirectClaimResponse(CamelModel):
    """Outcome of a claim submission, returned for success and failure alike."""

    success: bool
    status: str
    message: str
    processing_time: int = Field(..., description="Milliseconds spent handling the submission")
    claim_id: Optional[int] = None
    claim_number: Optional[str] = None
    provider_claim_id: Optional[str] = None
    authorization_number: Optional[str] = None
    covered_amount: Optional[Money] = None
    patient_responsibility: Optional[Money] = None
    approval_code: Optional[str] = None
    errors: Optional[List[str]] = None


class ClaimStatusResponse(CamelModel):
    """Status summary returned by a claim-number lookup."""

    found: bool
    message: Optional[str] = None
    claim_number: Optional[str] = None
    status: Optional[str] = None
    total_amount: Optional[Money] = None
    covered_amount: Optional[Money] = None
    patient_responsibility: Optional[Money] = None
    approval_code: Optional[str] = None
    submission_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    is_direct_submission: Optional[bool] = None
    processing_time: Optional[int] = None


class PublicClaimStatusResponse(CamelModel):
    """Limited claim information for unauthenticated status checks."""

    claim_number: str
    status: str
    claim_date: datetime
    last_updated: datetime


class ClaimResponse(CamelModel):
    """Full claim record."""

    id: int
    claim_number: str
    patient_id: int
    provider_id: int
    order_id: Optional[int] = None
    prescription_id: Optional[int] = None
    membership_number: str
    dependent_code: Optional[str] = None
    total_amount: Money
    covered_amount: Optional[Money] = None
    patient_responsibility: Optional[Money] = None
    status: str
    integration_status: str
    is_direct_submission: bool
    auto_processed: bool
    real_time_validated: bool
    provider_claim_id: Optional[str] = None
    authorization_number: Optional[str] = None
    approval_code: Optional[str] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    submission_data: Optional[Dict[str, Any]] = None
    processing_duration_ms: Optional[int] = None
    webhook_received_at: Optional[datetime] = None
    version: int
    claim_date: datetime
    last_updated: datetime


class ClaimStatusUpdate(CamelModel):
    """Manual status change made by pharmacy staff."""

    status: ClaimStatus
    notes: Optional[str] = None
    covered_amount: Optional[Money] = Field(None, ge=0)
    rejection_reason: Optional[str] = None
    approval_code: Optional[str] = Field(None, max_length=100)
    expected_version: Optional[int] = Field(
        None, ge=1, description="Reject the update if the claim has changed since this version"
    )
