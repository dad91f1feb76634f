"""Pydantic schemas for provider webhook callbacks."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from medaid.schemas.common import CamelModel, Money


class WebhookPayload(CamelModel):
    """
    Status notification pushed by a provider.

    Providers send extra fields freely; they are kept so the full payload
    can be stored on the claim as ``response_data``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    claim_number: Optional[str] = None
    reference_number: Optional[str] = None
    status: Optional[str] = None
    covered_amount: Optional[Money] = Field(None, ge=0)
    patient_responsibility: Optional[Money] = Field(None, ge=0)
    approval_code: Optional[str] = None
    rejection_reason: Optional[str] = None
    event_timestamp: Optional[datetime] = None

    @property
    def resolved_claim_number(self) -> Optional[str]:
        return self.claim_number or self.reference_number


class WebhookOutcome(str, Enum):
    """What happened to a webhook delivery."""

    APPLIED = "applied"
    STALE = "stale"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"
    CONFLICT = "conflict"
    QUEUED = "queued"


class WebhookAck(CamelModel):
    accepted: bool = True
    outcome: WebhookOutcome
