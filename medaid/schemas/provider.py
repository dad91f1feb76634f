"""Pydantic schemas for medical aid provider endpoints."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from medaid.schemas.common import CamelModel, Money


class ProviderCreate(CamelModel):
    """Schema for registering a new medical aid provider."""

    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=2, max_length=20, description="Short mnemonic, e.g. CIM")
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    api_endpoint: Optional[str] = Field(None, max_length=500)
    api_key: Optional[str] = Field(None, max_length=255)
    webhook_secret: Optional[str] = Field(None, max_length=255)
    is_active: bool = True
    supports_direct_claims: bool = False
    test_mode: bool = True
    real_time_validation: bool = False
    auto_approval_limit: Optional[Decimal] = Field(None, ge=0)

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v: str) -> str:
        v = v.strip().upper()
        if v == "MAN":
            raise ValueError("Provider code 'MAN' is reserved for manual claims")
        return v


class ProviderUpdate(CamelModel):
    """Schema for updating a provider. Only supplied fields change."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    api_endpoint: Optional[str] = Field(None, max_length=500)
    api_key: Optional[str] = Field(None, max_length=255)
    webhook_secret: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    supports_direct_claims: Optional[bool] = None
    test_mode: Optional[bool] = None
    real_time_validation: Optional[bool] = None
    auto_approval_limit: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_required_not_cleared(self) -> "ProviderUpdate":
        # Explicit nulls clear optional columns; these columns cannot be empty
        for name in ("name", "is_active", "supports_direct_claims", "test_mode", "real_time_validation"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ProviderResponse(CamelModel):
    """Public view of a provider; credentials are never returned."""

    id: int
    name: str
    code: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    api_endpoint: Optional[str] = None
    is_active: bool
    supports_direct_claims: bool
    test_mode: bool
    real_time_validation: bool
    auto_approval_limit: Optional[Money] = None
    created_at: datetime
    updated_at: datetime


class ProviderConfig(CamelModel):
    """
    Internal snapshot of a provider used while processing claims.

    Carries the integration credentials, so it is cached but never
    returned by the API.
    """

    id: int
    name: str
    code: str
    api_endpoint: Optional[str] = None
    api_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    is_active: bool = True
    supports_direct_claims: bool = False
    test_mode: bool = True
    real_time_validation: bool = False
    auto_approval_limit: Optional[Decimal] = None

    @property
    def can_submit_directly(self) -> bool:
        """Direct submission needs both the capability flag and an endpoint."""
        return bool(self.supports_direct_claims and self.api_endpoint)
