"""Medical aid claim model."""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medaid.database import Base
from medaid.models.enums import ClaimStatus, IntegrationStatus
from medaid.utils.timeutils import utcnow

if TYPE_CHECKING:
    from medaid.models.provider import MedicalAidProvider

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class MedicalAidClaim(Base):
    """A patient's reimbursement claim against a medical aid provider."""

    __tablename__ = "medical_aid_claims"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    claim_number: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    provider_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("medical_aid_providers.id"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    prescription_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    membership_number: Mapped[str] = mapped_column(String(100), nullable=False)
    dependent_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Amounts
    total_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    covered_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2), nullable=True
    )
    patient_responsibility: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2), nullable=True
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(40), nullable=False, default=ClaimStatus.PENDING_PATIENT_AUTH.value, index=True
    )
    integration_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=IntegrationStatus.MANUAL.value
    )
    is_direct_submission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    real_time_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Provider outcome
    provider_claim_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    authorization_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    approval_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submission_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    response_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    processing_duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    webhook_received_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Provider-side timestamp of the last applied webhook event
    provider_event_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Optimistic concurrency token; bumped by every update
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    claim_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    provider: Mapped["MedicalAidProvider"] = relationship(
        "MedicalAidProvider",
        back_populates="claims",
    )

    def __repr__(self) -> str:
        return (
            f"<MedicalAidClaim(id={self.id}, claim_number={self.claim_number}, "
            f"status={self.status}, version={self.version})>"
        )
