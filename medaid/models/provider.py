"""Medical aid provider model."""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medaid.database import Base
from medaid.utils.timeutils import utcnow

if TYPE_CHECKING:
    from medaid.models.claim import MedicalAidClaim


class MedicalAidProvider(Base):
    """Medical aid scheme configuration and integration capabilities."""

    __tablename__ = "medical_aid_providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Integration
    api_endpoint: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    api_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    webhook_secret: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    supports_direct_claims: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    test_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    real_time_validation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_approval_limit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    claims: Mapped[list["MedicalAidClaim"]] = relationship(
        "MedicalAidClaim",
        back_populates="provider",
    )

    def __repr__(self) -> str:
        return f"<MedicalAidProvider(id={self.id}, code={self.code}, direct={self.supports_direct_claims})>"
