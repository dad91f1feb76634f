"""Claim repository for database operations."""
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.models.claim import MedicalAidClaim
from medaid.models.enums import ClaimStatus
from medaid.utils.timeutils import utcnow


class ClaimRepository:
    """Repository for MedicalAidClaim database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def create(self, **fields: Any) -> MedicalAidClaim:
        """
        Insert a new claim row.

        Args:
            **fields: Column values for the claim

        Returns:
            Created claim
        """
        now = utcnow()
        fields.setdefault("claim_date", now)
        fields.setdefault("last_updated", now)
        fields.setdefault("version", 1)

        claim = MedicalAidClaim(**fields)
        self.db.add(claim)
        await self.db.flush()
        await self.db.refresh(claim)
        return claim

    async def get_by_id(self, claim_id: int) -> Optional[MedicalAidClaim]:
        result = await self.db.execute(
            select(MedicalAidClaim).where(MedicalAidClaim.id == claim_id)
        )
        return result.scalar_one_or_none()

    async def get_by_claim_number(self, claim_number: str) -> Optional[MedicalAidClaim]:
        """
        Get claim by its external claim number.

        Args:
            claim_number: Claim number (CLM-...)

        Returns:
            Claim or None if not found
        """
        result = await self.db.execute(
            select(MedicalAidClaim).where(MedicalAidClaim.claim_number == claim_number)
        )
        return result.scalar_one_or_none()

    async def get_by_patient_id(
        self, patient_id: int, skip: int = 0, limit: int = 100
    ) -> List[MedicalAidClaim]:
        """
        Get a patient's claims, newest first.

        Args:
            patient_id: Patient identifier
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of claims
        """
        result = await self.db.execute(
            select(MedicalAidClaim)
            .where(MedicalAidClaim.patient_id == patient_id)
            .order_by(MedicalAidClaim.claim_date.desc(), MedicalAidClaim.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_patient_id(self, patient_id: int) -> int:
        result = await self.db.execute(
            select(func.count(MedicalAidClaim.id)).where(MedicalAidClaim.patient_id == patient_id)
        )
        return result.scalar() or 0

    async def get_stale_processing(self, older_than: datetime, limit: int = 500) -> List[MedicalAidClaim]:
        """
        Find claims still PROCESSING whose last update predates a cutoff.

        Args:
            older_than: Cutoff timestamp
            limit: Maximum number of claims to return

        Returns:
            List of stale claims, oldest first
        """
        result = await self.db.execute(
            select(MedicalAidClaim)
            .where(
                MedicalAidClaim.status == ClaimStatus.PROCESSING.value,
                MedicalAidClaim.last_updated < older_than,
            )
            .order_by(MedicalAidClaim.last_updated)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_if_version(
        self, claim_id: int, expected_version: int, **fields: Any
    ) -> Optional[MedicalAidClaim]:
        """
        Compare-and-swap update of a claim.

        The row is only written when its version still equals
        ``expected_version``; the version is then incremented and
        ``last_updated`` refreshed. ``claim_number`` can never be changed.

        Args:
            claim_id: Claim ID
            expected_version: Version the caller last read
            **fields: Columns to set

        Returns:
            The refreshed claim, or None if the version no longer matched
        """
        fields.pop("claim_number", None)
        fields.pop("version", None)
        fields.setdefault("last_updated", utcnow())

        result = await self.db.execute(
            update(MedicalAidClaim)
            .where(
                MedicalAidClaim.id == claim_id,
                MedicalAidClaim.version == expected_version,
            )
            .values(version=expected_version + 1, **fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None

        await self.db.flush()
        claim = await self.get_by_id(claim_id)
        if claim is not None:
            await self.db.refresh(claim)
        return claim
