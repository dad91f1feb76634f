"""Provider repository for database operations."""
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.models.provider import MedicalAidProvider


class ProviderRepository:
    """Repository for MedicalAidProvider database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **fields: Any) -> MedicalAidProvider:
        """
        Create a new provider.

        Args:
            **fields: Column values for the provider

        Returns:
            Created provider
        """
        provider = MedicalAidProvider(**fields)
        self.db.add(provider)
        await self.db.flush()
        await self.db.refresh(provider)
        return provider

    async def get_by_id(self, provider_id: int) -> Optional[MedicalAidProvider]:
        result = await self.db.execute(
            select(MedicalAidProvider).where(MedicalAidProvider.id == provider_id)
        )
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[MedicalAidProvider]:
        result = await self.db.execute(
            select(MedicalAidProvider).where(MedicalAidProvider.code == code)
        )
        return result.scalar_one_or_none()

    async def get_all(self, active_only: bool = False) -> List[MedicalAidProvider]:
        """
        List providers ordered by name.

        Args:
            active_only: Only return providers flagged active

        Returns:
            List of providers
        """
        query = select(MedicalAidProvider).order_by(MedicalAidProvider.name)
        if active_only:
            query = query.where(MedicalAidProvider.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, provider_id: int, **fields: Any) -> Optional[MedicalAidProvider]:
        """
        Update the given columns of a provider.

        Args:
            provider_id: Provider ID
            **fields: Columns to change; None clears a nullable column

        Returns:
            Updated provider or None if not found
        """
        provider = await self.get_by_id(provider_id)
        if not provider:
            return None

        for name, value in fields.items():
            setattr(provider, name, value)

        await self.db.flush()
        await self.db.refresh(provider)
        return provider
