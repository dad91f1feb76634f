"""Provider registry service."""
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from medaid.exceptions import DuplicateResourceException, ResourceNotFoundException
from medaid.models.provider import MedicalAidProvider
from medaid.repositories.provider_repository import ProviderRepository
from medaid.schemas.provider import ProviderConfig, ProviderCreate, ProviderResponse, ProviderUpdate
from medaid.utils.cache import CACHE_TTL_PROVIDER, CacheManager, cache_key_builder, cache_manager
from medaid.utils.logging_config import get_logger

logger = get_logger(__name__)


class ProviderService:
    """Lookup and administration of medical aid providers."""

    def __init__(self, db: AsyncSession, cache: Optional[CacheManager] = None):
        self.db = db
        self.repository = ProviderRepository(db)
        self.cache = cache or cache_manager

    @staticmethod
    def _cache_key(provider_id: int) -> str:
        return cache_key_builder("provider", provider_id)

    async def get_provider_config(self, provider_id: int) -> Optional[ProviderConfig]:
        """
        Resolve a provider's integration settings.

        Reads through the Redis cache; a cache outage falls back to the
        database.

        Args:
            provider_id: Provider ID

        Returns:
            Provider configuration or None if the provider does not exist
        """
        key = self._cache_key(provider_id)
        cached = await self.cache.get_model(key, ProviderConfig)
        if cached is not None:
            return cached

        provider = await self.repository.get_by_id(provider_id)
        if provider is None:
            return None

        config = ProviderConfig.model_validate(provider)
        await self.cache.set_model(key, config, ttl=CACHE_TTL_PROVIDER)
        return config

    async def get_provider(self, provider_id: int) -> ProviderResponse:
        provider = await self.repository.get_by_id(provider_id)
        if provider is None:
            raise ResourceNotFoundException("Provider", str(provider_id))
        return ProviderResponse.model_validate(provider)

    async def list_providers(self, active_only: bool = False) -> List[ProviderResponse]:
        providers = await self.repository.get_all(active_only=active_only)
        return [ProviderResponse.model_validate(provider) for provider in providers]

    async def create_provider(self, data: ProviderCreate) -> ProviderResponse:
        """
        Register a provider.

        Args:
            data: Provider creation data

        Returns:
            Created provider

        Raises:
            DuplicateResourceException: If the provider code is already taken
        """
        existing = await self.repository.get_by_code(data.code)
        if existing:
            logger.warning(
                f"Duplicate provider code: {data.code}",
                extra={"extra_fields": {"code": data.code}},
            )
            raise DuplicateResourceException("Provider", data.code)

        try:
            provider = await self.repository.create(**data.model_dump())
            await self.db.commit()
        except Exception:
            logger.error(f"Failed to create provider {data.code}", exc_info=True)
            await self.db.rollback()
            raise

        logger.info(
            f"Provider registered: {provider.code}",
            extra={"extra_fields": {
                "provider_id": provider.id,
                "supports_direct_claims": provider.supports_direct_claims,
                "test_mode": provider.test_mode,
            }},
        )
        return ProviderResponse.model_validate(provider)

    async def update_provider(self, provider_id: int, data: ProviderUpdate) -> ProviderResponse:
        """
        Update a provider and drop its cached configuration.

        Raises:
            ResourceNotFoundException: If the provider does not exist
        """
        provider: Optional[MedicalAidProvider] = await self.repository.update(
            provider_id, **data.model_dump(exclude_unset=True)
        )
        if provider is None:
            raise ResourceNotFoundException("Provider", str(provider_id))

        await self.db.commit()
        await self.cache.delete(self._cache_key(provider_id))

        logger.info(
            f"Provider updated: {provider.code}",
            extra={"extra_fields": {"provider_id": provider_id, "fields": sorted(data.model_fields_set)}},
        )
        return ProviderResponse.model_validate(provider)
