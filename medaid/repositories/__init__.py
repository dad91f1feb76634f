"""Repository layer for database operations."""
from medaid.repositories.provider_repository import ProviderRepository
from medaid.repositories.claim_repository import ClaimRepository

__all__ = [
    "ProviderRepository",
    "ClaimRepository",
]
