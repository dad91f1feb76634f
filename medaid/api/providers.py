"""Medical aid provider endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.database import get_db
from medaid.schemas.provider import ProviderCreate, ProviderResponse, ProviderUpdate
from medaid.services.provider_service import ProviderService

router = APIRouter(prefix="/medical-aid/providers", tags=["providers"])


@router.get("", response_model=List[ProviderResponse])
async def list_providers(
    active_only: bool = Query(default=False, alias="activeOnly"),
    db: AsyncSession = Depends(get_db),
):
    """List registered medical aid providers."""
    return await ProviderService(db).list_providers(active_only=active_only)


@router.get("/{provider_id}", response_model=ProviderResponse)
async def get_provider(provider_id: int, db: AsyncSession = Depends(get_db)):
    return await ProviderService(db).get_provider(provider_id)


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
async def create_provider(data: ProviderCreate, db: AsyncSession = Depends(get_db)):
    """
    Register a medical aid provider.

    Args:
        data: Provider details and integration settings
        db: Database session

    Returns:
        Created provider (credentials are never echoed back)
    """
    return await ProviderService(db).create_provider(data)


@router.put("/{provider_id}", response_model=ProviderResponse)
async def update_provider(
    provider_id: int,
    data: ProviderUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await ProviderService(db).update_provider(provider_id, data)
