"""Medical aid claim endpoints."""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from medaid.config import settings
from medaid.database import get_db
from medaid.schemas.claim import (
    ClaimResponse,
    ClaimStatusResponse,
    ClaimStatusUpdate,
    ClaimSubmissionRequest,
    DirectClaimResponse,
    PublicClaimStatusResponse,
)
from medaid.schemas.membership import MembershipValidationRequest, MembershipValidationResponse
from medaid.schemas.pagination import PaginatedResponse, PaginationParams
from medaid.services.claim_service import ClaimService
from medaid.services.claim_submission_service import ClaimSubmissionService
from medaid.services.membership_service import MembershipService
from medaid.utils.logging_config import get_logger
from medaid.utils.rate_limit import limiter

router = APIRouter(prefix="/medical-aid", tags=["claims"])
logger = get_logger(__name__)


@router.post("/submit-direct-claim", response_model=DirectClaimResponse)
@limiter.limit(settings.RATE_LIMIT_SUBMIT)
async def submit_direct_claim(
    request: Request,
    claim: ClaimSubmissionRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a claim directly to the patient's medical aid.

    Providers without an integration get a manual claim awaiting the
    patient's authorisation. A failed provider call is reported in the
    response body rather than as an HTTP error.

    Args:
        claim: Claim details
        db: Database session

    Returns:
        Submission outcome with the assigned claim number
    """
    logger.info(
        f"Direct claim submission for patient {claim.patient_id}",
        extra={"extra_fields": {"provider_id": claim.provider_id, "order_id": claim.order_id}},
    )
    return await ClaimSubmissionService(db).submit_direct_claim(claim)


@router.post("/validate-membership", response_model=MembershipValidationResponse)
async def validate_membership(
    data: MembershipValidationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Check a membership number with the provider before submitting."""
    return await MembershipService(db).validate_membership(
        data.provider_id, data.membership_number, data.dependent_code
    )


@router.get("/check-claim/{claim_number}", response_model=PublicClaimStatusResponse)
async def check_claim(claim_number: str, db: AsyncSession = Depends(get_db)):
    """Public claim status lookup; 404 when the claim number is unknown."""
    return await ClaimService(db).get_public_claim_status(claim_number)


@router.get("/claims/status/{claim_number}", response_model=ClaimStatusResponse)
async def get_claim_status(claim_number: str, db: AsyncSession = Depends(get_db)):
    return await ClaimService(db).get_claim_status(claim_number)


@router.get("/claims/{claim_id}", response_model=ClaimResponse)
async def get_claim(claim_id: int, db: AsyncSession = Depends(get_db)):
    return await ClaimService(db).get_claim(claim_id)


@router.get("/patients/{patient_id}/claims", response_model=PaginatedResponse[ClaimResponse])
async def get_patient_claims(
    patient_id: int,
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(default=20, ge=1, le=100, alias="pageSize", description="Number of items per page"),
    db: AsyncSession = Depends(get_db),
):
    """
    List a patient's claims, newest first.

    Args:
        patient_id: Patient identifier
        page: Page number (1-indexed)
        page_size: Number of items per page (default: 20, max: 100)
        db: Database session

    Returns:
        Paginated list of claims
    """
    pagination = PaginationParams(page=page, page_size=page_size)
    return await ClaimService(db).get_patient_claims(patient_id, pagination)


@router.put("/claims/{claim_id}/status", response_model=ClaimResponse)
async def update_claim_status(
    claim_id: int,
    update: ClaimStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Change a claim's status manually.

    Pass ``expectedVersion`` to reject the change if someone else updated
    the claim in the meantime.
    """
    return await ClaimService(db).update_claim_status(claim_id, update)
