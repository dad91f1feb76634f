"""Database models."""
from medaid.database import Base
from medaid.models.enums import ClaimStatus, IntegrationStatus, SubmissionOutcome
from medaid.models.provider import MedicalAidProvider
from medaid.models.claim import MedicalAidClaim

__all__ = [
    "Base",
    "ClaimStatus",
    "IntegrationStatus",
    "SubmissionOutcome",
    "MedicalAidProvider",
    "MedicalAidClaim",
]
