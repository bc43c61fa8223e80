"""
app/domain package marker.
"""

from app.domain.migration_validation import (
    RecordValidationOutcome,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)
from app.domain.organisation import OrganisationRecord

__all__ = [
    "OrganisationRecord",
    "RecordValidationOutcome",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
]
