"""
app/schemas package marker.
"""

from app.schemas.migration_validation import (
    MigrationValidationRequest,
    MigrationValidationResponse,
    TemplateListResponse,
    TemplateSummaryResponse,
    ValidationErrorResponse,
    ValidationIssueResponse,
    ValidationResultResponse,
    ValidationSummaryResponse,
)

__all__ = [
    "MigrationValidationRequest",
    "MigrationValidationResponse",
    "TemplateListResponse",
    "TemplateSummaryResponse",
    "ValidationErrorResponse",
    "ValidationIssueResponse",
    "ValidationResultResponse",
    "ValidationSummaryResponse",
]
