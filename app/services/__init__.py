"""
app/services package marker.
"""

from app.services.migration_validation_service import (
    MigrationValidationService,
    MissingValidationInputError,
    OrganisationNotFoundError,
    TemplateNotFoundError,
    ValidationEngineTimeoutError,
    get_migration_validation_service,
)
from app.services.organisation_lookup import DatabaseOrganisationLookup, OrganisationLookup
from app.services.task_executor import FastAPIBackgroundTaskExecutor, InlineTaskExecutor, TaskExecutor
from app.services.usage_tracker import UsageTracker, get_usage_tracker

__all__ = [
    "DatabaseOrganisationLookup",
    "FastAPIBackgroundTaskExecutor",
    "InlineTaskExecutor",
    "MigrationValidationService",
    "MissingValidationInputError",
    "OrganisationLookup",
    "OrganisationNotFoundError",
    "TaskExecutor",
    "TemplateNotFoundError",
    "UsageTracker",
    "ValidationEngineTimeoutError",
    "get_migration_validation_service",
    "get_usage_tracker",
]
