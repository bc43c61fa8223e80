"""
app/api/routers/migration_validation.py

Pre-migration validation HTTP endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_request_user_id
from app.config import get_migration_validation_settings
from app.connectors.base import is_auth_failure
from app.domain.migration_validation import ValidationResult
from app.schemas.migration_validation import (
    MigrationValidationRequest,
    MigrationValidationResponse,
    ValidationErrorResponse,
    ValidationIssueResponse,
    ValidationResultResponse,
    ValidationSummaryResponse,
)
from app.services.migration_validation_service import (
    MigrationValidationService,
    MissingValidationInputError,
    OrganisationNotFoundError,
    TemplateNotFoundError,
    get_migration_validation_service,
)
from app.services.task_executor import FastAPIBackgroundTaskExecutor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["migrations"])

TOKEN_EXPIRED_MESSAGE = "Authentication token has expired. Please reconnect the organisation."


@router.post(
    "/api/migrations/validate",
    response_model=MigrationValidationResponse,
    responses={
        400: {"model": ValidationErrorResponse},
        401: {"model": ValidationErrorResponse},
        404: {"model": ValidationErrorResponse},
        500: {"model": ValidationErrorResponse},
    },
)
def validate_migration(
    payload: MigrationValidationRequest,
    background_tasks: BackgroundTasks,
    user_id: str | None = Depends(get_request_user_id),
    validation_service: MigrationValidationService = Depends(get_migration_validation_service),
) -> JSONResponse:
    """
    Validate migrating the selected records from the source to the target org.
    """

    try:
        result = validation_service.validate(
            source_org_id=payload.source_org_id,
            target_org_id=payload.target_org_id,
            template_id=payload.template_id,
            selected_records=payload.selected_records,
            selected_record_names=payload.selected_record_names,
            user_id=user_id,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
        )
    except MissingValidationInputError as exc:
        return _error_response(status.HTTP_400_BAD_REQUEST, ValidationErrorResponse(error=str(exc)))
    except (OrganisationNotFoundError, TemplateNotFoundError) as exc:
        return _error_response(status.HTTP_404_NOT_FOUND, ValidationErrorResponse(error=str(exc)))
    except Exception as exc:
        if is_auth_failure(exc):
            logger.warning(
                "Migration validation rejected org credentials template=%s error=%s",
                payload.template_id,
                exc,
            )
            return _error_response(
                status.HTTP_401_UNAUTHORIZED,
                ValidationErrorResponse(
                    error=TOKEN_EXPIRED_MESSAGE,
                    code="TOKEN_EXPIRED",
                    reconnect_url=get_migration_validation_settings().reconnect_url,
                ),
            )
        logger.exception("Migration validation failed template=%s", payload.template_id)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ValidationErrorResponse(error="Validation failed", details=str(exc)),
        )

    response = MigrationValidationResponse(success=True, validation=_to_result_response(result))
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response.model_dump(by_alias=True, exclude_none=True),
    )


def _error_response(status_code: int, body: ValidationErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


def _to_result_response(result: ValidationResult) -> ValidationResultResponse:
    return ValidationResultResponse(
        is_valid=result.is_valid,
        has_errors=result.has_errors,
        has_warnings=result.has_warnings,
        issues=[
            ValidationIssueResponse(
                id=issue.id,
                severity=issue.severity,
                title=issue.title,
                description=issue.description,
                record_id=issue.record_id,
                record_link=issue.record_link,
                field=issue.field,
                suggestion=issue.suggestion,
                parent_record_id=issue.parent_record_id,
            )
            for issue in result.issues
        ],
        summary=ValidationSummaryResponse(
            errors=result.summary.errors,
            warnings=result.summary.warnings,
            info=result.summary.info,
        ),
        selected_record_names=result.selected_record_names,
    )
