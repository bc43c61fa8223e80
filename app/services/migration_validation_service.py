"""
Pre-migration validation orchestration.

Flow:
1. Check required inputs.
2. Resolve source and target organisations concurrently.
3. Resolve the template from the injected registry.
4. Pre-check the selected records; invalid selections stop here.
5. Run the validation engine under a timeout.
6. Map engine findings to issues, add volume warnings, build the verdict.
7. Submit a usage event as a background task.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from functools import lru_cache
from typing import Any, Protocol

from app.config import MigrationValidationSettings, get_migration_validation_settings, get_org_api_settings
from app.connectors.salesforce_connector import SalesforceClientFactory
from app.domain.migration_validation import RecordValidationOutcome, ValidationIssue, ValidationResult
from app.domain.organisation import OrganisationRecord
from app.services.organisation_lookup import DatabaseOrganisationLookup, OrganisationLookup
from app.services.task_executor import InlineTaskExecutor, TaskExecutor
from app.services.usage_tracker import UsageTracker, get_usage_tracker
from app.validators.record_selection_validator import RecordSelectionValidator
from db.models.usage_event import UsageEventType
from migration_templates.models import MigrationTemplate
from migration_templates.registry import TemplateRegistry, get_template_registry
from validation_engine.base import EngineIssue, EngineValidationResult, IssueSeverity
from validation_engine.engine import ValidationEngine

logger = logging.getLogger(__name__)

_PICKLIST_TITLE_PATTERN = re.compile(r"^Invalid (?P<field>.+) Values$")

LARGE_BATCH_ISSUE_ID = "large-batch-warning"


class MissingValidationInputError(ValueError):
    """
    Raised when a required request field is missing or empty.
    """


class OrganisationNotFoundError(LookupError):
    """
    Raised when the source or target organisation does not exist.
    """


class TemplateNotFoundError(LookupError):
    """
    Raised when the template id is not registered.
    """


class ValidationEngineTimeoutError(RuntimeError):
    """
    Raised when the validation engine does not finish within its time budget.
    """


class SelectedRecordValidator(Protocol):
    def validate_selected_records(
        self,
        source_org_id: str,
        record_ids: Sequence[str],
        object_api_name: str,
    ) -> RecordValidationOutcome:
        ...


class TemplateValidationEngine(Protocol):
    def validate_template(
        self,
        template: MigrationTemplate,
        source_org_id: str,
        target_org_id: str,
        record_ids: Sequence[str],
        source_instance_url: str | None,
    ) -> EngineValidationResult:
        ...


class MigrationValidationService:
    """
    Decides whether migrating the selected records with a template is safe.

    The service holds no per-request state; every collaborator is injected.
    """

    def __init__(
        self,
        *,
        organisation_lookup: OrganisationLookup,
        template_registry: TemplateRegistry,
        record_validator: SelectedRecordValidator,
        validation_engine: TemplateValidationEngine,
        usage_tracker: UsageTracker,
        settings: MigrationValidationSettings | None = None,
    ) -> None:
        self._organisation_lookup = organisation_lookup
        self._template_registry = template_registry
        self._record_validator = record_validator
        self._validation_engine = validation_engine
        self._usage_tracker = usage_tracker
        self._settings = settings or MigrationValidationSettings()

    def validate(
        self,
        *,
        source_org_id: str | None,
        target_org_id: str | None,
        template_id: str | None,
        selected_records: Sequence[str] | None,
        selected_record_names: Mapping[str, str] | None = None,
        user_id: str | None = None,
        executor: TaskExecutor | None = None,
    ) -> ValidationResult:
        """
        Validate a prospective migration and return the aggregated verdict.

        Raises
        ------
        MissingValidationInputError
            If an id is blank or no records are selected.
        OrganisationNotFoundError, TemplateNotFoundError
            If a referenced organisation or template does not exist.
        ValidationEngineTimeoutError
            If the engine exceeds the configured timeout.
        """

        if (
            not (source_org_id or "").strip()
            or not (target_org_id or "").strip()
            or not (template_id or "").strip()
            or not selected_records
        ):
            raise MissingValidationInputError("Missing required validation parameters")

        record_ids = [str(record_id) for record_id in selected_records]
        record_names = dict(selected_record_names or {})

        source_org, _ = self._resolve_organisations(source_org_id, target_org_id)

        template = self._template_registry.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError("Template not found")

        object_api_name = template.primary_object_api_name or self._settings.default_object_api_name
        outcome = self._record_validator.validate_selected_records(source_org_id, record_ids, object_api_name)

        if not outcome.valid:
            result = ValidationResult.from_issues(self._record_selection_issues(outcome), record_names)
            logger.info(
                "Migration validation stopped at record selection template=%s source=%s invalid=%d",
                template.id,
                source_org_id,
                len(outcome.invalid_records),
            )
            self._submit_usage_event(
                executor=executor,
                user_id=user_id,
                metadata=self._usage_metadata(
                    template_id=template.id,
                    source_org_id=source_org_id,
                    target_org_id=target_org_id,
                    record_count=len(record_ids),
                    result=result,
                    record_selection_failed=True,
                ),
            )
            return result

        engine_result = self._run_engine(template, source_org_id, target_org_id, record_ids, source_org)
        issues = self._map_engine_issues(engine_result)
        if len(record_ids) > self._settings.large_batch_threshold:
            issues.append(self._large_batch_issue(len(record_ids)))

        result = ValidationResult.from_issues(issues, record_names)
        logger.info(
            "Migration validation finished template=%s source=%s target=%s records=%d "
            "errors=%d warnings=%d info=%d",
            template.id,
            source_org_id,
            target_org_id,
            len(record_ids),
            result.summary.errors,
            result.summary.warnings,
            result.summary.info,
        )
        self._submit_usage_event(
            executor=executor,
            user_id=user_id,
            metadata=self._usage_metadata(
                template_id=template.id,
                source_org_id=source_org_id,
                target_org_id=target_org_id,
                record_count=len(record_ids),
                result=result,
            ),
        )
        return result

    def _resolve_organisations(
        self,
        source_org_id: str,
        target_org_id: str,
    ) -> tuple[OrganisationRecord, OrganisationRecord]:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="org-lookup") as pool:
            source_future = pool.submit(self._organisation_lookup.get_organisation, source_org_id)
            target_future = pool.submit(self._organisation_lookup.get_organisation, target_org_id)
            source_org = source_future.result()
            target_org = target_future.result()

        if source_org is None or target_org is None:
            logger.info(
                "Organisation lookup failed source=%s found=%s target=%s found=%s",
                source_org_id,
                source_org is not None,
                target_org_id,
                target_org is not None,
            )
            raise OrganisationNotFoundError("Source or target organisation not found")
        return source_org, target_org

    def _run_engine(
        self,
        template: MigrationTemplate,
        source_org_id: str,
        target_org_id: str,
        record_ids: list[str],
        source_org: OrganisationRecord,
    ) -> EngineValidationResult:
        timeout_seconds = self._settings.engine_timeout_seconds
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="validation-engine")
        try:
            future = pool.submit(
                self._validation_engine.validate_template,
                template,
                source_org_id,
                target_org_id,
                record_ids,
                source_org.instance_url,
            )
            try:
                return future.result(timeout=timeout_seconds)
            except FuturesTimeoutError as exc:
                future.cancel()
                logger.error(
                    "Validation engine timed out template=%s timeout_seconds=%.1f",
                    template.id,
                    timeout_seconds,
                )
                raise ValidationEngineTimeoutError(
                    f"Validation engine did not finish within {timeout_seconds:g} seconds."
                ) from exc
        finally:
            pool.shutdown(wait=False)

    @staticmethod
    def _record_selection_issues(outcome: RecordValidationOutcome) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                id=f"record-validation-error-{index}",
                severity=IssueSeverity.ERROR,
                title="Invalid Record Selection",
                description=message,
                record_id=record_id,
                suggestion="Ensure the selected record exists and is of the correct type",
            )
            for index, (message, record_id) in enumerate(zip(outcome.errors, outcome.invalid_records))
        ]

    @staticmethod
    def _map_engine_issues(engine_result: EngineValidationResult) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        groups: tuple[tuple[str, tuple[EngineIssue, ...]], ...] = (
            (IssueSeverity.ERROR, engine_result.errors),
            (IssueSeverity.WARNING, engine_result.warnings),
            (IssueSeverity.INFO, engine_result.info),
        )
        for severity, engine_issues in groups:
            for index, engine_issue in enumerate(engine_issues):
                field = engine_issue.field
                if field is None and severity == IssueSeverity.ERROR:
                    field = _field_from_title(engine_issue.check_name)
                issues.append(
                    ValidationIssue(
                        id=f"{severity}-{index}",
                        severity=severity,
                        title=engine_issue.check_name,
                        description=engine_issue.message,
                        record_id=engine_issue.record_id or None,
                        record_link=engine_issue.record_link or None,
                        field=field,
                        suggestion=engine_issue.suggested_action or None,
                        parent_record_id=engine_issue.parent_record_id or None,
                    )
                )
        return issues

    @staticmethod
    def _large_batch_issue(record_count: int) -> ValidationIssue:
        return ValidationIssue(
            id=LARGE_BATCH_ISSUE_ID,
            severity=IssueSeverity.WARNING,
            title="Large Number of Records Selected",
            description=(
                f"You have selected {record_count} records. "
                "Large migrations may take longer and have higher failure rates."
            ),
            suggestion="Consider breaking this into smaller batches for better reliability.",
        )

    @staticmethod
    def _usage_metadata(
        *,
        template_id: str,
        source_org_id: str,
        target_org_id: str,
        record_count: int,
        result: ValidationResult,
        record_selection_failed: bool = False,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "templateId": template_id,
            "sourceOrgId": source_org_id,
            "targetOrgId": target_org_id,
            "recordCount": record_count,
            "validationResult": {
                "isValid": result.is_valid,
                "errorCount": result.summary.errors,
                "warningCount": result.summary.warnings,
                "errorTypes": result.error_type_counts(),
            },
        }
        if record_selection_failed:
            metadata["recordSelectionFailed"] = True
        return metadata

    def _submit_usage_event(
        self,
        *,
        executor: TaskExecutor | None,
        user_id: str | None,
        metadata: dict[str, Any],
    ) -> None:
        if not user_id:
            logger.warning(
                "Skipping usage event without user id type=%s template=%s",
                UsageEventType.MIGRATION_VALIDATED,
                metadata.get("templateId"),
            )
            return

        try:
            (executor or InlineTaskExecutor()).submit(
                self._usage_tracker.track_event,
                UsageEventType.MIGRATION_VALIDATED,
                user_id,
                metadata,
            )
        except Exception:
            logger.exception(
                "Failed to schedule usage event type=%s user_id=%s",
                UsageEventType.MIGRATION_VALIDATED,
                user_id,
            )


def _field_from_title(title: str) -> str | None:
    match = _PICKLIST_TITLE_PATTERN.match(title or "")
    return match.group("field") if match else None


@lru_cache(maxsize=1)
def get_migration_validation_service() -> MigrationValidationService:
    """
    Build and cache the validation service with database and org API wiring.
    """

    organisation_lookup = DatabaseOrganisationLookup()
    client_factory = SalesforceClientFactory(
        organisation_lookup=organisation_lookup,
        settings=get_org_api_settings(),
    )
    return MigrationValidationService(
        organisation_lookup=organisation_lookup,
        template_registry=get_template_registry(),
        record_validator=RecordSelectionValidator(client_factory=client_factory),
        validation_engine=ValidationEngine(client_factory=client_factory),
        usage_tracker=get_usage_tracker(),
        settings=get_migration_validation_settings(),
    )
