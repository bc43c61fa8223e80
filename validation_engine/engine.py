"""
validation_engine/engine.py

Runs a template's inferred and declared checks against the source and
target orgs and classifies the findings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from migration_templates.models import CheckConfig, ETLStep, MigrationTemplate
from validation_engine.base import (
    BaseValidationCheck,
    EngineIssue,
    EngineValidationResult,
    IssueSeverity,
    OrgClient,
    OrgClientFactory,
    StepContext,
)
from validation_engine.dependency_checks import ChildRecordsCheck, LookupDependenciesCheck
from validation_engine.formatter import record_key
from validation_engine.record_checks import RequiredFieldsCheck
from validation_engine.target_checks import (
    ExistingTargetRecordsCheck,
    PicklistValuesCheck,
    TargetFieldCoverageCheck,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_DECLARED_CHECKS: dict[str, BaseValidationCheck] = {
    check.check_type: check
    for check in (
        RequiredFieldsCheck(),
        PicklistValuesCheck(),
        LookupDependenciesCheck(),
        ExistingTargetRecordsCheck(),
    )
}

_COVERAGE_CHECK = TargetFieldCoverageCheck()
_CHILD_RECORDS_CHECK = ChildRecordsCheck()


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ValidationEngine:
    """
    Pre-migration validation against live org data.

    Loading happens concurrently with one worker per org so no client is
    shared between threads. Checks then run sequentially in step order,
    inferred checks before declared ones, which keeps the output stable for
    a fixed org state. Only describe and SELECT calls are made.

    Inferred checks
    ---------------
    - Target object availability (error; skips target-dependent checks).
    - Target field coverage for every extracted field (warning).
    - Related child records per parent, for child steps (info).

    Declared checks are looked up by ``check_type`` in the registry.
    """

    def __init__(
        self,
        *,
        client_factory: OrgClientFactory,
        checks: Mapping[str, BaseValidationCheck] | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._checks = dict(checks) if checks is not None else dict(_DECLARED_CHECKS)

    def validate_template(
        self,
        template: MigrationTemplate,
        source_org_id: str,
        target_org_id: str,
        record_ids: Sequence[str],
        source_instance_url: str | None,
    ) -> EngineValidationResult:
        """
        Validate migrating ``record_ids`` from the source to the target org.

        Raises
        ------
        ValueError
            If the template declares an unknown check type or an invalid
            check configuration.
        """

        self._ensure_supported(template)
        steps = template.ordered_steps()
        if not steps:
            return EngineValidationResult()

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="validation-org") as pool:
            source_client_future = pool.submit(self._client_factory.for_org, source_org_id)
            target_client_future = pool.submit(self._client_factory.for_org, target_org_id)
            source_client = source_client_future.result()
            target_client = target_client_future.result()

            records_future = pool.submit(self._load_source_records, source_client, steps, record_ids)
            describes_future = pool.submit(self._load_target_describes, target_client, steps)
            records_by_step = records_future.result()
            describes = describes_future.result()

        instance_url = source_instance_url or source_client.instance_url
        issues: list[EngineIssue] = []
        for step in steps:
            context = StepContext(
                template=template,
                step=step,
                records=records_by_step[step.step_name],
                source_client=source_client,
                target_client=target_client,
                source_instance_url=instance_url,
                target_describe=describes.get(step.load_config.target_object_api_name),
            )
            issues.extend(self._run_step(context))

        result = EngineValidationResult.from_issues(issues)
        logger.info(
            "Template validation finished template=%s records=%d errors=%d warnings=%d info=%d",
            template.id,
            len(record_ids),
            len(result.errors),
            len(result.warnings),
            len(result.info),
        )
        return result

    def _ensure_supported(self, template: MigrationTemplate) -> None:
        for step in template.etl_steps:
            for config in step.validation_config.checks:
                if config.check_type not in self._checks:
                    supported = ", ".join(f'"{key}"' for key in sorted(self._checks))
                    raise ValueError(
                        f"Unsupported check_type '{config.check_type}' in template '{template.id}'. "
                        f"Supported values: {supported}."
                    )

    def _source_fields(self, step: ETLStep) -> list[str]:
        extract = step.extract_config
        candidates: list[str] = ["Id", extract.name_field]
        if extract.parent_field:
            candidates.append(extract.parent_field)
        candidates.extend(extract.fields)
        for config in step.validation_config.checks:
            candidates.extend(self._checks[config.check_type].source_fields(step, config))

        ordered: list[str] = []
        for field_name in candidates:
            if field_name and field_name not in ordered:
                ordered.append(field_name)
        return ordered

    def _load_source_records(
        self,
        client: OrgClient,
        steps: Sequence[ETLStep],
        record_ids: Sequence[str],
    ) -> dict[str, list[dict[str, Any]]]:
        primary = steps[0]
        rows = client.fetch_records(
            primary.extract_config.object_api_name,
            fields=self._source_fields(primary),
            where_field="Id",
            values=record_ids,
            condition=primary.extract_config.filters,
        )
        rows_by_key = {record_key(row.get("Id")): row for row in rows}

        # Selection order, repeating duplicates.
        primary_records = [
            rows_by_key[record_key(record_id)] for record_id in record_ids if record_key(record_id) in rows_by_key
        ]
        records_by_step: dict[str, list[dict[str, Any]]] = {primary.step_name: primary_records}

        parent_order: dict[str, int] = {}
        for row in primary_records:
            parent_order.setdefault(record_key(row.get("Id")), len(parent_order))

        for step in steps[1:]:
            parent_field = step.extract_config.parent_field
            if parent_field is None or not parent_order:
                records_by_step[step.step_name] = []
                continue
            children = client.fetch_records(
                step.extract_config.object_api_name,
                fields=self._source_fields(step),
                where_field=parent_field,
                values=[str(row["Id"]) for row in primary_records if row.get("Id")],
                condition=step.extract_config.filters,
            )
            children.sort(
                key=lambda row: (
                    parent_order.get(record_key(row.get(parent_field)), len(parent_order)),
                    str(row.get("Id") or ""),
                )
            )
            records_by_step[step.step_name] = children

        return records_by_step

    @staticmethod
    def _load_target_describes(
        client: OrgClient,
        steps: Sequence[ETLStep],
    ) -> dict[str, dict[str, Any] | None]:
        describes: dict[str, dict[str, Any] | None] = {}
        for step in steps:
            object_api_name = step.load_config.target_object_api_name
            if object_api_name not in describes:
                describes[object_api_name] = client.describe_object(object_api_name)
        return describes

    def _run_step(self, context: StepContext) -> list[EngineIssue]:
        issues: list[EngineIssue] = []
        target_available = context.target_describe is not None

        if not target_available:
            issues.append(
                EngineIssue(
                    severity=IssueSeverity.ERROR,
                    check_name="Target Object Unavailable",
                    message=(
                        f"{context.target_object_api_name} is not available in the target org, "
                        f"so step '{context.step.step_name}' cannot load its records."
                    ),
                    suggested_action=(
                        "Deploy the object to the target org and confirm the connected user can access it."
                    ),
                )
            )
        else:
            issues.extend(_COVERAGE_CHECK.run(context, CheckConfig(check_type=_COVERAGE_CHECK.check_type)))

        if context.step.is_child_step:
            issues.extend(
                _CHILD_RECORDS_CHECK.run(context, CheckConfig(check_type=_CHILD_RECORDS_CHECK.check_type))
            )

        for config in context.step.validation_config.checks:
            check = self._checks[config.check_type]
            if check.requires_target_object and not target_available:
                logger.debug(
                    "Skipping check without target object check=%s step=%s object=%s",
                    config.check_type,
                    context.step.step_name,
                    context.target_object_api_name,
                )
                continue
            issues.extend(check.run(context, config))
        return issues
