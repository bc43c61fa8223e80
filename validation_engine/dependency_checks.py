"""
validation_engine/dependency_checks.py

Cross-org checks on the records a migrated record depends on or owns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from migration_templates.models import CheckConfig, ETLStep
from validation_engine.base import (
    BaseValidationCheck,
    EngineIssue,
    IssueSeverity,
    StepContext,
    make_record_issue,
    resolve_severity,
)
from validation_engine.formatter import (
    build_record_link,
    field_label,
    is_blank,
    record_key,
    record_label,
)


@dataclass(frozen=True)
class _Dependency:
    field: str
    object_api_name: str
    match_field: str
    required: bool


def _parse_dependencies(config: CheckConfig) -> list[_Dependency]:
    raw = config.params.get("dependencies")
    if not isinstance(raw, list) or not raw:
        raise ValueError("lookup_dependencies check needs a non-empty params.dependencies list.")

    parsed: list[_Dependency] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("field") or not item.get("object"):
            raise ValueError(f"lookup_dependencies entry {index} needs 'field' and 'object'.")
        parsed.append(
            _Dependency(
                field=str(item["field"]),
                object_api_name=str(item["object"]),
                match_field=str(item.get("matchField") or "Name"),
                required=bool(item.get("required", True)),
            )
        )
    return parsed


class LookupDependenciesCheck(BaseValidationCheck):
    """
    Lookups must resolve in the target org to a record with the same match value.

    The source lookup holds a source-org id, so the referenced record is read
    from the source first to learn its match value, then searched for in the
    target by that value.
    """

    check_type = "lookup_dependencies"
    requires_target_object = False

    def source_fields(self, step: ETLStep, config: CheckConfig) -> tuple[str, ...]:
        return tuple(dependency.field for dependency in _parse_dependencies(config))

    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        issues: list[EngineIssue] = []
        for dependency in _parse_dependencies(config):
            issues.extend(self._check_dependency(context, config, dependency))
        return issues

    def _check_dependency(
        self,
        context: StepContext,
        config: CheckConfig,
        dependency: _Dependency,
    ) -> list[EngineIssue]:
        lookup_ids = [
            str(record[dependency.field])
            for record in context.records
            if not is_blank(record.get(dependency.field))
        ]
        if not lookup_ids:
            return []

        source_rows = context.source_client.fetch_records(
            dependency.object_api_name,
            fields=("Id", dependency.match_field),
            where_field="Id",
            values=lookup_ids,
        )
        match_by_source_id: dict[str, Any] = {
            record_key(row.get("Id")): row.get(dependency.match_field) for row in source_rows
        }

        match_values = [str(value) for value in match_by_source_id.values() if not is_blank(value)]
        target_values: set[str] = set()
        if match_values:
            target_rows = context.target_client.fetch_records(
                dependency.object_api_name,
                fields=("Id", dependency.match_field),
                where_field=dependency.match_field,
                values=match_values,
            )
            target_values = {
                str(row.get(dependency.match_field))
                for row in target_rows
                if not is_blank(row.get(dependency.match_field))
            }

        severity = resolve_severity(
            config,
            IssueSeverity.ERROR if dependency.required else IssueSeverity.WARNING,
        )

        lookup_label = field_label(context.target_describe, dependency.field)
        name_field = context.step.extract_config.name_field
        issues: list[EngineIssue] = []

        for record in context.records:
            lookup_id = record.get(dependency.field)
            if is_blank(lookup_id):
                continue
            key = record_key(lookup_id)
            label = record_label(record, name_field)

            if key not in match_by_source_id:
                message = (
                    f"{lookup_label} on record {label} references {dependency.object_api_name} "
                    f"{lookup_id}, which was not found in the source org."
                )
                suggestion = f"Fix the {lookup_label} lookup on the source record."
            else:
                match_value = match_by_source_id[key]
                if is_blank(match_value):
                    message = (
                        f"{dependency.object_api_name} {lookup_id} referenced by {lookup_label} on record "
                        f"{label} has no {dependency.match_field} value to match in the target org."
                    )
                    suggestion = f"Populate {dependency.match_field} on the referenced source record."
                elif str(match_value) in target_values:
                    continue
                else:
                    message = (
                        f"{dependency.object_api_name} '{match_value}' referenced by {lookup_label} on record "
                        f"{label} does not exist in the target org."
                    )
                    suggestion = (
                        f"Migrate the {dependency.object_api_name} record '{match_value}' first "
                        "or create it in the target org."
                    )

            issues.append(
                make_record_issue(
                    context,
                    record,
                    severity=severity,
                    check_name="Missing Dependency",
                    message=message,
                    suggested_action=suggestion,
                    field=dependency.field,
                )
            )
        return issues


class ChildRecordsCheck(BaseValidationCheck):
    """
    Inferred for child steps: reports how many child records travel with each parent.
    """

    check_type = "child_records"
    requires_target_object = False

    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        parent_field = context.step.extract_config.parent_field
        if parent_field is None:
            return []

        counts: dict[str, int] = {}
        for record in context.records:
            parent_id = context.parent_id_of(record)
            if parent_id is None:
                continue
            counts[parent_id] = counts.get(parent_id, 0) + 1

        parent_object = context.template.ordered_steps()[0].extract_config.object_api_name
        issues: list[EngineIssue] = []
        for parent_id, count in counts.items():
            issues.append(
                EngineIssue(
                    severity=IssueSeverity.INFO,
                    check_name="Related Records Included",
                    message=(
                        f"{count} {context.object_api_name} record(s) linked to this record "
                        "will be migrated with it."
                    ),
                    record_id=parent_id,
                    record_link=build_record_link(context.source_instance_url, parent_object, parent_id),
                )
            )
        return issues
