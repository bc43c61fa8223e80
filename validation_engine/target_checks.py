"""
validation_engine/target_checks.py

Checks that compare source records against the target org's schema and data.
"""

from __future__ import annotations

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
    describe_fields,
    field_label,
    is_blank,
    object_label,
    picklist_check_name,
    record_label,
)

_PICKLIST_TYPES = {"picklist", "multipicklist"}


class TargetFieldCoverageCheck(BaseValidationCheck):
    """
    Inferred for every step: extracted fields the target object lacks.
    """

    check_type = "target_field_coverage"

    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        target_fields = describe_fields(context.target_describe)
        target_label = object_label(context.target_describe, context.target_object_api_name)
        issues: list[EngineIssue] = []

        for field_name in context.step.extract_config.fields:
            if field_name == "Id" or field_name in target_fields:
                continue
            issues.append(
                EngineIssue(
                    severity=IssueSeverity.WARNING,
                    check_name="Field Not Found In Target Org",
                    message=(
                        f"{field_name} is extracted from {context.object_api_name} but does not exist "
                        f"on {target_label} in the target org. Its values will not be migrated."
                    ),
                    suggested_action=f"Deploy {field_name} to the target org or remove it from the template.",
                    field=field_name,
                )
            )
        return issues


class PicklistValuesCheck(BaseValidationCheck):
    """
    Flags source values that are not active picklist entries in the target.

    Errors by default, restricted or not; a template may set its own severity.
    """

    check_type = "picklist_values"

    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        if not config.fields:
            raise ValueError("picklist_values check must list at least one field.")

        target_fields = describe_fields(context.target_describe)
        target_label = object_label(context.target_describe, context.target_object_api_name)
        name_field = context.step.extract_config.name_field
        issues: list[EngineIssue] = []

        for field_name in config.fields:
            label = field_label(context.target_describe, field_name)
            target_field = target_fields.get(field_name)
            if target_field is None:
                issues.append(
                    EngineIssue(
                        severity=resolve_severity(config, IssueSeverity.ERROR),
                        check_name=picklist_check_name(label),
                        message=(
                            f"{field_name} does not exist on {target_label} in the target org, "
                            "so its values cannot be loaded."
                        ),
                        suggested_action=f"Deploy {field_name} to the target org before migrating.",
                        field=field_name,
                    )
                )
                continue

            field_type = str(target_field.get("type") or "").lower()
            if field_type not in _PICKLIST_TYPES:
                continue

            allowed = {
                str(entry.get("value"))
                for entry in target_field.get("picklistValues") or []
                if entry.get("active", True)
            }
            severity = resolve_severity(config, IssueSeverity.ERROR)

            for record in context.records:
                raw_value = record.get(field_name)
                if is_blank(raw_value):
                    continue
                if field_type == "multipicklist":
                    values = [part.strip() for part in str(raw_value).split(";") if part.strip()]
                else:
                    values = [str(raw_value)]
                invalid = [value for value in values if value not in allowed]
                if not invalid:
                    continue

                quoted = ", ".join(f"'{value}'" for value in invalid)
                issues.append(
                    make_record_issue(
                        context,
                        record,
                        severity=severity,
                        check_name=picklist_check_name(label),
                        message=(
                            f"Record {record_label(record, name_field)} uses {label} value(s) "
                            f"not available in the target org: {quoted}."
                        ),
                        suggested_action=(
                            f"Add {quoted} to the {label} picklist in the target org "
                            "or update the source record."
                        ),
                        field=field_name,
                    )
                )
        return issues


class ExistingTargetRecordsCheck(BaseValidationCheck):
    """
    Warns when a record already exists in the target and will be updated.
    """

    check_type = "existing_target_records"

    def source_fields(self, step: ETLStep, config: CheckConfig) -> tuple[str, ...]:
        return (self._match_field(step, config),)

    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        match_field = self._match_field(context.step, config)
        severity = resolve_severity(config, IssueSeverity.WARNING)
        name_field = context.step.extract_config.name_field

        match_values = [
            str(record[match_field]) for record in context.records if not is_blank(record.get(match_field))
        ]
        if not match_values:
            return []

        target_rows = context.target_client.fetch_records(
            context.target_object_api_name,
            fields=("Id", match_field),
            where_field=match_field,
            values=match_values,
        )
        existing = {
            str(row[match_field]): str(row.get("Id"))
            for row in target_rows
            if not is_blank(row.get(match_field))
        }

        label = field_label(context.target_describe, match_field)
        issues: list[EngineIssue] = []
        for record in context.records:
            value = record.get(match_field)
            if is_blank(value) or str(value) not in existing:
                continue
            issues.append(
                make_record_issue(
                    context,
                    record,
                    severity=severity,
                    check_name="Record Already Exists In Target Org",
                    message=(
                        f"Record {record_label(record, name_field)} matches target record "
                        f"{existing[str(value)]} on {label} '{value}'. Migrating will update it."
                    ),
                    suggested_action="Review the target record first; its values will be overwritten.",
                    field=match_field,
                )
            )
        return issues

    @staticmethod
    def _match_field(step: ETLStep, config: CheckConfig) -> str:
        match_field = config.params.get("matchField") or step.load_config.external_id_field
        if not match_field:
            raise ValueError(
                f"existing_target_records on step '{step.step_name}' needs "
                "loadConfig.externalIdField or params.matchField."
            )
        return str(match_field)
