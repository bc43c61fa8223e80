"""
validation_engine/record_checks.py

Checks that only need the source records themselves.
"""

from __future__ import annotations

from migration_templates.models import CheckConfig
from validation_engine.base import (
    BaseValidationCheck,
    EngineIssue,
    IssueSeverity,
    StepContext,
    make_record_issue,
    resolve_severity,
)
from validation_engine.formatter import field_label, is_blank, record_label


class RequiredFieldsCheck(BaseValidationCheck):
    """
    Flags source records with no value in a field the target requires.
    """

    check_type = "required_fields"
    requires_target_object = False

    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        if not config.fields:
            raise ValueError("required_fields check must list at least one field.")

        severity = resolve_severity(config, IssueSeverity.ERROR)
        name_field = context.step.extract_config.name_field
        issues: list[EngineIssue] = []

        for record in context.records:
            for field_name in config.fields:
                if not is_blank(record.get(field_name)):
                    continue
                label = field_label(context.target_describe, field_name)
                issues.append(
                    make_record_issue(
                        context,
                        record,
                        severity=severity,
                        check_name="Missing Required Field Values",
                        message=f"Record {record_label(record, name_field)} has no value for {label}.",
                        suggested_action=f"Populate {label} on the source record before migrating.",
                        field=field_name,
                    )
                )
        return issues
