"""
validation_engine/base.py

Core types for pre-migration validation checks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

from migration_templates.models import CheckConfig, ETLStep, IssueSeverity, MigrationTemplate
from validation_engine.formatter import build_record_link


class OrgClient(Protocol):
    """
    Read-only org API surface the validators rely on.
    """

    instance_url: str

    def describe_object(self, object_api_name: str) -> dict[str, Any] | None:
        ...

    def fetch_records(
        self,
        object_api_name: str,
        *,
        fields: Iterable[str],
        where_field: str,
        values: Iterable[str],
        condition: str = "",
    ) -> list[dict[str, Any]]:
        ...


class OrgClientFactory(Protocol):
    def for_org(self, org_id: str) -> OrgClient:
        ...


@dataclass(frozen=True)
class EngineIssue:
    """
    One finding produced by a check, already formatted for display.
    """

    severity: str
    check_name: str
    message: str
    record_id: str | None = None
    record_link: str | None = None
    suggested_action: str | None = None
    parent_record_id: str | None = None
    field: str | None = None


@dataclass(frozen=True)
class EngineValidationResult:
    errors: tuple[EngineIssue, ...] = ()
    warnings: tuple[EngineIssue, ...] = ()
    info: tuple[EngineIssue, ...] = ()

    @classmethod
    def from_issues(cls, issues: Iterable[EngineIssue]) -> "EngineValidationResult":
        """Partition issues by severity, keeping their relative order."""
        buckets: dict[str, list[EngineIssue]] = {severity: [] for severity in IssueSeverity.ALL}
        for issue in issues:
            if issue.severity not in buckets:
                raise ValueError(f"Unknown issue severity '{issue.severity}'.")
            buckets[issue.severity].append(issue)
        return cls(
            errors=tuple(buckets[IssueSeverity.ERROR]),
            warnings=tuple(buckets[IssueSeverity.WARNING]),
            info=tuple(buckets[IssueSeverity.INFO]),
        )


@dataclass
class StepContext:
    """
    Everything a check needs for one ETL step, loaded before checks run.

    records holds source rows in a stable order. For child steps each
    row's parent_field value points at a first-step record.
    """

    template: MigrationTemplate
    step: ETLStep
    records: list[dict[str, Any]]
    source_client: OrgClient
    target_client: OrgClient
    source_instance_url: str
    target_describe: dict[str, Any] | None

    @property
    def object_api_name(self) -> str:
        return self.step.extract_config.object_api_name

    @property
    def target_object_api_name(self) -> str:
        return self.step.load_config.target_object_api_name

    def parent_id_of(self, record: dict[str, Any]) -> str | None:
        parent_field = self.step.extract_config.parent_field
        if parent_field is None:
            return None
        value = record.get(parent_field)
        return str(value) if value else None


class BaseValidationCheck(ABC):
    """
    Contract for a single kind of check.

    Checks read org data through the clients on the context and never
    write to either org.
    """

    check_type: str
    requires_target_object: bool = True

    @abstractmethod
    def run(self, context: StepContext, config: CheckConfig) -> list[EngineIssue]:
        """
        Evaluate one configured check against one step's records.
        """

    def source_fields(self, step: ETLStep, config: CheckConfig) -> tuple[str, ...]:
        """Source fields this check reads, fetched up front with the step's records."""
        return config.fields


def resolve_severity(config: CheckConfig, default: str) -> str:
    severity = (config.severity or default).strip().lower()
    if severity not in IssueSeverity.ALL:
        raise ValueError(
            f"Invalid severity '{config.severity}' for check '{config.check_type}'. "
            f"Allowed values: {', '.join(IssueSeverity.ALL)}."
        )
    return severity


def make_record_issue(
    context: StepContext,
    record: dict[str, Any],
    *,
    severity: str,
    check_name: str,
    message: str,
    suggested_action: str | None = None,
    field: str | None = None,
) -> EngineIssue:
    """Issue about one source record, linked to it and to its parent when it has one."""
    record_id = str(record["Id"]) if record.get("Id") else None
    return EngineIssue(
        severity=severity,
        check_name=check_name,
        message=message,
        record_id=record_id,
        record_link=build_record_link(context.source_instance_url, context.object_api_name, record_id),
        suggested_action=suggested_action,
        parent_record_id=context.parent_id_of(record),
        field=field,
    )
