"""
app/domain/migration_validation.py

Domain models returned by pre-migration validation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from migration_templates.models import IssueSeverity


@dataclass(frozen=True)
class ValidationIssue:
    """
    One classified finding shown to the user.
    """

    id: str
    severity: str
    title: str
    description: str
    record_id: str | None = None
    record_link: str | None = None
    field: str | None = None
    suggestion: str | None = None
    parent_record_id: str | None = None

    def __post_init__(self) -> None:
        if self.severity not in IssueSeverity.ALL:
            raise ValueError(f"Unknown issue severity '{self.severity}'.")


@dataclass(frozen=True)
class ValidationSummary:
    errors: int = 0
    warnings: int = 0
    info: int = 0


@dataclass(frozen=True)
class ValidationResult:
    """
    Aggregated validation verdict.

    Build it with ``from_issues`` so the summary and flags always agree
    with the issue list.
    """

    is_valid: bool
    has_errors: bool
    has_warnings: bool
    issues: tuple[ValidationIssue, ...]
    summary: ValidationSummary
    selected_record_names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_issues(
        cls,
        issues: Iterable[ValidationIssue],
        selected_record_names: Mapping[str, str] | None = None,
    ) -> "ValidationResult":
        ordered = tuple(issues)
        summary = ValidationSummary(
            errors=sum(1 for issue in ordered if issue.severity == IssueSeverity.ERROR),
            warnings=sum(1 for issue in ordered if issue.severity == IssueSeverity.WARNING),
            info=sum(1 for issue in ordered if issue.severity == IssueSeverity.INFO),
        )
        return cls(
            is_valid=summary.errors == 0,
            has_errors=summary.errors > 0,
            has_warnings=summary.warnings > 0,
            issues=ordered,
            summary=summary,
            selected_record_names=dict(selected_record_names or {}),
        )

    def error_type_counts(self) -> dict[str, int]:
        """Tally of error titles, in first-seen order."""
        counts: dict[str, int] = {}
        for issue in self.issues:
            if issue.severity == IssueSeverity.ERROR:
                counts[issue.title] = counts.get(issue.title, 0) + 1
        return counts


@dataclass(frozen=True)
class RecordValidationOutcome:
    """
    Result of the selected-record pre-check.

    ``errors[i]`` explains why ``invalid_records[i]`` was rejected.
    """

    valid: bool
    errors: list[str] = field(default_factory=list)
    invalid_records: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.errors) != len(self.invalid_records):
            raise ValueError("errors and invalid_records must have the same length.")
        if self.valid and self.errors:
            raise ValueError("A valid outcome cannot carry record errors.")
