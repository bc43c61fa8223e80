"""
migration_templates/models.py

Immutable migration template definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class IssueSeverity:
    """
    Severities a check may declare and a validation report is grouped by.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    ALL = (ERROR, WARNING, INFO)


@dataclass(frozen=True)
class ExtractConfig:
    """
    What one ETL step reads from the source org.

    parent_field links a child step's records to the records selected for
    the first step (e.g. a lookup from a variation to its rule).
    """

    object_api_name: str
    fields: tuple[str, ...] = ()
    name_field: str = "Name"
    parent_field: str | None = None
    filters: str = ""


@dataclass(frozen=True)
class LoadConfig:
    """
    Where one ETL step writes in the target org.
    """

    target_object_api_name: str
    external_id_field: str | None = None


@dataclass(frozen=True)
class CheckConfig:
    check_type: str
    fields: tuple[str, ...] = ()
    severity: str | None = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationConfig:
    checks: tuple[CheckConfig, ...] = ()


@dataclass(frozen=True)
class ETLStep:
    step_name: str
    step_order: int
    extract_config: ExtractConfig
    load_config: LoadConfig
    validation_config: ValidationConfig = field(default_factory=ValidationConfig)

    @property
    def is_child_step(self) -> bool:
        return self.extract_config.parent_field is not None


@dataclass(frozen=True)
class MigrationTemplate:
    """
    A named, ordered set of ETL steps plus the checks that gate them.
    """

    id: str
    name: str
    etl_steps: tuple[ETLStep, ...]
    description: str = ""
    category: str = "general"
    version: str = "1.0.0"

    @property
    def primary_object_api_name(self) -> str | None:
        """Object type of the first step's extraction, if any step is declared."""
        if not self.etl_steps:
            return None
        return self.ordered_steps()[0].extract_config.object_api_name or None

    def ordered_steps(self) -> list[ETLStep]:
        return sorted(self.etl_steps, key=lambda step: step.step_order)
