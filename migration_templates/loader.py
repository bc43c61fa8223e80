"""
migration_templates/loader.py

Parses JSON template definitions into immutable template models.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from migration_templates.models import (
    CheckConfig,
    ETLStep,
    ExtractConfig,
    LoadConfig,
    MigrationTemplate,
    ValidationConfig,
)

logger = logging.getLogger(__name__)


class TemplateDefinitionError(ValueError):
    """
    Raised when a template definition is malformed.
    """


def _require_str(payload: dict[str, Any], key: str, context: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise TemplateDefinitionError(f"{context}: '{key}' must be a non-empty string.")
    return value.strip()


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TemplateDefinitionError(f"'{key}' must be a string when provided.")
    stripped = value.strip()
    return stripped or None


def _str_tuple(value: Any, context: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TemplateDefinitionError(f"{context} must be a list of strings.")
    return tuple(item.strip() for item in value if item.strip())


def _parse_check(payload: Any, context: str) -> CheckConfig:
    if not isinstance(payload, dict):
        raise TemplateDefinitionError(f"{context}: check must be an object.")
    params = payload.get("params") or {}
    if not isinstance(params, dict):
        raise TemplateDefinitionError(f"{context}: 'params' must be an object.")
    return CheckConfig(
        check_type=_require_str(payload, "type", context),
        fields=_str_tuple(payload.get("fields"), f"{context}.fields"),
        severity=_optional_str(payload, "severity"),
        params=params,
    )


def _parse_step(payload: Any, index: int, template_id: str) -> ETLStep:
    context = f"template '{template_id}' step {index}"
    if not isinstance(payload, dict):
        raise TemplateDefinitionError(f"{context}: step must be an object.")

    extract_raw = payload.get("extractConfig")
    if not isinstance(extract_raw, dict):
        raise TemplateDefinitionError(f"{context}: 'extractConfig' is required.")
    extract_config = ExtractConfig(
        object_api_name=_require_str(extract_raw, "objectApiName", f"{context}.extractConfig"),
        fields=_str_tuple(extract_raw.get("fields"), f"{context}.extractConfig.fields"),
        name_field=_optional_str(extract_raw, "nameField") or "Name",
        parent_field=_optional_str(extract_raw, "parentField"),
        filters=_optional_str(extract_raw, "filters") or "",
    )

    load_raw = payload.get("loadConfig") or {}
    if not isinstance(load_raw, dict):
        raise TemplateDefinitionError(f"{context}: 'loadConfig' must be an object.")
    load_config = LoadConfig(
        target_object_api_name=_optional_str(load_raw, "targetObjectApiName") or extract_config.object_api_name,
        external_id_field=_optional_str(load_raw, "externalIdField"),
    )

    validation_raw = payload.get("validationConfig") or {}
    checks_raw = validation_raw.get("checks") if isinstance(validation_raw, dict) else None
    if checks_raw is not None and not isinstance(checks_raw, list):
        raise TemplateDefinitionError(f"{context}: 'validationConfig.checks' must be a list.")
    checks = tuple(
        _parse_check(check, f"{context} check {check_index}")
        for check_index, check in enumerate(checks_raw or [])
    )

    step_order = payload.get("stepOrder", index)
    if not isinstance(step_order, int):
        raise TemplateDefinitionError(f"{context}: 'stepOrder' must be an integer.")

    return ETLStep(
        step_name=_optional_str(payload, "stepName") or f"step_{index}",
        step_order=step_order,
        extract_config=extract_config,
        load_config=load_config,
        validation_config=ValidationConfig(checks=checks),
    )


def parse_template(payload: Any) -> MigrationTemplate:
    """
    Build a template from its JSON mapping. Steps are ordered by stepOrder.
    """

    if not isinstance(payload, dict):
        raise TemplateDefinitionError("Template definition must be a JSON object.")

    template_id = _require_str(payload, "id", "template")
    steps_raw = payload.get("etlSteps")
    if not isinstance(steps_raw, list) or not steps_raw:
        raise TemplateDefinitionError(f"template '{template_id}': 'etlSteps' must be a non-empty list.")

    steps = [_parse_step(step, index, template_id) for index, step in enumerate(steps_raw)]
    steps.sort(key=lambda step: step.step_order)
    if steps[0].is_child_step:
        raise TemplateDefinitionError(
            f"template '{template_id}': the first step cannot declare a parentField."
        )
    step_names = [step.step_name for step in steps]
    if len(set(step_names)) != len(step_names):
        raise TemplateDefinitionError(f"template '{template_id}': step names must be unique.")

    return MigrationTemplate(
        id=template_id,
        name=_optional_str(payload, "name") or template_id,
        description=_optional_str(payload, "description") or "",
        category=_optional_str(payload, "category") or "general",
        version=_optional_str(payload, "version") or "1.0.0",
        etl_steps=tuple(steps),
    )


def load_templates_from_directory(directory: str | Path) -> list[MigrationTemplate]:
    """
    Load every ``*.json`` template definition in a directory, sorted by file name.
    """

    path = Path(directory)
    if not path.is_dir():
        raise FileNotFoundError(f"Migration template directory not found: {path}")

    templates: list[MigrationTemplate] = []
    for file_path in sorted(path.glob("*.json")):
        try:
            payload = json.loads(file_path.read_text(encoding="utf-8"))
        except ValueError as exc:
            raise TemplateDefinitionError(f"{file_path.name}: invalid JSON ({exc}).") from exc
        templates.append(parse_template(payload))
        logger.debug("Loaded migration template file=%s", file_path.name)
    return templates
