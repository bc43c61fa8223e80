"""
migration_templates/registry.py

Template lookup by id. Instances are injected into the validation service.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import lru_cache

from migration_templates.loader import load_templates_from_directory
from migration_templates.models import MigrationTemplate

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """
    In-memory registry of migration templates keyed by template id.
    """

    def __init__(self, templates: Iterable[MigrationTemplate] | None = None) -> None:
        self._templates: dict[str, MigrationTemplate] = {}
        for template in templates or ():
            self.register(template)

    def register(self, template: MigrationTemplate) -> None:
        if template.id in self._templates:
            raise ValueError(f"Template already registered: {template.id}")
        self._templates[template.id] = template

    def get_template(self, template_id: str) -> MigrationTemplate | None:
        return self._templates.get(template_id)

    def list_templates(self) -> list[MigrationTemplate]:
        return sorted(self._templates.values(), key=lambda template: template.name.lower())

    def __len__(self) -> int:
        return len(self._templates)


@lru_cache(maxsize=1)
def get_template_registry() -> TemplateRegistry:
    """
    Build and cache the registry from the configured definitions directory.
    """

    from app.config import get_template_registry_settings

    settings = get_template_registry_settings()
    registry = TemplateRegistry(load_templates_from_directory(settings.templates_path))
    logger.info("Migration template registry loaded templates=%d path=%s", len(registry), settings.templates_path)
    return registry
