"""
app/api/routers/templates.py

Migration template catalogue endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.schemas.migration_validation import TemplateListResponse, TemplateSummaryResponse
from migration_templates.registry import TemplateRegistry, get_template_registry

router = APIRouter(tags=["templates"])


@router.get("/api/templates", response_model=TemplateListResponse, response_model_by_alias=True)
def list_templates(
    registry: TemplateRegistry = Depends(get_template_registry),
) -> TemplateListResponse:
    """
    List registered migration templates so clients can pick a template id.
    """

    return TemplateListResponse(
        templates=[
            TemplateSummaryResponse(
                id=template.id,
                name=template.name,
                description=template.description,
                category=template.category,
                version=template.version,
                object_type=template.primary_object_api_name,
                step_count=len(template.etl_steps),
            )
            for template in registry.list_templates()
        ]
    )
