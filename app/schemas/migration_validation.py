"""
Schemas for the migration validation endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MigrationValidationRequest(BaseModel):
    """
    Request body. Required fields are optional here so that missing values
    produce the service's own 400 response instead of a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    source_org_id: str | None = Field(default=None, alias="sourceOrgId")
    target_org_id: str | None = Field(default=None, alias="targetOrgId")
    template_id: str | None = Field(default=None, alias="templateId")
    selected_records: list[str] | None = Field(default=None, alias="selectedRecords")
    selected_record_names: dict[str, str] | None = Field(default=None, alias="selectedRecordNames")


class ValidationIssueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    severity: str
    title: str
    description: str
    record_id: str | None = Field(default=None, alias="recordId")
    record_link: str | None = Field(default=None, alias="recordLink")
    field: str | None = None
    suggestion: str | None = None
    parent_record_id: str | None = Field(default=None, alias="parentRecordId")


class ValidationSummaryResponse(BaseModel):
    errors: int
    warnings: int
    info: int


class ValidationResultResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    has_errors: bool = Field(alias="hasErrors")
    has_warnings: bool = Field(alias="hasWarnings")
    issues: list[ValidationIssueResponse] = Field(default_factory=list)
    summary: ValidationSummaryResponse
    selected_record_names: dict[str, str] = Field(default_factory=dict, alias="selectedRecordNames")


class MigrationValidationResponse(BaseModel):
    success: bool = True
    validation: ValidationResultResponse


class ValidationErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str | None = None
    reconnect_url: str | None = Field(default=None, alias="reconnectUrl")
    details: str | None = None


class TemplateSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    category: str
    version: str
    object_type: str | None = Field(default=None, alias="objectType")
    step_count: int = Field(alias="stepCount")


class TemplateListResponse(BaseModel):
    templates: list[TemplateSummaryResponse] = Field(default_factory=list)
