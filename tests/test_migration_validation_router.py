"""
tests/test_migration_validation_router.py

HTTP contract tests for the migration validation and template endpoints.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import migration_validation_router, templates_router
from app.config import MigrationValidationSettings
from app.connectors.base import OrgNotConnectedError, OrgRequestError
from app.domain.migration_validation import RecordValidationOutcome
from app.domain.organisation import OrganisationRecord
from app.services.migration_validation_service import (
    MigrationValidationService,
    get_migration_validation_service,
)
from app.services.usage_tracker import UsageTracker
from migration_templates.models import ETLStep, ExtractConfig, LoadConfig, MigrationTemplate
from migration_templates.registry import TemplateRegistry, get_template_registry
from validation_engine.base import EngineIssue, EngineValidationResult, IssueSeverity

TEMPLATE = MigrationTemplate(
    id="tpl-rules",
    name="Rules",
    description="Interpretation rules",
    etl_steps=(
        ETLStep(
            step_name="rules",
            step_order=1,
            extract_config=ExtractConfig(object_api_name="tc9_et__Interpretation_Rule__c"),
            load_config=LoadConfig(target_object_api_name="tc9_et__Interpretation_Rule__c"),
        ),
    ),
)

ORGANISATIONS = {
    "org-src": OrganisationRecord(id="org-src", name="Source", instance_url="https://source.example.com", access_token="a"),
    "org-tgt": OrganisationRecord(id="org-tgt", name="Target", instance_url="https://target.example.com", access_token="b"),
}


class StubLookup:
    def get_organisation(self, org_id: str) -> OrganisationRecord | None:
        return ORGANISATIONS.get(org_id)


class StubRecordValidator:
    def __init__(self) -> None:
        self.outcome = RecordValidationOutcome(valid=True)
        self.error: Exception | None = None

    def validate_selected_records(self, source_org_id, record_ids, object_api_name) -> RecordValidationOutcome:
        if self.error is not None:
            raise self.error
        return self.outcome


class StubEngine:
    def __init__(self) -> None:
        self.result = EngineValidationResult()
        self.error: Exception | None = None
        self.calls = 0

    def validate_template(self, template, source_org_id, target_org_id, record_ids, source_instance_url):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class RecordingUsageTracker:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def track_event(self, event_type: str, user_id: str, metadata: dict[str, Any] | None = None) -> None:
        self.events.append((event_type, user_id, metadata or {}))


class BrokenSession:
    def __enter__(self) -> "BrokenSession":
        raise RuntimeError("database is down")

    def __exit__(self, *exc_info: Any) -> None:
        return None


class Harness:
    def __init__(self) -> None:
        self.record_validator = StubRecordValidator()
        self.engine = StubEngine()
        self.tracker: Any = RecordingUsageTracker()

    def service(self) -> MigrationValidationService:
        return MigrationValidationService(
            organisation_lookup=StubLookup(),
            template_registry=TemplateRegistry([TEMPLATE]),
            record_validator=self.record_validator,
            validation_engine=self.engine,
            usage_tracker=self.tracker,
            settings=MigrationValidationSettings(),
        )


@pytest.fixture()
def harness() -> Harness:
    return Harness()


@pytest.fixture()
def client(harness: Harness) -> TestClient:
    application = FastAPI()
    application.include_router(migration_validation_router)
    application.include_router(templates_router)
    application.dependency_overrides[get_migration_validation_service] = harness.service
    application.dependency_overrides[get_template_registry] = lambda: TemplateRegistry([TEMPLATE])
    return TestClient(application)


def _body(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "sourceOrgId": "org-src",
        "targetOrgId": "org-tgt",
        "templateId": "tpl-rules",
        "selectedRecords": ["rec1", "rec2"],
    }
    body.update(overrides)
    return body


def _post(client: TestClient, body: dict[str, Any], user_id: str | None = "user-1"):
    headers = {"X-User-Id": user_id} if user_id else {}
    return client.post("/api/migrations/validate", json=body, headers=headers)


# ---------------------------------------------------------------------------
# Success paths
# ---------------------------------------------------------------------------


def test_successful_validation_body(client: TestClient, harness: Harness) -> None:
    harness.engine.result = EngineValidationResult(
        errors=(
            EngineIssue(
                severity=IssueSeverity.ERROR,
                check_name="Invalid Status Values",
                message="bad status",
                record_id="a0A000000000001AAA",
                record_link="https://source.example.com/lightning/r/X/a0A000000000001AAA/view",
                field="tc9_et__Status__c",
            ),
        ),
        warnings=(
            EngineIssue(severity=IssueSeverity.WARNING, check_name="W1", message="w1"),
            EngineIssue(severity=IssueSeverity.WARNING, check_name="W2", message="w2"),
        ),
    )

    response = _post(client, _body(selectedRecordNames={"rec1": "Rule One"}))

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    validation = payload["validation"]
    assert validation["summary"] == {"errors": 1, "warnings": 2, "info": 0}
    assert validation["isValid"] is False
    assert validation["hasErrors"] is True
    assert validation["hasWarnings"] is True
    assert validation["selectedRecordNames"] == {"rec1": "Rule One"}
    error = validation["issues"][0]
    assert error["id"] == "error-0"
    assert error["recordId"] == "a0A000000000001AAA"
    assert error["recordLink"].endswith("/view")
    assert error["field"] == "tc9_et__Status__c"
    assert "parentRecordId" not in error
    assert "recordId" not in validation["issues"][1]


def test_summary_matches_issue_partition(client: TestClient, harness: Harness) -> None:
    harness.engine.result = EngineValidationResult(
        warnings=(EngineIssue(severity=IssueSeverity.WARNING, check_name="W", message="w"),),
        info=(EngineIssue(severity=IssueSeverity.INFO, check_name="I", message="i"),),
    )

    validation = _post(client, _body()).json()["validation"]

    for severity, key in (("error", "errors"), ("warning", "warnings"), ("info", "info")):
        assert validation["summary"][key] == sum(1 for issue in validation["issues"] if issue["severity"] == severity)
    assert validation["isValid"] is True


def test_invalid_selection_reports_success_true(client: TestClient, harness: Harness) -> None:
    harness.record_validator.outcome = RecordValidationOutcome(
        valid=False,
        errors=["Record 'rec1' was not found in the source org.", "Record 'rec2' was not found in the source org."],
        invalid_records=["rec1", "rec2"],
    )

    response = _post(client, _body())

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["validation"]["isValid"] is False
    assert [issue["id"] for issue in payload["validation"]["issues"]] == [
        "record-validation-error-0",
        "record-validation-error-1",
    ]
    assert payload["validation"]["selectedRecordNames"] == {}
    assert harness.engine.calls == 0


def test_large_selection_adds_warning(client: TestClient) -> None:
    records = [f"a0A{index:015d}" for index in range(201)]

    validation = _post(client, _body(selectedRecords=records)).json()["validation"]

    assert [issue["id"] for issue in validation["issues"]] == ["large-batch-warning"]
    assert validation["summary"] == {"errors": 0, "warnings": 1, "info": 0}
    assert validation["isValid"] is True


def test_usage_event_recorded_after_response(client: TestClient, harness: Harness) -> None:
    _post(client, _body())

    assert len(harness.tracker.events) == 1
    assert harness.tracker.events[0][1] == "user-1"


def test_usage_event_skipped_without_user(client: TestClient, harness: Harness) -> None:
    response = _post(client, _body(), user_id=None)

    assert response.status_code == 200
    assert harness.tracker.events == []


def test_usage_sink_failure_keeps_response(client: TestClient, harness: Harness) -> None:
    harness.tracker = UsageTracker(session_factory=BrokenSession)

    response = _post(client, _body())

    assert response.status_code == 200
    assert response.json()["validation"]["isValid"] is True


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "overrides",
    [
        {"sourceOrgId": None},
        {"targetOrgId": ""},
        {"templateId": None},
        {"selectedRecords": []},
    ],
)
def test_missing_parameters_return_400(client: TestClient, harness: Harness, overrides: dict[str, Any]) -> None:
    response = _post(client, _body(**overrides))

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required validation parameters"}
    assert harness.engine.calls == 0


def test_unknown_org_returns_404(client: TestClient) -> None:
    response = _post(client, _body(sourceOrgId="org-unknown"))

    assert response.status_code == 404
    assert response.json() == {"error": "Source or target organisation not found"}


def test_unknown_template_returns_404(client: TestClient) -> None:
    response = _post(client, _body(templateId="tpl-unknown"))

    assert response.status_code == 404
    assert response.json() == {"error": "Template not found"}


@pytest.mark.parametrize(
    "error",
    [
        OrgRequestError("Source: request rejected (HTTP 401) INVALID_SESSION_ID: Session expired or invalid"),
        OrgNotConnectedError("Organisation org-src is not connected."),
        RuntimeError("invalid_grant: token revoked"),
    ],
)
def test_auth_failures_return_401(client: TestClient, harness: Harness, error: Exception) -> None:
    harness.record_validator.error = error

    response = _post(client, _body())

    assert response.status_code == 401
    assert response.json() == {
        "error": "Authentication token has expired. Please reconnect the organisation.",
        "code": "TOKEN_EXPIRED",
        "reconnectUrl": "/orgs",
    }


def test_unexpected_failure_returns_500(client: TestClient, harness: Harness) -> None:
    harness.engine.error = RuntimeError("describe call failed")

    response = _post(client, _body())

    assert response.status_code == 500
    assert response.json() == {"error": "Validation failed", "details": "describe call failed"}


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def test_lists_templates(client: TestClient) -> None:
    response = client.get("/api/templates")

    assert response.status_code == 200
    assert response.json() == {
        "templates": [
            {
                "id": "tpl-rules",
                "name": "Rules",
                "description": "Interpretation rules",
                "category": "general",
                "version": "1.0.0",
                "objectType": "tc9_et__Interpretation_Rule__c",
                "stepCount": 1,
            }
        ]
    }
