"""
tests/test_validation_engine.py

Pytest unit tests for ValidationEngine against in-memory orgs.

Coverage
--------
- Inferred checks: target object availability, field coverage, child records
- Declared checks: required fields, picklist values, lookup dependencies,
  existing target records
- Severity partitioning and stable ordering
- Record links and parent record ids
- Unsupported check types
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from migration_templates.loader import parse_template
from migration_templates.models import MigrationTemplate
from org_fakes import FakeClientFactory, FakeOrgClient, picklist_field, text_field
from validation_engine.base import EngineValidationResult
from validation_engine.engine import ValidationEngine

SOURCE_URL = "https://source.example.com"

RULE_ONE = "a0A000000000001AAA"
RULE_TWO = "a0A000000000002AAA"
VARIATION_ONE = "a0V000000000001AAA"
VARIATION_TWO = "a0V000000000002AAA"
PAY_CODE_ONE = "a0P000000000001AAA"
PAY_CODE_TWO = "a0P000000000002AAA"


TEMPLATE_PAYLOAD = {
    "id": "rules",
    "name": "Rules",
    "etlSteps": [
        {
            "stepName": "variations",
            "stepOrder": 2,
            "extractConfig": {
                "objectApiName": "Variation__c",
                "fields": ["Name", "Rule__c"],
                "parentField": "Rule__c",
            },
            "validationConfig": {"checks": [{"type": "required_fields", "fields": ["Name"]}]},
        },
        {
            "stepName": "rules",
            "stepOrder": 1,
            "extractConfig": {
                "objectApiName": "Rule__c",
                "fields": ["Name", "Status__c", "Pay_Code__c", "External_Id__c", "Legacy__c"],
            },
            "loadConfig": {"targetObjectApiName": "Rule__c", "externalIdField": "External_Id__c"},
            "validationConfig": {
                "checks": [
                    {"type": "required_fields", "fields": ["Name"]},
                    {"type": "picklist_values", "fields": ["Status__c"]},
                    {
                        "type": "lookup_dependencies",
                        "params": {
                            "dependencies": [
                                {"field": "Pay_Code__c", "object": "Pay_Code__c", "matchField": "Code__c"}
                            ]
                        },
                    },
                    {"type": "existing_target_records"},
                ]
            },
        },
    ],
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def template() -> MigrationTemplate:
    return parse_template(TEMPLATE_PAYLOAD)


@pytest.fixture()
def source_client() -> FakeOrgClient:
    return FakeOrgClient(
        instance_url=SOURCE_URL,
        records={
            "Rule__c": [
                {
                    "Id": RULE_ONE,
                    "Name": "Rule One",
                    "Status__c": "Active",
                    "Pay_Code__c": PAY_CODE_ONE,
                    "External_Id__c": "EXT-1",
                    "Legacy__c": "x",
                },
                {
                    "Id": RULE_TWO,
                    "Name": None,
                    "Status__c": "Retired",
                    "Pay_Code__c": PAY_CODE_TWO,
                    "External_Id__c": "EXT-2",
                    "Legacy__c": None,
                },
            ],
            "Variation__c": [
                {"Id": VARIATION_TWO, "Name": "", "Rule__c": RULE_ONE},
                {"Id": VARIATION_ONE, "Name": "Weekend", "Rule__c": RULE_ONE},
            ],
            "Pay_Code__c": [
                {"Id": PAY_CODE_ONE, "Code__c": "PC-1"},
                {"Id": PAY_CODE_TWO, "Code__c": "PC-2"},
            ],
        },
    )


@pytest.fixture()
def target_client() -> FakeOrgClient:
    return FakeOrgClient(
        instance_url="https://target.example.com",
        records={
            "Rule__c": [{"Id": "a0A00000000000TAAA", "External_Id__c": "EXT-1"}],
            "Pay_Code__c": [{"Id": "a0P00000000000TAAA", "Code__c": "PC-1"}],
        },
        describes={
            "Rule__c": {
                "name": "Rule__c",
                "label": "Rule",
                "fields": [
                    text_field("Name", "Rule Name"),
                    picklist_field("Status__c", "Status", ["Active", "Draft"]),
                    text_field("Pay_Code__c", "Pay Code"),
                    text_field("External_Id__c", "External Id"),
                ],
            },
            "Variation__c": {
                "name": "Variation__c",
                "label": "Variation",
                "fields": [text_field("Name", "Variation Name"), text_field("Rule__c", "Rule")],
            },
        },
    )


@pytest.fixture()
def engine(source_client: FakeOrgClient, target_client: FakeOrgClient) -> ValidationEngine:
    return ValidationEngine(client_factory=FakeClientFactory({"src": source_client, "tgt": target_client}))


def _run(engine: ValidationEngine, template: MigrationTemplate, record_ids: list[str]) -> EngineValidationResult:
    return engine.validate_template(template, "src", "tgt", record_ids, SOURCE_URL)


# ---------------------------------------------------------------------------
# Full template run
# ---------------------------------------------------------------------------


class TestTemplateRun:
    def test_classifies_findings_by_severity(self, engine: ValidationEngine, template: MigrationTemplate) -> None:
        result = _run(engine, template, [RULE_ONE, RULE_TWO])

        assert [issue.check_name for issue in result.errors] == [
            "Missing Required Field Values",
            "Invalid Status Values",
            "Missing Dependency",
            "Missing Required Field Values",
        ]
        assert [issue.check_name for issue in result.warnings] == [
            "Field Not Found In Target Org",
            "Record Already Exists In Target Org",
        ]
        assert [issue.check_name for issue in result.info] == ["Related Records Included"]

    def test_record_issues_carry_links_and_fields(
        self, engine: ValidationEngine, template: MigrationTemplate
    ) -> None:
        result = _run(engine, template, [RULE_ONE, RULE_TWO])
        picklist_issue = result.errors[1]

        assert picklist_issue.record_id == RULE_TWO
        assert picklist_issue.record_link == f"{SOURCE_URL}/lightning/r/Rule__c/{RULE_TWO}/view"
        assert picklist_issue.field == "Status__c"
        assert "'Retired'" in picklist_issue.message

    def test_child_issues_reference_their_parent(self, engine: ValidationEngine, template: MigrationTemplate) -> None:
        result = _run(engine, template, [RULE_ONE, RULE_TWO])
        child_issue = result.errors[3]

        assert child_issue.record_id == VARIATION_TWO
        assert child_issue.parent_record_id == RULE_ONE
        assert child_issue.record_link == f"{SOURCE_URL}/lightning/r/Variation__c/{VARIATION_TWO}/view"

    def test_related_records_info_counts_children_per_parent(
        self, engine: ValidationEngine, template: MigrationTemplate
    ) -> None:
        info = _run(engine, template, [RULE_ONE, RULE_TWO]).info[0]

        assert info.record_id == RULE_ONE
        assert info.message.startswith("2 Variation__c record(s)")
        assert info.record_link == f"{SOURCE_URL}/lightning/r/Rule__c/{RULE_ONE}/view"

    def test_missing_dependency_names_the_unmatched_value(
        self, engine: ValidationEngine, template: MigrationTemplate
    ) -> None:
        dependency_issue = _run(engine, template, [RULE_ONE, RULE_TWO]).errors[2]

        assert dependency_issue.record_id == RULE_TWO
        assert dependency_issue.field == "Pay_Code__c"
        assert "'PC-2'" in dependency_issue.message

    def test_existing_target_record_warning(self, engine: ValidationEngine, template: MigrationTemplate) -> None:
        warning = _run(engine, template, [RULE_ONE, RULE_TWO]).warnings[1]

        assert warning.record_id == RULE_ONE
        assert warning.field == "External_Id__c"

    def test_field_coverage_warning_has_no_record(self, engine: ValidationEngine, template: MigrationTemplate) -> None:
        warning = _run(engine, template, [RULE_ONE]).warnings[0]

        assert warning.field == "Legacy__c"
        assert warning.record_id is None

    def test_output_is_stable_for_fixed_org_state(
        self, engine: ValidationEngine, template: MigrationTemplate
    ) -> None:
        assert _run(engine, template, [RULE_ONE, RULE_TWO]) == _run(engine, template, [RULE_ONE, RULE_TWO])

    def test_only_reads_from_orgs(
        self,
        engine: ValidationEngine,
        template: MigrationTemplate,
        source_client: FakeOrgClient,
        target_client: FakeOrgClient,
    ) -> None:
        _run(engine, template, [RULE_ONE])

        assert {call["object"] for call in source_client.fetch_calls} == {"Rule__c", "Variation__c", "Pay_Code__c"}
        assert target_client.describe_calls == ["Rule__c", "Variation__c"]


# ---------------------------------------------------------------------------
# Target object availability
# ---------------------------------------------------------------------------


def test_unavailable_target_object_skips_target_checks(
    engine: ValidationEngine,
    template: MigrationTemplate,
    target_client: FakeOrgClient,
) -> None:
    del target_client.describes["Rule__c"]

    result = _run(engine, template, [RULE_ONE, RULE_TWO])
    names = [issue.check_name for issue in result.errors]

    assert names[0] == "Target Object Unavailable"
    assert "Invalid Status Values" not in names
    assert "Missing Required Field Values" in names
    assert "Record Already Exists In Target Org" not in [issue.check_name for issue in result.warnings]


# ---------------------------------------------------------------------------
# Picklist severity
# ---------------------------------------------------------------------------


def test_unrestricted_picklist_value_outside_target_is_an_error(
    engine: ValidationEngine,
    template: MigrationTemplate,
    target_client: FakeOrgClient,
) -> None:
    target_client.describes["Rule__c"]["fields"][1] = picklist_field(
        "Status__c", "Status", ["Active"], restricted=False
    )

    result = _run(engine, template, [RULE_TWO])
    picklist_errors = [issue for issue in result.errors if issue.check_name == "Invalid Status Values"]

    assert len(picklist_errors) == 1
    assert picklist_errors[0].field == "Status__c"
    assert "Invalid Status Values" not in [issue.check_name for issue in result.warnings]


# ---------------------------------------------------------------------------
# Step ordering
# ---------------------------------------------------------------------------


def test_related_records_link_to_first_ordered_step_when_steps_are_unsorted(
    engine: ValidationEngine,
    template: MigrationTemplate,
) -> None:
    unsorted = replace(template, etl_steps=tuple(sorted(template.etl_steps, key=lambda step: -step.step_order)))
    assert unsorted.etl_steps[0].extract_config.object_api_name == "Variation__c"

    info = _run(engine, unsorted, [RULE_ONE]).info[0]

    assert info.check_name == "Related Records Included"
    assert info.record_link == f"{SOURCE_URL}/lightning/r/Rule__c/{RULE_ONE}/view"


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


def test_unknown_check_type_is_rejected_before_org_calls(source_client: FakeOrgClient) -> None:
    payload = {
        "id": "broken",
        "name": "Broken",
        "etlSteps": [
            {
                "stepName": "only",
                "extractConfig": {"objectApiName": "Rule__c", "fields": ["Name"]},
                "validationConfig": {"checks": [{"type": "row_count"}]},
            }
        ],
    }
    engine = ValidationEngine(client_factory=FakeClientFactory({"src": source_client}))

    with pytest.raises(ValueError, match="Unsupported check_type 'row_count'"):
        engine.validate_template(parse_template(payload), "src", "tgt", [RULE_ONE], SOURCE_URL)

    assert source_client.fetch_calls == []


def test_severity_override_applies(source_client: FakeOrgClient, target_client: FakeOrgClient) -> None:
    payload = {
        "id": "soft",
        "name": "Soft",
        "etlSteps": [
            {
                "stepName": "only",
                "extractConfig": {"objectApiName": "Rule__c", "fields": ["Name"]},
                "validationConfig": {
                    "checks": [{"type": "required_fields", "fields": ["Name"], "severity": "warning"}]
                },
            }
        ],
    }
    engine = ValidationEngine(client_factory=FakeClientFactory({"src": source_client, "tgt": target_client}))

    result = engine.validate_template(parse_template(payload), "src", "tgt", [RULE_TWO], SOURCE_URL)

    assert result.errors == ()
    assert [issue.check_name for issue in result.warnings] == ["Missing Required Field Values"]
