"""
app/validators/record_selection_validator.py

Existence and type pre-check for the records a user selected to migrate.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from app.connectors.base import is_auth_failure
from app.domain.migration_validation import RecordValidationOutcome
from validation_engine.base import OrgClientFactory
from validation_engine.formatter import object_label, record_key

logger = logging.getLogger(__name__)

_RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{15}(?:[A-Za-z0-9]{3})?$")


def is_record_id(value: str) -> bool:
    return bool(_RECORD_ID_PATTERN.match(value or ""))


class RecordSelectionValidator:
    """
    Confirms each selected id exists in the source org and belongs to the
    object the template extracts first.

    Checks per id, in order: id format, key prefix against the object's
    describe, then presence in an ``Id IN (...)`` query. Results keep the
    selection order and repeat duplicate ids.
    """

    def __init__(self, *, client_factory: OrgClientFactory) -> None:
        self._client_factory = client_factory

    def validate_selected_records(
        self,
        source_org_id: str,
        record_ids: Sequence[str],
        object_api_name: str,
    ) -> RecordValidationOutcome:
        client = self._client_factory.for_org(source_org_id)
        candidate_ids = [record_id for record_id in dict.fromkeys(record_ids) if is_record_id(record_id)]

        describe = None
        found_keys: set[str] = set()
        lookup_failed = False
        try:
            describe = client.describe_object(object_api_name)
            if describe is not None and candidate_ids:
                key_prefix = describe.get("keyPrefix")
                query_ids = [
                    record_id for record_id in candidate_ids if not key_prefix or record_id[:3] == key_prefix
                ]
                if query_ids:
                    rows = client.fetch_records(
                        object_api_name,
                        fields=("Id",),
                        where_field="Id",
                        values=query_ids,
                    )
                    found_keys = {record_key(row.get("Id")) for row in rows}
        except Exception as exc:
            if is_auth_failure(exc):
                raise
            logger.warning(
                "Record selection lookup failed org=%s object=%s records=%d error=%s",
                source_org_id,
                object_api_name,
                len(candidate_ids),
                exc,
            )
            lookup_failed = True

        errors: list[str] = []
        invalid_records: list[str] = []
        for record_id in record_ids:
            message = self._rejection_reason(
                record_id,
                object_api_name=object_api_name,
                describe=describe,
                lookup_failed=lookup_failed,
                found_keys=found_keys,
            )
            if message is not None:
                errors.append(message)
                invalid_records.append(record_id)

        if invalid_records:
            logger.info(
                "Record selection rejected org=%s object=%s invalid=%d selected=%d",
                source_org_id,
                object_api_name,
                len(invalid_records),
                len(record_ids),
            )
        return RecordValidationOutcome(
            valid=not invalid_records,
            errors=errors,
            invalid_records=invalid_records,
        )

    @staticmethod
    def _rejection_reason(
        record_id: str,
        *,
        object_api_name: str,
        describe: dict | None,
        lookup_failed: bool,
        found_keys: set[str],
    ) -> str | None:
        if not is_record_id(record_id):
            return f"Record ID '{record_id}' is not a valid record identifier."
        if lookup_failed:
            return f"Unable to verify record '{record_id}' in the source org."
        if describe is None:
            return f"Object {object_api_name} is not available in the source org."

        key_prefix = describe.get("keyPrefix")
        if key_prefix and record_id[:3] != key_prefix:
            label = object_label(describe, object_api_name)
            return f"Record '{record_id}' is not a {label} record (expected {object_api_name})."
        if record_key(record_id) not in found_keys:
            return f"Record '{record_id}' was not found in the source org."
        return None
