"""
app/connectors/salesforce_connector.py

Read-only Salesforce REST connector used by pre-migration validation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import requests

from app.config import OrgAPISettings
from app.connectors.base import BaseOrgConnector, OrgNotConnectedError, OrgRequestError

if TYPE_CHECKING:
    from app.services.organisation_lookup import OrganisationLookup

logger = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z][A-Za-z0-9_]*)*$")


def _require_identifier(value: str, kind: str) -> str:
    if not _IDENTIFIER_PATTERN.match(value or ""):
        raise ValueError(f"Invalid {kind} name for SOQL: {value!r}")
    return value


def soql_quote(value: str) -> str:
    """
    Quote a string literal for a SOQL WHERE clause.
    """

    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _strip_attributes(record: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in record.items() if key != "attributes"}


class SalesforceConnector(BaseOrgConnector):
    """
    SOQL queries and sObject describes against one org.

    Describe results are cached for the lifetime of the connector, which is
    one validation request.
    """

    def __init__(
        self,
        *,
        org_label: str,
        instance_url: str,
        access_token: str,
        settings: OrgAPISettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(
            org_label=org_label,
            instance_url=instance_url,
            access_token=access_token,
            settings=settings,
            session=session,
        )
        self._data_url = f"{self.instance_url}/services/data/v{settings.api_version}"
        self._chunk_size = max(1, settings.query_chunk_size)
        self._describe_cache: dict[str, dict[str, Any] | None] = {}

    def query(self, soql: str) -> list[dict[str, Any]]:
        """
        Run a SOQL query and follow pagination until all rows are read.
        """

        payload = self._request_json(method="GET", url=f"{self._data_url}/query", params={"q": soql})
        records = [_strip_attributes(row) for row in payload.get("records", [])]
        while not payload.get("done", True) and payload.get("nextRecordsUrl"):
            payload = self._request_json(method="GET", url=f"{self.instance_url}{payload['nextRecordsUrl']}")
            records.extend(_strip_attributes(row) for row in payload.get("records", []))
        return records

    def describe_object(self, object_api_name: str) -> dict[str, Any] | None:
        """
        Return the sObject describe, or None when the object does not exist.
        """

        _require_identifier(object_api_name, "object")
        if object_api_name in self._describe_cache:
            return self._describe_cache[object_api_name]

        try:
            describe = self._request_json(
                method="GET",
                url=f"{self._data_url}/sobjects/{object_api_name}/describe",
            )
        except OrgRequestError as exc:
            if exc.status_code != 404:
                raise
            logger.info("Object not found org=%s object=%s", self.org_label, object_api_name)
            describe = None

        self._describe_cache[object_api_name] = describe
        return describe

    def fetch_records(
        self,
        object_api_name: str,
        *,
        fields: Iterable[str],
        where_field: str,
        values: Iterable[str],
        condition: str = "",
    ) -> list[dict[str, Any]]:
        """
        Select records whose ``where_field`` is in ``values``, chunking the IN clause.
        """

        _require_identifier(object_api_name, "object")
        _require_identifier(where_field, "field")
        field_list = [_require_identifier(name, "field") for name in dict.fromkeys(fields)]
        if not field_list:
            raise ValueError("fetch_records needs at least one field.")

        unique_values = [value for value in dict.fromkeys(str(item) for item in values) if value]
        extra_condition = f" AND ({condition})" if condition.strip() else ""

        rows: list[dict[str, Any]] = []
        for start in range(0, len(unique_values), self._chunk_size):
            chunk = unique_values[start:start + self._chunk_size]
            in_clause = ", ".join(soql_quote(value) for value in chunk)
            soql = (
                f"SELECT {', '.join(field_list)} FROM {object_api_name} "
                f"WHERE {where_field} IN ({in_clause}){extra_condition}"
            )
            rows.extend(self.query(soql))
        return rows


class SalesforceClientFactory:
    """
    Builds a connector for an organisation id from its stored connection.
    """

    def __init__(
        self,
        *,
        organisation_lookup: OrganisationLookup,
        settings: OrgAPISettings,
    ) -> None:
        self._organisation_lookup = organisation_lookup
        self._settings = settings

    def for_org(self, org_id: str) -> SalesforceConnector:
        organisation = self._organisation_lookup.get_organisation(org_id)
        if organisation is None:
            raise OrgRequestError(f"Organisation {org_id} could not be resolved for org API access.")
        if not organisation.is_connected:
            raise OrgNotConnectedError(f"Organisation {org_id} is not connected.")

        return SalesforceConnector(
            org_label=organisation.name or org_id,
            instance_url=organisation.instance_url or "",
            access_token=organisation.access_token or "",
            settings=self._settings,
        )
