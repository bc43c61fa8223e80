from __future__ import annotations

from typing import Any

import pytest

from app.services.organisation_lookup import DatabaseOrganisationLookup
from db.config import normalize_postgres_url, resolve_database_url
from db.models.organisation import Organisation


class FakeSession:
    def __init__(self, rows: dict[str, Organisation]) -> None:
        self.rows = rows
        self.closed = False

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.closed = True

    def get(self, model: type, key: str) -> Organisation | None:
        assert model is Organisation
        return self.rows.get(key)


def test_lookup_returns_detached_record() -> None:
    session = FakeSession(
        {
            "org-1": Organisation(
                id="org-1",
                name="Acme Production",
                org_type="production",
                instance_url="https://acme.my.salesforce.com",
                access_token="token",
            )
        }
    )
    lookup = DatabaseOrganisationLookup(session_factory=lambda: session)

    record = lookup.get_organisation("org-1")

    assert record is not None
    assert record.name == "Acme Production"
    assert record.instance_url == "https://acme.my.salesforce.com"
    assert record.is_connected is True
    assert session.closed is True


def test_lookup_missing_organisation() -> None:
    lookup = DatabaseOrganisationLookup(session_factory=lambda: FakeSession({}))

    assert lookup.get_organisation("org-404") is None


def test_organisation_without_token_is_not_connected() -> None:
    session = FakeSession({"org-1": Organisation(id="org-1", name="Sandbox", instance_url="https://x.example.com")})

    record = DatabaseOrganisationLookup(session_factory=lambda: session).get_organisation("org-1")

    assert record is not None
    assert record.is_connected is False


# ---------------------------------------------------------------------------
# Database URL resolution
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgres://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("postgresql+psycopg://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
    ],
)
def test_normalize_postgres_url(raw: str, expected: str) -> None:
    assert normalize_postgres_url(raw) == expected


def test_database_url_priority(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgres://direct/app")
    monkeypatch.setenv("LOCAL_DATABASE_URL", "postgres://local/app")

    assert resolve_database_url() == "postgresql+psycopg://direct/app"

    monkeypatch.delenv("DATABASE_URL")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("CLOUD_DATABASE_URL", "postgres://cloud/app")

    assert resolve_database_url() == "postgresql+psycopg://cloud/app"

    monkeypatch.setenv("ENVIRONMENT", "local")

    assert resolve_database_url() == "postgresql+psycopg://local/app"
