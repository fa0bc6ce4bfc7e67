from __future__ import annotations

import os

import pytest

from esposync.config import ApiKeyCredentials, EspoConfig
from esposync.config.espo import get_resilience_config
from tests.support.fake_espo import FakeEspo

ESPO_ENV_PREFIXES = ("ESPO_", "REPORTS_DIR", "WORKFLOWS_DIR", "REPORT_NAMES")


@pytest.fixture(autouse=True)
def clean_espo_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer shells from leaking connection settings into tests."""

    for name in list(os.environ):
        if name.startswith(ESPO_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_espo() -> FakeEspo:
    return FakeEspo()


@pytest.fixture
def espo_config() -> EspoConfig:
    base_url = "http://espo.test"
    return EspoConfig(
        base_url=base_url,
        credentials=ApiKeyCredentials(api_key="test-key"),
        resilience=get_resilience_config(base_url),
        preset="dev",
    )


@pytest.fixture
def sales_report() -> dict[str, object]:
    return {
        "id": "dev-report-1",
        "name": "Sales Q1",
        "entityType": "Opportunity",
        "entityId": "dev-entity",
        "isInternal": False,
        "type": "Grid",
        "columns": ["name", "amount"],
        "data": {"groupBy": ["stage"], "orderBy": [{"field": "amount", "direction": "desc"}]},
        "createdAt": "2025-01-01 10:00:00",
        "modifiedAt": "2025-02-01 10:00:00",
        "createdById": "dev-admin",
        "modifiedById": "dev-admin",
    }


@pytest.fixture
def lead_workflow() -> dict[str, object]:
    return {
        "id": "w42",
        "name": "Assign new leads",
        "entityType": "Lead",
        "type": "afterRecordCreated",
        "isActive": True,
        "actions": [{"type": "assignRecord", "targetTeamId": "sales"}],
        "createdAt": "2025-01-01 10:00:00",
        "createdById": "dev-admin",
        "createdByName": "Admin",
        "modifiedAt": "2025-01-02 10:00:00",
        "modifiedById": "dev-admin",
        "modifiedByName": "Admin",
    }
