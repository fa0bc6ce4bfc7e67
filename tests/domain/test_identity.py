from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from esposync.domain.errors import MalformedResponseError, ValidationError
from esposync.domain.identity import (
    IdIdentityStrategy,
    NameIdentityStrategy,
    identity_strategy_for,
    listed_entities,
)
from esposync.domain.snapshot import EntityKind

if TYPE_CHECKING:
    from tests.support.fake_espo import FakeEspo


class CannedApi:
    """Answers every request with the same response."""

    def __init__(self, response: object) -> None:
        self.response = response

    def request(self, method: str, path: str, body: object = None, params: object = None) -> object:
        return self.response


def test_strategies_per_kind() -> None:
    assert isinstance(identity_strategy_for(EntityKind.REPORT), NameIdentityStrategy)
    assert isinstance(identity_strategy_for(EntityKind.WORKFLOW), IdIdentityStrategy)
    assert identity_strategy_for(EntityKind.REPORT).update_method == "PATCH"
    assert identity_strategy_for(EntityKind.WORKFLOW).update_method == "PUT"


def test_report_resolves_by_name_ignoring_local_id(fake_espo: FakeEspo) -> None:
    fake_espo.add("Report", {"id": "r1", "name": "Sales Q1"})
    fake_espo.add("Report", {"id": "r2", "name": "Sales Q2"})

    resolved = NameIdentityStrategy().resolve({"id": "dev-report-1", "name": "Sales Q1"}, fake_espo)

    assert resolved == "r1"
    call = fake_espo.calls[-1]
    assert call.method == "GET"
    assert call.path == "/api/v1/Report"
    assert call.params == {"maxSize": 1, "filters[name]": "Sales Q1"}


def test_report_without_match_resolves_to_none(fake_espo: FakeEspo) -> None:
    fake_espo.add("Report", {"id": "r1", "name": "Sales Q1"})

    assert NameIdentityStrategy().resolve({"id": "r1", "name": "Sales Q3"}, fake_espo) is None


def test_report_without_name_is_invalid(fake_espo: FakeEspo) -> None:
    with pytest.raises(ValidationError):
        NameIdentityStrategy().resolve({"id": "r1"}, fake_espo)
    assert fake_espo.calls == []


def test_report_match_without_id_is_malformed() -> None:
    api = CannedApi({"total": 1, "list": [{"name": "Sales Q1"}]})

    with pytest.raises(MalformedResponseError):
        NameIdentityStrategy().resolve({"name": "Sales Q1"}, api)


def test_report_create_payload_drops_id() -> None:
    payload = NameIdentityStrategy().create_payload({"id": "x", "name": "Sales Q1"})

    assert payload == {"name": "Sales Q1"}


def test_workflow_resolves_by_id_ignoring_name(fake_espo: FakeEspo) -> None:
    fake_espo.add("Workflow", {"id": "w42", "name": "Old name"})

    resolved = IdIdentityStrategy().resolve({"id": "w42", "name": "New name"}, fake_espo)

    assert resolved == "w42"
    assert fake_espo.calls[-1].path == "/api/v1/Workflow/w42"


def test_workflow_absent_resolves_to_none(fake_espo: FakeEspo) -> None:
    fake_espo.add("Workflow", {"id": "w1", "name": "Assign new leads"})

    assert IdIdentityStrategy().resolve({"id": "w42", "name": "Assign new leads"}, fake_espo) is None


def test_workflow_without_id_is_invalid(fake_espo: FakeEspo) -> None:
    with pytest.raises(ValidationError):
        IdIdentityStrategy().resolve({"name": "Assign new leads"}, fake_espo)


def test_workflow_non_object_response_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        IdIdentityStrategy().resolve({"id": "w42", "name": "x"}, CannedApi(["unexpected"]))


def test_workflow_create_payload_keeps_id() -> None:
    payload = IdIdentityStrategy().create_payload({"id": "w42", "name": "Assign new leads"})

    assert payload == {"id": "w42", "name": "Assign new leads"}


def test_listed_entities_treats_not_found_as_empty() -> None:
    assert listed_entities(None, path="/api/v1/Report") == []


@pytest.mark.parametrize(
    "response",
    [
        ["not", "an", "object"],
        {"total": 0},
        {"list": "nope"},
        {"list": [1, 2]},
    ],
)
def test_listed_entities_rejects_unexpected_shapes(response: object) -> None:
    with pytest.raises(MalformedResponseError):
        listed_entities(response, path="/api/v1/Report")
