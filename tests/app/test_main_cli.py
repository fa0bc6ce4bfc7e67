from __future__ import annotations

import logging
from pathlib import Path

import pytest

from esposync.config import ApiKeyCredentials, EspoConfig
from esposync.domain.errors import RemoteError, SetupError
from esposync.domain.snapshot import EntityKind
from esposync.ui import cli as cli_module


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    calls: dict[str, object] = {}

    def fake_import(kind: EntityKind, **kwargs: object) -> None:
        calls.update(kwargs, command="import", kind=kind)

    def fake_export(kind: EntityKind, **kwargs: object) -> None:
        calls.update(kwargs, command="export", kind=kind)

    def fake_import_all(**kwargs: object) -> None:
        calls.update(kwargs, command="import", kind="all")

    def fake_wait(config: EspoConfig, **kwargs: object) -> int:
        calls["wait"] = kwargs
        return 1

    monkeypatch.setattr(cli_module, "import_entities", fake_import)
    monkeypatch.setattr(cli_module, "export_entities_to_directory", fake_export)
    monkeypatch.setattr(cli_module, "import_all", fake_import_all)
    monkeypatch.setattr(cli_module, "wait_until_ready", fake_wait)
    monkeypatch.setenv("ESPO_DEV_API_KEY", "dev-key")
    return calls


def test_import_defaults(captured: dict[str, object]) -> None:
    cli_module.main(["import", "reports", "--env", "dev"])

    assert captured["command"] == "import"
    assert captured["kind"] is EntityKind.REPORT
    assert captured["dry_run"] is False
    assert captured["directory"] is None
    config = captured["config"]
    assert isinstance(config, EspoConfig)
    assert config.credentials == ApiKeyCredentials(api_key="dev-key")


def test_import_with_flags(captured: dict[str, object]) -> None:
    cli_module.main(
        [
            "import",
            "workflows",
            "--url",
            "https://crm.example/",
            "--api-key",
            "cli-key",
            "--dir",
            "snapshots/wf",
            "--dry-run",
        ]
    )

    assert captured["kind"] is EntityKind.WORKFLOW
    assert captured["dry_run"] is True
    assert captured["directory"] == Path("snapshots/wf")
    config = captured["config"]
    assert isinstance(config, EspoConfig)
    assert config.base_url == "https://crm.example"
    assert config.credentials == ApiKeyCredentials(api_key="cli-key")


def test_export_with_names(captured: dict[str, object]) -> None:
    cli_module.main(["export", "reports", "--env", "dev", "--names", "Sales Q1, Pipeline"])

    assert captured["command"] == "export"
    assert captured["names"] == ("Sales Q1", "Pipeline")


def test_export_without_names(captured: dict[str, object]) -> None:
    cli_module.main(["export", "workflows", "--env", "dev"])

    assert captured["names"] == ()


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["import"],
        ["import", "dashboards"],
        ["sync", "reports"],
        ["export", "reports", "--dry-run"],
        ["export", "all"],
        ["import", "all", "--dir", "snapshots"],
        ["import", "reports", "--wait-attempts", "0"],
    ],
)
def test_bad_arguments_exit_with_usage_error(captured: dict[str, object], argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)

    assert excinfo.value.code == 2
    assert captured == {}


def test_missing_credentials_exit_one(
    captured: dict[str, object],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.delenv("ESPO_DEV_API_KEY")

    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", "reports", "--env", "dev"])

    assert excinfo.value.code == 1
    assert "Setup failed" in caplog.text
    assert captured == {}


def test_unknown_preset_exit_one(captured: dict[str, object]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", "reports", "--env", "staging"])

    assert excinfo.value.code == 1


def test_setup_error_exit_one(monkeypatch: pytest.MonkeyPatch, captured: dict[str, object]) -> None:
    def failing_import(kind: EntityKind, **kwargs: object) -> None:
        raise SetupError("Snapshot directory not found: data/reports")

    monkeypatch.setattr(cli_module, "import_entities", failing_import)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", "reports", "--env", "dev"])

    assert excinfo.value.code == 1


def test_export_failure_exit_one(
    monkeypatch: pytest.MonkeyPatch,
    captured: dict[str, object],
    caplog: pytest.LogCaptureFixture,
) -> None:
    def failing_export(kind: EntityKind, **kwargs: object) -> None:
        raise RemoteError("GET /api/v1/Workflow -> 500 boom", status=500)

    monkeypatch.setattr(cli_module, "export_entities_to_directory", failing_export)

    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as excinfo:
        cli_module.main(["export", "workflows", "--env", "dev"])

    assert excinfo.value.code == 1
    assert "Workflow export failed" in caplog.text


def test_import_completion_returns_normally(captured: dict[str, object]) -> None:
    # Per-entity failures are reported in the summary, not through the exit code.
    cli_module.main(["import", "workflows", "--env", "dev"])

    assert captured["command"] == "import"


def test_sigint_handler_reports_interruption(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO), pytest.raises(SystemExit) as excinfo:
        cli_module.sigint_handler(2, None)

    assert excinfo.value.code == 130
    assert "Closed by user (Ctrl+C)" in caplog.text


def test_import_all_with_readiness_wait(captured: dict[str, object]) -> None:
    cli_module.main(
        ["import", "all", "--env", "dev", "--wait-ready", "--wait-attempts", "12", "--wait-interval", "0.5"]
    )

    assert captured["kind"] == "all"
    assert captured["dry_run"] is False
    assert captured["wait"] == {"attempts": 12, "interval": 0.5}


def test_import_without_wait_flag_does_not_poll(captured: dict[str, object]) -> None:
    cli_module.main(["import", "workflows", "--env", "dev"])

    assert "wait" not in captured


def test_instance_never_ready_exit_one(monkeypatch: pytest.MonkeyPatch, captured: dict[str, object]) -> None:
    def never_ready(config: EspoConfig, **kwargs: object) -> int:
        raise SetupError("EspoCRM did not become ready after 60 attempts")

    monkeypatch.setattr(cli_module, "wait_until_ready", never_ready)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", "all", "--env", "dev", "--wait-ready"])

    assert excinfo.value.code == 1
    assert "command" not in captured
