from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from parcelsync.config import ConfigurationError
from parcelsync.domain.model import CityDirectoryEntry
from parcelsync.domain.reconciliation import PassOutcome, ReconciliationSummary
from parcelsync.domain.webhooks import WebhookResult
from parcelsync.ui import cli
from tests.helpers.shipments import make_snapshot

if TYPE_CHECKING:
    from pathlib import Path


def test_reconcile_runs_one_pass(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def fake_pass() -> ReconciliationSummary:
        calls.append("pass")
        return ReconciliationSummary(outcome=PassOutcome.COMPLETED)

    monkeypatch.setattr(cli, "run_reconciliation_pass", fake_pass)

    cli.main(["reconcile"])

    assert calls == ["pass"]


def test_reconcile_exits_non_zero_when_aborted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cli,
        "run_reconciliation_pass",
        lambda: ReconciliationSummary(outcome=PassOutcome.ABORTED, error="timeout"),
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["reconcile"])

    assert excinfo.value.code == 1


def test_configuration_error_exits_with_usage_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_pass() -> ReconciliationSummary:
        raise ConfigurationError("Missing configuration for: LEOPARD_API_KEY")

    monkeypatch.setattr(cli, "run_reconciliation_pass", fake_pass)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["reconcile"])

    assert excinfo.value.code == 2


def test_schedule_passes_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[float | None] = []
    monkeypatch.setattr(cli, "run_scheduled_reconciliation", captured.append)

    cli.main(["schedule", "--interval", "30"])
    cli.main(["schedule"])

    assert captured == [30.0, None]


def test_cities_prints_sorted_directory(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(
        cli,
        "list_cities",
        lambda: [CityDirectoryEntry(789, "Lahore"), CityDirectoryEntry(42, "Karachi")],
    )

    cli.main(["cities"])

    assert capsys.readouterr().out.splitlines() == ["42\tKarachi", "789\tLahore"]


def test_track_prints_snapshots(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    requested: list[list[str]] = []

    def fake_track(numbers: list[str]) -> list[object]:
        requested.append(numbers)
        return [make_snapshot("KI100", "Delivered")]

    monkeypatch.setattr(cli, "track_shipments", fake_track)

    cli.main(["track", "KI100", "KI200"])

    assert requested == [["KI100", "KI200"]]
    [line] = capsys.readouterr().out.splitlines()
    assert line.startswith("KI100\tDelivered\t2024-01-01T10:00:00+05:00")


def test_track_trims_numbers_before_reporting_missing(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    requested: list[list[str]] = []

    def fake_track(numbers: list[str]) -> list[object]:
        requested.append(numbers)
        return [make_snapshot("KI100", "Delivered")]

    monkeypatch.setattr(cli, "track_shipments", fake_track)

    cli.main(["track", " KI100 ", "KI200", "  "])

    assert requested == [["KI100", "KI200"]]
    assert capsys.readouterr().out.startswith("KI100\t")
    assert "No tracking data for KI200" in caplog.text
    assert "No tracking data for KI100" not in caplog.text


def test_webhook_reads_file_and_prints_result(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    body = {"data": [{"cn_number": "KI100", "status": "Delivered", "activity_date": "x"}]}
    path = tmp_path / "push.json"
    path.write_text(json.dumps(body), encoding="utf-8")
    received: list[tuple[object, bool]] = []

    def fake_apply(payload: object, *, notify: bool) -> WebhookResult:
        received.append((payload, notify))
        return WebhookResult(total=1, updated=1)

    monkeypatch.setattr(cli, "apply_webhook_payload", fake_apply)

    cli.main(["webhook", str(path), "--no-notify"])

    assert received == [(body, False)]
    printed = json.loads(capsys.readouterr().out)
    assert printed["total"] == 1
    assert printed["updated"] == 1
    assert printed["errors"] == []


def test_webhook_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "push.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["webhook", str(path)])

    assert excinfo.value.code == 2


def test_missing_command_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2
