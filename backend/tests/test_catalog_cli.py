"""Tests for the Typer-based catalog CLI."""
from __future__ import annotations

import importlib
import json
from typing import Any

import pytest
from fastapi.testclient import TestClient
from rq.worker import SimpleWorker
from typer.testing import CliRunner

from backend.catalog_api import create_app
from backend.catalog_cli.app import app as cli_app
from backend.tests.tmdb_fake import FakeTmdb

cli_app_module = importlib.import_module("backend.catalog_cli.app")


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_client(settings, fake_tmdb: FakeTmdb, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """Provide a TestClient and route the CLI HTTP client factory to it."""

    app = create_app(settings=settings, transport=fake_tmdb.transport())
    test_client = TestClient(app)

    def _factory(base_url: str, *, timeout: float = 30.0, transport: Any = None):
        return test_client

    monkeypatch.setattr(cli_app_module, "create_client", _factory)
    return test_client


def drain_jobs(client: TestClient) -> None:
    queue = client.app.state.job_queue
    worker = SimpleWorker([queue.queue], connection=queue.connection)
    worker.work(burst=True)


def test_cli_health_command_outputs_status(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["status"] == "ok"
    assert payload["dispatcher"]["capacity"] == 45


def test_cli_catalog_prints_metas(
    runner: CliRunner, cli_client: TestClient, fake_tmdb: FakeTmdb
) -> None:
    state = cli_client.app.state.app_state
    state.genre_store.insert_missing([{"id": 35, "name": "Comedy"}], "movie", "en-US")

    first = runner.invoke(cli_app, ["catalog", "movie", "tmdb-discover-movies-popular-8"])
    second = runner.invoke(
        cli_app,
        ["catalog", "movie", "tmdb-discover-movies-popular-8", "--skip", "20", "--genre", "Comedy"],
    )

    assert first.exit_code == 0
    assert json.loads(first.output) == {"metas": []}
    assert second.exit_code == 0
    request = fake_tmdb.calls("/discover/movie")[-1]
    assert request.url.params["with_genres"] == "35"


def test_cli_catalog_rejects_invalid_id(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["catalog", "movie", "popular"])

    assert result.exit_code == 1
    assert "Invalid catalog id" in result.output


def test_cli_meta_for_unknown_title(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["meta", "movie", "tt:12"])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"meta": {}}


def test_cli_providers_lists_table(runner: CliRunner, cli_client: TestClient) -> None:
    cli_client.app.state.app_state.provider_store.upsert_many(
        [{"provider_id": 8, "provider_name": "Netflix", "logo_path": None}]
    )

    result = runner.invoke(cli_app, ["providers"])

    assert result.exit_code == 0
    assert json.loads(result.output) == [{"id": 8, "display_name": "Netflix", "logo_path": None}]


def test_cli_manifest_encodes_configuration(runner: CliRunner, cli_client: TestClient) -> None:
    cli_client.app.state.app_state.provider_store.upsert_many(
        [{"provider_id": 8, "provider_name": "Netflix", "logo_path": None}]
    )

    result = runner.invoke(cli_app, ["manifest", "--provider", "8", "--age-range", "6-11"])

    assert result.exit_code == 0
    manifest = json.loads(result.output)
    assert len(manifest["catalogs"]) == 4
    assert manifest["catalogs"][0]["extra"][2] == {"name": "ageRange", "value": "6-11"}


def test_cli_jobs_run_and_inspect(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["jobs", "run", "cache_sweep"])

    assert result.exit_code == 0
    job = json.loads(result.output)
    assert job["status"] == "queued"

    drain_jobs(cli_client)

    shown = runner.invoke(cli_app, ["jobs", "show", job["id"]])
    assert shown.exit_code == 0
    assert json.loads(shown.output)["status"] == "completed"

    listed = runner.invoke(cli_app, ["jobs", "list", "--type", "cache_sweep"])
    assert listed.exit_code == 0
    assert [item["id"] for item in json.loads(listed.output)] == [job["id"]]

    logs = runner.invoke(cli_app, ["jobs", "logs", job["id"]])
    assert logs.exit_code == 0
    assert json.loads(logs.output)[-1]["message"] == "Job completed"


def test_cli_jobs_run_rejects_unknown_type(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["jobs", "run", "bootstrap"])

    assert result.exit_code == 1
    assert "Invalid job type" in result.output


def test_cli_jobs_run_forwards_payload(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(
        cli_app, ["jobs", "run", "episodes_refresh", "--payload", '{"series_id": 1399}']
    )

    assert result.exit_code == 0
    assert json.loads(result.output)["payload"] == {"series_id": 1399}


def test_cli_jobs_show_missing_job(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["jobs", "show", "missing"])

    assert result.exit_code == 1
    assert "Job not found" in result.output


def test_cli_jobs_run_reports_rejected_payload(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["jobs", "run", "episodes_refresh"])

    assert result.exit_code == 1
    assert "Job rejected" in result.output
