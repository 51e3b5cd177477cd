"""Command line interface for the Catalog API."""
from __future__ import annotations

import json
from typing import Any, List, Optional
from urllib.parse import quote

import typer

from .client import create_client


DEFAULT_API_BASE = "http://localhost:7000"

app = typer.Typer(help="Query the streaming catalog service and run maintenance jobs.")
jobs_app = typer.Typer(help="Inspect and trigger maintenance jobs.")
app.add_typer(jobs_app, name="jobs")

JOB_TYPE_CHOICES = {"cache_sweep", "providers_refresh", "genres_refresh", "episodes_refresh"}


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the Catalog API service.",
        show_default=True,
        envvar="CATALOG_API_BASE",
    )


def _call(
    api_base: str,
    method: str,
    path: str,
    *,
    failures: dict[int, str] | None = None,
    **kwargs: Any,
) -> None:
    """Send one request and print the JSON body.

    Status codes listed in ``failures`` print their message (with the API's detail when
    it has one) and exit with code 1 instead of raising.
    """

    with create_client(api_base) as client:
        response = client.request(method, path, **kwargs)
        message = (failures or {}).get(response.status_code)
        if message is not None:
            detail = response.json().get("detail") if response.content else None
            if isinstance(detail, str) and detail != message:
                message = f"{message}: {detail}"
            elif detail and not isinstance(detail, str):
                message = f"{message}: {json.dumps(detail)}"
            typer.echo(message, err=True)
            raise typer.Exit(code=1)
        response.raise_for_status()
        typer.echo(json.dumps(response.json(), indent=2, ensure_ascii=False))


def _config_segment(
    providers: Optional[List[str]],
    language: Optional[str],
    age_range: Optional[str],
    tmdb_api_key: Optional[str],
    rpdb_api_key: Optional[str],
) -> str:
    """Encode addon configuration the way Stremio puts it in the install URL."""

    config: dict[str, object] = {"providers": list(providers or [])}
    for key, value in (
        ("language", language),
        ("ageRange", age_range),
        ("tmdbApiKey", tmdb_api_key),
        ("rpdbApiKey", rpdb_api_key),
    ):
        if value:
            config[key] = value
    return quote(json.dumps(config, separators=(",", ":")), safe="")


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Show service health, dispatcher load and cache write failures."""

    _call(api_base, "GET", "/health")


@app.command()
def providers(api_base: str = _api_base_option()) -> None:
    """List the watch providers known to the service."""

    _call(api_base, "GET", "/providers")


@app.command()
def manifest(
    provider: Optional[List[str]] = typer.Option(
        None, "--provider", "-p", help="Provider id to include (repeat the flag)."
    ),
    language: Optional[str] = typer.Option(None, help="Catalog language, e.g. fr-FR."),
    age_range: Optional[str] = typer.Option(None, "--age-range", help="Age range tag, e.g. 6-11."),
    api_base: str = _api_base_option(),
) -> None:
    """Render the addon manifest for a configuration."""

    segment = _config_segment(provider, language, age_range, None, None)
    _call(api_base, "GET", f"/{segment}/manifest.json")


@app.command()
def catalog(
    content_type: str = typer.Argument(..., help="Stremio content type: movie or series."),
    catalog_id: str = typer.Argument(..., help="Catalog id, e.g. tmdb-discover-movies-popular-8."),
    skip: int = typer.Option(0, min=0, help="Number of items already shown."),
    genre: Optional[str] = typer.Option(None, help="Genre name filter."),
    language: Optional[str] = typer.Option(None, help="Catalog language, e.g. fr-FR."),
    age_range: Optional[str] = typer.Option(None, "--age-range", help="Age range tag, e.g. 6-11."),
    tmdb_api_key: Optional[str] = typer.Option(None, help="Per-request TMDB API key."),
    rpdb_api_key: Optional[str] = typer.Option(None, help="RPDB key for rated posters."),
    api_base: str = _api_base_option(),
) -> None:
    """Fetch one catalog page."""

    segment = _config_segment(None, language, age_range, tmdb_api_key, rpdb_api_key)
    extras = []
    if genre:
        extras.append(f"genre={genre}")
    if skip:
        extras.append(f"skip={skip}")
    path = f"/{segment}/catalog/{content_type}/{catalog_id}"
    if extras:
        path += "/" + quote("&".join(extras), safe="=&")
    _call(
        api_base,
        "GET",
        f"{path}.json",
        failures={400: "Invalid catalog id", 502: "TMDB request failed"},
    )


@app.command()
def meta(
    content_type: str = typer.Argument(..., help="Stremio content type: movie or series."),
    content_id: str = typer.Argument(..., help="Catalog item id, e.g. tt:603."),
    api_base: str = _api_base_option(),
) -> None:
    """Fetch the meta object of a title listed by a catalog."""

    _call(
        api_base,
        "GET",
        f"/meta/{content_type}/{quote(content_id, safe='')}.json",
        failures={502: "TMDB request failed"},
    )


@jobs_app.command("run")
def run_job(
    job_type: str = typer.Argument(..., help="Job type: " + ", ".join(sorted(JOB_TYPE_CHOICES))),
    payload: Optional[str] = typer.Option(
        None, "--payload", help='JSON payload, e.g. \'{"series_id": 1399}\'.'
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Queue a maintenance job."""

    if job_type not in JOB_TYPE_CHOICES:
        typer.echo(
            "Invalid job type. Allowed values: " + ", ".join(sorted(JOB_TYPE_CHOICES)),
            err=True,
        )
        raise typer.Exit(code=1)

    body: dict[str, object] = {"type": job_type}
    if payload is not None:
        try:
            body["payload"] = json.loads(payload)
        except json.JSONDecodeError as exc:
            typer.echo(f"Invalid JSON payload: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    _call(
        api_base,
        "POST",
        "/jobs/run",
        json=body,
        failures={422: "Job rejected", 503: "Maintenance queue unavailable"},
    )


@jobs_app.command("list")
def list_jobs(
    limit: int = typer.Option(10, min=1, max=100, help="Number of recent jobs to display."),
    job_type: Optional[str] = typer.Option(None, "--type", help="Only jobs of this type."),
    status: Optional[str] = typer.Option(
        None, "--status", help="Only jobs in this status: queued, running, completed or failed."
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display recent maintenance jobs, newest first."""

    params = {"limit": limit, "type": job_type, "status": status}
    _call(
        api_base,
        "GET",
        "/jobs",
        params={key: value for key, value in params.items() if value is not None},
    )


@jobs_app.command("show")
def show_job(
    job_id: str = typer.Argument(..., help="Identifier of the job to display."),
    api_base: str = _api_base_option(),
) -> None:
    _call(api_base, "GET", f"/jobs/{job_id}", failures={404: "Job not found"})


@jobs_app.command("logs")
def job_logs(
    job_id: str = typer.Argument(..., help="Identifier of the job to inspect."),
    limit: int = typer.Option(50, min=1, max=500, help="Maximum number of log entries."),
    api_base: str = _api_base_option(),
) -> None:
    """Display a job's log events, oldest first."""

    _call(
        api_base,
        "GET",
        f"/jobs/{job_id}/logs",
        params={"limit": limit},
        failures={404: "Job not found"},
    )
