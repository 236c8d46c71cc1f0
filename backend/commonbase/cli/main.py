"""CLI entrypoint for commonbase."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="commonbase", help="commonbase command-line interface")

DEFAULT_HOST = "http://127.0.0.1:5173"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("CB_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


def _params(**values: object) -> dict[str, object]:
    return {key: value for key, value in values.items() if value is not None}


@app.command()
def add(
    data: str = typer.Argument(..., help="Entry text"),
    title: Optional[str] = typer.Option(None, "--title", help="Entry title"),
    source: Optional[str] = typer.Option(None, "--source", help="Where the text came from"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Add a text entry."""
    metadata = _params(title=title, source=source)
    _echo(_request("POST", "/entries", host=host, json={"data": data, "metadata": metadata}))


@app.command()
def get(
    entry_id: str = typer.Argument(..., help="Entry identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show one entry."""
    _echo(_request("GET", f"/entries/{entry_id}", host=host))


@app.command()
def delete(
    entry_id: str = typer.Argument(..., help="Entry identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete an entry."""
    _echo(_request("DELETE", f"/entries/{entry_id}", host=host))


@app.command("list")
def list_entries(
    offset: int = typer.Option(0, "--offset", min=0, help="Entries to skip"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Page size"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List entries, newest first."""
    _echo(_request("GET", "/entries", host=host, params=_params(offset=offset, limit=limit)))


@app.command()
def search(
    q: str = typer.Argument(..., help="Keyword query"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Number of results to return"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Keyword search over entry text and metadata."""
    _echo(_request("POST", "/search", host=host, json=_params(query=q, limit=limit)))


@app.command()
def semantic(
    q: str = typer.Argument(..., help="Query text"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Number of results to return"),
    threshold: Optional[float] = typer.Option(None, "--threshold", min=0.0, max=1.0, help="Minimum similarity"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Semantic (embedding) search."""
    payload = _params(query=q, limit=limit, threshold=threshold)
    _echo(_request("POST", "/search/semantic", host=host, json=payload))


@app.command()
def similar(
    entry_id: str = typer.Argument(..., help="Entry identifier"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Number of results to return"),
    threshold: Optional[float] = typer.Option(None, "--threshold", min=0.0, max=1.0, help="Minimum similarity"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Entries similar to an existing entry."""
    params = _params(limit=limit, threshold=threshold)
    _echo(_request("GET", f"/entries/{entry_id}/similar", host=host, params=params))


@app.command()
def random(
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Number of entries"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show a random selection of entries."""
    _echo(_request("GET", "/entries/random", host=host, params=_params(limit=limit)))


@app.command()
def link(
    parent_id: str = typer.Argument(..., help="Entry that links"),
    child_id: str = typer.Argument(..., help="Entry being linked to"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Link two entries."""
    _request("POST", f"/entries/{parent_id}/links/{child_id}", host=host)
    typer.echo(json.dumps({"status": "ok"}))


@app.command()
def ingest(
    paths: list[Path] = typer.Argument(..., help="Files or directories to ingest"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Extract files and store them as entries."""
    body = {"paths": [str(path.expanduser().resolve()) for path in paths]}
    _echo(_request("POST", "/ingest", host=host, json=body))


if __name__ == "__main__":
    app()
