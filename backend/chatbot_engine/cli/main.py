"""CLI entrypoint for the chatbot engine API."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="chatbot", help="Chatbot engine command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("CHATBOT_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    url = f"{_resolve_host(host)}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def chat(
    chatbot: str = typer.Option(..., "--chatbot", help="Chatbot ID"),
    message: Optional[str] = typer.Argument(None, help="Message to send; omit for an interactive session"),
    conversation: Optional[str] = typer.Option(None, "--conversation", help="Continue an existing conversation"),
    visitor: Optional[str] = typer.Option(None, "--visitor", help="Visitor ID used for lead de-duplication"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Send a message, or chat interactively until an empty line."""
    if message is not None:
        resp = _request(
            "POST",
            "/chat",
            host=host,
            json={"chatbot_id": chatbot, "message": message, "conversation_id": conversation, "visitor_id": visitor},
        )
        typer.echo(json.dumps(resp.json(), indent=2))
        return

    while True:
        text = typer.prompt("you", default="", show_default=False)
        if not text.strip():
            break
        resp = _request(
            "POST",
            "/chat",
            host=host,
            json={"chatbot_id": chatbot, "message": text, "conversation_id": conversation, "visitor_id": visitor},
        )
        payload = resp.json()
        conversation = payload["conversation_id"]
        typer.echo(f"bot: {payload['message']}")
        if payload.get("lead_question"):
            typer.echo(f"bot: {payload['lead_question']}")
        for trigger in payload.get("logic_triggers", []):
            typer.echo(f"  [action] {trigger['action']}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    chatbot: str = typer.Option(..., "--chatbot", help="Chatbot ID"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of matches"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum similarity score"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search a chatbot's knowledge sources without generating an answer."""
    params: dict[str, object] = {"chatbot_id": chatbot, "query": query}
    if limit is not None:
        params["limit"] = limit
    if threshold is not None:
        params["threshold"] = threshold
    resp = _request("GET", "/chat/search", host=host, params=params)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def ingest(
    source: str = typer.Option(..., "--source", help="Knowledge source ID"),
    path: Path = typer.Argument(..., help="Text or markdown file to ingest"),
    title: Optional[str] = typer.Option(None, "--title", help="Title shown in source attributions"),
    url: Optional[str] = typer.Option(None, "--url", help="Public URL of the document"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Chunk and index a local document into a knowledge source."""
    resolved = path.expanduser()
    metadata: dict[str, object] = {"filename": resolved.name, "title": title or resolved.stem}
    if url:
        metadata["source"] = url
    body = {"text": resolved.read_text(encoding="utf-8"), "metadata": metadata}
    resp = _request("POST", f"/sources/{source}/documents", host=host, json=body)
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
