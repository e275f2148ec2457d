from __future__ import annotations

import json
from pathlib import Path

import typer
import uvicorn

from careerintel.config import get_settings
from careerintel.core.engine import CareerReportEngine
from careerintel.core.identity import resolve_candidate_identifier
from careerintel.core.pdf_text import extract_text_from_pdf
from careerintel.db.init import init_database
from careerintel.db.session import SessionLocal
from careerintel.errors import CareerIntelError
from careerintel.logging_config import configure_logging

app = typer.Typer(help="CareerIntel CLI")
identity_app = typer.Typer(help="Candidate identity helpers")
report_app = typer.Typer(help="Career card reports")
pdf_app = typer.Typer(help="PDF text extraction")

app.add_typer(identity_app, name="identity")
app.add_typer(report_app, name="report")
app.add_typer(pdf_app, name="pdf")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


@app.callback()
def main(log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this invocation")) -> None:
    configure_logging(log_level)


def _fail(exc: CareerIntelError) -> None:
    typer.echo(json.dumps({"ok": False, **exc.to_payload(), "status_code": exc.status_code}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Initialize database and data directories."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("serve")
def serve_cmd(
    host: str = typer.Option(None, "--host"),
    port: int = typer.Option(None, "--port"),
) -> None:
    """Run the HTTP API."""
    configure_logging()
    settings = get_settings()
    uvicorn.run(
        "careerintel.api.app:create_app",
        factory=True,
        host=host or settings.app_host,
        port=port or settings.app_port,
    )


@identity_app.command("resolve")
def identity_resolve(candidate_id: str = typer.Argument(...)) -> None:
    configure_logging()
    settings = get_settings()
    try:
        identity = resolve_candidate_identifier(candidate_id, namespace=settings.candidate_namespace_uuid)
    except CareerIntelError as exc:
        _fail(exc)
        return
    typer.echo(identity.model_dump_json(indent=2))


@report_app.command("ensure")
def report_ensure(
    candidate_id: str = typer.Option(..., "--candidate-id"),
    force: bool = typer.Option(False, "--force"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            result = CareerReportEngine(db).ensure_report(candidate_id, force_refresh=force)
        except CareerIntelError as exc:
            _fail(exc)
            return
        typer.echo(result.model_dump_json(indent=2))


@report_app.command("show")
def report_show(candidate_id: str = typer.Option(..., "--candidate-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            report = CareerReportEngine(db).fetch_report(candidate_id)
        except CareerIntelError as exc:
            _fail(exc)
            return
        if report is None:
            typer.echo(json.dumps({"ok": False, "error": "report_not_found"}, indent=2), err=True)
            raise typer.Exit(code=1)
        typer.echo(report.model_dump_json(indent=2))


@pdf_app.command("extract")
def pdf_extract(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    configure_logging()
    settings = get_settings()
    text = extract_text_from_pdf(file.read_bytes(), max_chars=settings.max_pdf_text_chars)
    typer.echo(json.dumps({"file": str(file), "characters": len(text), "text": text}, indent=2))


if __name__ == "__main__":
    app()
