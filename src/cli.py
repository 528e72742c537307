#!/usr/bin/env python3
"""Command Line Interface for InmoCapt.

Usage:
    cd src
    python cli.py init-db                                  # Create tables
    python cli.py ingest scrape.json --list-name X --location Y --create
    python cli.py lists                                    # Show lists
    python cli.py server                                   # Start API server
    python cli.py info                                     # Show configuration
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from core.config import get_settings
from core.db import create_db_engine, create_session_factory, init_db, session_scope
from core.exceptions import InmoCaptError
from core.logging_config import get_logger, setup_logging

LOGGER = get_logger(__name__)

app = typer.Typer(help="InmoCapt CLI")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """InmoCapt - owner-sold property lists for real-estate agents."""
    settings = get_settings()
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_format=settings.log_format == "json")


# =============================================================================
# Database Commands
# =============================================================================


@app.command("init-db")
def init_database() -> None:
    """Create any missing tables."""
    engine = create_db_engine()
    try:
        result = init_db(engine)
    except InmoCaptError as e:
        typer.secho(f"✗ Database initialization failed: {e}", fg="red")
        raise typer.Exit(1)
    if result["tables_created"]:
        typer.secho(f"✓ Created tables: {', '.join(result['tables_created'])}", fg="green")
    else:
        typer.echo("All tables already exist")
    for warning in result["warnings"]:
        typer.secho(f"  ! {warning}", fg="yellow")


# =============================================================================
# Ingestion Commands
# =============================================================================


@app.command("ingest")
def ingest_file(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Path to a JSON upload"),
    list_id: Optional[str] = typer.Option(None, "--list-id", help="Target list id"),
    list_name: Optional[str] = typer.Option(None, "--list-name", help="Target list name"),
    location: Optional[str] = typer.Option(None, "--location", help="Target list location"),
    create: bool = typer.Option(False, "--create", help="Create the list when it does not exist"),
    actor: str = typer.Option("cli", "--actor", help="Actor recorded on the list update"),
    notify: bool = typer.Option(False, "--notify", help="E-mail subscribers about new properties"),
) -> None:
    """Ingest a JSON payload (simplified, Idealista or Fotocasa) into a list."""
    from domain.ingestion import IngestionService
    from services.notification import notify_after_ingestion

    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        typer.secho(f"✗ Invalid JSON in {file_path}: {e}", fg="red")
        raise typer.Exit(1)

    settings = get_settings()
    session_factory = create_session_factory(create_db_engine(settings=settings))

    try:
        with session_scope(session_factory) as session:
            result = IngestionService(session, settings).ingest_automation(
                payload,
                actor_id=actor,
                list_id=list_id,
                list_name=list_name,
                location=location,
                create_if_missing=create,
            )
    except InmoCaptError as e:
        typer.secho(f"✗ Ingestion failed: {e}", fg="red")
        raise typer.Exit(1)

    created = " (created)" if result.list_created else ""
    typer.secho(
        f"✓ {result.format.value} payload ingested into '{result.list_name}'{created} "
        f"in {result.duration_seconds:.2f}s",
        fg="green" if result.success else "yellow",
    )
    stats = result.stats
    typer.echo(f"  Total: {stats.total}")
    typer.echo(f"  New: {stats.new}")
    typer.echo(f"  Updated: {stats.updated}")
    typer.echo(f"  Duplicates: {stats.duplicates}")
    typer.echo(f"  Errors: {stats.errors}")
    for error in result.errors[:20]:
        typer.secho(f"    {error}", fg="yellow")

    if notify and result.should_notify:
        sent = notify_after_ingestion(session_factory, result, settings=settings)
        typer.echo(f"  Notifications: {sent.sent} sent, {sent.failed} failed")


@app.command("lists")
def show_lists() -> None:
    """Show all lists with property and subscriber counts."""
    from domain.lists import ListService

    settings = get_settings()
    session_factory = create_session_factory(create_db_engine(settings=settings))
    with session_scope(session_factory) as session:
        lists = ListService(session, settings).get_all_lists()
        if not lists:
            typer.echo("No lists yet")
            return
        for item in lists:
            data = item.to_dict()
            typer.echo(
                f"  {data['id']}  {data['name']} ({data['location']})  "
                f"properties={data['total_properties']} subscribers={data['subscriber_count']} "
                f"price={data['price_cents'] / 100:.2f} {data['currency']}"
            )


# =============================================================================
# Server Commands
# =============================================================================


@app.command("server")
def run_server(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    typer.echo(f"Starting API server on {host}:{port}...")
    uvicorn.run("api.app:create_app", factory=True, host=host, port=port, reload=reload)


# =============================================================================
# Utility Commands
# =============================================================================


@app.command("info")
def show_info() -> None:
    """Show application configuration info."""
    settings = get_settings()
    engine = create_db_engine(settings=settings)
    typer.echo("InmoCapt Configuration:")
    typer.echo(f"  Environment: {settings.environment}")
    typer.echo(f"  Dry Run: {settings.dry_run}")
    typer.echo(f"  Log Level: {settings.log_level}")
    typer.echo(f"  Database: {engine.url.render_as_string(hide_password=True)}")
    typer.echo(f"  Price Per Property: {settings.price_per_property_cents} cents")
    typer.echo(f"  Page Size: {settings.default_page_size} (max {settings.max_page_size})")
    typer.echo(f"  Resend Configured: {settings.is_email_enabled()}")
    typer.echo(f"  Automation Key Configured: {bool(settings.api_automation_key)}")


if __name__ == "__main__":
    app()
