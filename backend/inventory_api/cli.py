"""Typer-based CLI entry point."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv

DEFAULT_SQLITE_URL = "sqlite:///./inventory.db"

app = typer.Typer(help="Inventory API tooling")


def _log_level(verbose: bool):
    if verbose:
        return logging.DEBUG
    # Same .env the settings read, so LOG_LEVEL may live there.
    load_dotenv(find_dotenv(usecwd=True), override=False)
    return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


@app.callback()
def configure_logging(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    level = _log_level(verbose)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_dotenv() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    load_dotenv(env_path, override=False)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    dev: bool = typer.Option(False, "--dev", help="Use the local SQLite database (overrides DATABASE_URL)"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    _load_dotenv()
    # Must happen before inventory_api.database is imported by the app.
    if dev:
        os.environ["DATABASE_URL"] = os.getenv("SQLITE_DATABASE_URL") or DEFAULT_SQLITE_URL

    mode_label = "development" if dev else "production"
    typer.echo(f"Starting inventory API in {mode_label} mode at http://{host}:{port}")

    # Hot reload restarts the server whenever uploads land in the working tree,
    # so it stays opt-in: UVICORN_RELOAD=1 inventory-api serve
    reload_enabled = os.getenv("UVICORN_RELOAD", "").strip().lower() in {"1", "true", "yes", "y"}
    uvicorn.run("inventory_api.main:app", host=host, port=port, reload=reload_enabled)


@app.command("import-csv")
def import_csv_command(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV file to import"),
    atomic: Optional[bool] = typer.Option(
        None,
        "--atomic/--no-atomic",
        help="Roll back the whole file on error (default: IMPORT_ATOMIC setting)",
    ),
) -> None:
    """Import products from a CSV file into the configured database."""
    from inventory_api.database import SessionLocal, init_db, settings
    from inventory_api.importers import import_csv
    from inventory_api.store import SqlProductStore

    init_db()
    use_atomic = settings.import_atomic if atomic is None else atomic
    db = SessionLocal()
    try:
        summary = import_csv(SqlProductStore(db), str(path), atomic=use_atomic)
    finally:
        db.close()

    typer.echo(f"Added: {summary.added}")
    typer.echo(f"Skipped: {summary.skipped}")
    for duplicate in summary.duplicates:
        typer.echo(f"  duplicate: {duplicate.name} (existing id={duplicate.existing_id})")


@app.command("export-csv")
def export_csv_command(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
) -> None:
    """Export every product as CSV."""
    from inventory_api.database import SessionLocal, init_db
    from inventory_api.importers import export_csv
    from inventory_api.store import SqlProductStore

    init_db()
    db = SessionLocal()
    try:
        content = export_csv(SqlProductStore(db).list_products())
    finally:
        db.close()

    if output is None:
        typer.echo(content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    typer.echo(f"Exported products to {output}")


@app.command()
def history(product_id: int = typer.Argument(..., help="Product id")) -> None:
    """Print the stock change log of a product, newest first."""
    from inventory_api.database import SessionLocal, init_db
    from inventory_api.services import product_history
    from inventory_api.store import SqlProductStore

    init_db()
    db = SessionLocal()
    try:
        logs = product_history(SqlProductStore(db), product_id)
        if not logs:
            typer.echo(f"No stock changes recorded for product {product_id}")
            return
        for log in logs:
            typer.echo(f"{log.timestamp}  {log.old_stock} -> {log.new_stock}  by {log.changed_by}")
    finally:
        db.close()


if __name__ == "__main__":
    app()
