"""Typer CLI entry point."""

from __future__ import annotations

from typing import Optional

import typer

from gte.config import Settings
from gte.db.client import db_cursor
from gte.dedup.groups import GroupAggregator, GroupIntegrityError
from gte.models import GeoPoint
from gte.relevance.queue import build_queue
from gte.relevance.worker import RelevanceWorker
from gte.store import build_store
from gte.utils.logging import configure_logging, get_logger
from gte.zones.resolver import ZoneResolver, load_zone_index


app = typer.Typer(help="Grievance triage engine CLI")
zones_app = typer.Typer(help="Ward boundary commands")
worker_app = typer.Typer(help="Relevance worker commands")
groups_app = typer.Typer(help="Duplicate group maintenance")
db_app = typer.Typer(help="Database utilities")

app.add_typer(zones_app, name="zones")
app.add_typer(worker_app, name="worker")
app.add_typer(groups_app, name="groups")
app.add_typer(db_app, name="db")

logger = get_logger(__name__)


@app.callback()
def main() -> None:
    """Initialize logging for all commands."""
    settings = Settings()
    configure_logging(settings.log_level)


@zones_app.command("resolve")
def zones_resolve(
    lat: float = typer.Option(..., help="Latitude (WGS84)"),
    lon: float = typer.Option(..., help="Longitude (WGS84)"),
    geojson: Optional[str] = typer.Option(None, help="Ward GeoJSON (default from WARD_GEOJSON_PATH)"),
) -> None:
    """Print the ward containing a point."""
    settings = Settings()
    resolver = ZoneResolver(load_zone_index(geojson or settings.ward_geojson_path))
    match = resolver.resolve_zone(GeoPoint(lat=lat, lon=lon))
    if match is None:
        typer.echo("not found")
        raise typer.Exit(1)
    typer.echo(f"{match.number}\t{match.name or ''}".rstrip())


@worker_app.command("run")
def worker_run(
    limit: Optional[int] = typer.Option(None, help="Max queued grievances to process"),
) -> None:
    """Drain the relevance queue once."""
    settings = Settings()
    worker = RelevanceWorker(build_store(settings), build_queue(settings), settings=settings)
    stats = worker.run(limit=limit)
    typer.echo(f"processed={stats.processed} failed={stats.failed} missing={stats.missing}")
    if stats.failed:
        raise typer.Exit(1)


@groups_app.command("recompute")
def groups_recompute(group_id: str = typer.Argument(..., help="Leader or member grievance id")) -> None:
    """Re-derive supporter count and priority for every document in a group."""
    settings = Settings()
    try:
        snapshot = GroupAggregator(build_store(settings)).recompute(group_id)
    except GroupIntegrityError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1)
    typer.echo(
        f"leader={snapshot.leader_id} supporters={snapshot.supporter_count} "
        f"priority={snapshot.leader_priority} updated={snapshot.documents_updated}"
    )


@db_app.command("check")
def db_check() -> None:
    """Check database connectivity."""
    try:
        with db_cursor() as cursor:
            cursor.execute("select count(*) from public.grievances")
            row = cursor.fetchone()
            logger.info("db.check.ok grievances=%s", row[0] if row else 0)
    except Exception as exc:
        logger.error("db.check.failed: %s", exc)
        typer.echo(f"Database check failed: {exc}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
