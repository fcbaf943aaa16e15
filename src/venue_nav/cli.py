"""CLI entry point for the wayfinding engine."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from venue_nav.core.engine import WayfindingEngine
from venue_nav.core.errors import EngineError
from venue_nav.memory.graph_store import load_floorplan_file
from venue_nav.memory.zone_catalog import ZoneCatalog
from venue_nav.metrics.engagement import summarize_visits
from venue_nav.metrics.visit_log import InMemoryVisitSink, VisitLogWriter
from venue_nav.modules.api_server import WayfindingAPIServer
from venue_nav.modules.localization import LocalizationResolver
from venue_nav.modules.router import Router, WEIGHTING_MODES
from venue_nav.modules.zone_detector import ZoneDetector
from venue_nav.schemas import Point
from venue_nav.utils.config import DEFAULT_API_HOST, DEFAULT_API_PORT, DEFAULT_WEIGHTING
from venue_nav.utils.logging import LogLevel, StructuredLogger, create_session_logger, set_logger

app = typer.Typer(
    name="venue-nav",
    help="Indoor positioning, routing and geofencing engine",
    add_completion=False,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity.

    Structured engine logs go to the console only in verbose mode so
    command output stays parseable.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    set_logger(StructuredLogger(
        level=LogLevel.DEBUG if verbose else LogLevel.WARNING,
        console_output=verbose,
    ))


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _load_catalog(path: Path, event_id: Optional[str]) -> ZoneCatalog:
    try:
        return ZoneCatalog.from_file(path, event_id=event_id)
    except (OSError, ValueError) as e:
        _fail(f"cannot load zones from {path}: {e}")


@app.command()
def route(
    floorplan: Path = typer.Argument(..., help="Floorplan JSON file"),
    poi_id: str = typer.Option(..., "--poi", "-p", help="Destination POI id"),
    x: float = typer.Option(..., "--x", help="Current x coordinate"),
    y: float = typer.Option(..., "--y", help="Current y coordinate"),
    weighting: str = typer.Option(
        DEFAULT_WEIGHTING,
        "--weighting",
        "-w",
        help=f"Segment cost: {' or '.join(WEIGHTING_MODES)}",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON response"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Route from a position to a point of interest."""
    setup_logging(verbose)
    if weighting not in WEIGHTING_MODES:
        _fail(f"unknown weighting {weighting}")
    try:
        graph = load_floorplan_file(floorplan)
    except (OSError, ValueError, EngineError) as e:
        _fail(f"cannot load floorplan {floorplan}: {e}")

    poi = graph.poi(poi_id)
    if poi is None:
        _fail(f"unknown POI {poi_id}")

    result = Router(weighting).plan(
        graph,
        origin=Point(x=x, y=y),
        destination=poi.point,
        destination_name=poi.name,
    )
    if as_json:
        typer.echo(json.dumps(result.to_response(), indent=2))
        return

    if not result.success:
        typer.echo(f"No route ({result.error.value}); destination pin at ({poi.x}, {poi.y})")
        return
    typer.echo(f"Route to {poi.name}: {' -> '.join(result.node_path)} ({result.distance:.1f})")
    for step in result.directions:
        typer.echo(f"  {step}")


@app.command()
def detect(
    zones: Path = typer.Argument(..., help="Zone catalog JSON file"),
    x: float = typer.Option(..., "--x", help="x coordinate"),
    y: float = typer.Option(..., "--y", help="y coordinate"),
    event_id: Optional[str] = typer.Option(None, "--event-id", "-e", help="Event to filter zones by"),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON response"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Detect the zone containing a point."""
    setup_logging(verbose)
    catalog = _load_catalog(zones, event_id)
    detection = ZoneDetector().detect_at(catalog, x, y, event_id)
    if as_json:
        typer.echo(json.dumps(detection.to_response(), indent=2))
    else:
        typer.echo(detection.message)


@app.command()
def scan(
    payload: str = typer.Argument(..., help="Decoded QR payload"),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Reject localization payloads without coordinates",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Resolve a scan payload and print the resulting event."""
    setup_logging(verbose)
    event = LocalizationResolver(strict=strict).resolve(payload)
    typer.echo(json.dumps(event.model_dump(mode="json"), indent=2))


@app.command()
def replay(
    observations: Path = typer.Argument(..., help="JSONL file of observations or scans"),
    zones: Path = typer.Option(..., "--zones", "-z", help="Zone catalog JSON file"),
    event_id: str = typer.Option("default", "--event-id", "-e", help="Event the zones belong to"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write visits to this JSONL file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Replay recorded observations and summarize engagement per zone.

    Each line holds ``device_id`` and ``timestamp`` plus either ``x``/``y``
    or a scan ``payload``.
    """
    setup_logging(verbose)
    memory_sink = InMemoryVisitSink()
    writer = VisitLogWriter(output) if output else None

    def sink(record):
        memory_sink.emit(record)
        if writer:
            writer.emit(record)

    engine = WayfindingEngine(sink=sink)
    engine.publish_catalog(event_id, _load_catalog(zones, event_id))

    try:
        with open(observations, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    item = json.loads(line)
                    device_id = str(item["device_id"])
                    timestamp = float(item["timestamp"])
                    engine.join(device_id, event_id=item.get("event_id") or event_id)
                    if "payload" in item:
                        engine.handle_scan(device_id, item["payload"], observed_at=timestamp)
                    else:
                        engine.observe(device_id, None, float(item["x"]), float(item["y"]), timestamp)
                except (KeyError, TypeError, ValueError) as e:
                    typer.echo(f"[WARN] line {line_number} skipped: {e}", err=True)
        engine.shutdown()
    except OSError as e:
        _fail(f"cannot read {observations}: {e}")
    finally:
        if writer:
            writer.close()

    summaries = summarize_visits(memory_sink.records)
    typer.echo(f"Visits: {len(memory_sink)}")
    typer.echo("-" * 60)
    for s in summaries:
        sponsor = f" [{s.sponsor_name}]" if s.sponsor_name else ""
        typer.echo(
            f"{s.zone_name or s.zone_id}{sponsor}: visits={s.visits} devices={s.unique_devices} "
            f"dwell={s.total_dwell_seconds:.0f}s avg={s.average_dwell_seconds:.1f}s "
            f"revenue={s.revenue:.2f}"
        )
    if output:
        typer.echo(f"Visits written to: {output}")


@app.command()
def serve(
    floorplans: List[Path] = typer.Option(
        [],
        "--floorplan",
        "-f",
        help="Floorplan JSON file (repeatable; id is the file stem)",
    ),
    zones: Optional[Path] = typer.Option(None, "--zones", "-z", help="Zone catalog JSON file"),
    event_id: Optional[str] = typer.Option(
        None,
        "--event-id",
        "-e",
        help="Event id for the zones (defaults to the file stem)",
    ),
    host: str = typer.Option(DEFAULT_API_HOST, "--host", help="Interface to bind"),
    port: int = typer.Option(DEFAULT_API_PORT, "--port", help="Port to listen on"),
    visits_log: Optional[Path] = typer.Option(
        None,
        "--visits-log",
        help="Append closed visits to this JSONL file",
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Write a JSONL session log under this directory",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Serve the zone detection and routing API."""
    setup_logging(verbose)
    session_logger = create_session_logger(runs_dir=log_dir, console_output=verbose) if log_dir else None

    writer = VisitLogWriter(visits_log) if visits_log else None
    engine = WayfindingEngine(sink=writer)
    try:
        for path in floorplans:
            try:
                engine.publish_graph(path.stem, load_floorplan_file(path))
            except (OSError, ValueError, EngineError) as e:
                _fail(f"cannot load floorplan {path}: {e}")
            typer.echo(f"Floorplan: {path.stem}")
        if zones:
            zones_event = event_id or zones.stem
            engine.publish_catalog(zones_event, _load_catalog(zones, zones_event))
            typer.echo(f"Zones: {zones_event}")

        server = WayfindingAPIServer(engine, host=host, port=port)
        try:
            server.serve_forever(on_ready=lambda url: typer.echo(f"Listening on {url}"))
        except KeyboardInterrupt:
            typer.echo("Interrupted by user")
    finally:
        closed = engine.shutdown()
        if writer:
            writer.close()
            typer.echo(f"Visits written to: {visits_log} ({writer.count}, {len(closed)} at shutdown)")
        if session_logger:
            session_logger.close()


@app.command()
def version() -> None:
    """Show version information."""
    from venue_nav import __version__
    typer.echo(f"venue-nav v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
