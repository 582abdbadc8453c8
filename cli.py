#!/usr/bin/env python3
"""
PE Network - command line entry point

Import event files, work the review queue and look up warm paths.
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table
from rich import box

from config import load_settings
from models import ReviewStatus, ReviewResolution, EnrichmentLevel
from network.errors import NetworkError, MalformedPayloadError
from routes.services import build_services

console = Console()

WEB_PORT = 5001

LEVEL_STYLES = {
    EnrichmentLevel.FULL: "green",
    EnrichmentLevel.LIGHT: "cyan",
    EnrichmentLevel.STUB: "dim",
    EnrichmentLevel.SKIP: "dim",
}


def load_events(path: Path) -> list[dict]:
    """
    Read import events from .json, .jsonl or .yaml.

    A JSON/YAML file may hold a list of events or {"events": [...]}.
    """
    if not path.exists():
        raise MalformedPayloadError(f"No such file: {path}")

    with open(path) as f:
        if path.suffix == ".jsonl":
            return [json.loads(line) for line in f if line.strip()]
        try:
            data = yaml.safe_load(f) if path.suffix in (".yaml", ".yml") else json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise MalformedPayloadError(f"Can't parse {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("events")
    if not isinstance(data, list):
        raise MalformedPayloadError(f"{path} must hold a list of events")
    return data


def cmd_import(services, args) -> int:
    events = load_events(Path(args.file))
    result = services.pipeline.run_batch(events, batch_id=args.batch_id, import_source=args.source or args.file)

    table = Table(title=f"Batch {result.batch_id}", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type")
    table.add_column("Name", style="cyan")
    table.add_column("Outcome")
    table.add_column("Entity / Review", style="dim")
    table.add_column("Enrichment")

    for outcome in result.outcomes:
        if outcome.error:
            table.add_row(str(outcome.index), str(outcome.entity_type.value if outcome.entity_type else "?"),
                          outcome.name or "?", "[red]ERROR[/red]", outcome.error[:60], "")
            continue
        resolution = outcome.resolution
        ref = outcome.entity_id or f"review {resolution.review_item_id}"
        level = ""
        if outcome.plan:
            style = LEVEL_STYLES[outcome.plan.level]
            level = f"[{style}]{outcome.plan.level.value}[/{style}]"
        table.add_row(str(outcome.index), outcome.entity_type.value, outcome.name,
                      resolution.kind, ref, level)

    console.print(table)
    stats = result.stats
    console.print(
        f"[green]{stats.matched} matched[/green], [cyan]{stats.created} created[/cyan], "
        f"[yellow]{stats.ambiguous} for review[/yellow], [red]{stats.errors} errors[/red]"
    )
    return 1 if stats.errors else 0


def cmd_review(services, args) -> int:
    queue = services.review_queue
    items = queue.list_by_status(ReviewStatus(args.status))

    if not items:
        console.print(f"[dim]No {args.status} review items.[/dim]")
        return 0

    table = Table(title=f"Review queue ({args.status})", box=box.ROUNDED)
    table.add_column("Item", style="dim")
    table.add_column("Priority")
    table.add_column("Type")
    table.add_column("Reason")
    table.add_column("Incoming", style="cyan")
    table.add_column("Best candidate")
    table.add_column("Similarity", justify="right", style="green")

    for item in items:
        best = item.best_candidate
        table.add_row(
            item.id,
            item.priority.value,
            item.entity_type.value,
            item.reason.value,
            str(item.incoming_data.get("name", "?")),
            best.name if best else "",
            f"{best.similarity:.2f}" if best else "",
        )

    console.print(table)
    return 0


def cmd_adjudicate(services, args) -> int:
    item = services.pipeline.adjudicate(
        args.item_id,
        ReviewResolution(args.resolution),
        resolved_entity_id=args.entity,
        resolved_by=args.by,
        notes=args.notes,
    )
    console.print(
        f"[green]{item.id} resolved as {item.resolution.value}[/green]"
        + (f" -> {item.resolved_entity_id}" if item.resolved_entity_id else "")
    )
    return 0


def cmd_paths(services, args) -> int:
    as_of = date.fromisoformat(args.as_of) if args.as_of else None
    paths = services.path_finder.find_paths(
        args.home or None,
        args.target_id,
        max_path_length=args.max_length,
        as_of_date=as_of,
    )

    if not paths:
        console.print("[dim]No warm paths found.[/dim]")
        return 0

    table = Table(title=f"Paths to {args.target_id}", box=box.ROUNDED)
    table.add_column("Tier", justify="right", style="green")
    table.add_column("Length", justify="right")
    table.add_column("Path", style="cyan")
    table.add_column("Why")

    for path in paths:
        table.add_row(
            str(int(path.tier)),
            str(path.length),
            " -> ".join(e.name for e in path.entities),
            path.explanation,
        )

    console.print(table)
    return 0


def cmd_serve(services, args) -> int:
    from app import create_app

    app = create_app(services.settings, services.store.repo)
    console.print(f"[dim]Serving PE Network API on http://{args.host}:{args.port}[/dim]")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


COMMANDS = {
    "import": cmd_import,
    "review": cmd_review,
    "adjudicate": cmd_adjudicate,
    "paths": cmd_paths,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pe-network",
        description="Entity resolution and warm connection paths",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pe-network import events.json              # Resolve a batch of events
  pe-network review --status PENDING         # Show the review queue
  pe-network adjudicate ITEM MERGED --entity ID
  pe-network paths TARGET_ID --max-length 3  # Warm paths to a target
  pe-network serve                           # Run the web API
        """
    )
    parser.add_argument("--settings", help="Settings YAML (default: network.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import", help="Import events from a file")
    p.add_argument("file")
    p.add_argument("--batch-id", dest="batch_id")
    p.add_argument("--source", help="Import source tag for review items")

    p = sub.add_parser("review", help="List review queue items")
    p.add_argument("--status", default="PENDING", choices=[s.value for s in ReviewStatus])

    p = sub.add_parser("adjudicate", help="Resolve a review item")
    p.add_argument("item_id")
    p.add_argument("resolution", choices=[r.value for r in ReviewResolution])
    p.add_argument("--entity", help="Target entity for MERGED / LINKED_TO_EXISTING")
    p.add_argument("--by", help="Who decided")
    p.add_argument("--notes")

    p = sub.add_parser("paths", help="Ranked warm paths to a target")
    p.add_argument("target_id")
    p.add_argument("--max-length", dest="max_length", type=int, default=None)
    p.add_argument("--as-of", dest="as_of", help="YYYY-MM-DD (default: today)")
    p.add_argument("--home", nargs="*", help="Home entity ids (default: home network)")

    p = sub.add_parser("serve", help="Run the web API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=WEB_PORT)
    p.add_argument("--debug", action="store_true")

    return parser


def main(argv: list[str] = None) -> int:
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)
    settings = load_settings(args.settings)

    if settings.backend == "memory" and args.command != "serve":
        console.print("[dim]Memory backend: nothing persists past this command. "
                      "Set PE_NETWORK_BACKEND=json to keep data.[/dim]")

    services = build_services(settings)
    try:
        return COMMANDS[args.command](services, args)
    except NetworkError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        return 1
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
