"""IDS CLI — the main entry point for the Incremental Decision System."""

import json
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ids import __version__

console = Console()
err_console = Console(stderr=True)

_DECISION_STYLE = {"REUSE": "green", "ADAPT": "yellow", "CREATE": "magenta"}
_STATUS_STYLE = {
    "pending-review": "dim",
    "promotion-candidate": "green",
    "deprecation-review": "red",
    "monitoring": "cyan",
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_engine(registry_dir: str | None, config_path: str | None):
    from ids.config import ConfigError, IdsConfig, load_config
    from ids.engine import IncrementalDecisionEngine
    from ids.registry.loader import RegistryLoader, RegistryLoadError
    from ids.registry.store import LocalRegistryStore

    store = LocalRegistryStore(registry_dir)
    try:
        if config_path:
            config = load_config(config_path)
        elif store.config_path.exists():
            config = load_config(store.config_path)
        else:
            config = IdsConfig()
    except ConfigError as e:
        err_console.print(f"[red]Error:[/] Invalid configuration — {e}")
        sys.exit(1)

    loader = RegistryLoader(store, kinds=config.entity_kinds)
    try:
        return IncrementalDecisionEngine.from_loader(loader, config=config)
    except RegistryLoadError as e:
        err_console.print(f"[red]Error:[/] Failed to load registry — {e}")
        for issue in e.issues[1:]:
            err_console.print(f"  [red]x[/] {issue}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def main():
    """IDS — Incremental Decision System.

    Before building something new, ask the registry whether an existing
    task, script, agent, or template can be reused or adapted instead.
    """


# ── Query ────────────────────────────────────────────────────────────


@main.command()
@click.argument("intent", nargs=-1)
@click.option("--type", "type_filter", default=None, help="Filter by entity type (task, script, agent, ...)")
@click.option("--category", default=None, help="Filter by category (exact match)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--registry-dir", "-r", default=None, help="Registry directory (default: $IDS_REGISTRY_DIR or .ids)")
@click.option("--config", "config_path", default=None, help="Policy configuration YAML")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def query(intent, type_filter, category, as_json, registry_dir, config_path, verbose):
    """Query the registry for artifacts matching an INTENT.

    Example: ids query "validate story drafts" --type script
    """
    _setup_logging(verbose)
    text = " ".join(intent).strip()
    if not text:
        err_console.print('[red]Error:[/] Intent is required. Usage: ids query "your intent here"')
        sys.exit(1)

    engine = _load_engine(registry_dir, config_path)
    context = {}
    if type_filter:
        context["type"] = type_filter
    if category:
        context["category"] = category

    try:
        result = engine.analyze(text, context)
    except ValueError as e:
        err_console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    summary = result.summary
    style = _DECISION_STYLE[summary.decision.value]
    console.print(f"\n[bold blue]IDS[/] — Analysis: \"{text}\"\n")
    console.print(
        f"  Registry: {summary.total_entities} entities | Matches: {summary.matches_found}\n"
        f"  Decision: [{style}]{summary.decision.value}[/] ({summary.confidence.value} confidence)"
    )
    for w in result.warnings:
        console.print(f"  [yellow]![/] {w}")

    console.print(Panel(escape(result.rationale), title="Rationale"))

    if result.recommendations:
        table = Table(title=f"Recommendations ({len(result.recommendations)})")
        table.add_column("Rank", style="dim", width=4)
        table.add_column("Decision")
        table.add_column("Entity", style="cyan")
        table.add_column("Type")
        table.add_column("Relevance", justify="right", style="green")
        table.add_column("Impact", justify="right")
        table.add_column("Path")

        for i, rec in enumerate(result.recommendations):
            impact = ""
            if rec.adaptation_impact:
                impact = f"{rec.adaptation_impact.direct_count}d / {rec.adaptation_impact.indirect_count}i"
            rec_style = _DECISION_STYLE[rec.decision.value]
            table.add_row(
                str(i + 1),
                f"[{rec_style}]{rec.decision.value}[/] ({rec.confidence.value})",
                rec.entity_id,
                rec.entity_type,
                f"{rec.relevance_score:.1%}",
                impact,
                rec.entity_path,
            )
        console.print(table)

        for rec in result.recommendations:
            console.print(f"  [cyan]{rec.entity_id}[/]: {escape(rec.rationale)}")

    if result.justification:
        j = result.justification
        console.print("\n[bold]CREATE Justification:[/]")
        console.print(f"  Evaluated: {', '.join(j.evaluated_patterns) or 'none'}")
        if j.rejection_reasons:
            console.print("  Rejections:")
            for entity_id, reason in j.rejection_reasons.items():
                console.print(f"    - {entity_id}: {escape(reason)}")
        console.print(f"  New capability: {escape(j.new_capability)}")
        console.print(f"  Review scheduled: {j.review_scheduled.isoformat()}")
    console.print()


# ── Create review ────────────────────────────────────────────────────


@main.command(name="create-review")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--registry-dir", "-r", default=None, help="Registry directory (default: $IDS_REGISTRY_DIR or .ids)")
@click.option("--config", "config_path", default=None, help="Policy configuration YAML")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def create_review(as_json, registry_dir, config_path, verbose):
    """Review past CREATE decisions for promotion or deprecation."""
    _setup_logging(verbose)
    engine = _load_engine(registry_dir, config_path)
    report = engine.review_create_decisions()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    console.print("\n[bold blue]IDS[/] — CREATE decision review\n")
    console.print(f"  Total CREATE justifications: {report.total_reviewed}")

    if report.total_reviewed == 0:
        console.print("\n[yellow]No CREATE justifications found.[/]")
        console.print("Justifications are recorded whenever a query ends in CREATE.\n")
        return

    table = Table(title="CREATE Review")
    table.add_column("Entity", style="cyan")
    table.add_column("Status")
    table.add_column("Reused", justify="right")
    table.add_column("Review date")

    for bucket in (
        report.pending_review,
        report.promotion_candidates,
        report.deprecation_review,
        report.monitoring,
    ):
        for entry in bucket:
            style = _STATUS_STYLE[entry.status.value]
            table.add_row(
                entry.entity_id,
                f"[{style}]{entry.status.value}[/]",
                f"{entry.reusage_count}x",
                entry.review_scheduled.isoformat() if entry.review_scheduled else "",
            )
    console.print(table)


if __name__ == "__main__":
    main()
