"""CLI for QuickJot note classification."""

import json
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from quickjot import __version__
from quickjot.backends.http import HttpClassifier, HttpSaveBackend
from quickjot.config import QuickJotConfig, load_config, save_config
from quickjot.logging import SessionLogger, analyze_logs, get_logger, set_logger
from quickjot.models.result import Alternative, CanonicalResult
from quickjot.nlp.fallback import classify_text
from quickjot.nlp.pipeline import extract_tasks_preview, process_text_local
from quickjot.output.formatters import format_result
from quickjot.queue.connectivity import ConnectivitySource, SocketConnectivityProbe, watch_connectivity
from quickjot.queue.offline import FlushStats, PersistenceQueue
from quickjot.speech.rescorer import TranscriptRescorer

app = typer.Typer(
    name="quickjot",
    help="Turn quick notes and speech transcripts into typed tasks, events and notes.",
    no_args_is_help=True,
)
console = Console()

QUEUE_ACTIONS = ("stats", "flush", "clear", "dead")


# =============================================================================
# CLI Helpers
# =============================================================================

def _cli_error(message: str, detail: str | None = None) -> None:
    """Print formatted error message to console."""
    if detail:
        console.print(f"[red]Error:[/red] {message}: {detail}")
    else:
        console.print(f"[red]Error:[/red] {message}")


def _read_input(text: str | None, file: Path | None) -> str:
    """Resolve input from the argument, a file, or stdin."""
    if text is not None and file is not None:
        _cli_error("Pass either TEXT or --file, not both")
        raise typer.Exit(1)
    if file is not None:
        try:
            return file.read_text(encoding="utf-8")
        except OSError as e:
            _cli_error(f"Cannot read {file}", str(e))
            raise typer.Exit(1)
    if text is not None:
        return text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    _cli_error("No input text", "pass TEXT, --file, or pipe text on stdin")
    raise typer.Exit(1)


def _save_backend(config: QuickJotConfig) -> HttpSaveBackend | None:
    url = config.resolved_save_url()
    return HttpSaveBackend(url, config.remote) if url else None


def _connectivity_source(config: QuickJotConfig) -> ConnectivitySource:
    return SocketConnectivityProbe(
        host=config.queue.probe_host,
        port=config.queue.probe_port,
        interval=config.queue.probe_interval_seconds,
        timeout=config.queue.probe_timeout_seconds,
    )


def _print_flush(stats: FlushStats) -> None:
    color = "green" if not stats.failed else "yellow"
    console.print(
        f"[{color}]Flushed:[/{color}] {stats.success} saved, "
        f"{stats.failed} failed, {stats.total} attempted"
    )


# =============================================================================
# Commands
# =============================================================================

@app.command()
def process(
    text: Annotated[Optional[str], typer.Argument(help="Text to classify (or use --file / stdin)")] = None,
    file: Annotated[
        Optional[Path],
        typer.Option("-f", "--file", help="Read text from a file")
    ] = None,
    remote: Annotated[
        bool,
        typer.Option("--remote/--local", help="Try the remote classifier first (needs a classifier URL)")
    ] = True,
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: json, md, text")
    ] = "json",
    timezone: Annotated[
        Optional[str],
        typer.Option("--timezone", "--tz", help="IANA timezone (default: from config)")
    ] = None,
    save: Annotated[
        bool,
        typer.Option("--save", help="Queue the items for saving and try to flush")
    ] = False,
):
    """Classify text into typed items."""
    raw = _read_input(text, file)
    config = load_config()
    tz = timezone or config.timezone

    logger = SessionLogger("cli")
    set_logger(logger)
    try:
        url = config.resolved_classifier_url()
        if remote and url:
            result = classify_text(
                raw,
                classifier=HttpClassifier(url, config.remote),
                timezone=tz,
                user_id=config.user_id,
                pipeline_config=config.pipeline,
                post_filter_config=config.post_filter,
            )
        else:
            result = process_text_local(
                raw,
                timezone=tz,
                pipeline_config=config.pipeline,
                post_filter_config=config.post_filter,
            )

        try:
            rendered = format_result(result, output_format)
        except ValueError as e:
            _cli_error("Invalid format", str(e))
            raise typer.Exit(1)
        typer.echo(rendered, nl=not rendered.endswith("\n"))

        if save:
            _save_items(result, config)
    finally:
        logger.finalize()
        set_logger(None)


def _save_items(result: CanonicalResult, config: QuickJotConfig) -> None:
    if not result.items:
        console.print("[dim]Nothing to save.[/dim]")
        return

    queue = PersistenceQueue.from_config(config)
    try:
        job_id = queue.enqueue([item.model_dump() for item in result.items])
    except OSError as e:
        session = get_logger()
        if session:
            session.log_error("enqueue_failed", str(e), {"item_count": len(result.items)})
        _cli_error("Failed to queue items", str(e))
        raise typer.Exit(1)
    console.print(f"[dim]Queued job {job_id}[/dim]")

    backend = _save_backend(config)
    if backend is None:
        console.print("[yellow]No save URL configured; items stay queued.[/yellow]")
        return
    stats = queue.flush(backend.save)
    if stats is not None:
        _print_flush(stats)


@app.command()
def refine(
    file: Annotated[Path, typer.Argument(help="JSON list of {transcript, confidence} alternatives")],
    prev: Annotated[
        str,
        typer.Option("--prev", help="Previously finalized text, for context")
    ] = "",
):
    """Pick and correct the best speech recognition alternative."""
    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except OSError as e:
        _cli_error(f"Cannot read {file}", str(e))
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        _cli_error("Invalid JSON", str(e))
        raise typer.Exit(1)

    if not isinstance(data, list):
        _cli_error("Expected a JSON list of alternatives")
        raise typer.Exit(1)

    try:
        alternatives = [Alternative.model_validate(a) for a in data]
    except ValidationError as e:
        _cli_error("Invalid alternative", str(e))
        raise typer.Exit(1)

    logger = SessionLogger("cli")
    set_logger(logger)
    try:
        result = TranscriptRescorer().refine_alternatives(alternatives, prev)
    finally:
        logger.finalize()
        set_logger(None)

    typer.echo(result.transcript)


@app.command()
def preview(
    text: Annotated[str, typer.Argument(help="Text to preview")],
):
    """Show what the local pipeline would extract, without filtering."""
    summary = extract_tasks_preview(text)

    console.print(f"[bold]Segments:[/bold] {summary.segment_count}")
    for item_type, count in sorted(summary.type_counts.items()):
        console.print(f"  [dim]{item_type}:[/dim] {count}")
    console.print(f"  [dim]has date info:[/dim] {summary.has_date_info}")
    console.print(f"  [dim]has duration:[/dim] {summary.has_duration}")
    console.print(f"  [dim]has location:[/dim] {summary.has_location}")


@app.command(name="queue")
def queue_cmd(
    action: Annotated[
        str,
        typer.Argument(help="Action: stats, flush, clear, dead")
    ],
):
    """Manage the offline save queue."""
    if action not in QUEUE_ACTIONS:
        _cli_error(f"Unknown action: {action}", f"expected one of {', '.join(QUEUE_ACTIONS)}")
        raise typer.Exit(1)

    config = load_config()
    queue = PersistenceQueue.from_config(config)

    if action == "stats":
        stats = queue.get_queue_stats()
        console.print("[bold]Queue[/bold]")
        console.print(f"  [dim]pending:[/dim] {stats.pending_count}")
        oldest = (
            datetime.fromtimestamp(stats.oldest_job / 1000).isoformat(timespec="seconds")
            if stats.oldest_job is not None else "-"
        )
        console.print(f"  [dim]oldest job:[/dim] {oldest}")
        console.print(f"  [dim]total retries:[/dim] {stats.total_retries}")

    elif action == "flush":
        backend = _save_backend(config)
        if backend is None:
            _cli_error("No save URL configured", "set remote.save_url or QUICKJOT_SAVE_URL")
            raise typer.Exit(1)
        logger = SessionLogger("cli")
        set_logger(logger)
        try:
            stats = queue.flush(backend.save)
        finally:
            logger.finalize()
            set_logger(None)
        if stats is not None:
            _print_flush(stats)

    elif action == "clear":
        count = queue.clear_queue()
        console.print(f"[green]Cleared {count} pending job(s).[/green]")

    elif action == "dead":
        records = queue.dead_letters()
        if not records:
            console.print("[dim]No dead-lettered jobs.[/dim]")
            return
        for record in records:
            job = record.get("job", {})
            console.print(
                f"  {job.get('id', '?')}  {len(job.get('payload', []))} item(s)  "
                f"[dim]{record.get('failed_at', '')}[/dim]  {record.get('reason', '')}"
            )


@app.command()
def watch():
    """Flush the save queue whenever connectivity comes back (Ctrl-C to stop)."""
    config = load_config()
    backend = _save_backend(config)
    if backend is None:
        _cli_error("No save URL configured", "set remote.save_url or QUICKJOT_SAVE_URL")
        raise typer.Exit(1)

    queue = PersistenceQueue.from_config(config)
    source = _connectivity_source(config)

    logger = SessionLogger("watch")
    set_logger(logger)
    stop = watch_connectivity(queue, backend.save, source, on_update=_print_flush)
    console.print(f"[dim]Watching {config.queue.probe_host}:{config.queue.probe_port}...[/dim]")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
    finally:
        stop()
        logger.finalize()
        set_logger(None)


@app.command()
def logs(
    limit: Annotated[
        int,
        typer.Option("-n", "--limit", help="Number of recent sessions to analyze")
    ] = 10,
):
    """Summarize recent session logs.

    Examples:
        quickjot logs               # Analyze last 10 sessions
        quickjot logs -n 50         # Analyze last 50 sessions
    """
    analysis = analyze_logs(limit=limit)

    if "error" in analysis:
        console.print(f"[yellow]{analysis['error']}[/yellow]")
        return

    console.print(f"[bold]Log Analysis[/bold] ({analysis['sessions_analyzed']} sessions)")
    console.print()
    console.print(f"  [dim]Texts processed:[/dim] {analysis['texts_processed']}")
    console.print(f"  [dim]Items produced:[/dim] {analysis['items_produced']}")
    console.print(f"  [dim]Average confidence:[/dim] {analysis['avg_confidence']:.1%}")
    if analysis.get("fallback_rate") is not None:
        console.print(f"  [dim]Fallback rate:[/dim] {analysis['fallback_rate']:.1f}%")
    console.print(f"  [dim]Jobs saved:[/dim] {analysis['jobs_saved']}")
    console.print(f"  [dim]Jobs failed:[/dim] {analysis['jobs_failed']}")

    if analysis.get("common_fallback_reasons"):
        console.print()
        console.print("[bold]Fallback Reasons[/bold]")
        for reason, count in analysis["common_fallback_reasons"]:
            console.print(f"  {count:3}x  {reason}")


@app.command(name="config")
def config_cmd(
    show: Annotated[
        bool,
        typer.Option("--show", help="Show current configuration")
    ] = False,
    reset: Annotated[
        bool,
        typer.Option("--reset", help="Reset to default configuration")
    ] = False,
):
    """Manage QuickJot configuration."""
    from quickjot.config import CONFIG_FILE

    if reset:
        save_config(QuickJotConfig())
        console.print("[green]Configuration reset to defaults.[/green]")
        show = True

    if show:
        config = load_config()
        console.print(f"[bold]Configuration:[/bold] {CONFIG_FILE}")
        console.print()
        for key, value in config.model_dump().items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    console.print(f"  [dim]{key}.{sub_key}:[/dim] {sub_value}")
            else:
                console.print(f"  [dim]{key}:[/dim] {value}")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version")
    ] = False,
):
    """QuickJot - typed items from quick notes."""
    if version:
        console.print(f"quickjot {__version__}")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
