"""Command-line interface for PassageLink."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, List, Optional

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from passagelink import __version__
from passagelink.config import Config, load_config
from passagelink.dom import HtmlDocument
from passagelink.exceptions import PassageLinkError
from passagelink.matching import MatchResult, SentenceTransformerEmbedder
from passagelink.observability import configure_logging
from passagelink.pipeline import LinkingSession, ReplaySummarizer
from passagelink.stream import consume_stream
from passagelink.utils import atomic_write_json, atomic_write_text

console = Console()
logger = structlog.get_logger(__name__)


def _load_document(page: str, config: Config) -> HtmlDocument:
    return HtmlDocument.from_html(Path(page).read_text(encoding="utf-8"), parser=config.extraction.parser)


def _config(ctx: click.Context) -> Config:
    return ctx.obj["config"]


def _print_matches(result: MatchResult) -> None:
    table = Table(title="Linked Key Points")
    table.add_column("Key Point", style="cyan")
    table.add_column("Target", style="magenta")
    table.add_column("Score", justify="right")
    table.add_column("Sentences")
    for match in result.matches:
        for link in match.targets:
            sentences = " | ".join(sentence.text for sentence in link.sentences)
            table.add_row(f"{match.id}: {match.text}", str(link.id), f"{link.score:.3f}", sentences)
    console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """PassageLink - link summary key points back to the passages they came from."""
    ctx.ensure_object(dict)
    loaded = load_config(Path(config) if config else None)
    if log_level:
        loaded.monitoring = loaded.monitoring.model_copy(update={"log_level": log_level})
    ctx.obj["config"] = loaded
    configure_logging(loaded.monitoring)


@cli.command()
@click.argument("page", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(), help="Write the extraction report as JSON")
@click.pass_context
def extract(ctx: click.Context, page: str, output: Optional[str]) -> None:
    """Find the linkable passages of an HTML page."""
    config = _config(ctx)
    session = LinkingSession(_load_document(page, config), config)
    targets = session.extract()

    if not targets:
        console.print(f"[yellow]No targets found ({session.diagnostic})[/yellow]")
    else:
        table = Table(title=f"Targets in {Path(page).name}")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Tag", style="magenta")
        table.add_column("Top", justify="right")
        table.add_column("Text")
        for target in targets:
            preview = target.text if len(target.text) <= 80 else target.text[:77] + "..."
            table.add_row(str(target.id), target.tag, f"{target.top:.0f}", preview)
        console.print(table)

    if output:
        report: dict[str, Any] = session.to_dict()
        report["report"] = session.extractor.last_report.to_dict()
        atomic_write_json(Path(output), report)
        console.print(f"[green]Report saved to {output}[/green]")


@cli.command()
@click.argument("summary", type=click.Path(exists=True, dir_okay=False))
@click.option("--chunk-size", default=16, show_default=True, help="Stream the summary in chunks of this size")
def keypoints(summary: str, chunk_size: int) -> None:
    """Split a ``*``-delimited summary into key points."""
    replay = ReplaySummarizer(Path(summary).read_text(encoding="utf-8"), chunk_size=chunk_size)
    entries = asyncio.run(consume_stream(replay.summarize_streaming("")))

    table = Table(title="Key Points")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Text")
    for entry in entries:
        table.add_row(str(entry.id), entry.text)
    console.print(table)


@cli.command()
@click.argument("page", type=click.Path(exists=True, dir_okay=False))
@click.argument("summary", type=click.Path(exists=True, dir_okay=False))
@click.option("--chunk-size", default=16, show_default=True, help="Replay the summary in chunks of this size")
@click.option("--output", "-o", type=click.Path(), help="Write the session state as JSON")
@click.pass_context
def link(ctx: click.Context, page: str, summary: str, chunk_size: int, output: Optional[str]) -> None:
    """Link the key points of SUMMARY to the passages of PAGE."""
    config = _config(ctx)
    session = LinkingSession(
        _load_document(page, config),
        config,
        embedder=SentenceTransformerEmbedder(config.embedding),
        summarizer=ReplaySummarizer(Path(summary).read_text(encoding="utf-8"), chunk_size=chunk_size),
    )

    try:
        result = asyncio.run(session.run())
    except PassageLinkError as e:
        console.print(f"[red]Linking failed: {e}[/red]")
        sys.exit(1)

    if result is None or not result:
        diagnostic = result.diagnostic if result is not None else None
        console.print(f"[yellow]No key points could be linked ({diagnostic or session.diagnostic})[/yellow]")
    else:
        _print_matches(result)

    if output:
        atomic_write_json(Path(output), session.to_dict())
        console.print(f"[green]Session saved to {output}[/green]")


@cli.command()
@click.argument("page", type=click.Path(exists=True, dir_okay=False))
@click.option("--target", "target_id", required=True, type=int, help="Target id reported by `extract`")
@click.option("--sentence", "sentences", multiple=True, required=True, help="Sentence to mark (repeatable)")
@click.option("--output", "-o", type=click.Path(), help="Write the highlighted HTML")
@click.pass_context
def highlight(ctx: click.Context, page: str, target_id: int, sentences: tuple[str, ...], output: Optional[str]) -> None:
    """Mark SENTENCES inside one target of PAGE."""
    config = _config(ctx)
    session = LinkingSession(_load_document(page, config), config)
    session.extract()

    try:
        outcome = session.put_highlight(target_id, sentences)
    except PassageLinkError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    lines: List[str] = [f"Marked: {outcome.marked}"]
    lines.extend(f"[red]{failure.kind}[/red]: {failure.snippet}" for failure in outcome.failures)
    style = "green" if outcome.success else "yellow"
    console.print(Panel("\n".join(lines), title=f"Target {target_id}", border_style=style))

    if output:
        atomic_write_text(Path(output), str(session.document))
        console.print(f"[green]Highlighted page saved to {output}[/green]")
    if not outcome.success:
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
