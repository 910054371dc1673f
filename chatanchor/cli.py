"""Command-line interface for ChatAnchor."""

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chatanchor import __version__
from chatanchor.config import load_proxy_settings, load_settings
from chatanchor.document import HostDocument
from chatanchor.errors import PersistenceError, SummarizationError
from chatanchor.html import PanelRenderer, display_name
from chatanchor.logging import configure_logging
from chatanchor.models.outline import PanelState
from chatanchor.toc import LabelStore, Scanner

console = Console()


def _labels(settings, conversation: str | None) -> dict[str, str]:
    if not conversation:
        return {}
    try:
        return asyncio.run(LabelStore(settings.config_dir).get(conversation))
    except PersistenceError as e:
        raise click.ClickException(str(e))


def _load(transcript: str, config: str | None):
    settings = load_settings(config)
    configure_logging(settings.log_level)
    document = HostDocument.from_file(transcript, selectors=settings.selectors)
    scanner = Scanner(
        settings.selectors,
        summary_max_length=settings.summary_max_length,
        preview_max_length=settings.preview_max_length,
        stable_fallback_ids=settings.stable_fallback_ids,
    )
    return settings, document, scanner


@click.group()
@click.version_option(version=__version__, prog_name="ChatAnchor")
@click.option("--config", "-c", type=click.Path(exists=True), default=None, help="YAML settings file")
@click.pass_context
def main(ctx, config: str | None):
    """ChatAnchor - table of contents for long chat transcripts."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("transcript", type=click.Path(exists=True))
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option("--conversation", default=None, help="Conversation whose custom labels are shown")
@click.pass_context
def toc(ctx, transcript: str, format: str, conversation: str | None):
    """Display the outline of a saved transcript page."""
    settings, document, scanner = _load(transcript, ctx.obj["config"])
    outline = scanner.scan(document)

    labels = _labels(settings, conversation)

    if format == "json":
        click.echo(json.dumps(outline.to_dict(), indent=2, ensure_ascii=False))
        return

    if not len(outline):
        console.print("[yellow]No questions found in the transcript.[/yellow]")
        return

    table = Table(title="Conversation outline")
    table.add_column("#", style="dim")
    table.add_column("Label", style="cyan")
    table.add_column("Preview")
    table.add_column("ID", style="dim")

    for entry in outline:
        table.add_row(f"Q{entry.index}", display_name(entry, labels), entry.preview_text, entry.id)

    console.print(table)


@main.command()
@click.argument("transcript", type=click.Path(exists=True))
@click.option("--conversation", default=None, help="Conversation whose custom labels are used")
@click.option("--search", default="", help="Filter entries by search term")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write markup to a file")
@click.pass_context
def render(ctx, transcript: str, conversation: str | None, search: str, output: str | None):
    """Render the panel markup for a saved transcript page."""
    settings, document, scanner = _load(transcript, ctx.obj["config"])
    outline = scanner.scan(document)

    labels = _labels(settings, conversation)

    renderer = PanelRenderer(rename_max_length=settings.rename_max_length)
    markup = renderer.render(outline, PanelState(search_term=search), labels)

    if output:
        Path(output).write_text(markup, encoding="utf-8")
        console.print(f"[green]Panel written to[/green] [cyan]{output}[/cyan]")
    else:
        click.echo(markup)


@main.group()
def labels():
    """Manage stored custom labels."""
    pass


def _store(ctx) -> LabelStore:
    settings = load_settings(ctx.find_root().obj["config"])
    return LabelStore(settings.config_dir, max_length=settings.rename_max_length)


@labels.command("list")
@click.argument("conversation", required=False)
@click.pass_context
def labels_list(ctx, conversation: str | None):
    """List labels, for one conversation or all of them."""
    try:
        conversations = _store(ctx).load_all()
    except PersistenceError as e:
        raise click.ClickException(str(e))
    if conversation:
        conversations = {conversation: conversations.get(conversation, {})}

    table = Table(title="Custom labels")
    table.add_column("Conversation", style="blue")
    table.add_column("Entry", style="dim")
    table.add_column("Label", style="cyan")

    for conversation_id, entries in conversations.items():
        for entry_id, label in entries.items():
            table.add_row(conversation_id, entry_id, label)

    console.print(table)


@labels.command("set")
@click.argument("conversation")
@click.argument("entry_id")
@click.argument("label")
@click.pass_context
def labels_set(ctx, conversation: str, entry_id: str, label: str):
    """Set the label of an entry; an empty label deletes it."""
    try:
        asyncio.run(_store(ctx).set(conversation, entry_id, label))
    except PersistenceError as e:
        raise click.ClickException(str(e))
    console.print("[green]Label saved![/green]")


@labels.command("delete")
@click.argument("conversation")
@click.argument("entry_id")
@click.pass_context
def labels_delete(ctx, conversation: str, entry_id: str):
    """Delete the label of an entry."""
    try:
        asyncio.run(_store(ctx).set(conversation, entry_id, None))
    except PersistenceError as e:
        raise click.ClickException(str(e))
    console.print("[green]Label deleted![/green]")


@labels.command("export")
@click.argument("output_path", type=click.Path())
@click.pass_context
def labels_export(ctx, output_path: str):
    """Export labels to a YAML or JSON file."""
    try:
        _store(ctx).export_labels(output_path)
    except (OSError, PersistenceError) as e:
        raise click.ClickException(str(e))
    console.print(f"[green]Labels exported to[/green] [cyan]{output_path}[/cyan]")


@labels.command("import")
@click.argument("input_path", type=click.Path(exists=True))
@click.pass_context
def labels_import(ctx, input_path: str):
    """Merge labels from an exported file."""
    try:
        conversations = _store(ctx).import_labels(input_path)
    except PersistenceError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]Imported labels for {len(conversations)} conversation(s)[/green]")


@main.command()
@click.argument("text")
@click.option("--api-base", default=None, help="Base URL of the summarization proxy")
@click.pass_context
def summarize(ctx, text: str, api_base: str | None):
    """Summarize a piece of text through the background channel."""
    from chatanchor.agent import BridgeSummarizer, create_bridge

    settings = load_settings(ctx.obj["config"])
    configure_logging(settings.log_level)

    async def _run() -> str:
        async with create_bridge(api_base or settings.api_base) as bridge:
            return await BridgeSummarizer(bridge).summarize(text)

    try:
        label = asyncio.run(_run())
    except SummarizationError as e:
        raise click.ClickException(f"Summarization failed: {e}")

    console.print(Panel(label, title="Summary"))


@main.command()
@click.option("--host", default=None, help="Interface to bind")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on")
def serve(host: str | None, port: int | None):
    """Run the summarization proxy."""
    import uvicorn

    from chatanchor.server import create_app

    settings = load_proxy_settings()
    if host:
        settings.host = host
    if port:
        settings.port = port

    try:
        app = create_app(settings)
    except ValueError as e:
        raise click.ClickException(str(e))

    console.print(
        Panel(f"[bold blue]ChatAnchor[/bold blue] proxy listening on [cyan]http://{settings.host}:{settings.port}[/cyan]")
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
