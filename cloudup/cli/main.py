"""cloudup CLI - Main commands."""
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

app = typer.Typer(
    name="cloudup",
    help="Resumable chunked uploads",
    add_completion=False
)
console = Console()


# Context store path: ~/.config/cloudup/contexts.ctx
def get_store_path() -> Path:
    config_dir = Path.home() / ".config" / "cloudup"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir / "contexts.ctx"


def load_catalog(locale_file: Optional[Path]):
    """Translated message templates keyed by error kind."""
    if locale_file is None:
        return None
    with open(locale_file, 'r', encoding='utf-8') as f:
        return json.load(f)


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    api: str = typer.Option("http://localhost:5212/api/v3", "--api", "-a", help="Service API base URL"),
    policy_type: str = typer.Option("local", "--policy-type", "-t", help="Storage policy type"),
    policy_id: int = typer.Option(1, "--policy-id", "-p", help="Storage policy id"),
    max_size: int = typer.Option(0, "--max-size", help="Maximum file size in bytes (0 for unlimited)"),
    suffix: List[str] = typer.Option([], "--suffix", "-s", help="Allowed file extension (repeatable)"),
    dest: str = typer.Option("/", "--dest", "-d", help="Destination folder path"),
    name: str = typer.Option(None, "--name", "-n", help="Custom file name"),
    locale_file: Path = typer.Option(None, "--locale-file", help="JSON file of translated error messages"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show upload logs"),
):
    """Upload a file, resuming an interrupted upload of it if one is stored."""
    from cloudup import Uploader, UploaderConfig, Policy, SQLiteContextStore, setup_logging
    from cloudup.core.upload.models import UploadProgress

    if verbose:
        logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
        setup_logging(logging.DEBUG)

    catalog = load_catalog(locale_file)
    policy = Policy(
        id=policy_id,
        type=policy_type,
        max_size=max_size,
        allowed_suffix=tuple(suffix),
    )

    async def do_upload():
        config = UploaderConfig(api_base=api)
        store = SQLiteContextStore(get_store_path())

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console
        ) as progress:
            task = progress.add_task(f"Uploading {name or file_path.name}", total=100)

            def on_progress(p: UploadProgress):
                progress.update(task, completed=p.percentage)

            async with Uploader(config, store=store, progress_callback=on_progress) as uploader:
                result = await uploader.try_upload(file_path, policy, dest, name=name)

        if not result.is_ok:
            console.print(f"[red]Upload failed:[/red] {result.error.render(catalog)}")
            raise typer.Exit(1)

        done = result.value
        console.print(f"[green]Uploaded:[/green] {done.file_name} -> {done.destination}")
        console.print(f"Session: {done.session_id}")
        console.print(f"Size: {done.file_size:,} bytes in {done.total_chunks} chunk(s)")
        if done.resumed:
            console.print("[cyan]Resumed an interrupted upload[/cyan]")
        if done.retries:
            console.print(f"[yellow]Retries: {done.retries}[/yellow]")

    try:
        run_async(do_upload())
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted; run the same command again to resume[/yellow]")
        raise typer.Exit(130)


@app.command()
def contexts(
    clear: bool = typer.Option(False, "--clear", help="Forget every stored upload context"),
):
    """List interrupted uploads that can resume."""
    from cloudup.core.session import DECODE_ERRORS, SQLiteContextStore, UploadContext

    store = SQLiteContextStore(get_store_path())
    try:
        if clear:
            store.clear()
            console.print("[green]Stored contexts cleared[/green]")
            return

        records = store.all()
        if not records:
            console.print("[yellow]No interrupted uploads[/yellow]")
            return

        table = Table()
        table.add_column("Session", style="dim")
        table.add_column("Policy", style="cyan")
        table.add_column("Path")
        table.add_column("Chunks", justify="right")
        table.add_column("Expires")

        for key, record in records.items():
            try:
                ctx = UploadContext.from_json(record)
            except DECODE_ERRORS:
                table.add_row("?", "?", key, "corrupt", "-")
                continue
            expires = ctx.expires_at.strftime("%Y-%m-%d %H:%M") if ctx.expires_at else "-"
            table.add_row(
                ctx.session_id,
                ctx.policy.type,
                ctx.path or key,
                f"{len(ctx.acknowledged)}/{ctx.total_chunks}",
                expires,
            )

        console.print(table)
    finally:
        store.close()


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
