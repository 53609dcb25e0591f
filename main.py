#!/usr/bin/env python3

import asyncio
import shutil
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from bluework.backend import ApplicantRepository, JobPostingRepository, create_backend
from bluework.core.errors import BlueWorkError
from bluework.core.filters import filter_postings
from bluework.core.job import JobPosting
from bluework.utils.config import get_settings

app = typer.Typer(name="bluework", add_completion=False)
console = Console()


@app.command()
def init():
    console.print("\n🚀 [bold blue]Initializing BlueWork...[/bold blue]\n")

    settings = get_settings()
    settings.ensure_directories()

    env_path = Path(".env")
    env_example = Path(".env.example")

    if not env_path.exists() and env_example.exists():
        shutil.copy(env_example, env_path)
        console.print("✅ Created [cyan].env[/cyan]")

    console.print("\n[bold green]✅ Initialization complete![/bold green]")


@app.command()
def status():
    console.print("\n📊 [bold blue]BlueWork Status[/bold blue]\n")

    settings = get_settings()

    config_table = Table(title="Configuration Status")
    config_table.add_column("Item", style="cyan")
    config_table.add_column("Status", style="green")

    config_table.add_row("Backend", settings.backend)
    if settings.backend == "local":
        config_table.add_row("Database", settings.database.path)
        config_table.add_row("Uploads", settings.uploads.local_dir)
        config_table.add_row("Admin Password", "✅ Set" if settings.admin_password else "❌ Not set")
    else:
        config_table.add_row("Supabase", "✅ Configured" if settings.supabase_configured else "❌ Not set")
        config_table.add_row("Bucket", settings.uploads.bucket)

    config_table.add_row("Photo Limit", f"{settings.uploads.photo_max_bytes // 1024} KB")
    config_table.add_row("CV Limit", f"{settings.uploads.cv_max_bytes // (1024 * 1024)} MB")
    config_table.add_row("Log File", settings.logging.file)
    console.print(config_table)
    console.print()


@app.command()
def version():
    from bluework import __version__
    console.print(f"\n🚀 BlueWork v{__version__}\n")


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, "--port", "-p"),
    host: Optional[str] = typer.Option(None, "--host"),
):
    settings = get_settings()
    host = host or settings.server.host
    port = port or settings.server.port
    console.print(f"\n🚀 [bold blue]Starting BlueWork...[/bold blue]\n")
    console.print(f"🌐 Open: [cyan]http://{host}:{port}[/cyan]\n")

    from bluework.dashboard.app import run_dashboard
    run_dashboard(host=host, port=port)


@app.command()
def jobs(
    search: str = typer.Option("", "--search", "-s"),
    all_postings: bool = typer.Option(False, "--all", "-a"),
):
    console.print("\n📋 [bold blue]Job Postings[/bold blue]\n")

    async def fetch():
        backend = create_backend(get_settings())
        try:
            repo = JobPostingRepository(backend.query)
            return await (repo.list_all() if all_postings else repo.list_active())
        finally:
            await backend.aclose()

    try:
        postings = filter_postings(asyncio.run(fetch()), search, admin=all_postings)
    except BlueWorkError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not postings:
        console.print("[yellow]No job postings found[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Company", style="green")
    table.add_column("Location", style="yellow")
    table.add_column("Type", style="magenta")
    table.add_column("Active")

    for posting in postings:
        table.add_row(
            posting.id[:8] if posting.id else "N/A",
            posting.title[:40],
            posting.company[:20],
            posting.location[:20],
            posting.type,
            "✅" if posting.is_active else "-",
        )

    console.print(table)


@app.command(name="add-job")
def add_job(
    title: str = typer.Argument(...),
    company: str = typer.Option(..., "--company", "-c"),
    location: str = typer.Option(..., "--location", "-l"),
    job_type: str = typer.Option("Full-time", "--type", "-t"),
    description: str = typer.Option("", "--description", "-d"),
    inactive: bool = typer.Option(False, "--inactive"),
):
    console.print(f"\n➕ Adding job: {title}\n")

    posting = JobPosting(
        title=title,
        company=company,
        location=location,
        type=job_type,
        description=description,
        is_active=not inactive,
    )

    async def create():
        backend = create_backend(get_settings())
        try:
            return await JobPostingRepository(backend.query).create(posting)
        finally:
            await backend.aclose()

    try:
        created = asyncio.run(create())
    except BlueWorkError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Job added with ID: {created.id}[/green]")


@app.command()
def export(
    fmt: str = typer.Option("csv", "--format", "-f"),
    output: Optional[Path] = typer.Option(None, "--output", "-o"),
    email: Optional[str] = typer.Option(None, "--email", help="Admin email (Supabase backend)"),
    password: Optional[str] = typer.Option(None, "--password", help="Admin password (Supabase backend)"),
):
    from bluework.exports import (
        CSV_FILENAME,
        PDF_FILENAME,
        SUMMARY_COLUMNS,
        flattened_columns,
        flattened_rows,
        summary_rows,
        write_csv,
        write_pdf,
    )

    if fmt not in ("csv", "pdf"):
        console.print(f"[red]Invalid format: {fmt} (use csv or pdf)[/red]")
        raise typer.Exit(1)

    settings = get_settings()
    console.print(f"\n📤 [bold blue]Exporting applicants ({fmt})...[/bold blue]\n")

    async def fetch():
        backend = create_backend(settings)
        try:
            scoped = backend
            if email and password:
                session = await backend.auth.sign_in(email, password)
                scoped = backend.for_session(session.access_token)
            return await ApplicantRepository(scoped.query).list_with_experiences()
        finally:
            await backend.aclose()

    try:
        applicants = asyncio.run(fetch())
    except BlueWorkError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if fmt == "csv":
        slots = settings.export.max_experience_slots
        body = write_csv(
            flattened_rows(applicants, slots=slots, placeholder=settings.export.placeholder),
            flattened_columns(slots),
        )
        path = output or Path(CSV_FILENAME)
    else:
        body = write_pdf(summary_rows(applicants), SUMMARY_COLUMNS)
        path = output or Path(PDF_FILENAME)

    path.write_bytes(body)
    console.print(Panel.fit(
        f"[cyan]Applicants:[/cyan] {len(applicants)}\n"
        f"[cyan]File:[/cyan] {path}",
        title="Export Complete",
    ))


def main():
    app()


if __name__ == "__main__":
    main()
