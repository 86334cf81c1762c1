"""Main CLI application"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from rra_agreements.utils.config import get_settings

app = typer.Typer(
    name="rra-agreements",
    help="RRA 2025 compliance checks and tenancy agreement generation",
    add_completion=False,
)

console = Console(force_terminal=True)

DEFAULT_TEMPLATE_PATH = Path(__file__).parent.parent / "templates" / "rra_2025_default.json"
MIGRATION_PATH = Path(__file__).parent.parent / "db" / "migrations" / "001_agreement_creator.sql"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Configure logging from LOG_LEVEL"""
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_json(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)


def _invalid(label: str, error: ValidationError) -> None:
    console.print(f"[red]Invalid {label}:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def load_default_template():
    """The bundled RRA 2025 template"""
    from rra_agreements.db.mapping import template_from_row

    with open(DEFAULT_TEMPLATE_PATH, "r", encoding="utf-8") as f:
        return template_from_row(json.load(f))


@app.command("check")
def check(
    draft: str = typer.Argument(..., help="Path to a draft agreement JSON file"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Check a draft agreement against RRA 2025 requirements"""
    from rra_agreements.services.compliance import check_compliance

    try:
        result = check_compliance(_load_json(draft))
    except ValidationError as e:
        _invalid("draft", e)

    if json_output:
        console.print_json(result.model_dump_json())
        raise typer.Exit(0 if result.is_compliant else 1)

    if result.is_compliant:
        console.print("[green][OK] Draft is RRA 2025 compliant[/green]")
    else:
        table = Table(title="Compliance Errors")
        table.add_column("Field", style="cyan")
        table.add_column("Problem", style="red")
        table.add_column("Reference")
        for error in result.errors:
            table.add_row(error.field, error.message, error.rra_reference)
        console.print(table)

    if result.warnings:
        table = Table(title="Warnings")
        table.add_column("Field", style="cyan")
        table.add_column("Warning", style="yellow")
        table.add_column("Suggestion")
        for warning in result.warnings:
            table.add_row(warning.field, warning.message, warning.suggestion)
        console.print(table)

    if not result.is_compliant:
        raise typer.Exit(1)


@app.command("deposit")
def deposit(
    monthly_rent: float = typer.Argument(..., help="Rent per calendar month (£)"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="Proposed deposit (£)"),
):
    """Show deposit limits for a monthly rent"""
    from rra_agreements.services import compliance
    from rra_agreements.utils.formatting import format_currency

    if monthly_rent <= 0:
        console.print("[red]Monthly rent must be greater than 0[/red]")
        raise typer.Exit(1)

    max_deposit = compliance.calculate_max_deposit(monthly_rent)
    table = Table(title=f"Deposit limits for {format_currency(monthly_rent)} pcm")
    table.add_column("Limit", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Weekly rent", format_currency(round(compliance.weekly_rent(monthly_rent), 2)))
    table.add_row("Deposit cap (weeks)", str(compliance.max_deposit_weeks(monthly_rent)))
    table.add_row("Maximum deposit", format_currency(round(max_deposit, 2)))
    table.add_row("Maximum holding deposit",
                  format_currency(round(compliance.calculate_max_holding_deposit(monthly_rent), 2)))
    table.add_row("Rent in advance (months)", str(compliance.get_max_rent_in_advance_months()))
    console.print(table)

    if amount is not None:
        weeks = compliance.calculate_deposit_weeks(monthly_rent, amount)
        if amount > max_deposit:
            console.print(f"[red]{format_currency(amount)} is {weeks:.1f} weeks' rent: over the cap[/red]")
            raise typer.Exit(1)
        console.print(f"[green]{format_currency(amount)} is {weeks:.1f} weeks' rent: within the cap[/green]")


@app.command("render")
def render(
    content: str = typer.Argument(..., help="Clause text using {{variables}} and {{#if}} blocks"),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Draft JSON file"),
):
    """Render clause text against a draft"""
    from rra_agreements.services.substitution import substitute_variables, unknown_variables

    form_data = _load_json(data) if data else {}
    try:
        rendered = substitute_variables(content, form_data)
    except ValidationError as e:
        _invalid("draft", e)
    console.print(rendered, markup=False)
    unknown = unknown_variables(content)
    if unknown:
        console.print(f"[yellow]Unknown variables left as-is: {', '.join(unknown)}[/yellow]")


@app.command("generate")
def generate(
    draft: str = typer.Argument(..., help="Draft agreement JSON file"),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output file path (default: OUTPUT_DIR/agreement.pdf)"
    ),
    template_path: Optional[str] = typer.Option(
        None, "--template", "-t", help="Template JSON file (default: bundled RRA 2025 template)"
    ),
    watermark: bool = typer.Option(False, "--draft-watermark", help="Stamp every page DRAFT"),
    no_signatures: bool = typer.Option(False, "--no-signatures", help="Omit the signature page"),
    force: bool = typer.Option(False, "--force", help="Generate even if not compliant"),
):
    """Generate an agreement PDF offline"""
    from rra_agreements.db.mapping import template_from_row
    from rra_agreements.models.agreement import AgreementFormData
    from rra_agreements.services.compliance import check_compliance
    from rra_agreements.services.pdf_generator import AgreementPDFGenerator

    form_data = _load_json(draft)
    try:
        template = template_from_row(_load_json(template_path)) if template_path else load_default_template()
    except ValidationError as e:
        _invalid("template", e)
    try:
        form_data = AgreementFormData.coerce(form_data)
    except ValidationError as e:
        _invalid("draft", e)

    result = check_compliance(form_data)
    if not result.is_compliant:
        for error in result.errors:
            console.print(f"  [red]-[/red] {error.message}")
        if not force:
            console.print("[red]Draft is not compliant. Fix the errors or pass --force.[/red]")
            raise typer.Exit(1)
        console.print("[yellow]Generating a non-compliant draft[/yellow]")

    if output is None:
        output = str(Path(get_settings().output_dir) / "agreement.pdf")

    path = AgreementPDFGenerator().save(
        template,
        form_data,
        output,
        include_signature_pages=not no_signatures,
        include_watermark=watermark or not result.is_compliant,
    )
    console.print(f"\n[green][OK] Agreement generated: {path}[/green]")


@app.command("templates")
def templates():
    """List active agreement templates in Supabase"""
    from rra_agreements.services.agreement_creator import AgreementCreatorService

    try:
        template_list = asyncio.run(AgreementCreatorService().get_active_templates())
    except (ValueError, RuntimeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not template_list:
        console.print("[yellow]No templates available[/yellow]")
        return

    table = Table(title="Agreement Templates")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="green")
    table.add_column("Version", style="cyan")
    table.add_column("System")
    table.add_column("Clauses", justify="right")
    for t in template_list:
        table.add_row(
            t.id,
            t.name,
            t.version,
            "Yes" if t.is_system_template else "No",
            str(sum(len(s.clauses) for s in t.sections)),
        )
    console.print(table)


@app.command("seed")
def seed(
    template_path: Optional[str] = typer.Option(
        None, "--template", "-t", help="Template JSON file (default: bundled RRA 2025 template)"
    ),
):
    """Upsert the default agreement template into Supabase"""
    from rra_agreements.db.mapping import template_from_row
    from rra_agreements.db.supabase import get_database

    template = template_from_row(_load_json(template_path)) if template_path else load_default_template()
    try:
        template_id = get_database().upsert_template(template)
    except Exception as e:
        console.print(f"[red]Seeding failed: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green][OK] Template {template.version} stored as {template_id}[/green]")


@app.command("db")
def db_command(
    action: str = typer.Argument(..., help="Action: migrate, status"),
):
    """Manage database connection and schema"""
    from rra_agreements.db.supabase import get_database

    if action == "migrate":
        console.print(f"[blue]SQL migration file:[/blue] {MIGRATION_PATH}")
        console.print("\n[yellow]Run this SQL in Supabase SQL Editor to create tables.[/yellow]")
        console.print("Then run [cyan]python -m rra_agreements seed[/cyan] to load the default template.")

    elif action == "status":
        try:
            status = get_database().get_status()
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        table = Table(title="Database Status")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for k, v in status.items():
            table.add_row(str(k), str(v))
        console.print(table)

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Available actions: migrate, status")
        raise typer.Exit(1)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
):
    """Run the HTTP API"""
    import uvicorn

    from rra_agreements.api.app import create_app

    console.print(Panel.fit(
        f"[bold blue]RRA 2025 Agreement API[/bold blue]\nhttp://{host}:{port}/docs",
        border_style="blue",
    ))
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    app()
