"""CLI for the Faust static analyzer."""

import logging
from pathlib import Path
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .analyzer import SourceAnalyzer
from .api import diagnose_error
from .core.config import DEFAULT_QUICK_FIX_LIMIT, DEFAULT_TIMEOUT_SECONDS, AnalyzerConfig
from .core.types import AnalysisResult, DetailLevel, Diagnostic, Severity
from .storage.cache import AnalysisCache

app = typer.Typer(
    name="faust-analyzer",
    help="Faust static analyzer - syntax, box-algebra and structure checks without a compiler",
)
console = Console()


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """Route analyzer logs through rich."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    root = logging.getLogger()
    root.handlers = []
    root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    root.setLevel(level)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Log every pipeline stage"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log a summary per file"),
):
    setup_logging(debug, verbose)


def _analyzer(timeout: float, cache_db: Path | None, detail: DetailLevel = DetailLevel.BASIC,
              quick_fixes: int = DEFAULT_QUICK_FIX_LIMIT) -> SourceAnalyzer:
    config = AnalyzerConfig(timeout_seconds=timeout, detail_level=detail, quick_fix_limit=quick_fixes)
    cache = AnalysisCache(db_path=cache_db) if cache_db else None
    return SourceAnalyzer(config, cache)


def _read(path: Path) -> str:
    if not path.exists():
        console.print(f"[red]Error: File {path} not found.[/red]")
        raise typer.Exit(1)
    with open(path) as f:
        return f.read()


def _severity_style(diagnostic: Diagnostic) -> str:
    return "red" if diagnostic.severity == Severity.ERROR else "yellow"


def _diagnostics_table(title: str, diagnostics: list[Diagnostic]) -> Table:
    table = Table(title=title)
    table.add_column("Location", style="cyan")
    table.add_column("Kind")
    table.add_column("Message")
    table.add_column("Suggestion", style="green")
    for d in diagnostics:
        kind = d.kind.value + (f"({d.subtype.value})" if d.subtype else "")
        table.add_row(f"{d.line}:{d.column}", f"[{_severity_style(d)}]{kind}[/]", d.message, d.suggestion or "")
    return table


def _summary(path: Path, result: AnalysisResult) -> None:
    if result.valid and not result.warnings:
        console.print(f"[green]{path}: no problems found.[/green]")
        return
    console.print(_diagnostics_table(str(path), result.diagnostics))
    status = "[green]valid[/green]" if result.valid else "[red]invalid[/red]"
    console.print(f"{status}: {len(result.errors)} error(s), {len(result.warnings)} warning(s)")


@app.command("check")
def check_command(
    files: list[Path] = typer.Argument(..., help="Faust source files"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT_SECONDS, "--timeout", help="Seconds allowed per file"),
    cache_db: Path = typer.Option(None, "--cache-db", help="SQLite file caching results between runs"),
):
    """Report syntax, scope and box-algebra problems."""
    analyzer = _analyzer(timeout, cache_db)
    failed = False
    for path in files:
        result = analyzer.analyze_string(_read(path))
        failed = failed or not result.valid
        if as_json:
            typer.echo(result.model_dump_json(indent=2, exclude={"structure"}))
        else:
            _summary(path, result)
    if failed:
        raise typer.Exit(1)


@app.command("structure")
def structure_command(
    dsp_file: Path = typer.Argument(..., help="Faust source file"),
    detail: DetailLevel = typer.Option(DetailLevel.BASIC, "--detail", "-d", help="basic or full"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT_SECONDS, "--timeout", help="Seconds allowed"),
):
    """Show definitions with their arity, imports and UI parameters."""
    report = _analyzer(timeout, None, detail).structure(_read(dsp_file), detail)
    if as_json:
        typer.echo(report.model_dump_json(indent=2, exclude_none=True))
    else:
        table = Table(title="Definitions")
        table.add_column("Name", style="cyan")
        table.add_column("Line")
        table.add_column("Params")
        table.add_column("Dimension", style="green")
        for definition in report.definitions:
            dimension = str(definition.dimension) if definition.dimension else "?"
            table.add_row(definition.name, str(definition.line), ", ".join(definition.params), dimension)
            for local in definition.locals:
                local_dim = str(local.dimension) if local.dimension else "?"
                table.add_row(f"  {local.name}", str(local.line), ", ".join(local.params), local_dim)
        console.print(table)

        if report.parameters:
            params = Table(title="UI Parameters")
            params.add_column("Path", style="cyan")
            params.add_column("Kind")
            params.add_column("Default")
            params.add_column("Range")
            for p in report.parameters:
                span = f"[{p.min:g}, {p.max:g}]" if p.min is not None and p.max is not None else ""
                params.add_row(p.path, p.kind, "" if p.default is None else f"{p.default:g}", span)
            console.print(params)

        if report.imports:
            console.print("Imports: " + ", ".join(
                i.path if i.found else f"[red]{i.path} (not found)[/red]" for i in report.imports
            ))
        if report.metrics:
            m = report.metrics
            console.print(f"{m.lines} lines, {m.tokens} tokens, process defined: {report.has_process}")
        if report.diagnostics:
            console.print(_diagnostics_table("Diagnostics", report.diagnostics))

    if any(d.severity == Severity.ERROR for d in report.diagnostics):
        raise typer.Exit(1)


@app.command("diagnose")
def diagnose_command(
    message: str = typer.Argument(..., help="Raw compiler error message"),
    source: Path = typer.Option(None, "--source", "-s", help="Faust file the message refers to"),
    as_json: bool = typer.Option(False, "--json", help="Print the diagnosis as JSON"),
):
    """Explain a compiler error message and propose fixes."""
    diagnosis = diagnose_error(message, _read(source) if source else None)
    if as_json:
        typer.echo(diagnosis.model_dump_json(indent=2))
        return

    body = [f"[bold]{diagnosis.diagnosis}[/bold]", f"Root cause: {diagnosis.root_cause}", ""]
    body.extend(f"  {i}. {fix}" for i, fix in enumerate(diagnosis.suggested_fixes, 1))
    console.print(Panel("\n".join(body), title=f"Diagnosis: {diagnosis.category}"))
    if diagnosis.context:
        console.print("\n".join(diagnosis.context), markup=False, highlight=False)
    for example in diagnosis.examples:
        console.print(Panel(f"{example.before}\n[dim]-- becomes --[/dim]\n{example.after}", title="Example"))


@app.command("fixes")
def fixes_command(
    dsp_file: Path = typer.Argument(..., help="Faust source file"),
    limit: int = typer.Option(DEFAULT_QUICK_FIX_LIMIT, "--limit", "-n", help="Number of fixes to show"),
    as_json: bool = typer.Option(False, "--json", help="Print the quick fixes as JSON"),
):
    """List the highest-priority quick fixes."""
    result = _analyzer(DEFAULT_TIMEOUT_SECONDS, None, quick_fixes=limit).analyze_string(_read(dsp_file))
    if as_json:
        typer.echo("[" + ", ".join(d.model_dump_json() for d in result.quick_fixes) + "]")
    elif not result.quick_fixes:
        console.print("[green]No fixes to suggest.[/green]")
    else:
        for i, d in enumerate(result.quick_fixes, 1):
            console.print(f"{i}. [cyan]{dsp_file}:{d.line}:{d.column}[/cyan] "
                          f"[{_severity_style(d)}]{d.kind.value}[/] {d.message}", highlight=False)
            console.print(f"   [green]fix:[/green] {d.suggestion}", highlight=False)
    if not result.valid:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
