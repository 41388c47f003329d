"""
LECTIO - Main CLI Application

Command-line interface for importing scripture versions and reading them back.
"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_config
from core.errors import ImportInProgressError, IncompleteImportError, LectioError
from data.aliases import localized_name
from data.schemas import ImportReport, ImportState, Testament, Version
from db.interfaces import VerseStore
from db.store import SqlVerseStore
from integrations.dialects import supported_dialects
from observability import setup_observability, shutdown_observability
from pipeline.coordinator import (
    ImportCoordinator,
    ImportJob,
    build_registry,
    build_resolver,
    build_transactioner,
    default_baseline,
)
from pipeline.lookup import ReferenceLookup, parse_reference
from pipeline.transactioner import CommitPolicy

app = typer.Typer(
    name="lectio",
    help="LECTIO - Scripture import and cross-version reference reconciliation",
    add_completion=False,
)

console = Console()
logger = logging.getLogger("lectio.cli")

EXIT_FAILED = 1
EXIT_BLOCKED = 2

_STATE_STYLE = {
    ImportState.COMMITTED: "green",
    ImportState.FAILED: "red",
    ImportState.NOT_STARTED: "dim",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Configure logging, tracing and metrics for every command."""
    config = get_config()
    if verbose:
        config.logging.level = "DEBUG"
    setup_observability(config)


def _open_store() -> SqlVerseStore:
    store = SqlVerseStore.from_config(get_config().database)
    store.create_tables()
    return store


def _required_books(value: Optional[str], registry) -> Optional[frozenset]:
    """``ot``, ``nt``, ``all`` or a comma list of book ids."""
    if not value:
        return None
    value = value.strip().lower()
    if value == "all":
        return frozenset(registry.ids())
    if value == "ot":
        return frozenset(registry.testament_ids(Testament.OLD_TESTAMENT))
    if value == "nt":
        return frozenset(registry.testament_ids(Testament.NEW_TESTAMENT))
    try:
        return frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        raise typer.BadParameter(f"--require expects ot, nt, all or book ids, got {value!r}")


def _split_source(item: str, version: Optional[str]) -> Tuple[str, Path]:
    code, sep, path = item.partition("=")
    if sep:
        return code.strip(), Path(path)
    if not version:
        raise typer.BadParameter(f"{item}: give --version or use CODE=PATH")
    return version, Path(item)


def _prepare_version(store: VerseStore, code: str, path: Path, dialect: str,
                     name: Optional[str], required) -> Version:
    version = store.load_version(code) or Version(code)
    version.source_path = str(path)
    version.dialect = dialect
    if name:
        version.display_name = name
    version.required_books = required
    return version


def _print_report(report: ImportReport, verbose: bool = False) -> None:
    table = Table(title=f"Import report: {report.version_code}")
    table.add_column("Check", style="cyan")
    table.add_column("Count", justify="right")
    for key, count in report.summary().items():
        style = "red" if count and key in (
            "duplicate_book_assignments", "unresolved_tokens",
            "missing_required_books", "duplicate_verses",
        ) else ""
        table.add_row(key.replace("_", " "), f"[{style}]{count}[/{style}]" if style else str(count))
    console.print(table)

    for dup in report.duplicate_book_assignments:
        tokens = ", ".join(map(str, dup.source_tokens))
        console.print(f"  [red]book {dup.canonical_book_id} claimed by: {tokens}[/red]")
    for token in report.unresolved_tokens:
        console.print(f"  [red]unresolved {token.source_token!r}: {token.reason} "
                      f"({token.verse_count} verses)[/red]")
    for fuzzy in report.fuzzy_resolutions:
        console.print(f"  [yellow]{fuzzy.source_token!r} -> {fuzzy.canonical_book_id} "
                      f"via {fuzzy.matched_name!r} ({fuzzy.score:.2f})[/yellow]")
    if report.missing_required_books:
        console.print(f"  [red]missing required books: {report.missing_required_books}[/red]")

    if verbose:
        for gap in report.chapter_gaps:
            console.print(f"  book {gap.canonical_book_id}: missing chapters {gap.missing_chapters}")
        for gap in report.verse_gaps:
            console.print(f"  {gap.canonical_book_id}:{gap.chapter}: missing verses {gap.missing_verses}")
        for anomaly in report.verse_count_anomalies:
            console.print(f"  {anomaly.canonical_book_id}:{anomaly.chapter}: {anomaly.observed} verses, "
                          f"expected {anomaly.expected}")


@app.command("import")
def import_versions(
    sources: List[str] = typer.Argument(..., help="PATH (with --version) or CODE=PATH, one per version"),
    dialect: str = typer.Option(..., "--dialect", "-d",
                                help=f"Source dialect ({', '.join(supported_dialects())})"),
    version: Optional[str] = typer.Option(None, "--version", help="Version code for a single PATH"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
    require: Optional[str] = typer.Option(None, "--require", "-r",
                                          help="Books the edition must contain: ot, nt, all or ids"),
    baseline_version: Optional[str] = typer.Option(None, "--baseline",
                                                   help="Committed version to compare verse counts with"),
    block_fuzzy: bool = typer.Option(False, "--block-fuzzy", help="Refuse fuzzy book matches"),
    block_missing: bool = typer.Option(False, "--block-missing", help="Refuse any missing book"),
    show_report: bool = typer.Option(False, "--report", help="Print the full report"),
):
    """Import one or more XML sources, one version per source."""
    config = get_config()
    store = _open_store()
    policy = CommitPolicy(block_on_fuzzy=block_fuzzy, block_on_any_missing=block_missing)

    try:
        transactioner = build_transactioner(store, config, policy)
        baseline = default_baseline(store, config, baseline_version)
        required = _required_books(require, transactioner.registry)

        jobs = []
        for item in sources:
            code, path = _split_source(item, version if len(sources) == 1 else None)
            if not path.exists():
                console.print(f"[red]Error: source not found: {path}[/red]")
                raise typer.Exit(EXIT_FAILED)
            jobs.append(ImportJob(_prepare_version(store, code, path, dialect, name, required),
                                  path, baseline))

        coordinator = ImportCoordinator(transactioner, config.imports.max_parallel_versions)
        with console.status(f"Importing {len(jobs)} version(s)..."):
            outcomes = coordinator.run_all(jobs)
    finally:
        store.close()

    failed = coordinator.failed(outcomes)
    logger.info("Import finished: %d committed, %d not committed", len(outcomes) - len(failed), len(failed))

    exit_code = 0
    for code, outcome in outcomes.items():
        if outcome.ok:
            result = outcome.result
            console.print(
                f"[green]✓ {code}[/green] committed {result.records_written} verses "
                f"in {result.batches} batches ({result.retries} retries, {result.pruned} pruned, "
                f"{result.duration:.1f}s)"
            )
            if show_report or result.report.has_warnings:
                _print_report(result.report, verbose=show_report)
        elif isinstance(outcome.error, IncompleteImportError):
            console.print(f"[yellow]✗ {code} blocked[/yellow]")
            for reason in outcome.error.reasons:
                console.print(f"  - {reason}")
            _print_report(outcome.error.report, verbose=show_report)
            exit_code = max(exit_code, EXIT_BLOCKED)
        else:
            style = "yellow" if isinstance(outcome.error, ImportInProgressError) else "red"
            console.print(f"[{style}]✗ {code} failed: {outcome.error}[/{style}]")
            exit_code = EXIT_FAILED if exit_code != EXIT_BLOCKED else exit_code

    shutdown_observability()
    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def report(
    version: str = typer.Argument(..., help="Version code"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    verbose: bool = typer.Option(False, "--full", "-f", help="List gaps and anomalies"),
):
    """Show the latest import report of a version."""
    store = _open_store()
    try:
        stored = store.load_report(version)
    finally:
        store.close()

    if stored is None:
        console.print(f"[red]No report for {version}[/red]")
        raise typer.Exit(EXIT_FAILED)
    if as_json:
        console.print_json(stored.to_json())
    else:
        _print_report(stored, verbose=verbose)


@app.command()
def status():
    """Show the import state of every known version."""
    store = _open_store()
    try:
        versions = store.list_versions()
        lookup = ReferenceLookup(store, build_registry())
        committed = set(lookup.available_versions())
    finally:
        store.close()

    console.print(Panel.fit("[bold blue]LECTIO - Version Status[/bold blue]", border_style="blue"))
    if not versions:
        console.print("[dim]No versions imported yet[/dim]")
        return

    table = Table()
    table.add_column("Version", style="cyan")
    table.add_column("Name")
    table.add_column("Dialect")
    table.add_column("State")
    table.add_column("Last change")
    table.add_column("Cause")
    table.add_column("Readable", justify="center")

    for v in versions:
        style = _STATE_STYLE.get(v.import_state, "yellow")
        last = v.state_history[-1].at if v.state_history else ""
        table.add_row(
            v.code, v.display_name, v.dialect,
            f"[{style}]{v.import_state.value}[/{style}]",
            last, v.failure_cause or "",
            "✓" if v.code in committed else "",
        )
    console.print(table)


@app.command()
def books(
    version: Optional[str] = typer.Option(None, "--version", help="Show localized names of a version"),
):
    """List the canonical books."""
    registry = build_registry()
    table = Table(title="Canonical books")
    table.add_column("Id", justify="right")
    table.add_column("Short", style="cyan")
    table.add_column("Name")
    if version:
        table.add_column(version)
    table.add_column("Testament")
    table.add_column("Chapters", justify="right")

    for book in registry.all():
        row = [str(book.id), book.short_name, book.full_name]
        if version:
            row.append(localized_name(book.full_name, version))
        row += [book.testament.value, str(book.expected_chapter_count or "")]
        table.add_row(*row)
    console.print(table)


@app.command()
def resolve(
    tokens: List[str] = typer.Argument(..., help="Book tokens as a source spells them"),
    version: Optional[str] = typer.Option(None, "--version", help="Version whose aliases apply"),
):
    """Show how book tokens resolve."""
    registry = build_registry()
    resolver = build_resolver(registry)

    table = Table(title="Resolution")
    table.add_column("Token", style="cyan")
    table.add_column("Book")
    table.add_column("Confidence")
    table.add_column("Score", justify="right")
    for token in tokens:
        result = resolver.resolve(int(token) if token.isdigit() else token, version)
        if result:
            book = registry.by_id(result.canonical_book_id)
            style = "green" if result.is_exact else "yellow"
            table.add_row(token, f"{book.id} {book.full_name}",
                          f"[{style}]{result.confidence.value}[/{style}]", f"{result.score:.2f}")
        else:
            candidates = ", ".join(map(str, result.candidates))
            table.add_row(token, f"[red]{result.reason}[/red] {candidates}", "", "")
    console.print(table)


@app.command()
def get(
    reference: str = typer.Argument(..., help="Reference, e.g. 'Gen 1:1'"),
    version: str = typer.Option(..., "--version", help="Version code"),
):
    """Print the text of one verse."""
    registry = build_registry()
    try:
        book_id, chapter, verse = parse_reference(reference, build_resolver(registry), version)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILED)
    if verse is None:
        console.print("[red]Give a verse number, e.g. 'Gen 1:1'; use 'chapter' for whole chapters[/red]")
        raise typer.Exit(EXIT_FAILED)

    store = _open_store()
    try:
        text = ReferenceLookup(store, registry).get(book_id, chapter, verse, version)
    except LectioError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILED)
    finally:
        store.close()

    title = f"{localized_name(registry.by_id(book_id).full_name, version)} {chapter}:{verse}"
    if not text:
        console.print(f"[dim]{title} ({version}): not found[/dim]")
        raise typer.Exit(EXIT_FAILED)
    console.print(f"[bold]{title}[/bold] [dim]{version}[/dim]")
    console.print(text)


@app.command()
def chapter(
    reference: str = typer.Argument(..., help="Book and chapter, e.g. 'Psalm 23'"),
    version: str = typer.Option(..., "--version", help="Version code"),
):
    """Print a whole chapter."""
    registry = build_registry()
    try:
        book_id, number, _ = parse_reference(reference, build_resolver(registry), version)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILED)

    store = _open_store()
    try:
        verses = list(ReferenceLookup(store, registry).range_of(book_id, number, version))
    finally:
        store.close()

    title = f"{localized_name(registry.by_id(book_id).full_name, version)} {number}"
    if not verses:
        console.print(f"[dim]{title} ({version}): not found[/dim]")
        raise typer.Exit(EXIT_FAILED)
    console.print(f"[bold]{title}[/bold] [dim]{version}[/dim]")
    for verse, text in verses:
        console.print(f"[cyan]{verse}[/cyan] {text}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
