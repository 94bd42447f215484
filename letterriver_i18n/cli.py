"""
Command-line interface for Letter River i18n.

Provides commands for:
- Applying translation patch files (sync)
- Detecting and machine-translating untranslated strings (generate)
- Auditing dictionaries without modifying them (audit)
- Listing language packs and provider credentials

Usage:
    lr-i18n sync fr
    lr-i18n sync --all
    lr-i18n generate --lang french --backend google --dry-run
    lr-i18n audit --no-api
    lr-i18n keys
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from letterriver_i18n import __version__
from letterriver_i18n.config import APP_NAME
from letterriver_i18n.errors import MissingCredential, PersistenceFailure
from letterriver_i18n.keys import KeyManager, SERVICES, check_backend_credentials
from letterriver_i18n.packs import LanguagePack, load_packs, resolve_pack
from letterriver_i18n.pipeline import (
    LanguageSync,
    SyncConfig,
    SyncResult,
    SyncState,
    apply_all_patches,
    pack_for_code,
    run_batch,
)
from letterriver_i18n.storage import load_tree
from letterriver_i18n.translate.base import Translator, create_translator

app = typer.Typer(
    name="lr-i18n",
    help="Letter River i18n: keep the game's translation dictionaries in sync with English",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{APP_NAME} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Debug logging",
    ),
    i18n_dir: Optional[Path] = typer.Option(
        None, "--i18n-dir",
        help="Directory holding en.json and the target dictionaries",
    ),
    reports_dir: Optional[Path] = typer.Option(
        None, "--reports-dir",
        help="Directory receiving Markdown reports",
    ),
    patches_dir: Optional[Path] = typer.Option(
        None, "--patches-dir",
        help="Directory scanned for <code>-translations-patch.json files",
    ),
    packs_dir: Optional[Path] = typer.Option(
        None, "--packs-dir",
        help="Directory of language-pack descriptors",
    ),
):
    """Letter River translation synchronization tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = SyncConfig.from_env(
        i18n_dir=i18n_dir,
        reports_dir=reports_dir,
        patches_dir=patches_dir,
        packs_dir=packs_dir,
    )


# ============================================================================
# Helpers
# ============================================================================

def _print_results(results: Sequence[SyncResult], title: str) -> None:
    table = Table(title=title)
    table.add_column("Language", style="cyan")
    table.add_column("State")
    table.add_column("Translated", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Changes", justify="right")
    table.add_column("Report", style="dim")

    for result in results:
        if result.state is SyncState.FAILED:
            state = f"[red]✗ {result.error}[/]"
        elif result.simulated:
            state = "[yellow]✓ simulated[/]"
        else:
            state = "[green]✓ done[/]"
        table.add_row(
            result.language,
            state,
            str(result.translated),
            str(result.skipped),
            str(result.errors),
            str(len(result.changes)),
            str(result.report_path or "-"),
        )
    console.print(table)


def _resolve_or_exit(token: str, packs) -> LanguagePack:
    pack = resolve_pack(token, packs)
    if pack is None:
        console.print(f"[red]Error:[/] Unknown language '{token}'")
        console.print(f"Available: {', '.join(sorted(packs))}")
        raise typer.Exit(1)
    return pack


def _pacing(option, env_var: str, configured, translator_default):
    """Explicit option > environment variable > backend default."""
    if option is not None:
        return option
    if os.getenv(env_var):
        return configured
    return translator_default


# ============================================================================
# Commands
# ============================================================================

@app.command()
def sync(
    ctx: typer.Context,
    language: Optional[str] = typer.Argument(
        None,
        help="Language id or code (e.g. 'french' or 'fr')",
    ),
    all_languages: bool = typer.Option(
        False, "--all", "-a",
        help="Apply every patch file found in the patches directory",
    ),
    patch_file: Optional[Path] = typer.Option(
        None, "--patch-file", "-p",
        help="Patch file (default: <code>-translations-patch.json)",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="Compute changes and write the report only",
    ),
    timestamped_backups: bool = typer.Option(
        False, "--timestamped-backups",
        help="Keep every backup instead of overwriting <file>.backup",
    ),
):
    """Apply translation patch files to the dictionaries."""
    config = dataclasses.replace(ctx.obj, dry_run=dry_run, timestamped_backups=timestamped_backups)
    packs = load_packs(config.packs_dir)

    if all_languages:
        results = apply_all_patches(config, packs)
        if not results:
            console.print(f"[yellow]No patch files found in {config.patches_dir}[/]")
            return
        _print_results(results, "Patch Summary")
        return

    if not language:
        console.print("[red]Error:[/] Provide a language or --all")
        console.print("Usage: [cyan]lr-i18n sync <language-code>[/]")
        raise typer.Exit(1)

    pack = pack_for_code(language, packs)
    patch_path = patch_file or config.patch_path(pack.short_code)
    if not patch_path.exists():
        console.print(f"[red]Error:[/] Patch file not found: {patch_path}")
        raise typer.Exit(1)

    console.print(f"[dim]Applying {patch_path} to {config.target_path(pack)}...[/]")
    result = LanguageSync(pack, config).run_patch(patch_path)
    _print_results([result], "Patch Summary")
    if result.state is SyncState.FAILED:
        raise typer.Exit(1)


@app.command()
def generate(
    ctx: typer.Context,
    lang: Optional[str] = typer.Option(
        None, "--lang", "-l",
        help="Only this language (default: all packs)",
    ),
    backend: Optional[str] = typer.Option(
        None, "--backend", "-b",
        help="Translation backend (mymemory ⭐ default, google, deepl, dictionary, dummy)",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="Translate and report without writing dictionaries",
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c",
        help="Concurrent provider requests per language",
    ),
    delay: Optional[float] = typer.Option(
        None, "--delay",
        help="Seconds each worker waits between requests",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout",
        help="Seconds before a provider call is abandoned",
    ),
    glossary_file: Optional[Path] = typer.Option(
        None, "--glossary", "-g",
        help="Term file for the dictionary backend",
    ),
    timestamped_backups: bool = typer.Option(
        False, "--timestamped-backups",
        help="Keep every backup instead of overwriting <file>.backup",
    ),
):
    """Translate missing and untranslated strings."""
    base: SyncConfig = ctx.obj
    backend = backend or base.backend
    packs = load_packs(base.packs_dir)
    selected = [_resolve_or_exit(lang, packs)] if lang else list(packs.values())

    try:
        check_backend_credentials(backend)
        translator: Translator = create_translator(
            backend,
            glossary_file=glossary_file,
            timeout=timeout if timeout is not None else base.timeout,
        )
    except MissingCredential as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)
    except (ValueError, PersistenceFailure) as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)

    config = dataclasses.replace(
        base,
        backend=backend,
        dry_run=dry_run,
        timestamped_backups=timestamped_backups,
        concurrency=max(1, _pacing(concurrency, "TRANSLATE_CONCURRENCY", base.concurrency,
                                   translator.default_concurrency)),
        request_delay=_pacing(delay, "TRANSLATE_DELAY", base.request_delay, translator.default_delay),
        timeout=timeout if timeout is not None else base.timeout,
    )

    try:
        reference = load_tree(config.reference_path)
    except PersistenceFailure as exc:
        console.print(f"[red]Error:[/] Cannot load reference dictionary: {exc}")
        raise typer.Exit(1)

    mode = "[yellow]dry run[/]" if dry_run else "live"
    console.print(
        f"[green]Backend:[/] {translator.name}  [green]Languages:[/] {len(selected)}  "
        f"[green]Workers:[/] {config.concurrency}  [green]Mode:[/] {mode}"
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task = progress.add_task("Translating...", total=None)

        def update_progress(language: str, completed: int, total: int):
            progress.update(task, description=language, completed=completed, total=total)

        results = run_batch(selected, config, translator, reference, progress_callback=update_progress)
        progress.update(task, description="[green]Complete!")

    _print_results(results, "Generation Summary")
    if lang and results[0].state is SyncState.FAILED:
        raise typer.Exit(1)


@app.command()
def audit(
    ctx: typer.Context,
    lang: Optional[str] = typer.Option(
        None, "--lang", "-l",
        help="Only this language (default: all packs)",
    ),
    no_api: bool = typer.Option(
        False, "--no-api",
        help="Skip spot-checks against MyMemory",
    ),
    sample_size: int = typer.Option(
        20, "--sample-size", "-n",
        help="Priority keys spot-checked per language",
    ),
    delay: float = typer.Option(
        0.5, "--delay",
        help="Seconds between spot-check requests",
    ),
):
    """Audit dictionaries for untranslated, suspicious and missing strings."""
    from letterriver_i18n.audit import run_audit

    config: SyncConfig = ctx.obj
    packs = load_packs(config.packs_dir)
    selected = [_resolve_or_exit(lang, packs)] if lang else list(packs.values())

    spot_checker = None
    if not no_api:
        from letterriver_i18n.translate.mymemory import MyMemoryTranslator
        spot_checker = MyMemoryTranslator().lookup

    try:
        outcomes = run_audit(
            config.reference_path,
            config.i18n_dir,
            config.reports_dir,
            selected,
            spot_checker=spot_checker,
            sample_size=sample_size,
            delay=delay,
        )
    except PersistenceFailure as exc:
        console.print(f"[red]Error:[/] Cannot load reference dictionary: {exc}")
        raise typer.Exit(1)

    table = Table(title="Translation Audit")
    table.add_column("Language", style="cyan")
    table.add_column("Untranslated", justify="right")
    table.add_column("Suspicious", justify="right")
    table.add_column("Missing", justify="right")
    table.add_column("Suggestions", justify="right")
    for outcome in outcomes:
        if outcome.issues is None:
            table.add_row(outcome.pack.name, *(["[red]ERROR[/]"] * 4))
            continue
        issues = outcome.issues
        table.add_row(
            outcome.pack.name,
            str(len(issues.untranslated)),
            str(len(issues.suspicious)),
            str(len(issues.missing)),
            str(len(issues.suggestions)),
        )
    console.print(table)
    console.print(f"\n[green]✓[/] Reports saved to: {config.reports_dir}")

    if lang and outcomes[0].issues is None:
        raise typer.Exit(1)


@app.command()
def languages(ctx: typer.Context):
    """List language packs and backend support."""
    config: SyncConfig = ctx.obj
    packs = load_packs(config.packs_dir)

    table = Table(title=f"Language Packs ({len(packs)})")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("File")
    table.add_column("Code", style="green")
    table.add_column("DeepL")
    table.add_column("Google")
    table.add_column("Overrides", justify="right")
    table.add_column("On disk")

    for pack in packs.values():
        deepl_code = pack.code_for("deepl")
        table.add_row(
            pack.language_id,
            pack.name,
            pack.file_name,
            pack.api_code,
            deepl_code or "[dim]✗[/]",
            pack.code_for("google") or "[dim]✗[/]",
            str(len(pack.overrides)),
            "✓" if config.target_path(pack).exists() else "[yellow]missing[/]",
        )
    console.print(table)


@app.command()
def keys(
    action: str = typer.Argument("list", help="Action: list, status"),
    service: Optional[str] = typer.Argument(None, help="Service name (deepl, mymemory)"),
):
    """Show provider credential status (values are masked).

    Credentials are read from environment variables only.

    Examples:
        lr-i18n keys                # List all services
        lr-i18n keys status deepl   # Check the DeepL key
    """
    km = KeyManager()

    if action == "list":
        table = Table(title="API Keys Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Env var", style="yellow")
        table.add_column("Value", style="dim")

        for key_info in km.list_keys():
            status = "✓ Set" if key_info.is_set else "✗ Not set"
            status_color = "green" if key_info.is_set else "red"
            table.add_row(
                key_info.service,
                f"[{status_color}]{status}[/]",
                key_info.env_var,
                key_info.masked_value if key_info.is_set else "-",
            )
        console.print(table)

    elif action == "status":
        if not service:
            console.print("[red]Error:[/] Service name required")
            console.print(f"Available services: {', '.join(SERVICES)}")
            raise typer.Exit(1)

        key_info = km.get_key_info(service)
        if key_info.is_set:
            console.print(f"[green]✓[/] API key for {service} is set")
            console.print(f"    Value: {key_info.masked_value}")
        else:
            console.print(f"[red]✗[/] No API key found for {service}")
            console.print(f"\nTo set the key: [cyan]export {key_info.env_var}='your-key-here'[/]")

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'")
        console.print("Available actions: list, status")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
