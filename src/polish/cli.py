"""Command line interface for Polish."""

from __future__ import annotations

import difflib
import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from polish.cli_support import (
    analyze_files,
    configure_logging,
    describe_summary,
    parse_types,
    resolve_sources,
    result_payload,
    scan_sources,
)
from polish.config import ConfigError, PolishConfig, resolve_with_precedence
from polish.config.resolver import assign_nested, lookup_nested
from polish.ingestion.classifier import SUPPORTED_TYPES
from polish.ingestion.models import FileInfo
from polish.organization import OrganizationEngine
from polish.profiles import ProfileError, ProfileManager
from polish.rendering.formatting import format_bytes

console = Console()

_MODES = ("claude-code", "api", "hybrid", "local")


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool) -> None:
    """Print CLI output unless quiet mode suppresses it.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
    """
    if quiet and mode != "error":
        return
    console.print(message)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except (ProfileError, ConfigError) as exc:
        raise click.ClickException(str(exc)) from exc


def _profile_manager() -> ProfileManager:
    manager = ProfileManager()
    manager.initialize()
    return manager


def _existence_marker(path: str) -> str:
    if Path(path).expanduser().exists():
        return "[green]exists[/green]"
    return "[yellow]missing[/yellow]"


def _dump_config(config: PolishConfig) -> str:
    return yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False, allow_unicode=True)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="polish")
def cli() -> None:
    """Polish turns loose files into an organized, tagged markdown vault."""


@cli.command()
@click.argument("source", required=False, type=click.Path(exists=True, path_type=str))
@click.option("--profile", "profile_name", type=str, help="Use a specific profile.")
@click.option("--vault", type=str, help="Override the vault path.")
@click.option("--originals", type=str, help="Override the organized originals path.")
@click.option("--dry-run", is_flag=True, help="Preview results without modifying files.")
@click.option("--types", type=str, help="Comma-separated extensions to include, e.g. pdf,md.")
@click.option("--mode", type=click.Choice(_MODES), help="Override the suggestion mode.")
@click.option("--batch", "batch_size", type=int, default=10, show_default=True,
              help="Files between progress log lines.")
@click.option("--copy", "copy_files", is_flag=True, help="Copy originals instead of moving them.")
@click.option("--json", "json_output", is_flag=True, help="Emit a JSON result payload.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def organize(
    ctx: click.Context,
    source: str | None,
    profile_name: str | None,
    vault: str | None,
    originals: str | None,
    dry_run: bool,
    types: str | None,
    mode: str | None,
    batch_size: int,
    copy_files: bool,
    json_output: bool,
    quiet: bool,
) -> None:
    """Organize files from SOURCE (or the profile's sources) into the vault.

    Raises:
        click.ClickException: If configuration is invalid or no sources are available.
    """
    try:
        if batch_size < 1:
            raise click.ClickException("--batch must be a positive integer.")

        manager = _profile_manager()
        overrides: dict[str, Any] = {}
        if vault:
            overrides["vault.path"] = vault
        if originals:
            overrides["originals.path"] = originals
        if mode:
            overrides["api.mode"] = mode
        config = manager.get_active_config(name=profile_name, cli_overrides=overrides)
        configure_logging(config.logging.level)

        explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
        quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
        if json_output:
            if explicit_quiet and quiet_enabled:
                raise click.ClickException("--json cannot be combined with --quiet.")
            quiet_enabled = True
        show_progress = config.cli.progress_default and not quiet_enabled

        sources = resolve_sources(config, source)
        if not sources:
            raise click.ClickException(
                "No sources configured. Pass SOURCE or run `polish profile add-source`."
            )

        files = scan_sources(config, sources, parse_types(types))
        engine = OrganizationEngine.from_config(config)

        if dry_run:
            _emit_message(
                "[yellow]Dry run: no files will be written or moved.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
            )
        _emit_message(
            f"Found {len(files)} file(s) to organize.", mode="detail", quiet=quiet_enabled
        )

        def _progress(index: int, total: int, file: FileInfo) -> None:
            if show_progress:
                console.print(f"[cyan][{index}/{total}][/cyan] {file.name}")

        result = engine.process_files(
            files,
            dry_run=dry_run,
            copy=copy_files,
            batch_size=batch_size,
            on_progress=_progress,
        )

        if json_output:
            active = profile_name or manager.get_active_name()
            console.print_json(
                data=result_payload(result, dry_run=dry_run, copy=copy_files, profile=active)
            )
            return

        for failure in result.failed:
            _emit_message(
                f"[red]Failed: {failure.file.name}: {failure.error}[/red]",
                mode="error",
                quiet=quiet_enabled,
            )
        _emit_message(
            f"[green]Organization summary: {describe_summary(result)}.[/green]",
            mode="summary",
            quiet=quiet_enabled,
        )
    except (ConfigError, ProfileError) as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while organizing files: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


@cli.command()
@click.argument("source", required=False, type=click.Path(exists=True, path_type=str))
@click.option("--types", type=str, help="Comma-separated extensions to include.")
@click.option("--report", "report_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the analysis report as JSON.")
@click.option("--profile", "profile_name", type=str, help="Use a specific profile.")
def analyze(
    source: str | None, types: str | None, report_path: Path | None, profile_name: str | None
) -> None:
    """Inventory files in SOURCE (or the profile's sources) without changing anything."""
    with _translate_errors():
        manager = _profile_manager()
        config = manager.get_active_config(name=profile_name)
        configure_logging(config.logging.level)
        sources = resolve_sources(config, source)
        if not sources:
            raise click.ClickException(
                "No sources configured. Pass SOURCE or run `polish profile add-source`."
            )
        report = analyze_files(scan_sources(config, sources, parse_types(types)))

    console.print(
        f"[bold]Files:[/bold] {report['total_files']} "
        f"({format_bytes(report['total_size_bytes'])})"
    )
    if report["total_files"]:
        table = Table(title="By type")
        table.add_column("Type")
        table.add_column("Files", justify="right")
        table.add_column("Size", justify="right")
        for file_type, bucket in report["by_type"].items():
            table.add_row(file_type, str(bucket["count"]), format_bytes(bucket["size_bytes"]))
        console.print(table)

        extensions = ", ".join(
            f"{entry['extension']} ({entry['count']})" for entry in report["top_extensions"]
        )
        console.print(f"[bold]Top extensions:[/bold] {extensions}")
        console.print(
            f"[bold]Modified:[/bold] {report['oldest_modified'][:10]} .. "
            f"{report['newest_modified'][:10]}"
        )

    if report_path is not None:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        console.print(f"[green]Report saved to {report_path}.[/green]")


@cli.command()
@click.option("--profile", "profile_name", type=str, help="Show a specific profile.")
def status(profile_name: str | None) -> None:
    """Show the active profile and its key settings."""
    from polish import __version__

    with _translate_errors():
        manager = _profile_manager()
        active = manager.get_active_name()
        name = profile_name or active
        config = manager.get_active_config(name=name)
        profiles = manager.list_profiles()

    console.print(f"[bold]Polish[/bold] {__version__}")
    console.print(f"[cyan]Active profile:[/cyan] {active or 'None'} ({len(profiles)} total)")
    console.print(f"[cyan]Showing:[/cyan] {name}")
    console.print(f"[cyan]Vault:[/cyan] {config.vault.path} {_existence_marker(config.vault.path)}")
    console.print(
        f"[cyan]Originals:[/cyan] {config.originals.path} "
        f"{_existence_marker(config.originals.path)}"
    )
    if config.sources:
        console.print("[cyan]Sources:[/cyan]")
        for entry in config.sources:
            console.print(f"  - {entry.path} {_existence_marker(entry.path)}")
    else:
        console.print("[cyan]Sources:[/cyan] none")
    console.print(f"[cyan]Mode:[/cyan] {config.api.mode}")
    console.print(f"[cyan]Organization style:[/cyan] {config.originals.organization_style}")
    console.print(f"[cyan]Max tags:[/cyan] {config.tagging.max_tags}")
    has_key = bool(config.api.api_key or os.environ.get("ANTHROPIC_API_KEY"))
    console.print(f"[cyan]API key:[/cyan] {'configured' if has_key else 'not set'}")


@cli.command("list-supported")
def list_supported() -> None:
    """List supported file extensions grouped by type."""
    for file_type, extensions in SUPPORTED_TYPES.items():
        console.print(f"[bold]{file_type.label}:[/bold] {', '.join(extensions)}")


# ---------------------------------------------------------------------- #
# config                                                                 #
# ---------------------------------------------------------------------- #


@cli.group()
def config() -> None:
    """View and edit the active profile's configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    with _translate_errors():
        manager = _profile_manager()
        resolved = manager.get_active_config(include_env=not no_env)
    console.print(Syntax(_dump_config(resolved), "yaml", word_wrap=True))


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Print the effective value stored at a dotted KEY."""
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    with _translate_errors():
        resolved = _profile_manager().get_active_config()
    try:
        value = lookup_nested(resolved.model_dump(mode="json"), segments)
    except KeyError as exc:
        raise click.ClickException(f"Unknown configuration key: {key}") from exc

    if isinstance(value, (dict, list)):
        console.print(Syntax(yaml.safe_dump(value, sort_keys=False), "yaml"))
    else:
        console.print(str(value))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'tagging.max_tags'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    with _translate_errors():
        manager = _profile_manager()
        profile = manager.get_active_profile()
        data = profile.config.model_dump(mode="json")
        before = _dump_config(profile.config).splitlines()
        assign_nested(data, segments, parsed_value)
        updated = resolve_with_precedence(defaults=PolishConfig(), file_overrides=data)
        manager.update_profile(profile.name, config=updated)

    after = _dump_config(updated).splitlines()
    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile=f"{profile.name} (before)",
            tofile=f"{profile.name} (after)",
            lineterm="",
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the active profile's configuration in an editor."""
    with _translate_errors():
        manager = _profile_manager()
        profile = manager.get_active_profile()

    original = _dump_config(profile.config)
    edited = click.edit(original, extension=".yaml")
    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration must contain a top-level mapping.")

    with _translate_errors():
        updated = resolve_with_precedence(defaults=PolishConfig(), file_overrides=parsed)
        manager.update_profile(profile.name, config=updated)
    console.print("[green]Configuration updated successfully.[/green]")


# ---------------------------------------------------------------------- #
# profile                                                                #
# ---------------------------------------------------------------------- #


@cli.group()
def profile() -> None:
    """Manage named configuration profiles."""


@profile.command("create")
@click.argument("name")
@click.option("--description", type=str, help="Describe the profile.")
@click.option("--vault", type=str, help="Vault path for the new profile.")
@click.option("--originals", type=str, help="Originals path for the new profile.")
@click.option("--mode", type=click.Choice(_MODES), help="Suggestion mode for the new profile.")
@click.option("--activate", is_flag=True, help="Switch to the new profile.")
def profile_create(
    name: str,
    description: str | None,
    vault: str | None,
    originals: str | None,
    mode: str | None,
    activate: bool,
) -> None:
    """Create profile NAME from the defaults plus any supplied options."""
    overrides: dict[str, Any] = {}
    if vault:
        overrides["vault.path"] = vault
    if originals:
        overrides["originals.path"] = originals
    if mode:
        overrides["api.mode"] = mode

    with _translate_errors():
        manager = _profile_manager()
        new_config = resolve_with_precedence(defaults=PolishConfig(), cli_overrides=overrides)
        manager.create_profile(name, new_config, description)
        if activate:
            manager.set_active(name)

    suffix = " and activated it" if activate else ""
    console.print(f"[green]Created profile '{name}'{suffix}.[/green]")


@profile.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit profiles as JSON.")
def profile_list(json_output: bool) -> None:
    """List profiles, active first."""
    with _translate_errors():
        summaries = _profile_manager().list_profiles()

    if json_output:
        console.print_json(data=[summary.model_dump(mode="json") for summary in summaries])
        return

    table = Table(title="Profiles")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Vault")
    table.add_column("Sources", justify="right")
    for summary in summaries:
        table.add_row(
            "*" if summary.is_active else "",
            summary.name,
            summary.description or "",
            summary.vault_path,
            str(summary.source_count),
        )
    console.print(table)


@profile.command("switch")
@click.argument("name")
def profile_switch(name: str) -> None:
    """Make NAME the active profile."""
    with _translate_errors():
        _profile_manager().set_active(name)
    console.print(f"[green]Switched to profile '{name}'.[/green]")


@profile.command("delete")
@click.argument("name")
@click.option("--yes", is_flag=True, help="Delete without confirmation.")
def profile_delete(name: str, yes: bool) -> None:
    """Delete profile NAME."""
    with _translate_errors():
        manager = _profile_manager()
        manager.get_profile(name)
        if not yes:
            click.confirm(f"Delete profile '{name}'?", abort=True)
        manager.delete_profile(name)
    console.print(f"[green]Deleted profile '{name}'.[/green]")


@profile.command("current")
def profile_current() -> None:
    """Print the active profile name."""
    with _translate_errors():
        active = _profile_manager().get_active_profile()
    line = active.name
    if active.description:
        line += f" - {active.description}"
    console.print(line)


@profile.command("clone")
@click.argument("source")
@click.argument("target")
@click.option("--description", type=str, help="Describe the cloned profile.")
def profile_clone(source: str, target: str, description: str | None) -> None:
    """Copy profile SOURCE into a new profile TARGET."""
    with _translate_errors():
        _profile_manager().clone_profile(source, target, description)
    console.print(f"[green]Cloned '{source}' to '{target}'.[/green]")


@profile.command("rename")
@click.argument("old_name")
@click.argument("new_name")
def profile_rename(old_name: str, new_name: str) -> None:
    """Rename profile OLD_NAME to NEW_NAME."""
    with _translate_errors():
        _profile_manager().rename_profile(old_name, new_name)
    console.print(f"[green]Renamed '{old_name}' to '{new_name}'.[/green]")


@profile.command("export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--name", "names", multiple=True, help="Profile to export; repeatable.")
def profile_export(path: Path, names: tuple[str, ...]) -> None:
    """Export profiles to a JSON file at PATH."""
    with _translate_errors():
        exported = _profile_manager().export_profiles(path, names)
    console.print(f"[green]Exported {len(exported)} profile(s) to {path}.[/green]")


@profile.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--overwrite", is_flag=True, help="Replace profiles that already exist.")
def profile_import(path: Path, overwrite: bool) -> None:
    """Import profiles from the JSON file at PATH."""
    with _translate_errors():
        imported = _profile_manager().import_profiles(path, overwrite=overwrite)
    if imported:
        console.print(f"[green]Imported: {', '.join(imported)}.[/green]")
    else:
        console.print("[yellow]No profiles imported.[/yellow]")


@profile.command("add-source")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--profile", "profile_name", type=str, help="Profile to modify; defaults to active.")
@click.option("--no-subfolders", is_flag=True, help="Do not scan subdirectories.")
def profile_add_source(path: Path, profile_name: str | None, no_subfolders: bool) -> None:
    """Add directory PATH to a profile's sources."""
    with _translate_errors():
        manager = _profile_manager()
        name = profile_name or manager.get_active_profile().name
        manager.add_source(name, path, include_subfolders=not no_subfolders)
    console.print(f"[green]Added {path} to '{name}'.[/green]")


@profile.command("remove-source")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--profile", "profile_name", type=str, help="Profile to modify; defaults to active.")
def profile_remove_source(path: Path, profile_name: str | None) -> None:
    """Remove directory PATH from a profile's sources."""
    with _translate_errors():
        manager = _profile_manager()
        name = profile_name or manager.get_active_profile().name
        manager.remove_source(name, path)
    console.print(f"[green]Removed {path} from '{name}'.[/green]")


@profile.command("list-sources")
@click.option("--profile", "profile_name", type=str, help="Profile to show; defaults to active.")
def profile_list_sources(profile_name: str | None) -> None:
    """List a profile's source directories."""
    with _translate_errors():
        manager = _profile_manager()
        name = profile_name or manager.get_active_profile().name
        sources = manager.list_sources(name)

    if not sources:
        console.print(f"[yellow]No sources configured for '{name}'.[/yellow]")
        return
    for entry in sources:
        scope = "recursive" if entry.include_subfolders else "top-level"
        console.print(f"- {entry.path} ({scope})")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
