import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel

from .analyzer import get_dependency_analyzer
from .cli_config import (
    SweeperConfig,
    apply_config_data,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .completion import get_completion_scripts
from .error_handling import ErrorCategory, ErrorContext, get_error_handler
from .macro_allowlist import build_macro_allowlist
from .manifest import METADATA_SOURCES
from .reporting import DependencyReporter
from .structured_logging import clear_scan_context, configure_logging

__version__ = "0.1.0"

console = Console()
err_console = Console(stderr=True)


def _print_suggestions(context: ErrorContext) -> None:
    for suggestion in context.suggestions:
        err_console.print(f"   → {suggestion}", style="dim")


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🧹 dep-sweeper: find Cargo dependencies your code never mentions

    Scans a crate's sources with lexical patterns and reports declared
    dependencies that appear unused.
    """
    if version:
        console.print(f"dep-sweeper version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument(
    "project_dir",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False),
)
@click.option(
    "--manifest-path",
    type=click.Path(dir_okay=False),
    help="Path to Cargo.toml (default: <project_dir>/Cargo.toml)",
)
@click.option(
    "--source-dir",
    type=click.Path(file_okay=False),
    help="Directory to scan (default from config or <crate>/src)",
)
@click.option(
    "--extension",
    help="Source file extension to scan (default from config or .rs)",
)
@click.option(
    "--metadata-source",
    type=click.Choice(list(METADATA_SOURCES), case_sensitive=False),
    help="Read dependencies from Cargo.toml directly or via `cargo metadata`",
)
@click.option(
    "--output-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    help="Output format for results (default from config or text)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False),
    help="Save the report to a file instead of stdout",
)
@click.option(
    "--ignore",
    multiple=True,
    help="Dependency name that is never reported (repeatable)",
)
@click.option(
    "--fail-on-unused",
    is_flag=True,
    help="Exit with error code if any dependency is flagged",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress status output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output with scan events and error suggestions",
)
def analyze(
    project_dir: str,
    manifest_path: Optional[str],
    source_dir: Optional[str],
    extension: Optional[str],
    metadata_source: Optional[str],
    output_format: Optional[str],
    output_file: Optional[str],
    ignore: Tuple[str, ...],
    fail_on_unused: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """
    Report declared dependencies that the sources never appear to use.

    Examples:

      dep-sweeper analyze

      dep-sweeper analyze path/to/crate --ignore openssl

      dep-sweeper analyze --output-format json -o unused.json

      dep-sweeper analyze --metadata-source cargo --fail-on-unused
    """
    try:
        config = load_config()

        configure_logging("INFO" if verbose else config.logging.log_level)
        if verbose:
            get_error_handler().register_callback(_print_suggestions)

        final_manifest = manifest_path or str(Path(project_dir) / "Cargo.toml")
        final_format = (output_format or config.report.output_format).lower()
        final_output_file = output_file or config.report.output_file
        final_fail_on_unused = fail_on_unused or config.report.fail_on_unused
        ignored = list(config.report.ignored) + list(ignore)

        if not quiet:
            err_console.print(
                Panel(
                    f"🧹 [bold blue]dep-sweeper[/bold blue] v{__version__}",
                    border_style="blue",
                )
            )
            if verbose:
                err_console.print(
                    f"📁 Manifest: {final_manifest}", style="blue", markup=False
                )

        analyzer = get_dependency_analyzer(
            source_dir=str(Path(source_dir).resolve()) if source_dir else None,
            source_extension=extension,
            metadata_source=metadata_source.lower() if metadata_source else None,
            ignored=ignored,
        )
        result = analyzer.analyze(final_manifest)

        reporter = DependencyReporter(err_console)
        if final_format == "json":
            reporter.print_json_report(result, final_output_file)
        else:
            reporter.print_text_report(result, final_output_file)

        if not quiet:
            reporter.print_summary(result)

        clear_scan_context()

        if final_fail_on_unused and result.has_unused:
            sys.exit(1)

    except KeyboardInterrupt:
        err_console.print("\n⚠️  Analysis interrupted by user", style="yellow")
        sys.exit(130)
    except Exception as e:
        clear_scan_context()
        err_console.print(f"❌ Error: {str(e)}", style="red", markup=False)
        sys.exit(1)


@cli.command()
def info():
    """Show detection methods, configuration sources and usage examples."""
    info_text = """
[bold blue]🔍 Detection Patterns:[/bold blue]

• [green]use foo::bar[/green], [green]use foo;[/green], [green]use foo as f;[/green] - use imports
• [green]extern crate foo[/green] - extern declarations
• [green]#\\[derive(...)][/green] - derive lists
• [green]foo::thing[/green], [green]x: foo::Type[/green] - qualified paths and annotations
• [green]foo!(...)[/green] - macro invocations
• [green]mod foo;[/green] - module declarations

[bold blue]🧩 Macro-Only Crates:[/bold blue]

• [yellow]anyhow, thiserror, lazy_static, serde[/yellow] count as used on any
  [yellow]name![/yellow] or [yellow]use name::[/yellow] substring

[bold blue]⚠️  Limitations:[/bold blue]

• Comments, strings and cfg-disabled code are scanned like live code
• build.rs and renamed dependencies are not inspected

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]DEP_SWEEPER_SOURCE_DIR[/cyan] - Directory to scan
• [cyan]DEP_SWEEPER_EXTENSION[/cyan] - Source file extension
• [cyan]DEP_SWEEPER_METADATA_SOURCE[/cyan] - toml or cargo
• [cyan]DEP_SWEEPER_IGNORE[/cyan] - Comma-separated names never reported
• [cyan]DEP_SWEEPER_FAIL_ON_UNUSED[/cyan] - Fail when anything is flagged
• [cyan]DEP_SWEEPER_LOG_LEVEL[/cyan] - Structured log level

[bold blue]📄 Configuration Files:[/bold blue]

• [green].dep-sweeper.json[/green] / [green].dep-sweeper.yaml[/green] - Project-level config
• [green]~/.config/dep-sweeper/config.json[/green] - User-level config
• [green]~/.dep-sweeper.json[/green] - User home config

[bold blue]💡 Usage Examples:[/bold blue]

  # Analyze the crate in the current directory
  dep-sweeper analyze

  # JSON output for automation
  dep-sweeper analyze --output-format json

  # CI gate
  dep-sweeper analyze --quiet --fail-on-unused
"""
    console.print(
        Panel(
            info_text,
            title="[bold]dep-sweeper Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-sweeper.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())

        console.print(f"✅ Created configuration file at {config_path}", style="green")
        console.print("Edit this file to customize your settings", style="dim")

    except OSError as e:
        console.print(f"❌ Failed to create config file: {e}", style="red")
        sys.exit(1)


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]🔍 Scan Settings:[/bold cyan]")
    console.print(f"  Source Directory: {current_config.scan.source_dir}")
    console.print(f"  Source Extension: {current_config.scan.source_extension}")
    console.print(f"  Metadata Source: {current_config.scan.metadata_source}")
    rules = build_macro_allowlist(current_config.scan.macro_crates)
    console.print(
        f"  Macro-Only Crates: {', '.join(rule.name for rule in rules) or '(none)'}"
    )

    console.print("\n[bold cyan]📋 Report Settings:[/bold cyan]")
    console.print(f"  Output Format: {current_config.report.output_format}")
    console.print(f"  Output File: {current_config.report.output_file or '(stdout)'}")
    console.print(
        f"  Ignored: {', '.join(current_config.report.ignored) or '(none)'}"
    )
    console.print(f"  Fail on Unused: {current_config.report.fail_on_unused}")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if not isinstance(config_data, dict):
        console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    candidate = SweeperConfig()
    apply_config_data(candidate, config_data)
    errors = validate_config_values(candidate)

    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        get_error_handler().warning(
            ErrorCategory.CONFIGURATION,
            "Configuration file failed validation",
            "main",
            "config_validate",
            details={"config_file": Path(config_file).name, "errors": errors},
        )
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


@cli.command()
@click.argument(
    "shell", type=click.Choice(["bash", "zsh", "fish"], case_sensitive=False)
)
def completion(shell: str):
    """Generate shell completion scripts.

    Examples:

      dep-sweeper completion bash > ~/.dep-sweeper-completion.bash
    """
    click.echo(get_completion_scripts()[shell.lower()])


if __name__ == "__main__":
    cli()
