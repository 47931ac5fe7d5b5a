"""runrep CLI."""

import logging
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError as ConfigValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from runrep.command.builder import build_command, validate
from runrep.config import RunrepConfig, get_config_template, load_config
from runrep.errors import ValidationError
from runrep.executor.ssh import SSHCommandExecutor
from runrep.executor.streams import save_to
from runrep.pipeline import run_report

app = typer.Typer(help="runrep - run Geneva reports over SSH and fetch the results")
console = Console()

CONFIG_FILE = "runrep.yaml"

EXIT_FAILURE = 1
EXIT_RUNREP_FAILURE = 2


def setup_logging(verbose: bool = False):
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    logging.getLogger("paramiko").setLevel(logging.WARNING)


def get_config(config_path: Path) -> RunrepConfig:
    """Load the config file or exit with an error."""
    if not config_path.exists():
        console.print(f"[red]Error:[/red] {config_path} not found. Run 'runrep init' first.")
        raise typer.Exit(EXIT_FAILURE)
    try:
        return load_config(config_path)
    except (ConfigValidationError, ValueError, TypeError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/red] Invalid config {config_path}:\n{escape(str(e))}")
        raise typer.Exit(EXIT_FAILURE)


def prepare(config: RunrepConfig, config_path: Path):
    """Resolve parameters and report from config, validating both."""
    params = config.runrep.to_parameters()
    try:
        report = config.report.to_report(base_dir=config_path.parent)
    except OSError as e:
        console.print(f"[red]Error:[/red] Cannot read query file: {e}")
        raise typer.Exit(EXIT_FAILURE)
    try:
        validate(params, report)
    except ValidationError as e:
        console.print(f"[red]Invalid parameters:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_FAILURE)
    return params, report


@app.command()
def init():
    """Write a configuration template to the current directory."""
    config_file = Path(CONFIG_FILE)

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] {CONFIG_FILE} already exists.")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit(0)

    config_file.write_text(get_config_template())
    console.print(f"[green]Wrote {CONFIG_FILE}.[/green]")
    console.print(f"\nEdit {CONFIG_FILE} to configure your SSH host and report.")


@app.command("validate")
def validate_config(
    config: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Config file"),
):
    """Validate the config and report parameters without connecting."""
    cfg = get_config(config)
    prepare(cfg, config)
    console.print("[green]Configuration is valid.[/green]")


@app.command()
def show(
    config: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Config file"),
):
    """Print the runrep script that would be sent, with the password masked."""
    cfg = get_config(config)
    params, report = prepare(cfg, config)
    command = build_command(params, report, validate_first=False)

    console.print(f"[bold]Host:[/bold] {cfg.ssh.user}@{cfg.ssh.host}:{cfg.ssh.port}")
    console.print(f"[bold]Output:[/bold] {command.output_resource}")
    console.print(command.redacted_text, markup=False, highlight=False)


@app.command()
def run(
    output: Path = typer.Option(..., "--output", "-o", help="Local file to write the report to"),
    config: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Config file"),
    keep_remote: bool = typer.Option(False, "--keep-remote", help="Do not delete the remote report file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Run the configured report and download its output."""
    setup_logging(verbose)
    cfg = get_config(config)
    params, report = prepare(cfg, config)

    with SSHCommandExecutor(cfg.ssh.to_executor_settings()) as executor:
        result = run_report(
            executor,
            cfg.ssh.to_ssh_config(),
            params,
            report,
            save_to(output),
            keep_remote=keep_remote,
        )

    table = Table(show_header=False)
    table.add_row("Status", result.status)
    table.add_row("Remote file", result.output_resource)
    table.add_row("Elapsed", f"{result.elapsed_ms}ms")
    if result.bytes_fetched is not None:
        table.add_row("Bytes", str(result.bytes_fetched))
    console.print(table)

    if result.status == "runrep_failure":
        console.print(f"[red]runrep failed:[/red] {escape(result.remote_error_line or '')}")
        console.print(result.command, markup=False, highlight=False)
        raise typer.Exit(EXIT_RUNREP_FAILURE)
    if result.status == "failure":
        console.print(f"[red]Error:[/red] Could not run report: {escape(result.error or '')}")
        raise typer.Exit(EXIT_FAILURE)

    console.print(f"[green]Saved report to {output}[/green]")


if __name__ == "__main__":
    app()
