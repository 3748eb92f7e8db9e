"""Typer-powered command line interface for ``vsbconf``.

The CLI is a thin operator-facing wrapper around :func:`vsbconf.config.load_config`:
``check`` validates the environment a gateway would start with, ``show``
renders the redacted snapshot and ``generate-key`` mints a local-mode API key.
"""
from __future__ import annotations

import logging
import os
import textwrap
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import load_config, log_configuration_summary
from .environment import read_env_file
from .errors import ConfigError, PersistenceError
from .exit_codes import ExitCode
from .models import GatewayConfig
from .provisioning import generate_api_key
from .tls import inspect_certificate

console = Console()
err_console = Console(stderr=True)

LOGGER = logging.getLogger(__name__)

ENV_FILE_OPTION = typer.Option(
    None,
    "--env-file",
    dir_okay=False,
    help="Overlay KEY=VALUE pairs from this file on top of the process environment.",
)

FORMAT_OPTION = typer.Option(
    "json",
    "--format",
    "-f",
    help="Output format for the configuration snapshot (json or yaml).",
)

SHOW_FORMATS = ("json", "yaml")

app = typer.Typer(
    add_completion=False,
    help=textwrap.dedent(
        """
        Mail gateway startup configuration tool.

        Builds the gateway configuration from environment variables exactly as
        the gateway does at boot, so operators can catch mistakes before a
        deployment rolls out.
        """
    ).strip(),
)


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("vsbconf")
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=err_console, show_time=False, show_path=False)
        )


@app.callback(invoke_without_command=True)
def _root(  # noqa: D401 - Typer displays help for us, docstring optional.
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the vsbconf version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log derivations and secret origins while building.",
    ),
) -> None:
    """Entry point callback invoked for every CLI execution."""
    if version:
        console.print(f"vsbconf {__version__}")
        raise typer.Exit(code=ExitCode.OK)

    _configure_logging(verbose)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(code=ExitCode.OK)


def _build_environment(env_file: Path | None) -> dict[str, str]:
    env = dict(os.environ)
    if env_file is not None:
        env.update(read_env_file(env_file))
    return env


def _load_or_exit(env_file: Path | None) -> GatewayConfig:
    try:
        return load_config(_build_environment(env_file))
    except PersistenceError as exc:
        _report_failure("Cannot persist configuration state", exc)
        raise typer.Exit(code=ExitCode.ENVIRONMENT) from exc
    except ConfigError as exc:
        _report_failure("Configuration error", exc)
        raise typer.Exit(code=ExitCode.VALIDATION) from exc


def _report_failure(title: str, exc: ConfigError) -> None:
    suffix = f" ({exc.variable})" if exc.variable else ""
    err_console.print(f"[bold red]{title}{suffix}[/bold red]")
    err_console.print(str(exc), markup=False, highlight=False, soft_wrap=True)


def _summary_table(config: GatewayConfig) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    main = config.main
    smtp = config.smtp
    table.add_row("Environment", config.environment)
    table.add_row("Gateway mode", config.gateway_mode.value)
    table.add_row("Origin", main.origin)
    table.add_row("HTTP port", str(main.port))
    table.add_row("HTTPS", f"enabled (port {main.https_port})" if main.https_enabled else "disabled")
    table.add_row("SMTP listener", f"{smtp.host}:{smtp.port} (secure: {smtp.secure})")
    table.add_row("Recipient domains", ", ".join(smtp.allowed_recipient_domains))
    table.add_row("Manual TLS", "loaded" if smtp.tls is not None else "not configured")
    table.add_row(
        "Certificate management",
        f"enabled ({config.certificate.domain})" if config.certificate.enabled else "disabled",
    )
    table.add_row(
        "Orchestration",
        f"enabled (node {config.orchestration.node_id})"
        if config.orchestration.enabled
        else "disabled",
    )
    table.add_row("Data path", str(main.data_path))
    return table


def _render_certificate(config: GatewayConfig) -> None:
    material = config.smtp.tls
    if material is None:
        return

    try:
        details = inspect_certificate(material)
    except ConfigError as exc:
        _report_failure("Configuration error", exc)
        raise typer.Exit(code=ExitCode.VALIDATION) from exc

    table = Table("Certificate", "Value", header_style="bold magenta")
    table.add_row("Path", str(material.certificate_path))
    table.add_row("Subject", details.subject)
    table.add_row("SANs", ", ".join(details.subject_alt_names) or "(none)")
    table.add_row("Not before", details.not_valid_before.isoformat())
    table.add_row("Not after", details.not_valid_after.isoformat())
    console.print(table)
    if details.expired:
        console.print(
            f"[yellow]Warning:[/yellow] certificate {material.certificate_path} has expired."
        )


@app.command("check")
def check(env_file: Path | None = ENV_FILE_OPTION) -> None:
    """Build the configuration and report whether the gateway would start."""
    config = _load_or_exit(env_file)
    log_configuration_summary(config, LOGGER)
    console.print(_summary_table(config))
    _render_certificate(config)
    console.print("[green]Configuration is valid.[/green]")


@app.command("show")
def show(
    output_format: str = FORMAT_OPTION,
    env_file: Path | None = ENV_FILE_OPTION,
) -> None:
    """Print the redacted configuration snapshot."""
    normalized = output_format.strip().lower()
    if normalized not in SHOW_FORMATS:
        err_console.print(
            f"[red]Unsupported format '{output_format}'. "
            f"Choose one of: {', '.join(SHOW_FORMATS)}.[/red]"
        )
        raise typer.Exit(code=ExitCode.VALIDATION)

    data = _load_or_exit(env_file).to_dict()
    if normalized == "json":
        console.print_json(data=data)
        return
    console.print(
        yaml.safe_dump(data, sort_keys=False).rstrip(),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


@app.command("generate-key")
def generate_key() -> None:
    """Print a new random API key suitable for VSB_LOCAL_API_KEY."""
    console.print(generate_api_key(), markup=False, highlight=False, soft_wrap=True)


def main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "main"]
