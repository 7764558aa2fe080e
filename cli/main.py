#!/usr/bin/env python3
"""
Mint Safety Filter - Command Line Interface

Checks token mints against the configured safety rules over a managed
ledger connection and prints the batch report.
"""

import json
import logging
import sys
from typing import Any, Dict, Optional, Tuple

import click

from cli import __version__
from cli.config import (
    ConfigurationManager,
    build_connection_settings,
    build_rpc_config
)
from network.connection import ConnectionManager
from network.rpc import RPCConnection
from validator.core import ConfigurationError
from validator.policy import PolicyManager
from validator.report import BatchReport


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: str = "table"
        self.verbose: int = 0
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: Optional[logging.Logger] = None

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        root = logging.getLogger()
        root.setLevel(level)
        if not root.handlers:
            root.addHandler(handler)

        self.logger = logging.getLogger('mintguard-cli')

        # Suppress verbose third-party logs unless in debug mode
        if self.verbose < 2:
            logging.getLogger('requests').setLevel(logging.WARNING)
            logging.getLogger('urllib3').setLevel(logging.WARNING)

    def get_config_manager(self) -> ConfigurationManager:
        """Get the configuration manager, creating it on first use."""
        if self.config_manager is None:
            self.config_manager = ConfigurationManager(self.config_file, self.profile)
        return self.config_manager

    @property
    def config(self) -> Dict[str, Any]:
        return self.get_config_manager().load()


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c', help='Path to configuration file')
@click.option('--profile', '-p',
              type=click.Choice(['production', 'fast', 'development']),
              help='Configuration profile')
@click.option('--output-format', '-o',
              type=click.Choice(['table', 'json']),
              default='table',
              help='Output format')
@click.option('--verbose', '-v', count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='mintguard')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: str, verbose: int):
    """
    Mint Safety Filter

    Check token mints for forbidden Token-2022 extensions, transfer fees
    outside the allowed range, and unrenounced mint or freeze authorities.

    Examples:
        mintguard check CVXB7XCjKyKCftyz6QqtUzzSJKPBF9ECoaEcaw5XLyyM
        mintguard --profile fast check MINT1 MINT2 --threshold 1
        mintguard config show
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.verbose = verbose

    ctx.setup_logging()
    ctx.logger.debug("CLI initialized with context")


@cli.command()
@click.argument('mints', nargs=-1, required=True)
@click.option('--fast/--no-fast', default=None, help='Use the fast rule profile')
@click.option('--threshold', type=click.IntRange(min=0), default=None,
              help='Failed mints tolerated before the batch fails')
@click.option('--concurrency', type=click.IntRange(min=1), default=None,
              help='Maximum concurrent mint evaluations')
@click.option('--endpoint', default=None, help='Override the RPC endpoint URL')
@pass_context
def check(ctx: CLIContext, mints: Tuple[str, ...], fast: Optional[bool],
          threshold: Optional[int], concurrency: Optional[int], endpoint: Optional[str]):
    """Check one or more mint addresses."""
    settings = ctx.config
    if endpoint:
        settings['network']['rpc_endpoint'] = endpoint
    if concurrency:
        settings["filters"]["concurrency"] = concurrency

    try:
        rpc_config = build_rpc_config(settings)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--endpoint')

    manager = ConnectionManager(RPCConnection.factory(rpc_config), **build_connection_settings(settings))

    try:
        policy = PolicyManager.from_config(settings, manager)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    with manager:
        report = policy.execute(list(mints), fast_mode=fast, acceptance_threshold=threshold)

    _print_report(ctx, report)
    sys.exit(0 if report.overall_success else 1)


def _print_report(ctx: CLIContext, report: BatchReport):
    if ctx.output_format == "json":
        click.echo(report.to_json())
        return

    for item in report.items:
        status = click.style("PASS", fg="green") if item.success else click.style("FAIL", fg="red")
        click.echo(f"{status}  {item.identifier}  {item.verdict.message or 'OK'}")

    click.echo(
        f"\n{report.passed}/{report.total} passed, {report.failed} failed "
        f"in {report.duration_ms:.2f}ms - "
        f"{'batch accepted' if report.overall_success else 'batch rejected'}"
    )


@cli.group()
@pass_context
def config(ctx: CLIContext):
    """Configuration management commands."""
    ctx.logger.debug("Config command group invoked")


@config.command('show')
@click.option('--key', '-k', default=None, help='Dot-separated key to show')
@pass_context
def config_show(ctx: CLIContext, key: Optional[str]):
    """Show the effective configuration."""
    manager = ctx.get_config_manager()
    value = manager.get(key) if key else manager.load()

    if ctx.output_format == "json" or isinstance(value, dict):
        click.echo(json.dumps(value, indent=2, default=str))
    else:
        click.echo(str(value))

    ctx.logger.info(f"Configuration sources: {', '.join(manager.get_sources())}")


@config.command('validate')
@pass_context
def config_validate(ctx: CLIContext):
    """Validate the effective configuration."""
    errors = ctx.get_config_manager().validate()

    if errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    click.echo("Configuration is valid.")


@config.command('env')
@pass_context
def config_env(ctx: CLIContext):
    """Print the effective configuration as environment variables."""
    for name, value in sorted(ctx.get_config_manager().export_environment().items()):
        click.echo(f"{name}={value}")


def main():
    cli(obj=CLIContext())


if __name__ == '__main__':
    main()
