import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from notice_mcp import __version__
from notice_mcp.app import build_application, run_stdio_server, setup_logging
from notice_mcp.exceptions import ValidationError
from notice_mcp.settings import Settings

console = Console()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="notice-mcp")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Backend configuration file (TOML)")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx, config_path, log_level, log_json):
    """
    notice-mcp - notification dispatch server

    Without a command, serves JSON-RPC on stdin/stdout.
    """
    overrides = {}
    if config_path:
        overrides["CONFIG_PATH"] = config_path
    if log_level:
        overrides["LOG_LEVEL"] = log_level.upper()
    if log_json:
        overrides["LOG_JSON"] = True

    settings = Settings().model_copy(update=overrides)
    setup_logging(settings)
    ctx.obj = settings

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@cli.command()
@click.pass_obj
def serve(settings):
    """Serve JSON-RPC requests on stdin/stdout"""
    try:
        asyncio.run(run_stdio_server(settings))
    except KeyboardInterrupt:
        pass


@cli.command()
@click.pass_obj
def backends(settings):
    """List registered backends"""
    app = build_application(settings)

    table = Table(title="Notification Backends")
    table.add_column("Backend", style="cyan")
    table.add_column("Enabled")
    table.add_column("Required config")
    table.add_column("Description")

    for info in app.server.describe_backends():
        enabled = "[green]yes[/green]" if info["enabled"] else "[dim]no[/dim]"
        table.add_row(
            info["name"],
            enabled,
            ", ".join(info["requiredConfig"]) or "-",
            info["description"],
        )

    console.print(table)


@cli.command()
@click.option("--title", "-t", required=True, help="Notification title")
@click.option("--message", "-m", required=True, help="Notification body")
@click.option("--backend", "-b", help="Deliver only through this backend")
@click.option("--config-json", help="Per-call backend options as a JSON object")
@click.option("--json", "as_json", is_flag=True, help="Print the raw dispatch result")
@click.pass_obj
def send(settings, title, message, backend, config_json, as_json):
    """Send one notification and print each backend's outcome"""
    arguments = {"title": title, "message": message}
    if backend:
        arguments["backend"] = backend
    if config_json:
        try:
            overrides = json.loads(config_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--config-json")
        if not isinstance(overrides, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--config-json")
        arguments["config"] = overrides

    app = build_application(settings)
    try:
        result = asyncio.run(app.dispatcher.dispatch(arguments))
    except ValidationError as e:
        raise click.ClickException(e.message)

    if as_json:
        click.echo(json.dumps(result.to_wire(), indent=2, ensure_ascii=False))
    else:
        if not result.results:
            console.print("[yellow]No backends enabled[/yellow]")
        table = Table(title="Delivery Results")
        table.add_column("Backend", style="cyan")
        table.add_column("Status")
        table.add_column("Detail")
        for outcome in result.results:
            status = "[green]delivered[/green]" if outcome.success else "[red]failed[/red]"
            table.add_row(outcome.backend, status, outcome.message_id or outcome.error or "")
        console.print(table)

    if not result.success:
        ctx = click.get_current_context()
        ctx.exit(1)


if __name__ == "__main__":
    cli()
