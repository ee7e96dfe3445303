"""
Click command definitions for the zoombg CLI.

This module contains the Click command group and all CLI commands
(generate, config, services).
"""

import click

from zoombg import (
    KNOWN_SERVICES,
    BrowserPreview,
    CancellationError,
    Config,
    ConfigStore,
    GenerationWorkflow,
    ResourceScope,
    RetryPolicy,
    WorkflowOptions,
    WorkflowState,
    ZoomHost,
    __version__,
    build_registry,
)
from zoombg.cli import progress
from zoombg.cli.handlers import (
    cancel_check,
    cancellable,
    install_signal_handlers,
    reset_cancellation,
    restore_signal_handlers,
    run_with_error_handling,
)
from zoombg.logging_config import configure_logging, enable_api_debug, get_verbosity_from_env


@click.group(
    help=f"""Generate AI virtual backgrounds for Zoom.

\b
Version: {__version__}
Services: {", ".join(KNOWN_SERVICES)} (huggingface works without an API key)
"""
)
@click.version_option(version=__version__, package_name="zoombg")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.argument("prompt", required=False)
@click.option(
    "--service",
    "-s",
    help="Image service to use (default: last used, then huggingface).",
)
@click.option("--dry-run", is_flag=True, help="Generate and preview, but write nothing to disk.")
@click.option(
    "--no-interactive",
    "no_interactive",
    is_flag=True,
    help="Do not prompt or preview; requires PROMPT and approves the first image.",
)
@click.option("--name", help="File name for the saved background (extension added).")
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Minimize progress messages; only print result path or errors.",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase log detail (-v: prompts, -vv: debug).",
)
@click.option(
    "--debug-api",
    is_flag=True,
    help="Log provider request/response summaries; unexpected errors keep their traceback.",
)
def generate(
    prompt: str | None,
    service: str | None,
    dry_run: bool,
    no_interactive: bool,
    name: str | None,
    quiet: bool,
    verbose: int,
    debug_api: bool,
) -> None:
    """Generate a background from PROMPT, preview it, and save it into Zoom."""
    # Reset cancel event for this run (in case CLI is invoked again in same process)
    reset_cancellation()
    configure_logging(verbose_level=verbose or get_verbosity_from_env(), quiet=quiet)
    interactive = not no_interactive

    def do_generate() -> None:
        config = Config.from_env()
        if debug_api:
            config.debug_api = True
        config.validate()
        if config.debug_api:
            enable_api_debug()

        if dry_run and not quiet:
            progress.print_info("Dry run: the image will not be saved.")

        with ResourceScope() as scope:
            workflow = GenerationWorkflow(
                store=ConfigStore(config.config_path),
                host=ZoomHost.from_config(config),
                retry_policy=RetryPolicy.from_config(config, scope=scope),
                preview=BrowserPreview(scope) if interactive else None,
                ui=progress.ConsoleUI(quiet=quiet, cancellable=cancellable),
                registry=build_registry(config),
                cancel_check=cancel_check,
            )
            outcome = workflow.run(
                WorkflowOptions(
                    initial_prompt=prompt,
                    service=service,
                    interactive=interactive,
                    dry_run=dry_run,
                    filename=name,
                )
            )

        if outcome.state is WorkflowState.ABORTED or outcome.save is None:
            raise CancellationError("Cancelled by user; nothing was saved.")

        save = outcome.save
        result = outcome.session.last_result
        if not quiet and result is not None:
            progress.print_success_result(
                save,
                generation_time=result.generation_time,
                image_size=result.size,
                regenerations=outcome.session.regenerations,
            )
        # Path to stdout for scriptability
        click.echo(str(save.path))

    previous = install_signal_handlers()
    try:
        run_with_error_handling(do_generate, quiet=quiet, debug=debug_api)
    finally:
        restore_signal_handlers(previous)


@cli.group("config")
def config_group() -> None:
    """Manage API keys and stored preferences."""


@config_group.command("set-key")
@click.argument("service")
@click.argument("key")
def set_key(service: str, key: str) -> None:
    """Store the API KEY for SERVICE (file is readable only by you)."""

    def do_set() -> None:
        store = ConfigStore(Config.from_env().config_path)
        store.set_api_key(service, key)
        progress.print_success(f"Saved {service.strip().lower()} API key to {store.path}")

    run_with_error_handling(do_set)


@config_group.command("show")
def show() -> None:
    """Show stored settings with API keys masked."""

    def do_show() -> None:
        store = ConfigStore(Config.from_env().config_path)
        for field_name, value in store.masked().items():
            click.echo(f"{field_name}: {value or '(not set)'}")

    run_with_error_handling(do_show)


@config_group.command("path")
def path() -> None:
    """Print the location of the configuration file."""
    click.echo(str(Config.from_env().config_path))


@cli.command()
def services() -> None:
    """List available image services."""

    def do_list() -> None:
        config = Config.from_env()
        store = ConfigStore(config.config_path)
        registry = build_registry(config)
        current = store.get_last_used_service()
        for service_id in registry.service_ids():
            profile = registry.get(service_id).profile
            key = "API key required" if profile.requires_api_key else "no API key needed"
            configured = " (key set)" if store.get_api_key(service_id) else ""
            marker = "*" if service_id == current else " "
            click.echo(
                f"{marker} {service_id:<12} {profile.display_name:<12} "
                f"{key}{configured}, timeout {profile.timeout_seconds:g}s"
            )

    run_with_error_handling(do_list)


def main() -> None:
    """Entry point for the zoombg console script."""
    cli()
