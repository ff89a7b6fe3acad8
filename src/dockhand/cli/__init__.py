import click

from dockhand.log import configure_logging

from . import _common, images


@click.group()
@click.version_option(
    version=_common.VERSION, package_name="dockhand", prog_name="dockhand"
)
@click.option(
    "--debug",
    is_flag=True,
    envvar="DOCKHAND_DEBUG",
    help="Show debug logs, including engine progress and state changes",
)
@click.option(
    "--log-json",
    is_flag=True,
    envvar="DOCKHAND_LOG_JSON",
    help="Emit logs as JSON",
)
@click.option(
    "--engine-url",
    "engine_url",
    envvar="DOCKHAND_ENGINE_URL",
    help="The container engine API URL (defaults to DOCKER_HOST)",
)
@click.option(
    "--engine-timeout",
    "engine_timeout",
    type=click.IntRange(min=1),
    envvar="DOCKHAND_ENGINE_TIMEOUT",
    help="Socket timeout in seconds for engine requests",
)
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    log_json: bool,
    engine_url: str | None,
    engine_timeout: int | None,
):
    """
    Pull and build container images.
    """
    configure_logging(level="debug" if debug else "warning", json_output=log_json)
    ctx.obj = _common.Context(
        engine_url=engine_url,
        engine_timeout=engine_timeout,
    )


cli.add_command(images.pull)
cli.add_command(images.build)
