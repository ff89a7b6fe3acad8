import asyncio
from pathlib import Path

import click

from dockhand.cli._common import Context, pass_context
from dockhand.images import (
    ImageBuilder,
    ImageDescriptor,
    ImagePuller,
    OperationOutcome,
    StreamEvent,
    describe_progress,
)

_timeout_option = click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    envvar="DOCKHAND_TIMEOUT",
    help="Give up if the operation has not finished after this many seconds",
)


@click.command(help="Pull an image from its registry")
@click.argument("name")
@_timeout_option
@pass_context
def pull(ctx: Context, name: str, timeout: float | None):
    puller = ImagePuller(ctx.engine)
    click.echo(f"Pulling {name}...")
    outcome = asyncio.run(
        puller.pull_async(
            ImageDescriptor(name=name),
            on_event=_print_stream_event,
            timeout=timeout,
        )
    )
    _finish(outcome, f"Pulled {name}")


@click.command(help="Build an image from a local build context directory")
@click.argument("name")
@click.argument(
    "source_path",
    type=click.Path(exists=True, file_okay=False, readable=True, path_type=Path),
)
@_timeout_option
@pass_context
def build(ctx: Context, name: str, source_path: Path, timeout: float | None):
    builder = ImageBuilder(ctx.engine)
    click.echo(f"Building {name} from {source_path}...")
    outcome = asyncio.run(
        builder.build_async(
            ImageDescriptor(name=name, source_path=source_path.resolve()),
            on_event=_print_stream_event,
            timeout=timeout,
        )
    )
    _finish(outcome, f"Built {name}")


def _print_stream_event(event: StreamEvent):
    if event.is_error:
        click.secho(str(event.payload), err=True, fg="red")
        return

    msg = describe_progress(event.payload)
    if msg:
        click.echo(msg)


def _finish(outcome: OperationOutcome, success_message: str):
    if not outcome.succeeded:
        raise click.ClickException(outcome.message)
    click.secho(success_message, fg="green")
