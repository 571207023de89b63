"""CLI entrypoint for task-invoker."""

from __future__ import annotations

import logging
from collections.abc import Callable

import rich_click as click

from task_invoker import __version__
from task_invoker.config import Settings
from task_invoker.controllers import (
    CommandResult,
    ComposeCommand,
    DescribeCommand,
    DispatchCommand,
    InvokeCommand,
    InvokerCliController,
)

click.rich_click.USE_MARKDOWN = True
INVOKER_CONTROLLER = InvokerCliController()


@click.group()
@click.version_option(version=__version__, prog_name="task-invoker")
@click.option(
    "--log-level",
    type=click.Choice(["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], case_sensitive=False),
    default=None,
    help="Logging level. Defaults to TASK_INVOKER_LOG_LEVEL or WARNING.",
)
@click.pass_context
def task_invoker(ctx: click.Context, log_level: str | None) -> None:
    """Argument marshaling and dispatch engine CLI."""

    settings = Settings.from_env()
    if log_level is not None:
        settings.log_level = log_level.upper()
    try:
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=settings.log_level_number,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


@task_invoker.command("compose")
@click.argument("name")
@click.argument("args", nargs=-1)
def compose(name: str, args: tuple[str, ...]) -> None:
    """Compose a task message. Each ARG is one JSON document."""

    _emit_result(_run(lambda: INVOKER_CONTROLLER.compose(ComposeCommand(name=name, raw_args=args))))


@task_invoker.command("invoke")
@click.argument("target")
@click.argument("args", nargs=-1)
def invoke(target: str, args: tuple[str, ...]) -> None:
    """Invoke `module:function` with JSON ARGS and print its results."""

    _emit_result(
        _run(lambda: INVOKER_CONTROLLER.invoke(InvokeCommand(target=target, raw_args=args))),
    )


@task_invoker.command("describe")
@click.argument("target")
def describe(target: str) -> None:
    """Print the parameter and result types of `module:function`."""

    _emit_result(_run(lambda: INVOKER_CONTROLLER.describe(DescribeCommand(target=target))))


@task_invoker.command("dispatch")
@click.argument("registry")
@click.argument("name")
@click.argument("args", nargs=-1)
@click.pass_obj
def dispatch(settings: Settings, registry: str, name: str, args: tuple[str, ...]) -> None:
    """Submit one task through an in-memory queue to a `module:registry` worker."""

    _emit_result(
        _run(
            lambda: INVOKER_CONTROLLER.dispatch(
                DispatchCommand(registry=registry, name=name, raw_args=args),
                settings,
            ),
        ),
    )


def _run(action: Callable[[], CommandResult]) -> CommandResult:
    try:
        return action()
    except ValueError as error:
        raise click.ClickException(str(error)) from error


def _emit_result(result: CommandResult) -> None:
    for line in result.lines:
        click.echo(line)
    if not result.success:
        raise click.ClickException("Command failed.")


if __name__ == "__main__":  # pragma: no cover
    task_invoker()
