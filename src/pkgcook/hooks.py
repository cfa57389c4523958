"""Invocation of recipe-defined hook functions."""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
import os
from pathlib import Path

from pyvider.telemetry import logger

from .exceptions import CookIOError, NonZeroExitError
from .script import ScriptEnvironment


@contextmanager
def working_directory(path: Path | str | None) -> Iterator[None]:
    """
    Switches the process working directory for the duration of the block and
    restores the previous one on every exit path. `None` leaves it unchanged.
    """
    if path is None:
        yield
        return

    previous = os.getcwd()
    try:
        os.chdir(path)
    except OSError as e:
        raise CookIOError(f"Cannot enter directory '{path}'", e) from e
    try:
        yield
    finally:
        os.chdir(previous)


def invoke_hook(
    env: ScriptEnvironment,
    name: str,
    args: Sequence[str] = (),
    cwd: Path | str | None = None,
) -> None:
    """
    Calls hook `name` with `args`. A hook the recipe does not define is a
    no-op; a non-zero exit raises `NonZeroExitError`.
    """
    if not env.has_function(name):
        logger.debug("Recipe does not define hook, skipping", hook=name)
        return

    logger.info(f"Running hook '{name}'", args=list(args), cwd=str(cwd or "."))
    with working_directory(cwd):
        code = env.execute_function(name, [name, *args])
    if code != 0:
        raise NonZeroExitError(name, code)


def capture_hook(
    env: ScriptEnvironment,
    name: str,
    args: Sequence[str] = (),
    cwd: Path | str | None = None,
) -> str | None:
    """Like `invoke_hook`, but returns the hook's stdout (`None` if undefined)."""
    if not env.has_function(name):
        logger.debug("Recipe does not define hook, skipping", hook=name)
        return None

    with working_directory(cwd):
        code, output = env.capture_function(name, [name, *args])
    if code != 0:
        raise NonZeroExitError(name, code)
    return output
