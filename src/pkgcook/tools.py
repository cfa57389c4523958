"""Runs external tools (git, tar) as blocking child processes."""

from collections.abc import Sequence
from pathlib import Path
import subprocess

from pyvider.telemetry import logger

from .exceptions import CookIOError, NonZeroExitError


def run_tool(command: Sequence[str], cwd: Path | str | None = None) -> str:
    logger.info(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(
            list(command), capture_output=True, text=True, cwd=cwd, check=False
        )
    except OSError as e:
        raise CookIOError(f"Failed to run '{command[0]}'", e) from e

    if result.returncode != 0:
        detail = (
            f"  Command: {' '.join(command)}\n"
            f"  Stdout:\n{result.stdout.strip()}\n"
            f"  Stderr:\n{result.stderr.strip()}"
        )
        raise NonZeroExitError(command[0], result.returncode, detail)
    if result.stderr:
        logger.debug("Command stderr", output=result.stderr.strip())
    return result.stdout.strip()
