"""
The scripting environment recipes are written for.

The core only depends on the `ScriptEnvironment` protocol. `ShellEnvironment`
implements it on top of `bash`: variable assignments and loaded scripts are
recorded as an ordered prelude, and every query or function call replays that
prelude in a fresh `bash -c` child process. Each script is sourced from the
directory it was loaded in, whatever directory the call itself runs in.
"""

from collections.abc import Sequence
import os
from pathlib import Path
import re
import shlex
import shutil
import subprocess
from typing import Protocol

from pyvider.telemetry import logger

from .exceptions import ScriptingError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Exit status reserved for "not defined" answers from query snippets.
_UNDEFINED_STATUS = 64

_LOADED_MARKER = b"loaded"


class ScriptEnvironment(Protocol):
    def set_variable(self, name: str, value: str) -> None: ...

    def get_variable(self, name: str) -> str | None: ...

    def get_array(self, name: str) -> list[str] | None: ...

    def has_function(self, name: str) -> bool: ...

    def execute_function(self, name: str, args: Sequence[str]) -> int: ...

    def capture_function(self, name: str, args: Sequence[str]) -> tuple[int, str]: ...

    def load_script(self, path: Path) -> None: ...


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ScriptingError(f"'{name}' is not a valid shell identifier.")
    return name


def _decode(data: bytes | None) -> str:
    # Decoded by hand: universal newlines would turn "\r\n" into "\n".
    return (data or b"").decode("utf-8", errors="replace")


def _source_statement(script_path: Path) -> str:
    # Top-level output of a sourced script goes to stderr so it never
    # mixes with captured hook output.
    return "\n".join(
        [
            "__cook_cwd=$PWD",
            f"builtin cd {shlex.quote(str(script_path.parent))}",
            f"source {shlex.quote(str(script_path))} >&2",
            'builtin cd "$__cook_cwd"',
            "unset __cook_cwd",
        ]
    )


class ShellEnvironment:
    """A `ScriptEnvironment` backed by bash, with `set -e` enabled."""

    def __init__(self, shell: str = "bash") -> None:
        shell_path = shutil.which(shell)
        if shell_path is None:
            raise ScriptingError(f"Shell '{shell}' not found in PATH.")
        self.shell = shell_path
        self._prelude: list[str] = ["set -e"]

    def _script(self, body: str, marker_fd: int) -> str:
        # The marker is written once the prelude has run, so a failure while
        # replaying it is told apart from a failing function.
        return "\n".join(
            [
                *self._prelude,
                f"printf {_LOADED_MARKER.decode()} >&{marker_fd}",
                f"exec {marker_fd}>&-",
                body,
            ]
        ) + "\n"

    def _run(
        self,
        body: str,
        argv: Sequence[str] = ("bash",),
        capture_stdout: bool = False,
        capture_stderr: bool = False,
    ) -> subprocess.CompletedProcess[bytes]:
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd, "rb") as marker:
            try:
                command = [self.shell, "-c", self._script(body, write_fd), *argv]
                result = subprocess.run(
                    command,
                    stdout=subprocess.PIPE if capture_stdout else None,
                    stderr=subprocess.PIPE if capture_stderr else None,
                    pass_fds=(write_fd,),
                    check=False,
                )
            except OSError as e:
                raise ScriptingError(f"Failed to start {self.shell}: {e}") from e
            finally:
                os.close(write_fd)
            loaded = marker.read() == _LOADED_MARKER

        if not loaded:
            detail = _decode(result.stderr).strip()
            raise ScriptingError(
                f"Recipe scripts failed to load (exit code {result.returncode})"
                + (f": {detail}" if detail else "")
            )
        return result

    def _query(self, body: str) -> str | None:
        result = self._run(body, capture_stdout=True, capture_stderr=True)
        if result.returncode == _UNDEFINED_STATUS:
            return None
        if result.returncode != 0:
            raise ScriptingError(
                f"Recipe environment failed with code {result.returncode}: "
                f"{_decode(result.stderr).strip()}"
            )
        return _decode(result.stdout)

    def set_variable(self, name: str, value: str) -> None:
        self._prelude.append(f"{_check_identifier(name)}={shlex.quote(value)}")

    def get_variable(self, name: str) -> str | None:
        name = _check_identifier(name)
        return self._query(
            f'if declare -p {name} >/dev/null 2>&1; then printf "%s" "${{{name}}}"; '
            f"else exit {_UNDEFINED_STATUS}; fi"
        )

    def get_array(self, name: str) -> list[str] | None:
        name = _check_identifier(name)
        output = self._query(
            f'if [[ "$(declare -p {name} 2>/dev/null)" == "declare -a"* ]]; then\n'
            f'  for item in "${{{name}[@]}}"; do printf "%s\\0" "$item"; done\n'
            f"elif declare -p {name} >/dev/null 2>&1; then\n"
            f'  for item in ${name}; do printf "%s\\0" "$item"; done\n'
            f"else exit {_UNDEFINED_STATUS}; fi"
        )
        if output is None:
            return None
        return output.split("\0")[:-1]

    def has_function(self, name: str) -> bool:
        if not _IDENTIFIER.match(name):
            return False
        body = f"declare -F {name} >/dev/null || exit {_UNDEFINED_STATUS}"
        return self._query(body) is not None

    def _call(self, name: str, args: Sequence[str]) -> str:
        _check_identifier(name)
        if not args:
            raise ScriptingError("Function arguments must include argument zero.")
        return f'{name} "$@"'

    def execute_function(self, name: str, args: Sequence[str]) -> int:
        return self._run(self._call(name, args), argv=args).returncode

    def capture_function(self, name: str, args: Sequence[str]) -> tuple[int, str]:
        result = self._run(self._call(name, args), argv=args, capture_stdout=True)
        return result.returncode, _decode(result.stdout)

    def load_script(self, path: Path) -> None:
        script_path = Path(path).resolve()
        if not script_path.is_file():
            raise ScriptingError(f"Script not found: {script_path}")

        try:
            syntax = subprocess.run(
                [self.shell, "-n", str(script_path)],
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise ScriptingError(f"Failed to start {self.shell}: {e}") from e
        if syntax.returncode != 0:
            raise ScriptingError(
                f"Syntax error in {script_path}: {_decode(syntax.stderr).strip()}"
            )

        self._prelude.append(_source_statement(script_path))
        try:
            self._run(":", capture_stdout=True, capture_stderr=True)
        except ScriptingError as e:
            self._prelude.pop()
            raise ScriptingError(f"Failed to load {script_path}: {e}") from e
        logger.debug("Loaded recipe script", path=str(script_path))
