"""Pytest fixtures for the entire pkgcook test suite."""

from collections.abc import Callable, Sequence
from pathlib import Path
import shutil
from typing import Any

from cryptography.hazmat.primitives.asymmetric import rsa
import pytest

from pkgcook.crypto import generate_keys
from pkgcook.recipe import Recipe

HookResult = int | tuple[int, str]


class FakeEnvironment:
    """
    A `ScriptEnvironment` that records every call. Hooks are Python callables
    receiving the argument list (argument zero included) and returning an exit
    code, or an `(exit code, stdout)` pair.
    """

    def __init__(
        self,
        variables: dict[str, str] | None = None,
        arrays: dict[str, list[str]] | None = None,
        functions: dict[str, Callable[[list[str]], HookResult]] | None = None,
    ) -> None:
        self.variables = dict(variables or {})
        self.arrays = dict(arrays or {})
        self.functions = dict(functions or {})
        self.assignments: list[tuple[str, str]] = []
        self.loaded: list[Path] = []
        self.calls: list[tuple[str, list[str], Path]] = []

    def set_variable(self, name: str, value: str) -> None:
        self.assignments.append((name, value))
        self.variables.setdefault(name, value)

    def get_variable(self, name: str) -> str | None:
        return self.variables.get(name)

    def get_array(self, name: str) -> list[str] | None:
        return self.arrays.get(name)

    def has_function(self, name: str) -> bool:
        return name in self.functions

    def _call(self, name: str, args: Sequence[str]) -> tuple[int, str]:
        self.calls.append((name, list(args), Path.cwd()))
        result = self.functions[name](list(args))
        if isinstance(result, tuple):
            return result
        return result, ""

    def execute_function(self, name: str, args: Sequence[str]) -> int:
        return self._call(name, args)[0]

    def capture_function(self, name: str, args: Sequence[str]) -> tuple[int, str]:
        return self._call(name, args)

    def load_script(self, path: Path) -> None:
        self.loaded.append(Path(path))

    def called(self) -> list[str]:
        return [name for name, _, _ in self.calls]


class RecordingArchiver:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, str, list[str]]] = []

    def create_archive(self, source_directory: Path, target: str) -> Path:
        files = sorted(
            str(p.relative_to(source_directory))
            for p in source_directory.rglob("*")
            if p.is_file()
        )
        self.calls.append((source_directory, target, files))
        return source_directory.with_name(source_directory.name + ".tar")


@pytest.fixture
def recipe_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A recipe directory that is also the current working directory."""
    directory = tmp_path / "recipe"
    directory.mkdir()
    (directory / "recipe.sh").write_text("name=placeholder\n")
    monkeypatch.chdir(directory)
    return directory


@pytest.fixture
def archiver() -> RecordingArchiver:
    return RecordingArchiver()


@pytest.fixture
def make_recipe(
    recipe_dir: Path, archiver: RecordingArchiver
) -> Callable[..., Recipe]:
    """A factory fixture building a Recipe around a FakeEnvironment."""

    def _make(env: FakeEnvironment, **kwargs: Any) -> Recipe:
        kwargs.setdefault("archiver", archiver)
        kwargs.setdefault("target", "x86_64-unknown-redox")
        return Recipe(recipe_path=recipe_dir / "recipe.sh", env=env, **kwargs)

    return _make


requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")
requires_tar = pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")


@pytest.fixture(scope="session")
def key_pair() -> tuple[rsa.RSAPrivateKey, rsa.RSAPublicKey]:
    """Generates a single RSA key pair for the entire test session."""
    return generate_keys()

