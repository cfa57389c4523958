"""
The recipe lifecycle engine.

Pipeline state lives on disk, relative to the recipe directory (the current
working directory):

    stage       present when complete                    undone by
    ---------   --------------------------------------   ---------
    fetch       source/ (and source.tar for archives)    unfetch
    prepare     build/ (created by the recipe itself)    unprepare
    stage       stage/                                   unstage
    tar         stage/pkg/<name>.toml, stage.tar         untar
"""

from collections.abc import Callable, Sequence
from pathlib import Path
import shutil
from typing import Self

from pyvider.telemetry import logger

from .config import CookConfig, host_triple
from .exceptions import CookError, CookIOError, MissingVariableError
from .hooks import capture_hook, invoke_hook
from .models import ArchiveSource, GitSource, PackageMeta
from .packaging.archive import Archiver, TarArchiver, archive_path, signature_path
from .packaging.download import download
from .script import ScriptEnvironment, ShellEnvironment
from .source import resolve_source
from .tools import run_tool

SOURCE_DIR = Path("source")
SOURCE_ARCHIVE = Path("source.tar")
BUILD_DIR = Path("build")
STAGE_DIR = Path("stage")
MANIFEST_DIR = STAGE_DIR / "pkg"


def _remove(path: Path) -> None:
    """Removes a file or directory tree; an absent path is not an error."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        logger.debug("Nothing to remove", path=str(path))
        return
    except OSError as e:
        raise CookIOError(f"Failed to remove '{path}'", e) from e
    logger.debug("Removed", path=str(path))


def _make_dir(path: Path, parents: bool = False, exist_ok: bool = False) -> None:
    try:
        path.mkdir(parents=parents, exist_ok=exist_ok)
    except OSError as e:
        raise CookIOError(f"Failed to create directory '{path}'", e) from e


class Recipe:
    def __init__(
        self,
        target: str,
        recipe_path: Path,
        templates: Sequence[Path] = (),
        debug: bool = False,
        env: ScriptEnvironment | None = None,
        archiver: Archiver | None = None,
        downloader: Callable[[str, Path], None] = download,
    ) -> None:
        self.target = target
        self.debug = debug
        self.env = env if env is not None else ShellEnvironment()
        self.archiver = archiver if archiver is not None else TarArchiver()
        self.downloader = downloader

        self.env.set_variable("DEBUG", "1" if debug else "0")
        self.env.set_variable("TARGET", target)
        self.env.set_variable("HOST", host_triple())
        self.env.set_variable("ARCH", target.split("-", 1)[0])
        for template in templates:
            self.env.load_script(template)
        self.env.load_script(recipe_path)

    @classmethod
    def from_config(cls, config: CookConfig, env: ScriptEnvironment | None = None) -> Self:
        return cls(
            target=config.target,
            recipe_path=config.recipe,
            templates=config.templates,
            debug=config.debug,
            env=env,
            archiver=TarArchiver(config.private_key_path),
        )

    # Source

    def fetch(self) -> None:
        source = resolve_source(self.env)
        logger.info("Fetching source", source=source.url)
        if isinstance(source, GitSource):
            self._fetch_git(source)
        else:
            self._fetch_archive(source)

    def _fetch_git(self, source: GitSource) -> None:
        if not SOURCE_DIR.exists():
            command = ["git", "clone", "--recursive"]
            if source.branch:
                command.extend(["--branch", source.branch])
            command.extend([source.url, str(SOURCE_DIR)])
            run_tool(command)
            return

        logger.debug("Source already cloned, updating in place")
        run_tool(["git", "remote", "set-url", "origin", source.url], cwd=SOURCE_DIR)
        run_tool(["git", "fetch", "origin"], cwd=SOURCE_DIR)
        run_tool(["git", "submodule", "sync", "--recursive"], cwd=SOURCE_DIR)
        run_tool(
            ["git", "submodule", "update", "--init", "--recursive"], cwd=SOURCE_DIR
        )

    def _fetch_archive(self, source: ArchiveSource) -> None:
        if SOURCE_ARCHIVE.exists():
            logger.debug("Source archive already downloaded", path=str(SOURCE_ARCHIVE))
        else:
            self.downloader(source.url, SOURCE_ARCHIVE)

        if SOURCE_DIR.exists():
            logger.debug("Source already extracted", path=str(SOURCE_DIR))
            return

        _make_dir(SOURCE_DIR)
        try:
            run_tool(
                [
                    "tar",
                    "--extract",
                    "--file",
                    str(SOURCE_ARCHIVE),
                    "--directory",
                    str(SOURCE_DIR),
                    "--strip-components",
                    "1",
                ]
            )
        except CookError:
            # A half-extracted tree must not pass for a fetched one.
            _remove(SOURCE_DIR)
            raise

    def unfetch(self) -> None:
        _remove(SOURCE_DIR)
        _remove(SOURCE_ARCHIVE)

    def unprepare(self) -> None:
        _remove(BUILD_DIR)

    # Hooks run inside the source tree

    def build(self) -> None:
        invoke_hook(self.env, "build", cwd=SOURCE_DIR)

    def test(self) -> None:
        invoke_hook(self.env, "test", cwd=SOURCE_DIR)

    def clean(self) -> None:
        invoke_hook(self.env, "clean", cwd=SOURCE_DIR)

    # Staging

    def stage(self) -> None:
        self.unstage()
        _make_dir(STAGE_DIR)
        stage_path = STAGE_DIR.resolve()
        invoke_hook(self.env, "stage", [str(stage_path)])

    def unstage(self) -> None:
        _remove(STAGE_DIR)

    # Packaging

    def version(self) -> str:
        output = capture_hook(self.env, "version")
        if output is None:
            return ""
        return output[:-1] if output.endswith("\n") else output

    def meta(self) -> PackageMeta:
        name = self.env.get_variable("name")
        if not name:
            raise MissingVariableError("name")
        version = self.version()
        if not version.strip():
            raise MissingVariableError("version")
        depends = self.env.get_array("depends") or []
        return PackageMeta(
            name=name, version=version, target=self.target, depends=depends
        )

    def tar(self) -> Path:
        meta = self.meta()
        _make_dir(MANIFEST_DIR, parents=True, exist_ok=True)
        manifest_path = MANIFEST_DIR / meta.manifest_name
        try:
            manifest_path.write_text(meta.to_toml())
        except OSError as e:
            raise CookIOError(f"Failed to write manifest '{manifest_path}'", e) from e
        logger.info("Wrote package manifest", path=str(manifest_path))
        return self.archiver.create_archive(STAGE_DIR, self.target)

    def untar(self) -> None:
        _remove(archive_path(STAGE_DIR))
        _remove(signature_path(STAGE_DIR))

    # Composite pipelines

    def dist(self) -> Path:
        self.fetch()
        self.build()
        self.test()
        self.stage()
        return self.tar()

    def distclean(self) -> None:
        self.untar()
        self.unstage()
        self.unprepare()
        self.unfetch()
