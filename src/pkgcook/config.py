"""Loading of the optional `cook.toml` configuration file."""

from pathlib import Path
import platform
import tomllib
from typing import Any

from attrs import define, field

from .exceptions import CookIOError

CONFIG_FILE_NAME = "cook.toml"
DEFAULT_RECIPE = "recipe.sh"


def host_triple() -> str:
    """Returns the triple of the machine running the build, e.g. `x86_64-unknown-linux`."""
    machine = platform.machine().lower() or "unknown"
    system = platform.system().lower() or "unknown"
    return f"{machine}-unknown-{system}"


@define(frozen=True, slots=True)
class CookConfig:
    target: str = field(factory=host_triple)
    recipe: Path = field(default=Path(DEFAULT_RECIPE), converter=Path)
    templates: tuple[Path, ...] = field(
        default=(), converter=lambda paths: tuple(Path(p) for p in paths)
    )
    debug: bool = False
    private_key_path: Path | None = field(
        default=None, converter=lambda p: None if p is None else Path(p)
    )
    public_key_path: Path | None = field(
        default=None, converter=lambda p: None if p is None else Path(p)
    )


def load_config(path: Path) -> CookConfig:
    """
    Reads `path` if it exists; a missing file yields the defaults. Relative
    paths in the file are resolved against the file's directory.
    """
    if not path.exists():
        return CookConfig()

    try:
        with path.open("rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise CookIOError(f"Cannot read configuration {path}", e) from e

    base = path.parent
    cook_conf = data.get("cook", {})
    signing_conf = data.get("signing", {})

    kwargs: dict[str, Any] = {}
    if "target" in cook_conf:
        kwargs["target"] = cook_conf["target"]
    if "recipe" in cook_conf:
        kwargs["recipe"] = base / cook_conf["recipe"]
    if "templates" in cook_conf:
        kwargs["templates"] = [base / t for t in cook_conf["templates"]]
    if "debug" in cook_conf:
        kwargs["debug"] = bool(cook_conf["debug"])
    if "private_key_path" in signing_conf:
        kwargs["private_key_path"] = base / signing_conf["private_key_path"]
    if "public_key_path" in signing_conf:
        kwargs["public_key_path"] = base / signing_conf["public_key_path"]
    return CookConfig(**kwargs)
