"""The `cook` command-line interface."""

from collections.abc import Callable
import importlib.metadata
from pathlib import Path
from typing import Any

import attrs
import click

from .config import CONFIG_FILE_NAME, CookConfig, load_config
from .crypto import write_key_pair
from .exceptions import CookError, SigningError
from .packaging.archive import verify_archive
from .recipe import Recipe

try:
    __version__ = importlib.metadata.version("pkgcook")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(
    __version__,
    "-V",
    "--version",
    prog_name="cook",
    message="%(prog)s version %(version)s",
)
@click.option(
    "--config",
    "config_path",
    default=CONFIG_FILE_NAME,
    type=click.Path(dir_okay=False),
    help="Path to the cook.toml configuration file.",
)
@click.option("--target", help="Override the target triple.")
@click.option(
    "--recipe",
    type=click.Path(dir_okay=False),
    help="Override the recipe script path.",
)
@click.option("--debug/--no-debug", default=None, help="Set DEBUG=1 for the recipe.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str,
    target: str | None,
    recipe: str | None,
    debug: bool | None,
) -> None:
    """Builds a package from the recipe in the current directory."""
    try:
        config = load_config(Path(config_path))
    except CookError as e:
        raise click.UsageError(str(e)) from e

    overrides: dict[str, Any] = {}
    if target:
        overrides["target"] = target
    if recipe:
        overrides["recipe"] = recipe
    if debug is not None:
        overrides["debug"] = debug
    ctx.obj = attrs.evolve(config, **overrides)


def _load_recipe(config: CookConfig) -> Recipe:
    if not config.recipe.exists():
        raise click.UsageError(f"No recipe found at '{config.recipe}'.")
    try:
        return Recipe.from_config(config)
    except CookError as e:
        click.secho(f"❌ Loading recipe failed:\n{e}", fg="red", err=True)
        raise click.Abort() from e


def _run_stage(config: CookConfig, stage: str, action: Callable[[Recipe], Any]) -> Any:
    recipe = _load_recipe(config)
    try:
        return action(recipe)
    except CookError as e:
        click.secho(f"❌ {stage} failed:\n{e}", fg="red", err=True)
        raise click.Abort() from e


def _simple_stage(name: str, help_text: str) -> click.Command:
    @click.pass_obj
    def command(config: CookConfig) -> None:
        _run_stage(config, name, lambda recipe: getattr(recipe, name)())
        click.secho(f"✅ {name} complete.", fg="green")

    command.__doc__ = help_text
    return cli.command(name)(command)


_simple_stage("fetch", "Downloads or updates the recipe source into ./source.")
_simple_stage("unfetch", "Removes ./source and ./source.tar.")
_simple_stage("unprepare", "Removes ./build.")
_simple_stage("build", "Runs the recipe's build hook inside ./source.")
_simple_stage("test", "Runs the recipe's test hook inside ./source.")
_simple_stage("clean", "Runs the recipe's clean hook inside ./source.")
_simple_stage("stage", "Recreates ./stage and runs the recipe's stage hook.")
_simple_stage("unstage", "Removes ./stage.")
_simple_stage("untar", "Removes the package archive.")
_simple_stage("distclean", "Reverses every stage: untar, unstage, unprepare, unfetch.")


@cli.command("version")
@click.pass_obj
def version_command(config: CookConfig) -> None:
    """Prints the package version reported by the recipe."""
    click.echo(_run_stage(config, "version", lambda recipe: recipe.version()))


@cli.command("meta")
@click.pass_obj
def meta_command(config: CookConfig) -> None:
    """Prints the package manifest without writing it."""
    meta = _run_stage(config, "meta", lambda recipe: recipe.meta())
    click.echo(meta.to_toml(), nl=False)


@cli.command("tar")
@click.pass_obj
def tar_command(config: CookConfig) -> None:
    """Writes the manifest into ./stage and archives the staging tree."""
    archive = _run_stage(config, "tar", lambda recipe: recipe.tar())
    click.secho(f"✅ Package archive created: {archive}", fg="green")


@cli.command("dist")
@click.pass_obj
def dist_command(config: CookConfig) -> None:
    """Runs fetch, build, test, stage and tar in order."""
    click.echo("🚀 Cooking package...")
    archive = _run_stage(config, "dist", lambda recipe: recipe.dist())
    click.secho(f"✅ Package archive created: {archive}", fg="green")


@cli.command()
@click.option(
    "--out-dir",
    default="keys",
    type=click.Path(file_okay=False, writable=True, resolve_path=True),
    help="Directory to save the RSA key pair.",
)
def keygen(out_dir: str) -> None:
    """Generates an RSA key pair for signing package archives."""
    try:
        private_path, public_path = write_key_pair(Path(out_dir))
    except SigningError as e:
        click.secho(
            f"⚠️  Keys already exist. To regenerate, please delete them first.\n{e}",
            fg="yellow",
        )
        return
    except OSError as e:
        click.secho(f"❌ Keygen failed: {e}", fg="red", err=True)
        raise click.Abort() from e

    click.secho(
        f"✅ Signing key pair generated: {private_path}, {public_path}", fg="green"
    )


@cli.command("verify")
@click.argument(
    "archive",
    type=click.Path(exists=True, dir_okay=False),
    default="stage.tar",
    required=False,
)
@click.option(
    "--public-key-path", type=click.Path(exists=True, dir_okay=False)
)
@click.pass_obj
def verify_command(
    config: CookConfig, archive: str, public_key_path: str | None
) -> None:
    """Checks a package archive against the signature written beside it."""
    key_path = Path(public_key_path) if public_key_path else config.public_key_path
    if key_path is None:
        raise click.UsageError(
            "No public key given. Pass --public-key-path or set "
            "[signing] public_key_path in cook.toml."
        )

    click.echo(f"🔍 Verifying package '{archive}'...")
    try:
        valid = verify_archive(Path(archive), key_path)
    except CookError as e:
        click.secho(f"❌ Verification failed:\n{e}", fg="red", err=True)
        raise click.Abort() from e
    if not valid:
        click.secho(
            f"❌ Signature does not match {archive}.", fg="red", err=True
        )
        raise click.Abort()
    click.secho("✅ Signature verified.", fg="green")


main = cli
