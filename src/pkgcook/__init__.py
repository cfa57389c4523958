"""
This package contains the recipe lifecycle engine of `cook`: it fetches a
package's source, runs the recipe's build hooks, stages the result and packs
it into a distributable archive with a metadata manifest.
"""

from .exceptions import (
    CookError,
    CookIOError,
    MissingVariableError,
    NonZeroExitError,
    ScriptingError,
)
from .models import ArchiveSource, GitSource, PackageMeta
from .recipe import Recipe
from .source import parse_source

__all__ = [
    "ArchiveSource",
    "CookError",
    "CookIOError",
    "GitSource",
    "MissingVariableError",
    "NonZeroExitError",
    "PackageMeta",
    "Recipe",
    "ScriptingError",
    "parse_source",
]
