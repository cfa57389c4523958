"""Parsing of a recipe's `src` variable into a typed source."""

from .exceptions import MissingVariableError
from .models import ArchiveSource, GitSource, Source
from .script import ScriptEnvironment

GIT_SCHEME = "git://"
GIT_PREFIX = "git+"
BRANCH_MARKER = "#branch="


def _split_branch(reference: str) -> GitSource:
    url, _, branch = reference.partition(BRANCH_MARKER)
    return GitSource(url=url, branch=branch or None)


def parse_source(raw: str) -> Source:
    """
    Parses a source string. Never fails: anything that is not a git
    reference is treated as an archive URL.
    """
    if raw.startswith(GIT_SCHEME):
        return _split_branch(raw)
    if raw.startswith(GIT_PREFIX):
        return _split_branch(raw[len(GIT_PREFIX) :])
    return ArchiveSource(url=raw)


def resolve_source(env: ScriptEnvironment) -> Source:
    raw = env.get_variable("src")
    if raw is None:
        raise MissingVariableError("src")
    return parse_source(raw)
