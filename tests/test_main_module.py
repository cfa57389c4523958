"""Test for running the package as a module."""

import runpy
from unittest.mock import patch


def test_main_module_entrypoint() -> None:
    """Tests that `python -m pkgcook` calls the CLI."""
    with patch("pkgcook.cli.cli") as mock_cli:
        runpy.run_module("pkgcook", run_name="__main__")
    mock_cli.assert_called_once()
