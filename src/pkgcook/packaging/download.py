"""Downloads source archives over HTTP(S)."""

import os
from pathlib import Path

import requests
from pyvider.telemetry import logger

from ..exceptions import CookIOError

CHUNK_SIZE = 1024 * 128


def download(url: str, destination: Path | str, timeout: float = 60.0) -> None:
    """
    Streams `url` into `destination`. The body is written to a temporary
    sibling and renamed on success, so an interrupted download never leaves a
    file that looks complete.
    """
    destination = Path(destination)
    partial = destination.with_name(destination.name + ".part")
    logger.info("Downloading source archive", url=url, destination=str(destination))
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with partial.open("wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        os.replace(partial, destination)
    except (requests.RequestException, OSError) as e:
        partial.unlink(missing_ok=True)
        raise CookIOError(f"Failed to download {url}", e) from e
