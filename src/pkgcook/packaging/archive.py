"""Turns a staging tree into a distributable, optionally signed, tar archive."""

import hashlib
from pathlib import Path
import tarfile
from typing import Protocol

from pyvider.telemetry import logger

from ..crypto import (
    load_private_key,
    load_public_key,
    sign_payload_hash,
    verify_payload_hash,
)
from ..exceptions import CookIOError, SigningError

SIGNATURE_SUFFIX = ".sig"


class Archiver(Protocol):
    def create_archive(self, source_directory: Path, target: str) -> Path: ...


def archive_path(source_directory: Path) -> Path:
    return source_directory.with_name(source_directory.name + ".tar")


def signature_path(source_directory: Path) -> Path:
    archive = archive_path(source_directory)
    return archive.with_name(archive.name + SIGNATURE_SUFFIX)


def _sha256(path: Path) -> bytes:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for block in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(block)
    return digest.digest()


class TarArchiver:
    """Writes `<dir>.tar` and, with a signing key, `<dir>.tar.sig`."""

    def __init__(self, private_key_path: Path | None = None) -> None:
        self.private_key_path = private_key_path

    def create_archive(self, source_directory: Path, target: str) -> Path:
        output = archive_path(source_directory)
        logger.info(
            "Creating package archive",
            source=str(source_directory),
            archive=str(output),
            target=target,
        )
        try:
            with tarfile.open(
                output,
                "w",
                format=tarfile.PAX_FORMAT,
                pax_headers={"COOK.target": target},
            ) as tar:
                for entry in sorted(source_directory.iterdir()):
                    tar.add(entry, arcname=entry.name)
        except OSError as e:
            output.unlink(missing_ok=True)
            raise CookIOError(f"Failed to create archive {output}", e) from e

        if self.private_key_path is not None:
            self._sign(source_directory, output)
        return output

    def _sign(self, source_directory: Path, output: Path) -> None:
        try:
            private_key = load_private_key(self.private_key_path)
            signature = sign_payload_hash(_sha256(output), private_key)
            signature_path(source_directory).write_bytes(signature)
        except (OSError, SigningError) as e:
            raise CookIOError(f"Failed to sign archive {output}", e) from e
        logger.info("Signed package archive", archive=str(output))


def verify_archive(archive: Path, public_key_path: Path) -> bool:
    """
    Checks `archive` against the `.sig` file beside it. Returns False for a
    signature that does not match; unreadable files raise `CookIOError`.
    """
    signature_file = archive.with_name(archive.name + SIGNATURE_SUFFIX)
    try:
        public_key = load_public_key(public_key_path)
        signature = signature_file.read_bytes()
        payload_hash = _sha256(archive)
    except (OSError, SigningError) as e:
        raise CookIOError(f"Failed to verify archive {archive}", e) from e

    valid = verify_payload_hash(payload_hash, signature, public_key)
    logger.info("Verified package archive", archive=str(archive), valid=valid)
    return valid
