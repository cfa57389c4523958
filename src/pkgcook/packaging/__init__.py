"""
The `packaging` sub-package contains the collaborators that move bytes in and
out of a recipe directory.

This includes:
- Downloading source archives.
- Turning a staging tree into a (optionally signed) distributable archive.
"""
