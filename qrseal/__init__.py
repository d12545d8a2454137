"""
qrseal: bundle files into a ZIP archive hidden behind a cover image.

Features:

- The output file is both a viewable image (read from offset 0) and a ZIP
  archive (found through its trailing central directory).
- Optional WinZip AES-256 entry encryption via pyzipper.
- Optional QR-code stamp of the password onto the cover image (error
  correction level H), placed at a corner or the center.
- Entry timestamps follow the source files' modification times.

Importable programmatic API is available via qrseal.overlay, qrseal.writer
and qrseal.cli.cmd_merge, which take normal parameters.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "overlay",
    "pathutil",
    "walk",
    "writer",
]
