from __future__ import annotations

import os
from typing import Iterable, List, Union

PathLike = Union[str, "os.PathLike[str]"]


def visit_dirs_or_file(path: PathLike, append_to: List[str]) -> None:
    """Append every regular file under ``path`` to ``append_to``.

    A regular file (symlinks followed) is appended as-is. Anything else is
    listed as a directory, so a missing path or an unreadable directory raises
    OSError and aborts the walk. Children that are neither files nor
    directories (broken symlinks, sockets, FIFOs) are skipped.

    Sibling order is whatever os.listdir returns. There is no cycle detection.
    """
    path = os.fspath(path)
    if os.path.isfile(path):
        append_to.append(path)
        return

    for name in os.listdir(path):
        child = os.path.join(path, name)
        if os.path.isdir(child):
            visit_dirs_or_file(child, append_to)
        elif os.path.isfile(child):
            append_to.append(child)


def collect_files(paths: Iterable[PathLike]) -> List[str]:
    """Walk each input path in order and return the flat file list."""
    files: List[str] = []
    for p in paths:
        visit_dirs_or_file(p, files)
    return files
