from __future__ import annotations

import calendar
import logging
import os
import time
from typing import BinaryIO, List, Optional, Tuple, Union

import humanize
import pyzipper

from .constants import AES_KEY_BITS, DOS_MAX_DATE_TIME, DOS_MIN_DATE_TIME
from .pathutil import arcname_for


logger = logging.getLogger(__name__)

DateTime = Tuple[int, int, int, int, int, int]

_DOS_MIN_TS = calendar.timegm(DOS_MIN_DATE_TIME + (0, 0, 0))
_DOS_MAX_TS = calendar.timegm(DOS_MAX_DATE_TIME + (0, 0, 0))


def zip_date_time(mtime: float) -> DateTime:
    """Convert a POSIX timestamp to a ZIP (DOS) date_time tuple in UTC.

    DOS dates cover 1980-01-01 through 2107-12-31; timestamps outside that
    range saturate to the nearest bound instead of failing.
    """
    if mtime < _DOS_MIN_TS:
        return DOS_MIN_DATE_TIME
    if mtime >= _DOS_MAX_TS:
        return DOS_MAX_DATE_TIME
    return tuple(time.gmtime(int(mtime))[:6])  # type: ignore[return-value]


class ArchiveWriter:
    """Streaming ZIP writer that appends entries to an already-open stream.

    Whatever the stream already holds (a cover image) stays in front of the
    first local header. Header offsets are absolute stream positions, so
    readers find the central directory by its trailing signature. Every
    entry is deflated; with a password it is also WinZip AES-256 encrypted.
    """
    def __init__(
        self,
        fileobj: BinaryIO,
        password: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.fileobj = fileobj
        self.password = password
        self.log = log or logger
        self.names: List[str] = []
        self._zf: Optional[pyzipper.AESZipFile] = None
        self._finalized = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.finalize()
        else:
            self.abandon()

    def open(self):
        self._zf = pyzipper.AESZipFile(
            self.fileobj,
            "w",
            compression=pyzipper.ZIP_DEFLATED,
            encryption=pyzipper.WZ_AES if self.password else None,
        )
        if self.password:
            self._zf.setpassword(self.password.encode("utf-8"))
            self._zf.setencryption(pyzipper.WZ_AES, nbits=AES_KEY_BITS)

    def add_file(self, fs_path: Union[str, os.PathLike], arc_path: Optional[str] = None) -> int:
        """Store one file and return its uncompressed size.

        The archive name defaults to ``fs_path`` as given (made relative and
        forward-slashed); the entry carries the file's modification time.
        """
        if self._zf is None or self._finalized:
            raise RuntimeError("ArchiveWriter is not open")
        arc = arcname_for(arc_path if arc_path is not None else fs_path)
        st = os.stat(fs_path)
        with open(fs_path, "rb") as fh:
            data = fh.read()
        self.log.info(
            "read %s of %s, compressing...",
            os.fspath(fs_path),
            humanize.naturalsize(len(data), binary=True),
        )
        self.write_entry(
            arc,
            data,
            date_time=zip_date_time(st.st_mtime),
            external_attr=(st.st_mode & 0xFFFF) << 16,
        )
        return len(data)

    def write_entry(self, arc: str, data: bytes, *, date_time: DateTime, external_attr: int = 0):
        zinfo = self._zf.zipinfo_cls(arc, date_time=date_time)
        zinfo.compress_type = pyzipper.ZIP_DEFLATED
        zinfo.external_attr = external_attr
        self._zf.writestr(zinfo, data)
        self.names.append(arc)
        return zinfo

    def finalize(self):
        """Write the central directory; the stream itself stays open."""
        if self._finalized or self._zf is None:
            return
        self._zf.close()
        self.fileobj.flush()
        self._finalized = True

    def abandon(self):
        """Drop the archive without a central directory; nothing is salvageable."""
        if self._zf is not None and not self._finalized:
            # close() is a no-op once the handle is detached
            self._zf.fp = None
        self._finalized = True
