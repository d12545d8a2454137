from __future__ import annotations

import calendar
import io
import os
import tempfile
import unittest
import zipfile
from pathlib import Path

import pyzipper

from qrseal.constants import DOS_MAX_DATE_TIME, DOS_MIN_DATE_TIME
from qrseal.writer import ArchiveWriter, zip_date_time

COVER_BYTES = b"\x89PNG-not-really" * 64


def _create_sample_files(base: Path) -> dict[str, bytes]:
    (base / "docs").mkdir()
    files = {
        "docs/a.txt": ("hello world\n" * 50).encode("utf-8"),
        "docs/b.bin": os.urandom(4096),
        "notes.md": b"# Title\nSome content\n",
        "tiny.txt": b"hi",
        "empty.txt": b"",
    }
    for rel, data in files.items():
        (base / rel).write_bytes(data)
    return files


def _build_archive(base: Path, files, *, password=None) -> bytes:
    buf = io.BytesIO()
    buf.write(COVER_BYTES)
    with ArchiveWriter(buf, password=password) as w:
        for rel in files:
            w.add_file(base / rel, rel)
        w.finalize()
    return buf.getvalue()


class TimestampTests(unittest.TestCase):
    def test_regular_timestamp_in_utc(self):
        ts = calendar.timegm((2021, 3, 4, 5, 6, 8, 0, 0, 0))
        self.assertEqual(zip_date_time(ts), (2021, 3, 4, 5, 6, 8))
        self.assertEqual(zip_date_time(ts + 0.75), (2021, 3, 4, 5, 6, 8))

    def test_saturates_below_dos_epoch(self):
        self.assertEqual(zip_date_time(0), DOS_MIN_DATE_TIME)
        self.assertEqual(zip_date_time(-1e9), DOS_MIN_DATE_TIME)

    def test_saturates_far_future(self):
        self.assertEqual(zip_date_time(1e15), DOS_MAX_DATE_TIME)
        self.assertEqual(zip_date_time(calendar.timegm((2200, 1, 1, 0, 0, 0, 0, 0, 0))), DOS_MAX_DATE_TIME)


class ArchiveWriterTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.base = Path(tmp.name)
        self.files = _create_sample_files(self.base)

    def test_plain_archive_after_cover_bytes(self):
        data = _build_archive(self.base, self.files)
        self.assertTrue(data.startswith(COVER_BYTES))

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            self.assertEqual(zf.namelist(), list(self.files))
            self.assertIsNone(zf.testzip())
            for rel, content in self.files.items():
                info = zf.getinfo(rel)
                self.assertEqual(info.compress_type, zipfile.ZIP_DEFLATED)
                self.assertEqual(info.flag_bits & 0x1, 0)
                self.assertEqual(zf.read(rel), content)

    def test_entry_keeps_file_mtime_and_mode(self):
        ts = calendar.timegm((2019, 12, 24, 18, 30, 0, 0, 0, 0))
        os.chmod(self.base / "notes.md", 0o640)
        os.utime(self.base / "notes.md", (ts, ts))
        data = _build_archive(self.base, ["notes.md"])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            info = zf.getinfo("notes.md")
        self.assertEqual(info.date_time, (2019, 12, 24, 18, 30, 0))
        self.assertEqual((info.external_attr >> 16) & 0o777, 0o640)

    def test_ancient_mtime_saturates(self):
        os.utime(self.base / "notes.md", (0, 0))
        data = _build_archive(self.base, ["notes.md"])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            self.assertEqual(zf.getinfo("notes.md").date_time, DOS_MIN_DATE_TIME)

    def test_default_arcname_is_path_as_given(self):
        buf = io.BytesIO()
        with ArchiveWriter(buf) as w:
            size = w.add_file(str(self.base / "docs" / "a.txt"))
            w.finalize()
        self.assertEqual(size, len(self.files["docs/a.txt"]))
        expected = (self.base / "docs" / "a.txt").as_posix().lstrip("/")
        with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
            self.assertEqual(zf.namelist(), [expected])
        self.assertEqual(w.names, [expected])

    def test_encrypted_archive_requires_password(self):
        data = _build_archive(self.base, self.files, password="hunter2")
        self.assertTrue(data.startswith(COVER_BYTES))

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            for info in zf.infolist():
                self.assertEqual(info.flag_bits & 0x1, 0x1)
            # stdlib zipfile has no AES support and refuses without a password
            with self.assertRaises(RuntimeError):
                zf.read("docs/a.txt")

        with pyzipper.AESZipFile(io.BytesIO(data)) as zf:
            with self.assertRaises(RuntimeError):
                zf.read("docs/a.txt")
            zf.setpassword(b"wrong")
            with self.assertRaises(RuntimeError):
                zf.read("docs/a.txt")

        with pyzipper.AESZipFile(io.BytesIO(data)) as zf:
            zf.setpassword(b"hunter2")
            self.assertEqual(zf.namelist(), list(self.files))
            for rel, content in self.files.items():
                self.assertEqual(zf.read(rel), content)

    def test_failed_entry_leaves_no_central_directory(self):
        buf = io.BytesIO()
        buf.write(COVER_BYTES)
        with self.assertRaises(FileNotFoundError):
            with ArchiveWriter(buf) as w:
                w.add_file(self.base / "notes.md", "notes.md")
                w.add_file(self.base / "missing.txt", "missing.txt")
        self.assertFalse(zipfile.is_zipfile(io.BytesIO(buf.getvalue())))
        self.assertTrue(buf.getvalue().startswith(COVER_BYTES))

    def test_non_ascii_name(self):
        buf = io.BytesIO()
        with ArchiveWriter(buf) as w:
            w.write_entry("déjà/vu.txt", b"bonjour", date_time=(2020, 1, 1, 0, 0, 0))
        with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
            self.assertEqual(zf.namelist(), ["déjà/vu.txt"])
            self.assertEqual(zf.read("déjà/vu.txt"), b"bonjour")

    def test_add_before_open(self):
        w = ArchiveWriter(io.BytesIO())
        with self.assertRaises(RuntimeError):
            w.add_file(self.base / "notes.md")


if __name__ == "__main__":
    unittest.main()
