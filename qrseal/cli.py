from __future__ import annotations

import os
import sys
import time
import logging
import argparse

from dataclasses import dataclass
from typing import List, Optional, Sequence

import humanize

from qrseal.constants import DEFAULT_BG_COLOR, DEFAULT_FG_COLOR
from qrseal.errors import QrSealError
from qrseal.overlay import Position, write_overlayed_image
from qrseal.pathutil import output_filename
from qrseal.walk import collect_files
from qrseal.writer import ArchiveWriter


class _LevelPrefixFormatter(logging.Formatter):
    """Prefix warnings and errors with "Warning:" / "Error:"."""

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.capitalize()}: {msg}"
        return msg


def make_logger(quiet: bool = False, stream=None) -> logging.Logger:
    """Build the logger the CLI hands to every component.

    Args:
        quiet: Only emit warnings and errors.
        stream: Destination stream; defaults to stderr.
    """
    log = logging.getLogger("qrseal")
    for h in list(log.handlers):
        log.removeHandler(h)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(_LevelPrefixFormatter("%(message)s"))
    log.addHandler(handler)
    log.setLevel(logging.WARNING if quiet else logging.INFO)
    log.propagate = False
    return log


def _parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in ("true", "yes", "1", "on"):
        return True
    if v in ("false", "no", "0", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


@dataclass(frozen=True)
class MergeOptions:
    img: str
    paths: Sequence[str] = ()
    password: Optional[str] = None
    qrcode_overlap: bool = False
    has_quiet_zone: bool = True
    qr_position: Position = Position.TOP_LEFT
    qrcode_fg_color: str = DEFAULT_FG_COLOR
    qrcode_bg_color: str = DEFAULT_BG_COLOR
    output: Optional[str] = None

    @property
    def overlay_active(self) -> bool:
        return bool(self.qrcode_overlap and self.password)

    @classmethod
    def from_args(cls, args: argparse.Namespace, log: Optional[logging.Logger] = None) -> "MergeOptions":
        return cls(
            img=args.img,
            paths=tuple(args.paths),
            password=args.password,
            qrcode_overlap=args.qrcode_overlap,
            has_quiet_zone=args.has_quiet_zone,
            qr_position=Position.parse(args.qr_position, log),
            qrcode_fg_color=args.qrcode_fg_color,
            qrcode_bg_color=args.qrcode_bg_color,
            output=args.output,
        )


def cmd_merge(options: MergeOptions, *, log: Optional[logging.Logger] = None) -> str:
    """Write the cover image followed by a ZIP of every input file.

    The output is a single file that opens as an image from offset 0 and as
    a ZIP archive through its trailing central directory.

    Args:
        options: Invocation parameters.
        log: Logger for progress and warnings.

    Returns:
        Path of the written output file.

    Raises:
        FileNotFoundError: If the cover image or an input path does not exist.
        QrSealError: If the cover cannot be decoded or the QR code cannot be
            rendered or placed.
    """
    log = log or logging.getLogger("qrseal")
    img = options.img
    if not os.path.isfile(img):
        raise FileNotFoundError(f"Input image not found: {img}")

    out = options.output or output_filename(img, options.overlay_active)
    t0 = time.time()

    with open(out, "wb") as output:
        log.info("reading source image")
        if options.overlay_active:
            write_overlayed_image(
                img,
                output,
                options.password,
                has_quiet_zone=options.has_quiet_zone,
                qr_position=options.qr_position,
                qrcode_fg_color=options.qrcode_fg_color,
                qrcode_bg_color=options.qrcode_bg_color,
                log=log,
            )
        else:
            if options.qrcode_overlap:
                log.warning("QR Code overlap does nothing if did not specify a password")
            log.info("copying original image")
            with open(img, "rb") as fh:
                output.write(fh.read())

        log.info("writing ZIP (%s)", "AES-256 encrypted" if options.password else "unencrypted")
        files: List[str] = collect_files(options.paths)
        processed = 0
        with ArchiveWriter(output, password=options.password, log=log) as w:
            for path in files:
                processed += w.add_file(path)
            w.finalize()

    dt = max(0.000001, time.time() - t0)
    log.info(
        "Done: %d files; %s in %.1fs; written to %s",
        len(files),
        humanize.naturalsize(processed, binary=True),
        dt,
        out,
    )
    return out


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="qrseal",
        description="Hide a ZIP archive of files behind a cover image",
        epilog=(
            "The output opens as an image and as a ZIP archive. With --password every "
            "entry is AES-256 encrypted; add -Q to stamp the password as a QR code."
        ),
    )
    ap.add_argument("img", help="Cover image; with -Q any format Pillow can decode (PNG, JPEG, WEBP, ...)")
    ap.add_argument("paths", nargs="*", help="Input files/directories to archive")
    ap.add_argument("-p", "--password", help="Encryption password")
    ap.add_argument("-Q", "--qrcode-overlap", action="store_true", help="Stamp a QR code of the password onto the cover image")
    ap.add_argument(
        "-q",
        "--has-quiet-zone",
        type=_parse_bool,
        default=True,
        metavar="true|false",
        help="Surround the QR code with its blank quiet zone (default: true)",
    )
    ap.add_argument(
        "-P",
        "--qr-position",
        help=(
            "Position of the QR code: top-left (default), top-right, bottom-left, "
            "bottom-right or center; falls back to top-left on invalid input"
        ),
    )
    ap.add_argument("--qrcode-fg-color", default=DEFAULT_FG_COLOR, help="CSS color of the QR code bars (default: %(default)s)")
    ap.add_argument("--qrcode-bg-color", default=DEFAULT_BG_COLOR, help="CSS color of the QR code background (default: %(default)s)")
    ap.add_argument("-o", "--output", help="Output path (default: <image stem>_merged.<ext> in the current directory)")
    ap.add_argument("--quiet", help="limit outputs to warnings and errors", action="store_true")

    args = ap.parse_args(argv)
    log = make_logger(args.quiet)
    try:
        cmd_merge(MergeOptions.from_args(args, log), log=log)
    except (QrSealError, ValueError, RuntimeError, OSError) as e:
        log.error("%s", e)
        sys.exit(2)


if __name__ == "__main__":
    main()
