from __future__ import annotations

import os
from pathlib import PurePath
from typing import Union

from .constants import MERGED_SUFFIX, OVERLAY_EXTENSION


def arcname_for(p: Union[str, os.PathLike]) -> str:
    """Turn a filesystem path into a forward-slash archive member name.

    Rules:
    - Drop drive and root anchors
    - Remove empty and '.' segments
    - '..' removes the previous segment and never climbs above the root
    """
    path = PurePath(os.fspath(p))
    segments = path.parts[1:] if path.anchor else path.parts
    parts: list[str] = []
    for q in segments:
        if q in ("", "."):
            continue
        if q == "..":
            if parts:
                parts.pop()
            continue
        parts.append(q.replace("\\", "/").strip("/"))
    parts = [q for q in parts if q]
    if not parts:
        raise ValueError(f"Path {os.fspath(p)!r} has no usable archive name")
    return "/".join(parts)


def output_filename(img: Union[str, os.PathLike], qrcode_overlap: bool) -> str:
    """Derive the merged output name from the cover image name.

    The stem is everything before the first '.', so "photo.v2.jpg" becomes
    "photo_merged.jpg". Overlaid covers are always re-encoded as PNG.
    """
    name = PurePath(os.fspath(img)).name
    if not name:
        raise ValueError(f"Cannot derive an output name from {os.fspath(img)!r}")
    stem = name.split(".")[0]
    if qrcode_overlap:
        ext = OVERLAY_EXTENSION
    else:
        ext = PurePath(name).suffix.lstrip(".")
        if not ext:
            raise ValueError(f"Image {name!r} has no extension; pass --output explicitly")
    return f"{stem}{MERGED_SUFFIX}.{ext}"
