from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path


def is_nonempty_file(path) -> bool:
    p = Path(path)
    return p.is_file() and p.stat().st_size > 0


def count_xyz_frames(path) -> int:
    """
    Counts the structures in a (multi-frame) XYZ file.

    Each frame is an atom-count line, a comment line and that many coordinate
    lines. Blank lines between frames are tolerated. A missing file counts as
    zero frames.

    Parameters:
    - path (str | Path): XYZ file.

    Returns:
    - int: Number of frames.

    Raises:
    - ValueError: If a frame header is not an integer atom count.
    """
    p = Path(path)
    if not p.is_file():
        return 0
    lines = p.read_text().splitlines()
    frames = 0
    i = 0
    while i < len(lines):
        head = lines[i].strip()
        if not head:
            i += 1
            continue
        try:
            natoms = int(head.split()[0])
        except ValueError:
            raise ValueError(f"{p}: expected an atom count at line {i + 1}, got {head!r}") from None
        frames += 1
        i += natoms + 2
    return frames


def copy_if_present(src, dst_dir) -> Path | None:
    """Copy ``src`` into ``dst_dir`` keeping its name; return the copy or None."""
    src = Path(src)
    if not src.is_file():
        logging.debug(f"{src.name} not present; nothing copied.")
        return None
    dst = Path(dst_dir) / src.name
    shutil.copy2(src, dst)
    logging.info(f"Copied {src.name} -> {os.path.relpath(dst, src.parent)}")
    return dst


def replace_file(src, dst) -> None:
    """Overwrite ``dst`` with the exact bytes of ``src``."""
    shutil.copyfile(src, dst)
    logging.info(f"Replaced {Path(dst).name} with {src}")
