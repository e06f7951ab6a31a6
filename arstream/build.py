from __future__ import annotations

import os
from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from .constants import DEFAULT_MODE
from .header import Header
from .reader import ArReader
from .sources import Archivable
from .writer import ArWriter


def normalize_header(header: Header, *, deterministic: bool = False, mtime: Optional[int] = None) -> Header:
    """Apply archive-wide metadata policy to one member header.

    ``deterministic`` zeroes ownership and timestamps and fixes the mode, the
    same normalization ``ar D`` performs. ``mtime`` then overrides the time.
    """
    if deterministic:
        header = replace(header, uid=0, gid=0, mtime=0, mode=DEFAULT_MODE)
    if mtime is not None:
        header = replace(header, mtime=mtime)
    return header


def build_archive(
    path: str,
    items: Iterable[Archivable],
    *,
    deterministic: bool = False,
    mtime: Optional[int] = None,
) -> int:
    """Write ``items`` in order into a new archive at ``path``.

    Returns the number of members written. On failure the partial archive
    is removed and the error propagates.
    """
    count = 0
    writer = ArWriter.open(path)
    try:
        with writer:
            for item in items:
                header = normalize_header(item.header(), deterministic=deterministic, mtime=mtime)
                with item.open() as src:
                    writer.add(header, src)
                count += 1
    except BaseException:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        raise
    return count


def read_members(path: str) -> List[Tuple[Header, bytes]]:
    """Load every member of a (small) archive into memory."""
    members: List[Tuple[Header, bytes]] = []
    with ArReader.open(path) as reader:
        for header in reader:
            members.append((header, reader.read()))
    return members
