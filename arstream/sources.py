from __future__ import annotations

import io
import os
from typing import BinaryIO, Optional, Protocol

from .constants import DEFAULT_MODE
from .header import Header, header_from_stat


class Archivable(Protocol):
    """Anything that can become one archive member."""

    def header(self) -> Header:
        ...

    def open(self) -> BinaryIO:
        ...


class FileSource:
    """A member backed by a file on disk; metadata comes from ``os.stat``."""

    def __init__(self, filename: str, archive_path: Optional[str] = None):
        self.filename = filename
        self.archive_path = archive_path or os.path.basename(filename)
        self._header: Optional[Header] = None

    def header(self) -> Header:
        if self._header is None:
            self._header = header_from_stat(os.stat(self.filename), self.archive_path)
        return self._header

    def open(self) -> BinaryIO:
        return open(self.filename, "rb")


class BytesSource:
    """An in-memory member."""

    def __init__(
        self,
        data: bytes,
        archive_path: str,
        *,
        mtime: int = 0,
        uid: int = 0,
        gid: int = 0,
        mode: int = DEFAULT_MODE,
        header: Optional[Header] = None,
    ):
        self.data = bytes(data)
        self.archive_path = archive_path
        self._header = header or Header(
            name=archive_path, size=len(self.data), mtime=mtime, uid=uid, gid=gid, mode=mode
        )

    def header(self) -> Header:
        return self._header

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)
