from __future__ import annotations

import os
from typing import BinaryIO, Iterator, Optional

from .constants import AR_MAGIC, AR_MAGIC_LEN, BLOCK_SIZE, DEFAULT_ENCODING, HEADER_SIZE
from .errors import ArError, InvalidFormat, InvalidHeader, UnexpectedEndOfStream
from .header import Header, decode_header, is_zero_block


class ArReader:
    """Forward-only reader for ar archives.

    Typical use::

        with ArReader.open("pkg.deb") as ar:
            for header in ar:
                payload = ar.read()

    ``read`` never crosses the current entry's boundary; ``next`` skips
    whatever the caller left unread, including the alignment byte.
    Any error is remembered and raised again by every later call.
    """

    def __init__(self, fileobj: BinaryIO, *, encoding: str = DEFAULT_ENCODING):
        self.fileobj = fileobj
        self.encoding = encoding
        self._remaining = 0  # unread payload bytes of the current entry
        self._pad = False  # current entry is followed by one alignment byte
        self._err: Optional[BaseException] = None
        self._done = False
        self._owns_file = False
        self._stream_end: Optional[int] = None
        magic = self._read_full(AR_MAGIC_LEN)
        if magic != AR_MAGIC:
            raise InvalidFormat(f"not an ar archive: expected magic {AR_MAGIC!r}, got {magic!r}")

    @classmethod
    def open(cls, path: str, *, encoding: str = DEFAULT_ENCODING) -> "ArReader":
        f = open(path, "rb")
        try:
            reader = cls(f, encoding=encoding)
        except (ArError, OSError):
            f.close()
            raise
        reader._owns_file = True
        return reader

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[Header]:
        while True:
            header = self.next()
            if header is None:
                return
            yield header

    def close(self):
        if self._owns_file and not self.fileobj.closed:
            self.fileobj.close()

    def _read_full(self, n: int) -> bytes:
        # Keep reading until n bytes or end of stream; pipes may return short reads.
        buf = bytearray()
        while len(buf) < n:
            chunk = self.fileobj.read(n - len(buf))
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def _seekable(self) -> bool:
        seekable = getattr(self.fileobj, "seekable", None)
        if seekable is None:
            return False
        try:
            return bool(seekable())
        except (OSError, ValueError):
            return False

    def _skip_unread(self) -> None:
        n = self._remaining
        pad = self._pad
        self._remaining = 0
        self._pad = False
        if pad:
            n += 1
        if n == 0:
            return
        if self._seekable():
            try:
                pos = self.fileobj.tell()
                if self._stream_end is None:
                    self._stream_end = self.fileobj.seek(0, os.SEEK_END)
                self.fileobj.seek(pos + n, os.SEEK_SET)
            except OSError:
                pass
            else:
                missing = pos + n - self._stream_end
                if missing > 0 and not (pad and missing == 1):
                    raise UnexpectedEndOfStream(f"archive truncated: {missing} bytes of entry data missing")
                return
        while n > 0:
            chunk = self.fileobj.read(min(n, BLOCK_SIZE))
            if not chunk:
                # A missing trailing pad byte after the last member is tolerated.
                if pad and n == 1:
                    return
                raise UnexpectedEndOfStream(f"archive truncated: {n} bytes of entry data missing")
            n -= len(chunk)

    def _read_header(self) -> Optional[Header]:
        block = self._read_full(HEADER_SIZE)
        if not block:
            return None
        if len(block) < HEADER_SIZE:
            raise UnexpectedEndOfStream(f"archive truncated inside a header block ({len(block)} bytes)")

        # Two blocks of zero bytes mark the end of the archive.
        if is_zero_block(block):
            block = self._read_full(HEADER_SIZE)
            if not block or is_zero_block(block):
                return None
            if len(block) < HEADER_SIZE:
                raise UnexpectedEndOfStream(f"archive truncated inside a header block ({len(block)} bytes)")
            raise InvalidHeader("zero block followed by a non-zero block")

        header = decode_header(block, self.encoding)
        self._remaining = header.size
        self._pad = header.size % 2 == 1
        return header

    def next(self) -> Optional[Header]:
        """Advance to the next entry.

        Returns the entry's Header, or None once the archive has ended.
        """
        if self._err is not None:
            raise self._err
        if self._done:
            return None
        try:
            self._skip_unread()
            header = self._read_header()
        except (ArError, OSError) as exc:
            self._err = exc
            raise
        if header is None:
            self._done = True
        return header

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes of the current entry (all of it if negative).

        Returns b"" at the end of the entry; call ``next`` to move on.
        """
        if self._err is not None:
            raise self._err
        if self._remaining == 0:
            return b""
        if size is None or size < 0 or size > self._remaining:
            size = self._remaining
        if size == 0:
            return b""
        try:
            data = self.fileobj.read(size)
        except OSError as exc:
            self._err = exc
            raise
        if not data:
            self._err = UnexpectedEndOfStream(
                f"archive truncated: {self._remaining} bytes of entry data missing"
            )
            raise self._err
        self._remaining -= len(data)
        return data

    def next_string(self, size: int) -> str:
        """Read exactly ``size`` bytes as text, ignoring the entry bound.

        Used for fixed-length leading records such as the ``debian-binary``
        version line.
        """
        if self._err is not None:
            raise self._err
        try:
            data = self._read_full(size)
        except OSError as exc:
            self._err = exc
            raise
        self._remaining = max(self._remaining - len(data), 0)
        if len(data) < size:
            self._err = UnexpectedEndOfStream(f"expected {size} bytes, got {len(data)}")
            raise self._err
        return data.decode(self.encoding)
