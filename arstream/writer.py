from __future__ import annotations

from typing import BinaryIO, Optional

from .constants import AR_MAGIC, BLOCK_SIZE, DEFAULT_ENCODING, PAD_BYTE
from .errors import ArError, IncompleteEntry, WriteAfterClose, WriteTooLong
from .header import Header, encode_header


class ArWriter:
    """Sequential writer for ar archives.

    Nothing is written until the first header (or ``close``), so a writer
    that is never used leaves its output untouched. Each entry's payload may
    be written in any number of ``write`` calls; the alignment byte follows
    once the declared size has been reached.
    """

    def __init__(self, fileobj: BinaryIO, *, encoding: str = DEFAULT_ENCODING):
        self.fileobj = fileobj
        self.encoding = encoding
        self._remaining = 0  # payload bytes still owed for the current entry
        self._pad = False  # current entry needs one alignment byte
        self._started = False
        self._closed = False
        self._err: Optional[BaseException] = None
        self._owns_file = False

    @classmethod
    def open(cls, path: str, *, encoding: str = DEFAULT_ENCODING) -> "ArWriter":
        writer = cls(open(path, "wb"), encoding=encoding)
        writer._owns_file = True
        return writer

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        elif self._owns_file:
            # Do not finalize a half-written archive.
            self._closed = True
            self.fileobj.close()

    def _check_open(self) -> None:
        if self._closed:
            raise WriteAfterClose("archive already closed")
        if self._err is not None:
            raise self._err

    def _flush(self) -> None:
        if not self._started:
            self.fileobj.write(AR_MAGIC)
            self._started = True
        if self._remaining > 0:
            raise IncompleteEntry(self._remaining)

    def write_header(self, header: Header) -> None:
        """Finish the previous entry and start a new one described by ``header``."""
        self._check_open()
        # Encode first: a header that does not fit writes nothing.
        block = encode_header(header, self.encoding)
        try:
            self._flush()
            self.fileobj.write(block)
        except (ArError, OSError) as exc:
            self._err = exc
            raise
        self._remaining = header.size
        self._pad = header.size % 2 == 1

    def write(self, data) -> int:
        """Write payload bytes for the current entry; returns ``len(data)``."""
        self._check_open()
        n = memoryview(data).nbytes
        if n > self._remaining:
            raise WriteTooLong(f"write of {n} bytes exceeds the {self._remaining} bytes left in this entry")
        if n == 0:
            return 0
        try:
            self.fileobj.write(data)
            self._remaining -= n
            if self._remaining == 0 and self._pad:
                self.fileobj.write(PAD_BYTE)
                self._pad = False
        except OSError as exc:
            self._err = exc
            raise
        return n

    def add(self, header: Header, fileobj: BinaryIO) -> None:
        """Write ``header`` and copy exactly ``header.size`` bytes from ``fileobj``."""
        self.write_header(header)
        remaining = header.size
        while remaining > 0:
            chunk = fileobj.read(min(remaining, BLOCK_SIZE))
            if not chunk:
                break
            self.write(chunk)
            remaining -= len(chunk)

    def close(self) -> None:
        """Finish the archive. Calling it again repeats the first outcome."""
        if self._closed:
            if self._err is not None:
                raise self._err
            return
        self._closed = True
        try:
            if self._err is None:
                try:
                    self._flush()
                    self.fileobj.flush()
                except (ArError, OSError) as exc:
                    self._err = exc
                    raise
            else:
                raise self._err
        finally:
            if self._owns_file:
                self.fileobj.close()
