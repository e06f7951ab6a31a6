from __future__ import annotations

import os
import stat
import struct
from dataclasses import dataclass

from .constants import (
    DEFAULT_ENCODING,
    DEFAULT_MODE,
    GID_WIDTH,
    HEADER_MAGIC,
    HEADER_SIZE,
    MODE_WIDTH,
    MTIME_WIDTH,
    NAME_WIDTH,
    SIZE_WIDTH,
    UID_WIDTH,
    ZERO_BLOCK,
)
from .errors import FieldTooLong, InvalidFieldValue, InvalidHeader


# Header block (fixed 60 bytes), every text field left-justified, space-padded:
#  - name[16]
#  - mtime[12]   decimal seconds since the epoch
#  - gid[6]      decimal
#  - uid[6]      decimal
#  - mode[8]     octal, always tagged as a regular file ("100644")
#  - size[10]    decimal
#  - magic[2]    "`\n"
# gid precedes uid on the wire; existing .deb consumers rely on this order.
_HDR_STRUCT = struct.Struct("16s12s6s6s8s10s2s")


@dataclass(frozen=True)
class Header:
    """Metadata for one archive member.

    ``mode`` holds permission bits only; the regular-file type bits are added
    on encode and removed on decode.
    """

    name: str
    size: int = 0
    mtime: int = 0
    uid: int = 0
    gid: int = 0
    mode: int = DEFAULT_MODE


def _fit(field: str, text: bytes, width: int, shown: object) -> bytes:
    if len(text) > width:
        raise FieldTooLong(field, str(shown), width)
    return text.ljust(width, b" ")


def _numeric(field: str, value: int, width: int, fmt: bytes = b"%d") -> bytes:
    value = int(value)
    if value < 0:
        raise InvalidFieldValue(f"{field} must not be negative: {value}")
    return _fit(field, fmt % value, width, value)


def _check_name(name: str) -> None:
    if not name:
        raise InvalidFieldValue("name must not be empty")
    if name.startswith("/") or "\\" in name:
        raise InvalidFieldValue(f"name must be a relative forward-slash path: {name!r}")
    if len(name) >= 2 and name[1] == ":" and name[0].isalpha():
        raise InvalidFieldValue(f"name must not carry a drive prefix: {name!r}")


def encode_header(header: Header, encoding: str = DEFAULT_ENCODING) -> bytes:
    """Encode ``header`` into a 60-byte header block.

    Raises:
        FieldTooLong: a field's text does not fit in its column.
        InvalidFieldValue: negative number or non-relative name.
    """
    _check_name(header.name)
    if header.mode < 0:
        raise InvalidFieldValue(f"mode must not be negative: {header.mode}")
    mode = stat.S_IFREG | stat.S_IMODE(header.mode)
    return _HDR_STRUCT.pack(
        _fit("name", header.name.encode(encoding), NAME_WIDTH, header.name),
        _numeric("mtime", header.mtime, MTIME_WIDTH),
        _numeric("gid", header.gid, GID_WIDTH),
        _numeric("uid", header.uid, UID_WIDTH),
        # Octal, as GNU ar and dpkg write and read it.
        _numeric("mode", mode, MODE_WIDTH, b"%o"),
        _numeric("size", header.size, SIZE_WIDTH),
        HEADER_MAGIC,
    )


def _parse_numeric(field: str, raw: bytes, base: int = 10) -> int:
    # High bit on the first byte: big-endian binary with the flag bit masked off.
    if raw and raw[0] & 0x80:
        return int.from_bytes(bytes([raw[0] & 0x7F]) + raw[1:], "big")
    text = raw.strip(b" \x00")
    if not text:
        return 0
    if not text.isdigit():
        raise InvalidHeader(f"invalid {field} field {raw!r}")
    try:
        return int(text, base)
    except ValueError:
        raise InvalidHeader(f"invalid {field} field {raw!r}") from None


def decode_header(block: bytes, encoding: str = DEFAULT_ENCODING) -> Header:
    """Decode a 60-byte header block.

    Raises:
        InvalidHeader: wrong length, bad terminator or unparseable field.
    """
    if len(block) != HEADER_SIZE:
        raise InvalidHeader(f"header block must be {HEADER_SIZE} bytes, got {len(block)}")
    name, mtime, gid, uid, mode, size, magic = _HDR_STRUCT.unpack(block)
    if magic != HEADER_MAGIC:
        raise InvalidHeader(f"invalid header terminator {magic!r}")
    try:
        name_text = name.rstrip(b" ").decode(encoding)
    except UnicodeDecodeError as exc:
        raise InvalidHeader(f"cannot decode name {name!r}: {exc}") from None
    return Header(
        name=name_text,
        mtime=_parse_numeric("mtime", mtime),
        gid=_parse_numeric("gid", gid),
        uid=_parse_numeric("uid", uid),
        mode=stat.S_IMODE(_parse_numeric("mode", mode, 8)),
        size=_parse_numeric("size", size),
    )


def is_zero_block(block: bytes) -> bool:
    return block == ZERO_BLOCK


def header_from_stat(st: os.stat_result, name: str) -> Header:
    """Build a Header for ``name`` from filesystem metadata.

    Only regular files can be represented in a header block.
    """
    if not stat.S_ISREG(st.st_mode):
        raise InvalidFieldValue(f"{name}: only regular files can be archived")
    return Header(
        name=name,
        size=st.st_size,
        mtime=int(st.st_mtime),
        uid=st.st_uid,
        gid=st.st_gid,
        mode=stat.S_IMODE(st.st_mode),
    )
