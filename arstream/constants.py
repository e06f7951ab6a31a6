# Archive preamble
AR_MAGIC = b"!<arch>\n"   # 8 bytes
AR_MAGIC_LEN = len(AR_MAGIC)

# Header block: name[16] mtime[12] gid[6] uid[6] mode[8] size[10] magic[2]
HEADER_SIZE = 60
HEADER_MAGIC = b"`\n"  # 0x60 0x0a

NAME_WIDTH = 16
MTIME_WIDTH = 12
GID_WIDTH = 6
UID_WIDTH = 6
MODE_WIDTH = 8
SIZE_WIDTH = 10

# Two of these in a row end the archive
ZERO_BLOCK = bytes(HEADER_SIZE)

# Odd-length payloads are followed by one of these
PAD_BYTE = b"\n"

DEFAULT_ENCODING = "utf-8"
DEFAULT_MODE = 0o644

BLOCK_SIZE = 65536

# Deterministic mtime that does not confuse tools treating 0 as "unset".
PORTABLE_MTIME = 946684800  # 2000-01-01 00:00:00 UTC
