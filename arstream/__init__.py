"""
arstream: streaming reader and writer for Unix ar archives.

ar is the container used by .deb packages (debian-binary, control.tar.*,
data.tar.*). This package provides:

- A 60-byte header block codec (arstream.header)
- A forward-only reader with bounded per-entry reads (arstream.reader)
- A sequential writer with lazy preamble and 2-byte payload alignment (arstream.writer)
- File and in-memory member sources plus a one-call archive builder
- A small CLI to create, list, extract and print archives

GNU/BSD long-name and symbol-table extensions are not supported.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "header",
    "reader",
    "writer",
    "sources",
    "build",
]

# Importable programmatic API is available via arstream.reader/arstream.writer
# and the CLI functions in arstream.cli (cmd_create/cmd_extract) which take normal parameters.
