"""
flatarc: pack a folder's files into one flat container file and back.

Container layout, repeated until the end of the file:

    name bytes, NUL, size (u64 little endian), payload[size]

- No magic, version, count or checksum; a clean EOF at a record boundary ends
  the stream.
- Directory structure is not kept: every file is stored under its base name
  and extracted directly into the target folder.
- Archiving is skipped when the existing container already matches the folder
  byte for byte.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "records",
    "walk",
    "writer",
    "reader",
    "results",
]

# Importable programmatic API: flatarc.writer.archive_folder,
# flatarc.reader.extract_archive / compare_archive, and the cmd_* functions
# in flatarc.cli which take normal parameters.
