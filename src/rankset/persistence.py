"""Save file encoding and decoding for ranked sets.

Two save formats are supported:

- JSON (primary): an array of objects with short field tags, for example
  ``[{"n":"abc","w":2,"v":3,"l":false}]``. Missing counters and lock flags
  default to zero/false, so older files without the lock flag still load.
- Binary (legacy): the two magic bytes ``AD 2A`` followed by a
  little-endian entry count and, per entry, a length-prefixed UTF-8 name,
  u32 wins, u32 votes and a one-byte lock flag.

When no format is given, the magic prefix selects binary and a leading
``[`` selects JSON; anything else is not a save file. A plain
newline-delimited list of names can also be imported to start a new set.
Writes always replace the target file atomically.
"""

import struct
import tempfile
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from src.rankset.constants import BINARY_MAGIC, U32_MAX
from src.rankset.errors import DecodeError, EncodeError, FormatMismatchError
from src.rankset.models import Entry, EntryRecord


logger = structlog.get_logger()

_RECORDS = TypeAdapter(list[EntryRecord])

_COUNT = struct.Struct("<Q")
_NAME_LENGTH = struct.Struct("<Q")
_COUNTERS = struct.Struct("<IIB")

# First non-whitespace byte of a JSON save file
_JSON_ARRAY_START = b"["


class SaveFormat(str, Enum):
    """Save file encodings.

    - JSON: structured text with short field tags
    - BINARY: legacy magic-prefixed binary layout
    """

    JSON = "json"
    BINARY = "binary"


def _check_counters(entries: Sequence[Entry], path: Path | str) -> None:
    """Reject entries whose counters do not fit in 32 bits."""
    for entry in entries:
        if not (0 <= entry.wins <= U32_MAX and 0 <= entry.votes <= U32_MAX):
            msg = f"counters out of range for entry {entry.name!r}"
            raise EncodeError(path, msg)


def encode_json(entries: Sequence[Entry], path: Path | str = "<memory>") -> bytes:
    """Encode entries as compact JSON.

    Args:
        entries: Entries to encode.
        path: Target path, used in error messages.

    Returns:
        UTF-8 JSON bytes.

    Raises:
        EncodeError: If a counter does not fit in 32 bits.
    """
    _check_counters(entries, path)
    records = [EntryRecord.from_entry(entry) for entry in entries]
    return _RECORDS.dump_json(records, by_alias=True)


def decode_json(content: bytes, path: Path | str = "<memory>") -> list[Entry]:
    """Decode entries from JSON bytes.

    Args:
        content: Raw file content.
        path: Source path, used in error messages.

    Returns:
        Decoded entries in file order.

    Raises:
        DecodeError: If the content is not a valid entry list.
    """
    try:
        records = _RECORDS.validate_json(content)
    except ValidationError as e:
        raise DecodeError(path, f"{e.error_count()} validation errors") from e
    return [record.to_entry() for record in records]


def encode_binary(entries: Sequence[Entry], path: Path | str = "<memory>") -> bytes:
    """Encode entries in the legacy binary layout.

    Args:
        entries: Entries to encode.
        path: Target path, used in error messages.

    Returns:
        Magic prefix followed by the encoded entry list.

    Raises:
        EncodeError: If a counter does not fit in 32 bits.
    """
    _check_counters(entries, path)
    parts = [BINARY_MAGIC, _COUNT.pack(len(entries))]
    for entry in entries:
        name = entry.name.encode("utf-8")
        parts.append(_NAME_LENGTH.pack(len(name)))
        parts.append(name)
        parts.append(_COUNTERS.pack(entry.wins, entry.votes, int(entry.locked)))
    return b"".join(parts)


def decode_binary(content: bytes, path: Path | str = "<memory>") -> list[Entry]:
    """Decode entries from the legacy binary layout.

    The magic prefix is checked before anything else is read.

    Args:
        content: Raw file content.
        path: Source path, used in error messages.

    Returns:
        Decoded entries in file order.

    Raises:
        FormatMismatchError: If the content does not start with the magic.
        DecodeError: If the body is truncated, has trailing bytes, or holds
            an invalid name or lock flag.
    """
    prefix = content[: len(BINARY_MAGIC)]
    if prefix != BINARY_MAGIC:
        raise FormatMismatchError(path, prefix)

    view = memoryview(content)
    offset = len(BINARY_MAGIC)
    entries: list[Entry] = []

    try:
        (count,) = _COUNT.unpack_from(view, offset)
        offset += _COUNT.size

        for index in range(count):
            (name_length,) = _NAME_LENGTH.unpack_from(view, offset)
            offset += _NAME_LENGTH.size

            if offset + name_length > len(view):
                msg = f"Entry {index}: name runs past end of file"
                raise DecodeError(path, msg)
            name = bytes(view[offset : offset + name_length]).decode("utf-8")
            offset += name_length

            wins, votes, locked = _COUNTERS.unpack_from(view, offset)
            offset += _COUNTERS.size
            if locked not in (0, 1):
                raise DecodeError(path, f"Entry {index}: invalid lock flag {locked}")

            entries.append(
                Entry(name=name, wins=wins, votes=votes, locked=bool(locked))
            )
    except struct.error as e:
        raise DecodeError(path, "unexpected end of file") from e
    except UnicodeDecodeError as e:
        raise DecodeError(path, "entry name is not valid UTF-8") from e

    if offset != len(view):
        raise DecodeError(path, f"{len(view) - offset} trailing bytes")

    return entries


def sniff_format(content: bytes, path: Path | str = "<memory>") -> SaveFormat:
    """Identify the save format of raw file content.

    Args:
        content: Raw file content.
        path: Source path, used in error messages.

    Returns:
        BINARY for the magic prefix, JSON for content opening an array.

    Raises:
        FormatMismatchError: If the content looks like neither format.
    """
    prefix = content[: len(BINARY_MAGIC)]
    if prefix == BINARY_MAGIC:
        return SaveFormat.BINARY
    if content.lstrip().startswith(_JSON_ARRAY_START):
        return SaveFormat.JSON
    raise FormatMismatchError(path, prefix)


def detect_format(path: Path) -> SaveFormat:
    """Identify the save format of a file from its content.

    Args:
        path: File to inspect.

    Returns:
        Detected save format.

    Raises:
        OSError: If the file cannot be read.
        FormatMismatchError: If the file is not a recognized save file.
    """
    return sniff_format(path.read_bytes(), path)


def read_entries(path: Path, save_format: SaveFormat) -> list[Entry]:
    """Read a save file.

    Args:
        path: File to read.
        save_format: Encoding of the file.

    Returns:
        Decoded entries in file order.

    Raises:
        OSError: If the file cannot be read.
        FormatMismatchError: If a binary file lacks the magic prefix.
        DecodeError: If the body is invalid.
        ValueError: If the save format is not supported.
    """
    content = path.read_bytes()
    if save_format == SaveFormat.BINARY:
        return decode_binary(content, path)
    if save_format == SaveFormat.JSON:
        return decode_json(content, path)
    msg = f"Unsupported save format: {save_format!r}"
    raise ValueError(msg)


def write_entries(
    path: Path, entries: Sequence[Entry], save_format: SaveFormat
) -> int:
    """Write a save file, replacing any existing file atomically.

    Args:
        path: Target file.
        entries: Entries to write.
        save_format: Encoding to use.

    Returns:
        Number of bytes written.

    Raises:
        EncodeError: If a counter does not fit in 32 bits.
        OSError: If the file cannot be written.
        ValueError: If the save format is not supported.
    """
    if save_format == SaveFormat.BINARY:
        content = encode_binary(entries, path)
    elif save_format == SaveFormat.JSON:
        content = encode_json(entries, path)
    else:
        msg = f"Unsupported save format: {save_format!r}"
        raise ValueError(msg)

    # Write to a temp file in the target directory, then replace
    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)

        temp_path.replace(path)
        temp_path = None

        logger.debug(
            "save_file_written",
            path=str(path),
            format=save_format.value,
            bytes=len(content),
        )
    finally:
        if temp_path and temp_path.exists():
            temp_path.unlink()

    return len(content)


def read_names(path: Path) -> list[str]:
    """Read a newline-delimited list of names.

    Surrounding whitespace is stripped and blank lines are skipped; line
    order is preserved.

    Args:
        path: Text file with one name per line.

    Returns:
        Names in file order.

    Raises:
        OSError: If the file cannot be read.
        DecodeError: If the file is not valid UTF-8.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(path, "name list is not valid UTF-8") from e

    names = [line.strip() for line in text.splitlines()]
    return [name for name in names if name]
