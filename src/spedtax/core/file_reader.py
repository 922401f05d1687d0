"""
File acquisition for SPED bookkeeping files.

SPED files are usually written in ISO-8859-1 by the official PVA tools but
some ERPs emit UTF-8 (with or without BOM). Raw bytes are decoded with an
ordered list of encodings; the first one that decodes wins.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from spedtax.core.exceptions import FileReadError

logger = logging.getLogger(__name__)

# latin-1 decodes any byte sequence, so it goes last
DEFAULT_ENCODINGS = ('utf-8', 'cp1252', 'latin-1')


def decode_content(data: bytes, encodings: Optional[Iterable[str]] = None) -> str:
    """
    Decode raw file bytes into text.

    Args:
        data: Raw file bytes
        encodings: Encodings to try in order (default: utf-8, cp1252, latin-1)

    Returns:
        Decoded text, without a leading BOM

    Raises:
        FileReadError: If no encoding can decode the data
    """
    if isinstance(data, str):
        return data.lstrip('\ufeff')

    encodings_to_try = list(encodings or DEFAULT_ENCODINGS)
    for enc in encodings_to_try:
        try:
            text = data.decode(enc)
        except (UnicodeDecodeError, LookupError):
            continue
        logger.debug(f"Decoded {len(data)} bytes as {enc}")
        return text.lstrip('\ufeff')

    raise FileReadError(f"Could not decode content with any of {encodings_to_try}")


def read_file(file_path: Path, encodings: Optional[Iterable[str]] = None) -> str:
    """
    Read a bookkeeping file from disk.

    Args:
        file_path: Path to the SPED text file
        encodings: Encodings to try in order

    Returns:
        File content as text

    Raises:
        FileReadError: If the file does not exist or cannot be read/decoded
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileReadError(f"File not found: {file_path}", file_path=str(file_path))

    try:
        data = file_path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Error reading file: {e}", file_path=str(file_path)) from e

    try:
        return decode_content(data, encodings)
    except FileReadError as e:
        raise FileReadError(f"{e.message}: {file_path}", file_path=str(file_path)) from e
