"""
Input file handling: one instance ID per row.
"""

import codecs
import csv
import io
import logging
import os
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

# Longest marks first so UTF-32 is never mistaken for UTF-16.
BOMS: Tuple[Tuple[bytes, str, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32", "UTF-32 LE"),
    (codecs.BOM_UTF32_BE, "utf-32", "UTF-32 BE"),
    (codecs.BOM_UTF8, "utf-8-sig", "UTF-8"),
    (codecs.BOM_UTF16_LE, "utf-16", "UTF-16 LE"),
    (codecs.BOM_UTF16_BE, "utf-16", "UTF-16 BE"),
)


class InputFileError(Exception):
    """Raised when the input file is missing or cannot be read."""


def detect_bom(raw: bytes) -> Tuple[Optional[str], str]:
    """
    Detect a byte-order mark.

    Args:
        raw: Leading bytes of the file

    Returns:
        Tuple of (bom_label or None, codec to decode with)
    """
    for bom, codec, label in BOMS:
        if raw.startswith(bom):
            return label, codec
    return None, "utf-8"


def read_instance_ids(path: str) -> List[str]:
    """
    Read instance IDs from a CSV file, one per row.

    The first cell of each row is trimmed; blank rows are skipped with a
    warning. A BOM is reported and removed by decoding.

    Args:
        path: CSV file path

    Returns:
        Instance IDs in file order (duplicates kept)

    Raises:
        InputFileError: If the file is missing or cannot be decoded
    """
    if not os.path.isfile(path):
        raise InputFileError(f"Input file not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise InputFileError(f"Cannot read input file {path}: {e}") from e

    bom, codec = detect_bom(raw)
    if bom:
        logger.info(f"Detected {bom} byte-order mark in {path}")

    try:
        text = raw.decode(codec)
    except UnicodeDecodeError as e:
        raise InputFileError(f"Cannot decode input file {path}: {e}") from e

    ids: List[str] = []
    for row_number, row in enumerate(csv.reader(io.StringIO(text)), start=1):
        value = row[0].strip() if row else ""
        if not value:
            logger.warning(f"Row {row_number} is blank, skipping")
            continue
        ids.append(value)

    logger.info(f"Read {len(ids)} instance ID(s) from {path}")
    return ids
