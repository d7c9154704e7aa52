"""
Header validation for staged price files.
"""

import logging
from pathlib import Path
from typing import Union

from ..errors import HeaderValidationError

logger = logging.getLogger(__name__)

EXPECTED_HEADER = "name;price;expiration"
HEADER_PREFIX_BYTES = 1024
BOM = "\ufeff"


def validate_header(file_path: Union[str, Path], expected: str = EXPECTED_HEADER) -> None:
    """
    Check the first line of a file against the expected column layout.

    Only a bounded prefix of the file is read.

    Args:
        file_path: Path to the staged file
        expected: Exact header line required

    Raises:
        HeaderValidationError: If the header differs or the file is empty
    """
    with open(file_path, "rb") as f:
        prefix = f.read(HEADER_PREFIX_BYTES)

    text = prefix.decode("utf-8", errors="replace")
    newline = text.find("\n")

    if newline == -1:
        # No line break in the prefix: the whole file is (at most) a header
        line = text.strip().lstrip(BOM).strip()
        if line != expected:
            raise HeaderValidationError("Invalid header or empty file", {"header": line})
        logger.debug(f"Header-only file {file_path}")
        return

    line = text[:newline].strip().lstrip(BOM).strip()
    if line != expected:
        raise HeaderValidationError(
            f"Invalid header: expected '{expected}', got '{line}'", {"header": line}
        )
