"""
Staging of uploaded price files.
Copies the remote object to local disk and reads it back in chunks.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union

import chardet
import pandas as pd

from ..errors import ObjectStoreError
from ..storage.gcs import ObjectStore

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024
COLUMNS = ["name", "price", "expiration"]


def stage_object(store: ObjectStore, key: str, output_path: Union[str, Path]) -> int:
    """
    Stream an object to a local file, counting its lines on the way.

    A last line without a trailing newline still counts.

    Args:
        store: Object store to read from
        key: Object key
        output_path: Local staging file, overwritten if present

    Returns:
        Number of lines in the object

    Raises:
        ObjectStoreError: If the object cannot be read
    """
    newlines = 0
    last_byte = b""
    size = 0

    try:
        with store.open(key) as source, open(output_path, "wb") as target:
            while True:
                chunk = source.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                newlines += chunk.count(b"\n")
                last_byte = chunk[-1:]
                size += len(chunk)
                target.write(chunk)
    except ObjectStoreError:
        raise
    except OSError as e:
        raise ObjectStoreError(f"Failed to download '{key}': {e}", {"key": key}) from e

    lines = newlines + (1 if size and last_byte != b"\n" else 0)
    logger.info(f"Staged {key} to {output_path} ({size / 1024:.1f} KB, {lines} lines)")
    return lines


def detect_csv_encoding(file_path: Union[str, Path]) -> str:
    """
    Detect CSV file encoding using chardet.

    UTF-8 (and its ASCII subset) is read as utf-8-sig so a byte-order
    mark never ends up in the first column name.

    Args:
        file_path: Path to CSV file

    Returns:
        Encoding name usable by pandas
    """
    with open(file_path, "rb") as f:
        raw_data = f.read(10000)  # Read first 10KB

    result = chardet.detect(raw_data)
    encoding = (result["encoding"] or "utf-8").lower()

    if encoding in ("ascii", "utf-8", "utf-8-sig"):
        return "utf-8-sig"

    logger.info(f"Detected encoding: {encoding} (confidence: {result['confidence']:.2%})")
    return encoding


def iter_row_chunks(
    file_path: Union[str, Path], chunk_size: int, skip_rows: int = 0
) -> Iterator[List[Dict[str, Any]]]:
    """
    Read a staged price file in chunks of row dicts.

    All values are read as strings; empty or missing cells come back as "".
    Every line after the header is a row, blank lines included, so row
    numbers match the line count taken while staging. The header line is
    read as data to pin the field count: a row with extra fields raises
    pandas' ParserError.

    Args:
        file_path: Staged file, header included
        chunk_size: Rows per chunk
        skip_rows: Leading parsed rows to drop (resume offset)

    Yields:
        Lists of {'name', 'price', 'expiration'} dicts, in file order
    """
    encoding = detect_csv_encoding(file_path)

    reader = pd.read_csv(
        file_path,
        sep=";",
        header=None,
        index_col=False,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
        chunksize=chunk_size,
        encoding=encoding,
    )

    # Header plus the rows a previous run already committed
    to_drop = skip_rows + 1
    pending: List[Dict[str, Any]] = []

    with reader:
        for chunk_df in reader:
            chunk_df = chunk_df.reindex(columns=range(len(COLUMNS)))
            chunk_df.columns = COLUMNS
            records = chunk_df.fillna("").to_dict("records")

            if to_drop:
                dropped = min(to_drop, len(records))
                records = records[dropped:]
                to_drop -= dropped

            pending.extend(records)
            while len(pending) >= chunk_size:
                yield pending[:chunk_size]
                pending = pending[chunk_size:]

    if pending:
        yield pending


def remove_staging_file(path: Union[str, Path]) -> None:
    """Delete a staging file if it exists."""
    path = Path(path)
    if path.exists():
        path.unlink()
        logger.debug(f"Removed staging file {path}")
