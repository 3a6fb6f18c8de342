"""
Path validation and array helpers used by the decoder.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from .exceptions import MissingFileError, UnsupportedExtensionError


def get_file_ext(file_path: Union[str, Path]) -> str:
    """
    Return the extension of a path, including the leading dot.

    Examples:
        "rec/PAL01.datx" -> ".datx"
        "PAL01.DAT" -> ".dat"
    """
    return Path(file_path).suffix.lower()


def check_file(
    file_path: Union[str, Path], valid_ext: Optional[Iterable[str]] = None
) -> bool:
    """
    Check that a file exists and, optionally, that its extension is accepted.

    Args:
        file_path: Path to check
        valid_ext: Accepted extensions (e.g. [".datx", ".dat"]); any if None

    Returns:
        True if the file is valid

    Raises:
        MissingFileError: the file does not exist
        UnsupportedExtensionError: the extension is not in valid_ext
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise MissingFileError(f"File does not exist: {file_path}")

    ext = get_file_ext(file_path)
    if valid_ext is not None and ext not in set(valid_ext):
        raise UnsupportedExtensionError(
            f"File extension {ext!r} is not recognised: {file_path}"
        )
    return True


def repeat_row(rows: np.ndarray, n: Union[int, Sequence[int], np.ndarray]) -> np.ndarray:
    """
    Repeat each row of a 2D array.

    If n is a scalar every row appears n times. Otherwise row i appears n[i]
    times, in the original order; a count of 0 drops the row.

    Example:
        rows = [[1, 2, 3], [4, 5, 6], [7, 8, 9]], n = [1, 0, 3]
        -> [[1, 2, 3], [7, 8, 9], [7, 8, 9], [7, 8, 9]]
    """
    rows = np.asarray(rows)
    counts = np.asarray(n, dtype=np.int64)

    if counts.ndim == 0:
        counts = np.full(len(rows), int(counts), dtype=np.int64)
    elif counts.shape != (len(rows),):
        raise ValueError(
            f"Repeat counts must have one entry per row, got {counts.size} for {len(rows)} rows"
        )
    if np.any(counts < 0):
        raise ValueError("Repeat counts must be non-negative")

    return np.repeat(rows, counts, axis=0)
