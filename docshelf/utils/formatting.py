"""
Display formatting helpers
"""

import math

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

BYTES_PER_MB = 1024 * 1024


def format_file_size(size_bytes) -> str:
    """
    Human readable size using 1024-based units

    >>> format_file_size(0)
    '0 Bytes'
    >>> format_file_size(1536)
    '1.5 KB'
    """
    if not size_bytes or size_bytes <= 0:
        return "0 Bytes"

    exponent = min(int(math.floor(math.log(size_bytes, 1024))), len(_SIZE_UNITS) - 1)
    value = round(size_bytes / math.pow(1024, exponent), 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def megabytes_to_bytes(megabytes: float) -> int:
    return int(round(megabytes * BYTES_PER_MB))
