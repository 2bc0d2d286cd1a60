"""Formatting helpers shared by error messages and the CLI."""
from typing import Union

SIZE_UNITS = ('B', 'KB', 'MB', 'GB', 'TB', 'PB', 'EB', 'ZB', 'YB')


def size_to_string(size: Union[int, float]) -> str:
    """
    Formats a byte count as a human readable string.
    
    Uses binary (1024) steps and one decimal, dropping a trailing ``.0``:
    ``10485760`` becomes ``"10 MB"`` and ``1536`` becomes ``"1.5 KB"``.
    """
    if not size or size <= 0:
        return '0 B'
    
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    
    value = round(value, 1)
    if value == int(value):
        return f"{int(value)} {SIZE_UNITS[exponent]}"
    return f"{value:.1f} {SIZE_UNITS[exponent]}"


def file_suffix(name: str) -> str:
    """Returns the lower-cased extension of a file name, without the dot."""
    if '.' not in name:
        return ''
    return name.rsplit('.', 1)[-1].lower()
