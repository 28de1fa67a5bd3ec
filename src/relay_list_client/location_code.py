"""
Location code parsing.

A location code names a point of presence as ``<country>-<city>``,
for example ``se-mma``.
"""

from typing import Optional

LOCATION_CODE_SEPARATOR = "-"


def split_location_code(code: str) -> Optional[tuple[str, str]]:
    """
    Split a location code into its country and city parts.

    Anything after a second separator is ignored. Case is left untouched.

    Returns:
        (country_code, city_code), or None if the code has no separator
    """
    parts = code.split(LOCATION_CODE_SEPARATOR)
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def resolve_location_code(code: str) -> Optional[tuple[str, str]]:
    """Like split_location_code, with both parts lowercased."""
    parts = split_location_code(code)
    if parts is None:
        return None
    country_code, city_code = parts
    return country_code.lower(), city_code.lower()
