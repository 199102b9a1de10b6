# reading_tracker/identity.py
"""Map source-native story ids onto one integer key space.

Hacker News hands out numeric ids, Reddit and Pinboard use opaque strings.
Numbers pass through untouched, strings go through a 31-multiplier rolling
hash folded into a signed 32-bit int. Not cryptographic: collisions are
possible and accepted.
"""
from typing import Union

NativeId = Union[int, str]


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def hash_string_to_int(value: str) -> int:
    """Deterministic integer hash of a string (no per-process seed)."""
    h = 0
    data = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return abs(h)


def normalize_id(native_id: NativeId) -> int:
    """Return the integer key for a source-native id."""
    if isinstance(native_id, int) and not isinstance(native_id, bool):
        return native_id
    return hash_string_to_int(str(native_id))
