# -------------------------------- driftlight/params.py --------------------------------

from __future__ import annotations

# Tunable parameters, in the order they are reported.
PARAMETERS = ("lambda", "decay", "rate")


class ParameterError(ValueError):
    """A control message carried a value we cannot apply."""


def parse_byte(value: str | bytes) -> int:
    """Parse a decimal unsigned 8-bit integer, e.g. "128" or b" 7 "."""
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            raise ParameterError(f"value {value!r} is not valid UTF-8") from None
    text = value.strip()
    if not text.isascii() or not text.isdigit():
        raise ParameterError(f"value {value!r} is not an unsigned integer")
    n = int(text)
    if n > 255:
        raise ParameterError(f"value {n} does not fit in 8 bits")
    return n


def validate(name: str, value: int) -> int:
    """Per-parameter checks on an already parsed byte."""
    if name == "rate" and value == 0:
        raise ParameterError("rate must be at least 1 tick per second")
    return value
