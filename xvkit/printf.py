"""Formatted output understanding only %d, %u, %x (with l/ll), %p, %s and %%."""

import re
import sys
from typing import Any, Iterator, TextIO

_DIGITS = "0123456789ABCDEF"
_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1

# A conversion is '%' followed by a length-qualified integer conversion or any
# single character; a lone '%' at the end of the format produces nothing.
_CONVERSION = re.compile(r"%(ll[dux]|l[dux]|[\s\S])?")


def _format_int(value: int, base: int, signed: bool) -> str:
    """Render value as a 32-bit integer, the way the integer printer does."""
    x = int(value) & _MASK32
    negative = signed and bool(x & 0x80000000)
    if negative:
        x = (-(x - (1 << 32))) & _MASK32
    digits = []
    while True:
        digits.append(_DIGITS[x % base])
        x //= base
        if x == 0:
            break
    if negative:
        digits.append("-")
    return "".join(reversed(digits))


def _format_ptr(value: int) -> str:
    return "0x" + format(int(value) & _MASK64, "016X")


def _format_str(value: Any) -> str:
    if value is None:
        return "(null)"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    return str(value)


def _next_arg(args: Iterator[Any], spec: str) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise TypeError(f"not enough arguments for %{spec}") from None


def sprintf(fmt: str, *args: Any) -> str:
    """Return fmt with its conversions replaced by the formatted args."""
    values = iter(args)

    def convert(m: "re.Match[str]") -> str:
        spec = m.group(1)
        if spec is None:
            return ""
        kind = spec[-1]
        if len(spec) > 1 or kind in "dux":
            if kind == "d":
                return _format_int(_next_arg(values, spec), 10, True)
            if kind == "u":
                return _format_int(_next_arg(values, spec), 10, False)
            if kind == "x":
                return _format_int(_next_arg(values, spec), 16, False)
        if spec == "p":
            return _format_ptr(_next_arg(values, spec))
        if spec == "s":
            return _format_str(_next_arg(values, spec))
        if spec == "%":
            return "%"
        # Unknown conversion: print it to draw attention.
        return "%" + spec

    return _CONVERSION.sub(convert, fmt)


def fprintf(stream: TextIO, fmt: str, *args: Any) -> None:
    """Write the formatted text to stream."""
    stream.write(sprintf(fmt, *args))


def printf(fmt: str, *args: Any) -> None:
    """Write the formatted text to standard output."""
    fprintf(sys.stdout, fmt, *args)