"""Small string and input helpers used by the user programs."""

from typing import TextIO, Union

BytesLike = Union[str, bytes, bytearray]


def _as_bytes(s: BytesLike) -> bytes:
    return s.encode("utf-8") if isinstance(s, str) else bytes(s)


def _cstring(s: BytesLike) -> bytes:
    data = _as_bytes(s)
    end = data.find(b"\0")
    return data if end < 0 else data[:end]


def strcmp(p: BytesLike, q: BytesLike) -> int:
    """Compare two NUL-terminated strings as unsigned bytes."""
    a = _cstring(p) + b"\0"
    b = _cstring(q) + b"\0"
    for x, y in zip(a, b):
        if x != y or x == 0:
            return x - y
    return 0


def atoi(s: BytesLike) -> int:
    """Parse the leading decimal digits of s; no sign, no whitespace."""
    n = 0
    for ch in _as_bytes(s):
        if not 0x30 <= ch <= 0x39:
            break
        n = n * 10 + (ch - 0x30)
    return n


def memcmp(a: BytesLike, b: BytesLike, n: int) -> int:
    """Compare the first n bytes of a and b as unsigned bytes."""
    x = _as_bytes(a)
    y = _as_bytes(b)
    if n < 0 or n > len(x) or n > len(y):
        raise ValueError("memcmp length exceeds the buffers")
    for p, q in zip(x[:n], y[:n]):
        if p != q:
            return p - q
    return 0


def gets(stream: TextIO, max: int) -> str:
    """Read up to max-1 characters, stopping after a newline or carriage return."""
    chars = []
    while len(chars) + 1 < max:
        c = stream.read(1)
        if not c:
            break
        chars.append(c)
        if c in ("\n", "\r"):
            break
    return "".join(chars)