"""Line filter using a small regular-expression matcher (^ . * $ only)."""

import sys
from typing import Iterable, List, Optional, Sequence, TextIO

# Size of the line buffer: a line longer than BUFSIZE - 1 characters,
# counting its newline, cannot be held and ends the search.
BUFSIZE = 1024


def _matchhere(re: str, ri: int, text: str, ti: int) -> bool:
    """Search for re[ri:] at the beginning of text[ti:]."""
    while True:
        if ri >= len(re):
            return True
        if ri + 1 < len(re) and re[ri + 1] == "*":
            return _matchstar(re[ri], re, ri + 2, text, ti)
        if re[ri] == "$" and ri + 1 == len(re):
            return ti == len(text)
        if ti < len(text) and (re[ri] == "." or re[ri] == text[ti]):
            ri += 1
            ti += 1
            continue
        return False


def _matchstar(c: str, re: str, ri: int, text: str, ti: int) -> bool:
    """Search for c* followed by re[ri:] at the beginning of text[ti:]."""
    while True:
        if _matchhere(re, ri, text, ti):
            return True
        if ti < len(text) and (text[ti] == c or c == "."):
            ti += 1
        else:
            return False


def match(re: str, text: str) -> bool:
    """True if the pattern re matches anywhere in text."""
    if re.startswith("^"):
        return _matchhere(re, 1, text, 0)
    return any(_matchhere(re, 0, text, start) for start in range(len(text) + 1))


def grep(pattern: str, src: Iterable[str], out: TextIO) -> None:
    """Write to out every newline-terminated line of src that matches pattern.

    A final line without a newline is never written, and a line too long
    for the buffer stops the search.
    """
    for line in src:
        if len(line) > BUFSIZE - 1:
            return
        if not line.endswith("\n"):
            return
        if match(pattern, line[:-1]):
            out.write(line)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """grep pattern [file ...]"""
    args: List[str] = list(sys.argv[1:] if argv is None else argv)
    if not args:
        sys.stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern = args[0]
    if len(args) == 1:
        grep(pattern, sys.stdin, sys.stdout)
        return 0
    for name in args[1:]:
        try:
            f = open(name, encoding="utf-8", errors="replace", newline="")
        except OSError:
            sys.stdout.write(f"grep: cannot open {name}\n")
            return 1
        with f:
            grep(pattern, f, sys.stdout)
    return 0