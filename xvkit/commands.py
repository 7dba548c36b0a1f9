"""Small file utilities: cat, echo, wc, ls, ln, mkdir, rm and kill."""

import os
import signal
import sys
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Sequence, TextIO

from xvkit.printf import sprintf
from xvkit.stat import FileType, stat_path
from xvkit.ulib import atoi

DIRSIZ = 14
_CHUNK = 512
_PATHBUF = 512
_WHITESPACE = frozenset(b" \r\t\n\v\0")
_KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)


def _args(argv: Optional[Sequence[str]]) -> List[str]:
    return list(sys.argv[1:] if argv is None else argv)


def _stdout_bytes() -> BinaryIO:
    sys.stdout.flush()
    return getattr(sys.stdout, "buffer", sys.stdout)


def _stdin_bytes() -> BinaryIO:
    return getattr(sys.stdin, "buffer", sys.stdin)


@dataclass(frozen=True)
class WcCounts:
    """Line, word and byte counts of one input."""

    lines: int
    words: int
    chars: int


def cat(src: BinaryIO, out: BinaryIO) -> None:
    """Copy src to out in blocks."""
    while True:
        try:
            chunk = src.read(_CHUNK)
        except OSError as exc:
            raise OSError("cat: read error") from exc
        if not chunk:
            return
        try:
            written = out.write(chunk)
        except OSError as exc:
            raise OSError("cat: write error") from exc
        if written is not None and written != len(chunk):
            raise OSError("cat: write error")


def echo(args: Sequence[str], out: TextIO) -> None:
    """Write args separated by spaces and ended by a newline; nothing if empty."""
    if args:
        out.write(" ".join(args) + "\n")


def wc(src: BinaryIO) -> WcCounts:
    """Count lines, words and bytes of src."""
    lines = words = chars = 0
    inword = False
    while True:
        try:
            chunk = src.read(_CHUNK)
        except OSError as exc:
            raise OSError("wc: read error") from exc
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        for byte in chunk:
            chars += 1
            if byte == 0x0A:
                lines += 1
            if byte in _WHITESPACE:
                inword = False
            elif not inword:
                words += 1
                inword = True
    return WcCounts(lines, words, chars)


def fmtname(path: str) -> str:
    """The last path component, blank-padded to DIRSIZ characters."""
    name = path[path.rfind("/") + 1:]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _entry_line(path: str, st) -> str:
    return sprintf("%s %d %d %d\n", fmtname(path), int(st.type), st.ino, st.size)


def ls(path: str, out: TextIO) -> None:
    """List a file, or every entry of a directory, with type, inode and size."""
    try:
        st = stat_path(path)
    except OSError:
        sys.stderr.write(f"ls: cannot open {path}\n")
        return
    if st.type != FileType.DIR:
        out.write(_entry_line(path, st))
        return
    if len(path) + 1 + DIRSIZ + 1 > _PATHBUF:
        out.write("ls: path too long\n")
        return
    try:
        names = [".", ".."] + sorted(os.listdir(path))
    except OSError:
        sys.stderr.write(f"ls: cannot stat {path}\n")
        return
    for name in names:
        full = path + "/" + name[:DIRSIZ]
        try:
            entry = stat_path(full)
        except OSError:
            out.write(f"ls: cannot stat {full}\n")
            continue
        out.write(_entry_line(full, entry))


def cat_main(argv: Optional[Sequence[str]] = None) -> int:
    """cat [file ...]"""
    args = _args(argv)
    out = _stdout_bytes()
    try:
        if not args:
            cat(_stdin_bytes(), out)
            return 0
        for name in args:
            try:
                f = open(name, "rb")
            except OSError:
                sys.stderr.write(f"cat: cannot open {name}\n")
                return 1
            with f:
                cat(f, out)
    except OSError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    finally:
        out.flush()
    return 0


def echo_main(argv: Optional[Sequence[str]] = None) -> int:
    """echo [word ...]"""
    echo(_args(argv), sys.stdout)
    return 0


def wc_main(argv: Optional[Sequence[str]] = None) -> int:
    """wc [file ...]"""
    args = _args(argv)
    try:
        if not args:
            c = wc(_stdin_bytes())
            sys.stdout.write(sprintf("%d %d %d %s\n", c.lines, c.words, c.chars, ""))
            return 0
        for name in args:
            try:
                f = open(name, "rb")
            except OSError:
                sys.stdout.write(f"wc: cannot open {name}\n")
                return 1
            with f:
                c = wc(f)
            sys.stdout.write(sprintf("%d %d %d %s\n", c.lines, c.words, c.chars, name))
    except OSError as exc:
        sys.stdout.write(f"{exc}\n")
        return 1
    return 0


def ls_main(argv: Optional[Sequence[str]] = None) -> int:
    """ls [path ...]"""
    args = _args(argv)
    for path in args or ["."]:
        ls(path, sys.stdout)
    return 0


def ln_main(argv: Optional[Sequence[str]] = None) -> int:
    """ln old new"""
    args = _args(argv)
    if len(args) != 2:
        sys.stderr.write("Usage: ln old new\n")
        return 1
    old, new = args
    try:
        os.link(old, new)
    except OSError:
        sys.stderr.write(f"link {old} {new}: failed\n")
    return 0


def mkdir_main(argv: Optional[Sequence[str]] = None) -> int:
    """mkdir dir ...; stops at the first failure."""
    args = _args(argv)
    if not args:
        sys.stderr.write("Usage: mkdir files...\n")
        return 1
    for name in args:
        try:
            os.mkdir(name)
        except OSError:
            sys.stderr.write(f"mkdir: {name} failed to create\n")
            break
    return 0


def _unlink(name: str) -> None:
    if os.path.isdir(name) and not os.path.islink(name):
        os.rmdir(name)
    else:
        os.unlink(name)


def rm_main(argv: Optional[Sequence[str]] = None) -> int:
    """rm file ...; empty directories are removed too; stops at the first failure."""
    args = _args(argv)
    if not args:
        sys.stderr.write("Usage: rm files...\n")
        return 1
    for name in args:
        try:
            _unlink(name)
        except OSError:
            sys.stderr.write(f"rm: {name} failed to delete\n")
            break
    return 0


def kill_main(argv: Optional[Sequence[str]] = None) -> int:
    """kill pid ...; failures are ignored."""
    args = _args(argv)
    if not args:
        sys.stderr.write("usage: kill pid...\n")
        return 1
    for arg in args:
        pid = atoi(arg)
        if pid <= 0:
            # No process has this number; sending to it would hit a group.
            continue
        try:
            os.kill(pid, _KILL_SIGNAL)
        except OSError:
            pass
    return 0