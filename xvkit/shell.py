"""Parser for the shell's command language: words, < > >>, |, ;, & and ( )."""

import enum
from dataclasses import dataclass, field
from typing import List, Tuple, Union

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"
MAXARGS = 10


class ShellSyntaxError(ValueError):
    """The command line cannot be parsed."""


class RedirMode(enum.Enum):
    READ = "<"
    WRITE = ">"
    APPEND = ">>"


@dataclass
class ExecCmd:
    argv: List[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    cmd: "Command"
    file: str
    mode: RedirMode
    fd: int


@dataclass
class PipeCmd:
    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


def _skip_ws(s: str, pos: int) -> int:
    while pos < len(s) and s[pos] in WHITESPACE:
        pos += 1
    return pos


def get_token(s: str, pos: int = 0) -> Tuple[str, str, int]:
    """Read one token starting at pos.

    Returns (kind, text, next position). kind is '' at the end of input,
    the symbol itself for | ( ) ; & < >, '+' for >>, and 'a' for a word.
    The next position is past any whitespace following the token.
    """
    start = _skip_ws(s, pos)
    end = start
    if start >= len(s):
        kind = ""
    else:
        c = s[start]
        if c in "|();&<":
            kind = c
            end = start + 1
        elif c == ">":
            kind = ">"
            end = start + 1
            if end < len(s) and s[end] == ">":
                kind = "+"
                end += 1
        else:
            kind = "a"
            while end < len(s) and s[end] not in WHITESPACE and s[end] not in SYMBOLS:
                end += 1
    return kind, s[start:end], _skip_ws(s, end)


class _Parser:
    def __init__(self, s: str) -> None:
        self.s = s
        self.pos = 0

    def peek(self, toks: str) -> bool:
        self.pos = _skip_ws(self.s, self.pos)
        return self.pos < len(self.s) and self.s[self.pos] in toks

    def token(self) -> Tuple[str, str]:
        kind, text, self.pos = get_token(self.s, self.pos)
        return kind, text

    def line(self) -> Command:
        cmd = self.pipe()
        while self.peek("&"):
            self.token()
            cmd = BackCmd(cmd)
        if self.peek(";"):
            self.token()
            cmd = ListCmd(cmd, self.line())
        return cmd

    def pipe(self) -> Command:
        cmd = self.exec()
        if self.peek("|"):
            self.token()
            cmd = PipeCmd(cmd, self.pipe())
        return cmd

    def redirs(self, cmd: Command) -> Command:
        while self.peek("<>"):
            tok, _ = self.token()
            kind, name = self.token()
            if kind != "a":
                raise ShellSyntaxError("missing file for redirection")
            if tok == "<":
                cmd = RedirCmd(cmd, name, RedirMode.READ, 0)
            elif tok == ">":
                cmd = RedirCmd(cmd, name, RedirMode.WRITE, 1)
            else:
                cmd = RedirCmd(cmd, name, RedirMode.APPEND, 1)
        return cmd

    def block(self) -> Command:
        if not self.peek("("):
            raise ShellSyntaxError("parseblock")
        self.token()
        cmd = self.line()
        if not self.peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self.token()
        return self.redirs(cmd)

    def exec(self) -> Command:
        if self.peek("("):
            return self.block()
        ecmd = ExecCmd()
        ret = self.redirs(ecmd)
        while not self.peek("|)&;"):
            kind, text = self.token()
            if kind == "":
                break
            if kind != "a":
                raise ShellSyntaxError("syntax")
            ecmd.argv.append(text)
            if len(ecmd.argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            ret = self.redirs(ret)
        return ret


def parse_command(s: str) -> Command:
    """Parse a whole command line into a command tree."""
    parser = _Parser(s)
    cmd = parser.line()
    parser.peek("")
    if parser.pos != len(s):
        raise ShellSyntaxError(f"syntax: leftovers: {s[parser.pos:]}")
    return cmd