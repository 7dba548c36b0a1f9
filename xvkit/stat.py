"""File metadata as reported by fstat and stat."""

import enum
import os
import stat as _stmod
import struct
from dataclasses import dataclass
from typing import ClassVar

_LAYOUT = struct.Struct("<iIhh4xQ")


class FileType(enum.IntEnum):
    DIR = 1
    FILE = 2
    DEVICE = 3


@dataclass
class Stat:
    """Metadata of one file: device, inode number, type, link count and size."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int

    SIZE: ClassVar[int] = _LAYOUT.size

    def pack(self) -> bytes:
        """Encode in the little-endian in-memory layout of the record."""
        return _LAYOUT.pack(self.dev, self.ino, self.type, self.nlink, self.size)

    @classmethod
    def unpack(cls, data: bytes) -> "Stat":
        if len(data) != cls.SIZE:
            raise ValueError(f"stat record must be {cls.SIZE} bytes")
        dev, ino, kind, nlink, size = _LAYOUT.unpack(data)
        return cls(dev=dev, ino=ino, type=kind, nlink=nlink, size=size)


def stat_path(path: "os.PathLike[str] | str") -> Stat:
    """Describe the file at path on the host file system."""
    st = os.stat(path)
    if _stmod.S_ISDIR(st.st_mode):
        kind = FileType.DIR
    elif _stmod.S_ISREG(st.st_mode):
        kind = FileType.FILE
    else:
        kind = FileType.DEVICE
    return Stat(dev=st.st_dev, ino=st.st_ino, type=kind, nlink=st.st_nlink, size=st.st_size)