"""Build a file-system image holding a root directory and a set of files."""

import struct
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Sequence, Union

from xvkit.stat import FileType

FSMAGIC = 0x10203040
ROOTINO = 1

_SUPERBLOCK = struct.Struct("<8I")


@dataclass(frozen=True)
class FsLayout:
    """Sizes that fix where everything lives on the disk.

    Disk layout:
    [ boot block | super block | log | inode blocks | free bit map | data blocks ]
    """

    size: int = 2000
    ninodes: int = 200
    nlog: int = 30
    block_size: int = 1024
    ndirect: int = 12
    dirsiz: int = 14

    def __post_init__(self) -> None:
        if min(self.size, self.ninodes, self.nlog, self.block_size, self.ndirect, self.dirsiz) <= 0:
            raise ValueError("layout sizes must be positive")
        if self.block_size % self.dinode_size != 0:
            raise ValueError("block size must hold a whole number of inodes")
        if self.block_size % self.dirent_size != 0:
            raise ValueError("block size must hold a whole number of directory entries")
        if self.nblocks <= 0:
            raise ValueError("no room left for data blocks")

    @property
    def dinode_size(self) -> int:
        return 12 + 4 * (self.ndirect + 1)

    @property
    def dirent_size(self) -> int:
        return 2 + self.dirsiz

    @property
    def nindirect(self) -> int:
        return self.block_size // 4

    @property
    def maxfile(self) -> int:
        return self.ndirect + self.nindirect

    @property
    def ipb(self) -> int:
        """Inodes per block."""
        return self.block_size // self.dinode_size

    @property
    def bpb(self) -> int:
        """Bitmap bits per block."""
        return self.block_size * 8

    @property
    def nbitmap(self) -> int:
        return self.size // self.bpb + 1

    @property
    def ninodeblocks(self) -> int:
        return self.ninodes // self.ipb + 1

    @property
    def nmeta(self) -> int:
        return 2 + self.nlog + self.ninodeblocks + self.nbitmap

    @property
    def nblocks(self) -> int:
        return self.size - self.nmeta

    @property
    def logstart(self) -> int:
        return 2

    @property
    def inodestart(self) -> int:
        return 2 + self.nlog

    @property
    def bmapstart(self) -> int:
        return 2 + self.nlog + self.ninodeblocks

    def iblock(self, inum: int) -> int:
        """Block holding inode inum."""
        return inum // self.ipb + self.inodestart

    def superblock(self) -> bytes:
        """The super block record, little-endian."""
        return _SUPERBLOCK.pack(
            FSMAGIC,
            self.size,
            self.nblocks,
            self.ninodes,
            self.nlog,
            self.logstart,
            self.inodestart,
            self.bmapstart,
        )


@dataclass
class _DiskInode:
    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: List[int] = field(default_factory=list)

    @staticmethod
    def _layout(ndirect: int) -> struct.Struct:
        return struct.Struct(f"<hhhhI{ndirect + 1}I")

    def pack(self, ndirect: int) -> bytes:
        return self._layout(ndirect).pack(
            self.type, self.major, self.minor, self.nlink, self.size, *self.addrs
        )

    @classmethod
    def unpack(cls, data: bytes, ndirect: int) -> "_DiskInode":
        kind, major, minor, nlink, size, *addrs = cls._layout(ndirect).unpack(data)
        return cls(kind, major, minor, nlink, size, list(addrs))


class ImageBuilder:
    """Writes a fresh image with a root directory, then files into it."""

    def __init__(self, image: BinaryIO, layout: Optional[FsLayout] = None) -> None:
        self.image = image
        self.layout = layout or FsLayout()
        self.freeblock = self.layout.nmeta
        self._freeinode = 1
        self._finished = False
        bs = self.layout.block_size

        zeroes = bytes(bs)
        for sec in range(self.layout.size):
            self._wsect(sec, zeroes)
        self._wsect(1, self.layout.superblock().ljust(bs, b"\0"))

        self.root = self.ialloc(FileType.DIR)
        if self.root != ROOTINO:
            raise RuntimeError("root inode is not the first inode")
        self._link(".", self.root)
        self._link("..", self.root)

    def _wsect(self, sec: int, data: bytes) -> None:
        bs = self.layout.block_size
        if len(data) != bs:
            raise ValueError("sector write must be exactly one block")
        self.image.seek(sec * bs)
        self.image.write(data)

    def _rsect(self, sec: int) -> bytes:
        bs = self.layout.block_size
        self.image.seek(sec * bs)
        data = self.image.read(bs)
        if len(data) != bs:
            raise OSError(f"short read of sector {sec}")
        return data

    def _write_inode(self, inum: int, din: _DiskInode) -> None:
        bn = self.layout.iblock(inum)
        block = bytearray(self._rsect(bn))
        off = (inum % self.layout.ipb) * self.layout.dinode_size
        block[off:off + self.layout.dinode_size] = din.pack(self.layout.ndirect)
        self._wsect(bn, bytes(block))

    def read_inode(self, inum: int) -> _DiskInode:
        """The on-disk inode inum."""
        block = self._rsect(self.layout.iblock(inum))
        off = (inum % self.layout.ipb) * self.layout.dinode_size
        return _DiskInode.unpack(block[off:off + self.layout.dinode_size], self.layout.ndirect)

    def ialloc(self, type: int) -> int:
        """Allocate the next inode with the given type and one link."""
        inum = self._freeinode
        if inum >= self.layout.ninodeblocks * self.layout.ipb:
            raise ValueError("out of inodes")
        self._freeinode += 1
        din = _DiskInode(type=int(type), nlink=1, size=0, addrs=[0] * (self.layout.ndirect + 1))
        self._write_inode(inum, din)
        return inum

    def _new_block(self) -> int:
        if self.freeblock >= self.layout.size:
            raise ValueError("file system image is full")
        bn = self.freeblock
        self.freeblock += 1
        return bn

    def iappend(self, inum: int, data: bytes) -> None:
        """Append data to the end of inode inum, allocating blocks as needed."""
        layout = self.layout
        bs = layout.block_size
        ind_fmt = struct.Struct(f"<{layout.nindirect}I")
        din = self.read_inode(inum)
        off = din.size
        view = memoryview(bytes(data))
        while view:
            fbn = off // bs
            if fbn >= layout.maxfile:
                raise ValueError("file too large")
            if fbn < layout.ndirect:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._new_block()
                x = din.addrs[fbn]
            else:
                if din.addrs[layout.ndirect] == 0:
                    din.addrs[layout.ndirect] = self._new_block()
                ind_bn = din.addrs[layout.ndirect]
                indirect = list(ind_fmt.unpack(self._rsect(ind_bn)))
                k = fbn - layout.ndirect
                if indirect[k] == 0:
                    indirect[k] = self._new_block()
                    self._wsect(ind_bn, ind_fmt.pack(*indirect))
                x = indirect[k]
            n1 = min(len(view), (fbn + 1) * bs - off)
            block = bytearray(self._rsect(x))
            start = off - fbn * bs
            block[start:start + n1] = view[:n1]
            self._wsect(x, bytes(block))
            view = view[n1:]
            off += n1
        din.size = off
        self._write_inode(inum, din)

    def _link(self, name: str, inum: int) -> None:
        encoded = name.encode("utf-8")
        entry = struct.pack(f"<H{self.layout.dirsiz}s", inum, encoded)
        self.iappend(self.root, entry)

    def add_file(self, name: str, data: bytes) -> int:
        """Create a file called name in the root directory; return its inode."""
        if "/" in name:
            raise ValueError(f"file name {name!r} contains a slash")
        if len(name.encode("utf-8")) > self.layout.dirsiz:
            raise ValueError(f"file name {name!r} is longer than {self.layout.dirsiz} bytes")
        inum = self.ialloc(FileType.FILE)
        self._link(name, inum)
        self.iappend(inum, data)
        return inum

    def finish(self) -> int:
        """Round up the root directory and write the bitmap; return blocks used."""
        if self._finished:
            raise RuntimeError("image already finished")
        bs = self.layout.block_size
        din = self.read_inode(self.root)
        din.size = (din.size // bs + 1) * bs
        self._write_inode(self.root, din)

        used = self.freeblock
        if used >= self.layout.bpb:
            raise ValueError("bitmap does not fit in one block")
        bitmap = bytearray(bs)
        for i in range(used):
            bitmap[i // 8] |= 1 << (i % 8)
        self._wsect(self.layout.bmapstart, bytes(bitmap))
        self._finished = True
        return used


def _short_name(arg: str) -> str:
    name = arg[len("user/"):] if arg.startswith("user/") else arg
    if "/" in name:
        raise ValueError(f"file name {name!r} contains a slash")
    # Binaries are named _rm, _cat, ... on the host; drop the underscore.
    return name[1:] if name.startswith("_") else name


def make_image(
    path: Union[str, Path],
    files: Iterable[Union[str, Path]],
    layout: Optional[FsLayout] = None,
) -> int:
    """Write an image at path holding the given host files; return blocks used."""
    with open(path, "w+b") as image:
        builder = ImageBuilder(image, layout)
        for f in files:
            name = _short_name(str(f))
            builder.add_file(name, Path(f).read_bytes())
        return builder.finish()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command line: image path followed by the files to put in it."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1
    layout = FsLayout()
    print(
        f"nmeta {layout.nmeta} (boot, super, log blocks {layout.nlog} inode blocks "
        f"{layout.ninodeblocks}, bitmap blocks {layout.nbitmap}) blocks {layout.nblocks} "
        f"total {layout.size}"
    )
    try:
        used = make_image(args[0], args[1:], layout)
    except OSError as exc:
        print(f"{exc.filename or args[0]}: {exc.strerror or exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"mkfs: {exc}", file=sys.stderr)
        return 1
    print(f"balloc: first {used} blocks have been allocated")
    print(f"balloc: write bitmap block at sector {layout.bmapstart}")
    return 0