# xvkit

Pieces of a small RISC-V teaching operating system, in plain Python with
no dependencies:

- `xvkit.printf`: `sprintf`, `fprintf` and `printf`, a minimal formatter
  that knows `%d`, `%u`, `%x` (also as `%ld`, `%lld` and so on), `%p`, `%s`
  and `%%`. Integers are printed as 32-bit values with upper-case hex
  digits; `%p` prints `0x` and 16 hex digits; a `None` string prints as
  `(null)`; any other `%` sequence is written through as it is.
- `xvkit.ulib`: C-style helpers `strcmp`, `atoi`, `memcmp` and `gets`.
- `xvkit.stat`: the `FileType` enum (`DIR`, `FILE`, `DEVICE`), the `Stat`
  record with `pack`/`unpack`, and `stat_path`, which describes a file on
  the host file system.
- `xvkit.virtio`: virtio MMIO register offsets and feature bits, and the
  ring structures `VirtqDesc`, `VirtqAvail`, `VirtqUsedElem`, `VirtqUsed`
  and `VirtioBlkReq`, each with `pack()` and `unpack(data)`.
- `xvkit.rand`: the Park–Miller generator, as `do_rand(state)` and the
  `Rand` class.
- `xvkit.vm`: `PhysicalMemory` (a run of simulated pages with `kalloc`,
  `kfree`, `read`, `write`) and `AddressSpace`, a three-level Sv39 page
  table with `walk`, `walkaddr`, `mappages`, `unmap`, `load_first`,
  `grow`, `shrink`, `destroy`, `copy_to`, `clear_user`, `copyout`,
  `copyin` and `copyinstr`. Broken invariants raise `KernelPanic`,
  exhausted memory `OutOfMemory`, and bad user addresses `BadAddress`.
- `xvkit.mkfs`: `FsLayout`, `ImageBuilder` and `make_image` for building
  file-system images.
- `xvkit.shell`: `get_token` and `parse_command`, a tokenizer and parser
  for the shell language (`|`, `;`, `&`, `<`, `>`, `>>`, parentheses)
  producing `ExecCmd`, `RedirCmd`, `PipeCmd`, `ListCmd` and `BackCmd`
  trees. Bad input raises `ShellSyntaxError`.
- `xvkit.grep`: `match`, the small regular-expression matcher
  (`^ . * $` only), and `grep`.
- `xvkit.commands`: `cat`, `echo`, `wc` (returning `WcCounts`), `fmtname`
  and `ls`, plus the command entry points.

## Installing

```
pip install .
```

Add the `test` extra to run the test suite with pytest:

```
pip install ".[test]"
pytest
```

## Library use

```python
from xvkit.printf import sprintf
from xvkit.grep import match
from xvkit.shell import parse_command
from xvkit.rand import Rand

sprintf("%d files, %x bytes, %s", 3, 255, "ok")   # '3 files, FF bytes, ok'

match("^ab*c$", "abbbc")    # True
match("x.z", "wxyz")        # True

cmd = parse_command("cat < in.txt | grep foo > out.txt ; echo done &")

gen = Rand(1)
values = [gen.rand() for _ in range(3)]
```

Page tables sit on top of a simulated physical memory:

```python
from xvkit.vm import PhysicalMemory, AddressSpace, pgroundup

mem = PhysicalMemory(64, 0x80000000)
space = AddressSpace(mem)
space.load_first(b"\x13\x00\x00\x00")
space.copyin(0, 4)          # b'\x13\x00\x00\x00'
pgroundup(5000)             # 8192
```

## Commands

Building a file-system image from a set of files:

```
xv-mkfs fs.img README user/_cat user/_echo
```

The first argument is the image to create; the others are copied into the
root directory. A leading `user/` is dropped from each name, and so is a
leading underscore. Names may be at most 14 bytes and may not contain a
slash.

Text tools that read files or standard input:

```
xv-grep pattern file1 file2
xv-cat file1 file2
xv-wc notes.txt
xv-echo hello world
xv-ls .
```

`xv-ls` prints each entry's padded name, type number, inode number and
size, taken from the host file system.

File and process tools, acting on the host system:

```
xv-ln old new
xv-mkdir dir1 dir2
xv-rm file1 file2
xv-kill 1234
```

`xv-ln` makes a hard link. `xv-mkdir` and `xv-rm` stop at the first name
they cannot handle; `xv-rm` removes empty directories as well as files.
`xv-kill` sends each process a kill signal and ignores failures.

## What this package does not do

- There is no heap allocator: nothing in the package hands out or frees
  blocks of user memory.
- The shell module only parses command lines; it does not run the command
  trees it builds, and there is no interactive shell command.
- There is no kernel, scheduler or emulator: page tables work over
  simulated memory only, and the virtio structures are only packed and
  unpacked, never sent to a device.
- Images made by `xv-mkfs` can be written but there is no tool here to
  mount or read them back as a file system.