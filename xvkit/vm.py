"""Sv39 three-level page tables over a simulated physical memory."""

from typing import List, Optional, Set

PGSIZE = 4096
PGSHIFT = 12
PXMASK = 0x1FF
PTES_PER_PAGE = 512
MAXVA = 1 << (9 + 9 + 9 + 12 - 1)
KERNBASE = 0x80000000

PTE_V = 1 << 0
PTE_R = 1 << 1
PTE_W = 1 << 2
PTE_X = 1 << 3
PTE_U = 1 << 4

_PTE_BYTES = 8
_MASK64 = (1 << 64) - 1


class KernelPanic(RuntimeError):
    """An invariant of the page-table code was violated."""


class OutOfMemory(MemoryError):
    """No free physical page was available."""


class BadAddress(ValueError):
    """An address is not mapped, not accessible, or out of range."""


def pgroundup(sz: int) -> int:
    """Round sz up to a page boundary."""
    return (sz + PGSIZE - 1) & ~(PGSIZE - 1)


def pgrounddown(a: int) -> int:
    """Round a down to a page boundary."""
    return a & ~(PGSIZE - 1)


def px(level: int, va: int) -> int:
    """The 9-bit page-table index of va at the given level (0, 1 or 2)."""
    return (va >> (PGSHIFT + 9 * level)) & PXMASK


def pa2pte(pa: int) -> int:
    """Shift a physical address into the PPN field of a PTE."""
    return (pa >> 12) << 10


def pte2pa(pte: int) -> int:
    """Extract the physical address held in a PTE."""
    return (pte >> 10) << 12


def pte_flags(pte: int) -> int:
    """The low ten flag bits of a PTE."""
    return pte & 0x3FF


class PhysicalMemory:
    """A run of npages physical pages starting at address base."""

    def __init__(self, npages: int = 1024, base: int = KERNBASE) -> None:
        if npages < 0:
            raise ValueError("page count must not be negative")
        if base % PGSIZE != 0 or base <= 0:
            raise ValueError("base must be a positive page-aligned address")
        self.base = base
        self.npages = npages
        self._data = bytearray(npages * PGSIZE)
        # Pages come off the end of the list, so the highest page goes first.
        self._free: List[int] = [base + k * PGSIZE for k in range(npages)]
        self._free_set: Set[int] = set(self._free)

    @property
    def end(self) -> int:
        return self.base + self.npages * PGSIZE

    def kalloc(self) -> int:
        """Take one free page and return its physical address."""
        if not self._free:
            raise OutOfMemory("no free physical pages")
        pa = self._free.pop()
        self._free_set.discard(pa)
        return pa

    def kfree(self, pa: int) -> None:
        """Return the page at pa to the free list."""
        if pa % PGSIZE != 0 or not self.base <= pa < self.end:
            raise KernelPanic("kfree")
        if pa in self._free_set:
            raise KernelPanic("kfree: double free")
        self._free.append(pa)
        self._free_set.add(pa)

    def _offset(self, pa: int, n: int) -> int:
        if n < 0 or pa < self.base or pa + n > self.end:
            raise BadAddress(f"physical range {pa:#x}+{n} out of memory")
        return pa - self.base

    def read(self, pa: int, n: int) -> bytes:
        """Read n bytes at physical address pa."""
        off = self._offset(pa, n)
        return bytes(self._data[off:off + n])

    def write(self, pa: int, data: bytes) -> None:
        """Write data at physical address pa."""
        off = self._offset(pa, len(data))
        self._data[off:off + len(data)] = data

    def free_pages(self) -> int:
        """Number of pages currently free."""
        return len(self._free)


class AddressSpace:
    """A user page table rooted in one page of physical memory."""

    def __init__(self, mem: PhysicalMemory) -> None:
        self.mem = mem
        self.root = mem.kalloc()
        mem.write(self.root, bytes(PGSIZE))

    def _load(self, addr: int) -> int:
        return int.from_bytes(self.mem.read(addr, _PTE_BYTES), "little")

    def _store(self, addr: int, pte: int) -> None:
        self.mem.write(addr, (pte & _MASK64).to_bytes(_PTE_BYTES, "little"))

    def walk(self, va: int, alloc: bool = False) -> Optional[int]:
        """Physical address of the leaf PTE for va, or None.

        With alloc, missing page-table pages are created; None then means
        physical memory ran out.
        """
        if va >= MAXVA:
            raise KernelPanic("walk")
        table = self.root
        for level in (2, 1):
            addr = table + px(level, va) * _PTE_BYTES
            pte = self._load(addr)
            if pte & PTE_V:
                table = pte2pa(pte)
                continue
            if not alloc:
                return None
            try:
                table = self.mem.kalloc()
            except OutOfMemory:
                return None
            self.mem.write(table, bytes(PGSIZE))
            self._store(addr, pa2pte(table) | PTE_V)
        return table + px(0, va) * _PTE_BYTES

    def walkaddr(self, va: int) -> Optional[int]:
        """Physical address of the user page holding va, or None."""
        if va >= MAXVA:
            return None
        addr = self.walk(va, False)
        if addr is None:
            return None
        pte = self._load(addr)
        if not pte & PTE_V or not pte & PTE_U:
            return None
        return pte2pa(pte)

    def mappages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map size bytes at va to physical pages starting at pa."""
        if va % PGSIZE != 0:
            raise KernelPanic("mappages: va not aligned")
        if size % PGSIZE != 0:
            raise KernelPanic("mappages: size not aligned")
        if size == 0:
            raise KernelPanic("mappages: size")
        last = va + size - PGSIZE
        for a in range(va, last + PGSIZE, PGSIZE):
            addr = self.walk(a, True)
            if addr is None:
                raise OutOfMemory("no page for a page-table page")
            if self._load(addr) & PTE_V:
                raise KernelPanic("mappages: remap")
            self._store(addr, pa2pte(pa + (a - va)) | perm | PTE_V)

    def unmap(self, va: int, npages: int, do_free: bool) -> None:
        """Remove npages existing mappings at va, optionally freeing the pages."""
        if va % PGSIZE != 0:
            raise KernelPanic("uvmunmap: not aligned")
        for a in range(va, va + npages * PGSIZE, PGSIZE):
            addr = self.walk(a, False)
            if addr is None:
                raise KernelPanic("uvmunmap: walk")
            pte = self._load(addr)
            if not pte & PTE_V:
                raise KernelPanic("uvmunmap: not mapped")
            if pte_flags(pte) == PTE_V:
                raise KernelPanic("uvmunmap: not a leaf")
            if do_free:
                self.mem.kfree(pte2pa(pte))
            self._store(addr, 0)

    def load_first(self, src: bytes) -> None:
        """Place src, shorter than a page, at virtual address 0."""
        if len(src) >= PGSIZE:
            raise KernelPanic("uvmfirst: more than a page")
        page = self.mem.kalloc()
        self.mem.write(page, bytes(PGSIZE))
        self.mappages(0, PGSIZE, page, PTE_W | PTE_R | PTE_X | PTE_U)
        self.mem.write(page, bytes(src))

    def grow(self, oldsz: int, newsz: int, xperm: int) -> int:
        """Allocate zeroed user pages to grow from oldsz to newsz; return newsz."""
        if newsz < oldsz:
            return oldsz
        oldsz = pgroundup(oldsz)
        for a in range(oldsz, newsz, PGSIZE):
            try:
                page = self.mem.kalloc()
            except OutOfMemory:
                self.shrink(a, oldsz)
                raise
            self.mem.write(page, bytes(PGSIZE))
            try:
                self.mappages(a, PGSIZE, page, PTE_R | PTE_U | xperm)
            except OutOfMemory:
                self.mem.kfree(page)
                self.shrink(a, oldsz)
                raise
        return newsz

    def shrink(self, oldsz: int, newsz: int) -> int:
        """Free user pages to bring the size from oldsz down to newsz."""
        if newsz >= oldsz:
            return oldsz
        if pgroundup(newsz) < pgroundup(oldsz):
            npages = (pgroundup(oldsz) - pgroundup(newsz)) // PGSIZE
            self.unmap(pgroundup(newsz), npages, True)
        return newsz

    def _freewalk(self, table: int) -> None:
        for i in range(PTES_PER_PAGE):
            addr = table + i * _PTE_BYTES
            pte = self._load(addr)
            if pte & PTE_V and not pte & (PTE_R | PTE_W | PTE_X):
                self._freewalk(pte2pa(pte))
                self._store(addr, 0)
            elif pte & PTE_V:
                raise KernelPanic("freewalk: leaf")
        self.mem.kfree(table)

    def destroy(self, sz: int) -> None:
        """Free sz bytes of user memory, then every page-table page."""
        if sz > 0:
            self.unmap(0, pgroundup(sz) // PGSIZE, True)
        self._freewalk(self.root)

    def copy_to(self, child: "AddressSpace", sz: int) -> None:
        """Copy the first sz bytes of memory and mappings into child."""
        for i in range(0, sz, PGSIZE):
            addr = self.walk(i, False)
            if addr is None:
                raise KernelPanic("uvmcopy: pte should exist")
            pte = self._load(addr)
            if not pte & PTE_V:
                raise KernelPanic("uvmcopy: page not present")
            flags = pte_flags(pte)
            content = self.mem.read(pte2pa(pte), PGSIZE)
            try:
                page = child.mem.kalloc()
            except OutOfMemory:
                child.unmap(0, i // PGSIZE, True)
                raise
            child.mem.write(page, content)
            try:
                child.mappages(i, PGSIZE, page, flags)
            except OutOfMemory:
                child.mem.kfree(page)
                child.unmap(0, i // PGSIZE, True)
                raise

    def clear_user(self, va: int) -> None:
        """Make the page at va inaccessible to user code."""
        addr = self.walk(va, False)
        if addr is None:
            raise KernelPanic("uvmclear")
        self._store(addr, self._load(addr) & ~PTE_U)

    def copyout(self, dstva: int, data: bytes) -> None:
        """Copy data to user virtual address dstva."""
        src = memoryview(bytes(data))
        while src:
            va0 = pgrounddown(dstva)
            if va0 >= MAXVA:
                raise BadAddress(f"address {dstva:#x} beyond MAXVA")
            addr = self.walk(va0, False)
            pte = 0 if addr is None else self._load(addr)
            if not (pte & PTE_V and pte & PTE_U and pte & PTE_W):
                raise BadAddress(f"address {dstva:#x} not writable")
            n = min(PGSIZE - (dstva - va0), len(src))
            self.mem.write(pte2pa(pte) + (dstva - va0), bytes(src[:n]))
            src = src[n:]
            dstva = va0 + PGSIZE

    def copyin(self, srcva: int, n: int) -> bytes:
        """Copy n bytes from user virtual address srcva."""
        chunks = []
        while n > 0:
            va0 = pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {srcva:#x} not readable")
            k = min(PGSIZE - (srcva - va0), n)
            chunks.append(self.mem.read(pa0 + (srcva - va0), k))
            n -= k
            srcva = va0 + PGSIZE
        return b"".join(chunks)

    def copyinstr(self, srcva: int, max: int) -> bytes:
        """Copy a NUL-terminated string of fewer than max bytes from srcva."""
        chunks = []
        while max > 0:
            va0 = pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {srcva:#x} not readable")
            n = min(PGSIZE - (srcva - va0), max)
            chunk = self.mem.read(pa0 + (srcva - va0), n)
            end = chunk.find(b"\0")
            if end >= 0:
                chunks.append(chunk[:end])
                return b"".join(chunks)
            chunks.append(chunk)
            max -= n
            srcva = va0 + PGSIZE
        raise BadAddress("string not terminated within the limit")