import pytest

from xvkit.vm import (
    MAXVA,
    PGSIZE,
    PTE_R,
    PTE_U,
    PTE_V,
    PTE_W,
    PTE_X,
    AddressSpace,
    BadAddress,
    KernelPanic,
    OutOfMemory,
    PhysicalMemory,
    pa2pte,
    pgrounddown,
    pgroundup,
    pte2pa,
    pte_flags,
    px,
)


def _pte(space, va):
    addr = space.walk(va, False)
    return int.from_bytes(space.mem.read(addr, 8), "little")


@pytest.fixture
def mem():
    return PhysicalMemory(64, 0x80000000)


@pytest.fixture
def space(mem):
    return AddressSpace(mem)


def test_page_rounding():
    assert pgroundup(0) == 0
    assert pgroundup(1) == PGSIZE
    assert pgroundup(PGSIZE) == PGSIZE
    assert pgrounddown(PGSIZE + 5) == PGSIZE
    assert pgrounddown(PGSIZE - 1) == 0


def test_px_levels():
    assert px(0, PGSIZE) == 1
    assert px(1, PGSIZE * 512) == 1
    assert px(2, PGSIZE * 512 * 512) == 1
    assert px(0, PGSIZE * 512) == 0


def test_pte_round_trip():
    pa = 0x80001000
    pte = pa2pte(pa) | PTE_V | PTE_R
    assert pte2pa(pte) == pa
    assert pte_flags(pte) == PTE_V | PTE_R


def test_kalloc_and_kfree(mem):
    start = mem.free_pages()
    pa = mem.kalloc()
    assert pa % PGSIZE == 0
    assert mem.free_pages() == start - 1
    mem.kfree(pa)
    assert mem.free_pages() == start
    with pytest.raises(KernelPanic):
        mem.kfree(pa)


def test_kalloc_exhaustion():
    small = PhysicalMemory(2, 0x80000000)
    small.kalloc()
    small.kalloc()
    with pytest.raises(OutOfMemory):
        small.kalloc()


def test_memory_read_write(mem):
    pa = mem.kalloc()
    mem.write(pa + 10, b"abc")
    assert mem.read(pa + 10, 3) == b"abc"
    with pytest.raises(BadAddress):
        mem.read(mem.base - 1, 1)


def test_create_uses_one_page(mem):
    before = mem.free_pages()
    AddressSpace(mem)
    assert mem.free_pages() == before - 1


def test_mappages_and_walkaddr(mem, space):
    page = mem.kalloc()
    space.mappages(0, PGSIZE, page, PTE_R | PTE_W | PTE_U)
    assert space.walkaddr(0) == page
    assert space.walkaddr(100) == page
    assert space.walkaddr(PGSIZE) is None


def test_walkaddr_requires_user_bit(mem, space):
    page = mem.kalloc()
    space.mappages(0, PGSIZE, page, PTE_R | PTE_W)
    assert space.walkaddr(0) is None


def test_mappages_errors(mem, space):
    page = mem.kalloc()
    with pytest.raises(KernelPanic, match="va not aligned"):
        space.mappages(1, PGSIZE, page, PTE_R)
    with pytest.raises(KernelPanic, match="size not aligned"):
        space.mappages(0, 1, page, PTE_R)
    with pytest.raises(KernelPanic, match="mappages: size"):
        space.mappages(0, 0, page, PTE_R)
    space.mappages(0, PGSIZE, page, PTE_R)
    with pytest.raises(KernelPanic, match="remap"):
        space.mappages(0, PGSIZE, page, PTE_R)


def test_walk_beyond_maxva(space):
    with pytest.raises(KernelPanic):
        space.walk(MAXVA, False)
    assert space.walkaddr(MAXVA) is None


def test_unmap_missing_panics(space):
    with pytest.raises(KernelPanic):
        space.unmap(0, 1, True)


def test_grow_gives_zeroed_memory(space):
    size = 3 * PGSIZE + 1
    assert space.grow(0, size, PTE_W) == size
    assert space.copyin(0, 10) == bytes(10)
    assert space.walkaddr(3 * PGSIZE) is not None
    assert space.walkaddr(4 * PGSIZE) is None


def test_grow_smaller_returns_old(space):
    assert space.grow(PGSIZE * 2, PGSIZE, PTE_W) == PGSIZE * 2


def test_grow_out_of_memory_cleans_up():
    small = PhysicalMemory(4, 0x80000000)
    space = AddressSpace(small)
    with pytest.raises(OutOfMemory):
        space.grow(0, 3 * PGSIZE, PTE_W)
    assert space.walkaddr(0) is None
    assert small.free_pages() == 1


def test_grow_out_of_table_pages_frees_leaf():
    small = PhysicalMemory(2, 0x80000000)
    space = AddressSpace(small)
    with pytest.raises(OutOfMemory):
        space.grow(0, PGSIZE, PTE_W)
    assert small.free_pages() == 1


def test_shrink(mem, space):
    space.grow(0, 3 * PGSIZE, PTE_W)
    before = mem.free_pages()
    assert space.shrink(3 * PGSIZE, PGSIZE) == PGSIZE
    assert mem.free_pages() == before + 2
    assert space.walkaddr(0) is not None
    assert space.walkaddr(PGSIZE) is None
    assert space.shrink(PGSIZE, 2 * PGSIZE) == PGSIZE


def test_destroy_frees_everything(mem):
    start = mem.free_pages()
    space = AddressSpace(mem)
    space.grow(0, 5 * PGSIZE, PTE_W)
    space.destroy(5 * PGSIZE)
    assert mem.free_pages() == start


def test_destroy_with_leftover_leaf_panics(mem, space):
    space.grow(0, PGSIZE, PTE_W)
    space.mappages(5 * PGSIZE, PGSIZE, mem.kalloc(), PTE_R | PTE_U)
    with pytest.raises(KernelPanic, match="freewalk: leaf"):
        space.destroy(PGSIZE)


def test_copyout_copyin_across_pages(space):
    space.grow(0, 2 * PGSIZE, PTE_W)
    data = bytes(range(256)) * 2
    space.copyout(PGSIZE - 100, data)
    assert space.copyin(PGSIZE - 100, len(data)) == data


def test_copyout_readonly_fails(mem, space):
    space.mappages(0, PGSIZE, mem.kalloc(), PTE_R | PTE_U)
    with pytest.raises(BadAddress):
        space.copyout(0, b"x")


def test_copyout_beyond_maxva(space):
    with pytest.raises(BadAddress):
        space.copyout(MAXVA, b"x")


def test_copyin_unmapped(space):
    with pytest.raises(BadAddress):
        space.copyin(0, 1)


def test_clear_user(space):
    space.grow(0, 2 * PGSIZE, PTE_W)
    space.clear_user(PGSIZE)
    assert space.walkaddr(PGSIZE) is None
    with pytest.raises(BadAddress):
        space.copyin(PGSIZE, 1)
    with pytest.raises(BadAddress):
        space.copyout(PGSIZE, b"x")
    with pytest.raises(KernelPanic):
        space.clear_user(600 * PGSIZE * 512)


def test_copyinstr(space):
    space.grow(0, 2 * PGSIZE, PTE_W)
    space.copyout(0, b"hello\0")
    assert space.copyinstr(0, 20) == b"hello"
    space.copyout(PGSIZE - 3, b"abcdef\0")
    assert space.copyinstr(PGSIZE - 3, 100) == b"abcdef"


def test_copyinstr_limit(space):
    space.grow(0, PGSIZE, PTE_W)
    space.copyout(0, b"hello\0")
    with pytest.raises(BadAddress):
        space.copyinstr(0, 5)
    assert space.copyinstr(0, 6) == b"hello"


def test_copyinstr_unmapped(space):
    with pytest.raises(BadAddress):
        space.copyinstr(0, 10)


def test_load_first(space):
    space.load_first(b"abc")
    assert space.copyin(0, 4) == b"abc\0"
    flags = pte_flags(_pte(space, 0))
    assert flags & (PTE_U | PTE_X | PTE_W | PTE_R | PTE_V) == (
        PTE_U | PTE_X | PTE_W | PTE_R | PTE_V
    )
    with pytest.raises(KernelPanic):
        AddressSpace(space.mem).load_first(bytes(PGSIZE))


def test_copy_to_child(mem, space):
    space.grow(0, 2 * PGSIZE, PTE_W)
    space.copyout(10, b"parent data")
    child = AddressSpace(mem)
    space.copy_to(child, 2 * PGSIZE)
    assert child.copyin(10, 11) == b"parent data"
    assert child.walkaddr(0) != space.walkaddr(0)
    child.copyout(10, b"CHILD")
    assert space.copyin(10, 11) == b"parent data"
    assert pte_flags(_pte(child, PGSIZE)) == pte_flags(_pte(space, PGSIZE))


def test_copy_to_out_of_memory(space):
    space.grow(0, 2 * PGSIZE, PTE_W)
    child = AddressSpace(PhysicalMemory(4, 0x90000000))
    with pytest.raises(OutOfMemory):
        space.copy_to(child, 2 * PGSIZE)
    assert child.walkaddr(0) is None


def test_copy_to_missing_page_panics(mem, space):
    child = AddressSpace(mem)
    with pytest.raises(KernelPanic, match="uvmcopy"):
        space.copy_to(child, PGSIZE)