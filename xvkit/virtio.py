"""Virtio MMIO register offsets and the block-device queue structures."""

import struct
from dataclasses import dataclass, field
from typing import List

# MMIO control registers, offsets from the device base.
VIRTIO_MMIO_MAGIC_VALUE = 0x000
VIRTIO_MMIO_VERSION = 0x004
VIRTIO_MMIO_DEVICE_ID = 0x008
VIRTIO_MMIO_VENDOR_ID = 0x00C
VIRTIO_MMIO_DEVICE_FEATURES = 0x010
VIRTIO_MMIO_DRIVER_FEATURES = 0x020
VIRTIO_MMIO_QUEUE_SEL = 0x030
VIRTIO_MMIO_QUEUE_NUM_MAX = 0x034
VIRTIO_MMIO_QUEUE_NUM = 0x038
VIRTIO_MMIO_QUEUE_READY = 0x044
VIRTIO_MMIO_QUEUE_NOTIFY = 0x050
VIRTIO_MMIO_INTERRUPT_STATUS = 0x060
VIRTIO_MMIO_INTERRUPT_ACK = 0x064
VIRTIO_MMIO_STATUS = 0x070
VIRTIO_MMIO_QUEUE_DESC_LOW = 0x080
VIRTIO_MMIO_QUEUE_DESC_HIGH = 0x084
VIRTIO_MMIO_DRIVER_DESC_LOW = 0x090
VIRTIO_MMIO_DRIVER_DESC_HIGH = 0x094
VIRTIO_MMIO_DEVICE_DESC_LOW = 0x0A0
VIRTIO_MMIO_DEVICE_DESC_HIGH = 0x0A4

# Status register bits.
VIRTIO_CONFIG_S_ACKNOWLEDGE = 1
VIRTIO_CONFIG_S_DRIVER = 2
VIRTIO_CONFIG_S_DRIVER_OK = 4
VIRTIO_CONFIG_S_FEATURES_OK = 8

# Device feature bits.
VIRTIO_BLK_F_RO = 5
VIRTIO_BLK_F_SCSI = 7
VIRTIO_BLK_F_CONFIG_WCE = 11
VIRTIO_BLK_F_MQ = 12
VIRTIO_F_ANY_LAYOUT = 27
VIRTIO_RING_F_INDIRECT_DESC = 28
VIRTIO_RING_F_EVENT_IDX = 29

NUM = 8  # descriptors per queue; a power of two

VRING_DESC_F_NEXT = 1
VRING_DESC_F_WRITE = 2

VIRTIO_BLK_T_IN = 0
VIRTIO_BLK_T_OUT = 1

_DESC = struct.Struct("<QIHH")
_AVAIL = struct.Struct(f"<HH{NUM}HH")
_USED_ELEM = struct.Struct("<II")
_USED_HEAD = struct.Struct("<HH")
_BLK_REQ = struct.Struct("<IIQ")


def _check_length(name: str, data: bytes, size: int) -> None:
    if len(data) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(data)}")


def _check_ring(ring: list) -> None:
    if len(ring) != NUM:
        raise ValueError(f"ring must have {NUM} entries")


@dataclass
class VirtqDesc:
    """One descriptor: buffer address, length, flags and next index."""

    addr: int = 0
    length: int = 0
    flags: int = 0
    next: int = 0

    SIZE = _DESC.size

    def pack(self) -> bytes:
        return _DESC.pack(self.addr, self.length, self.flags, self.next)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqDesc":
        _check_length("descriptor", data, _DESC.size)
        return cls(*_DESC.unpack(data))


@dataclass
class VirtqAvail:
    """The available ring written by the driver."""

    flags: int = 0
    idx: int = 0
    ring: List[int] = field(default_factory=lambda: [0] * NUM)
    unused: int = 0

    SIZE = _AVAIL.size

    def __post_init__(self) -> None:
        _check_ring(self.ring)

    def pack(self) -> bytes:
        return _AVAIL.pack(self.flags, self.idx, *self.ring, self.unused)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqAvail":
        _check_length("available ring", data, _AVAIL.size)
        flags, idx, *rest = _AVAIL.unpack(data)
        return cls(flags=flags, idx=idx, ring=list(rest[:NUM]), unused=rest[NUM])


@dataclass
class VirtqUsedElem:
    """One completed request: the head descriptor index and written length."""

    id: int = 0
    length: int = 0

    SIZE = _USED_ELEM.size

    def pack(self) -> bytes:
        return _USED_ELEM.pack(self.id, self.length)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqUsedElem":
        _check_length("used element", data, _USED_ELEM.size)
        return cls(*_USED_ELEM.unpack(data))


@dataclass
class VirtqUsed:
    """The used ring written by the device."""

    flags: int = 0
    idx: int = 0
    ring: List[VirtqUsedElem] = field(default_factory=lambda: [VirtqUsedElem() for _ in range(NUM)])

    SIZE = _USED_HEAD.size + NUM * _USED_ELEM.size

    def __post_init__(self) -> None:
        _check_ring(self.ring)

    def pack(self) -> bytes:
        return _USED_HEAD.pack(self.flags, self.idx) + b"".join(e.pack() for e in self.ring)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqUsed":
        _check_length("used ring", data, cls.SIZE)
        flags, idx = _USED_HEAD.unpack_from(data)
        ring = [
            VirtqUsedElem(*_USED_ELEM.unpack_from(data, _USED_HEAD.size + k * _USED_ELEM.size))
            for k in range(NUM)
        ]
        return cls(flags=flags, idx=idx, ring=ring)


@dataclass
class VirtioBlkReq:
    """Header of a block request: direction and starting sector."""

    type: int = VIRTIO_BLK_T_IN
    reserved: int = 0
    sector: int = 0

    SIZE = _BLK_REQ.size

    def pack(self) -> bytes:
        return _BLK_REQ.pack(self.type, self.reserved, self.sector)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtioBlkReq":
        _check_length("block request", data, _BLK_REQ.size)
        return cls(*_BLK_REQ.unpack(data))