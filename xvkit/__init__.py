"""Teaching-OS pieces: printf, C string helpers, stat, virtio structures, random numbers, Sv39 page tables, image builder, shell parser, grep and file commands."""

__version__ = "0.1.0"