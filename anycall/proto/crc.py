"""CRC checksums used to protect frames."""

import zlib
from collections.abc import Callable
from enum import Enum


class CrcSize(Enum):
    """Number of CRC bytes appended to a frame."""

    NO_CRC = 0
    CRC8 = 1
    CRC16 = 2
    CRC32 = 4


def crc8(data: bytes) -> int:
    """CRC-8, polynomial 0x07, zero initial value."""
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x80:
                crc = ((crc << 1) ^ 0x07) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
    return crc


def crc16(data: bytes) -> int:
    """CRC-16/ARC, reflected polynomial 0xA001, zero initial value."""
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc


def crc32(data: bytes) -> int:
    """Standard CRC-32 (IEEE 802.3)."""
    return zlib.crc32(data) & 0xFFFFFFFF


crc_funcs: dict[CrcSize, Callable[[bytes], int]] = {
    CrcSize.CRC8: crc8,
    CrcSize.CRC16: crc16,
    CrcSize.CRC32: crc32,
}


def crc_size(name: str) -> CrcSize:
    """Look up a CRC size by its schema option name (``CRC8``, ``none``...)."""
    lowered = name.lower()
    if lowered == "none":
        return CrcSize.NO_CRC
    for size in crc_funcs:
        if size.name.lower() == lowered:
            return size
    raise ValueError(f"Unknown CRC type {name}")
