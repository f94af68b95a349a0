"""
Ghost Pool Serialization Utilities

All multi-byte integers are LITTLE-ENDIAN, matching the ledger's borsh
encoding. Deserializers return (value, bytes_consumed) like the rest of the
codec layer.
"""

from __future__ import annotations
from typing import Tuple
import struct

from ghostpool.constants import LITTLE_ENDIAN, U32_MAX, U64_MAX, U128_MAX, I64_MIN, I64_MAX


# ==============================================================================
# Integer Serialization (Little-Endian)
# ==============================================================================

def serialize_u8(value: int) -> bytes:
    """Serialize unsigned 8-bit integer."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"u8 value out of range: {value}")
    return bytes([value])


def serialize_u32(value: int) -> bytes:
    """Serialize unsigned 32-bit integer (little-endian)."""
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"u32 value out of range: {value}")
    return value.to_bytes(4, LITTLE_ENDIAN)


def serialize_u64(value: int) -> bytes:
    """Serialize unsigned 64-bit integer (little-endian)."""
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"u64 value out of range: {value}")
    return value.to_bytes(8, LITTLE_ENDIAN)


def serialize_i64(value: int) -> bytes:
    """Serialize signed 64-bit integer (little-endian)."""
    if not I64_MIN <= value <= I64_MAX:
        raise ValueError(f"i64 value out of range: {value}")
    return struct.pack("<q", value)


def serialize_u128(value: int) -> bytes:
    """Serialize unsigned 128-bit integer (little-endian)."""
    if not 0 <= value <= U128_MAX:
        raise ValueError(f"u128 value out of range: {value}")
    return value.to_bytes(16, LITTLE_ENDIAN)


# ==============================================================================
# Integer Deserialization (Little-Endian)
# ==============================================================================

def deserialize_u8(data: bytes, offset: int = 0) -> Tuple[int, int]:
    return data[offset], 1


def deserialize_u32(data: bytes, offset: int = 0) -> Tuple[int, int]:
    return int.from_bytes(data[offset:offset + 4], LITTLE_ENDIAN), 4


def deserialize_u64(data: bytes, offset: int = 0) -> Tuple[int, int]:
    return int.from_bytes(data[offset:offset + 8], LITTLE_ENDIAN), 8


def deserialize_i64(data: bytes, offset: int = 0) -> Tuple[int, int]:
    return struct.unpack("<q", data[offset:offset + 8])[0], 8


def deserialize_u128(data: bytes, offset: int = 0) -> Tuple[int, int]:
    return int.from_bytes(data[offset:offset + 16], LITTLE_ENDIAN), 16


# ==============================================================================
# Compact-u16 (shortvec) length prefix
# ==============================================================================

def serialize_compact_u16(value: int) -> bytes:
    """
    Encode a length as compact-u16: 7 bits per byte, high bit = continuation.

    Used for every array length in a ledger transaction.
    """
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"compact-u16 value out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def deserialize_compact_u16(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Returns (value, bytes_consumed)."""
    value = 0
    for i in range(3):
        byte = data[offset + i]
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, i + 1
    raise ValueError("compact-u16 longer than 3 bytes")


# ==============================================================================
# Fixed byte arrays
# ==============================================================================

def deserialize_fixed_bytes(data: bytes, size: int, offset: int = 0) -> Tuple[bytes, int]:
    """Read exactly `size` bytes. Callers check the buffer length first."""
    return bytes(data[offset:offset + size]), size
