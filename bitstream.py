"""
Bit-level file streams for the .huf format.

A compressed file is a frequency table header followed by the packed code
bits:

    magic        4 bytes   b"HUF1"
    entries      uint16    number of (symbol, count) pairs
    entry * n    uint16 symbol, uint64 count   (table order, big-endian)
    payload      bitarray.util.serialize() output (endian/pad byte + bits)

Table order is preserved on the way back in, since the Huffman tree built
from it depends on that order when counts tie.
"""

from __future__ import annotations

import struct
from typing import Dict, Optional, Tuple

from bitarray import bitarray
from bitarray.util import serialize, deserialize

MAGIC = b"HUF1"
MAX_SYMBOL = 256  # pseudo EOF is the largest symbol a table may hold

_COUNT = struct.Struct(">H")
_ENTRY = struct.Struct(">HQ")


class CorruptStreamError(ValueError):
    """Raised when a compressed stream is malformed or truncated."""


def encode_frequency_map(frequency_map: Dict[int, int]) -> bytes:
    out = bytearray(MAGIC)
    out += _COUNT.pack(len(frequency_map))
    for symbol, count in frequency_map.items():
        if not 0 <= symbol <= MAX_SYMBOL:
            raise ValueError(f"symbol {symbol} out of range")
        if count < 1:
            raise ValueError(f"count for symbol {symbol} must be positive")
        out += _ENTRY.pack(symbol, count)
    return bytes(out)


def decode_frequency_map(data: bytes) -> Tuple[Dict[int, int], int]:
    """
    Parse a header from the start of data
    Returns (frequency_map, bytes consumed)
    """
    header_len = len(MAGIC) + _COUNT.size
    if len(data) < header_len or data[:len(MAGIC)] != MAGIC:
        raise CorruptStreamError("missing .huf header")

    (n,) = _COUNT.unpack_from(data, len(MAGIC))
    end = header_len + n * _ENTRY.size
    if len(data) < end:
        raise CorruptStreamError(f"frequency table truncated ({n} entries expected)")

    table: Dict[int, int] = {}
    for offset in range(header_len, end, _ENTRY.size):
        symbol, count = _ENTRY.unpack_from(data, offset)
        if symbol > MAX_SYMBOL or count < 1 or symbol in table:
            raise CorruptStreamError(f"bad frequency entry {symbol}: {count}")
        table[symbol] = count

    if table.get(MAX_SYMBOL) != 1:
        raise CorruptStreamError("frequency table has no end-of-stream entry")
    return table, end


class OutputBitStream:
    """Collects bits in memory and writes header + payload on close."""

    def __init__(self, path):
        self._file = open(path, "wb")
        self._bits = bitarray(endian="big")
        self._header_written = False

    def __enter__(self) -> "OutputBitStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    @property
    def bits_written(self) -> int:
        return len(self._bits)

    def write_frequency_map(self, frequency_map: Dict[int, int]) -> None:
        if self._header_written:
            raise ValueError("frequency map already written")
        self._file.write(encode_frequency_map(frequency_map))
        self._header_written = True

    def write_bit(self, bit: int) -> None:
        if not self._header_written:
            raise ValueError("write_frequency_map() must come before any bits")
        self._bits.append(1 if bit else 0)

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            if self._header_written:
                self._file.write(serialize(self._bits))
        finally:
            self._file.close()

    def abort(self) -> None:
        """Close without writing the payload; the file holds at most a header"""
        self._file.close()


class InputBitStream:
    """Reads a whole .huf file and hands out the header and then single bits."""

    def __init__(self, path):
        with open(path, "rb") as f:
            self._data = f.read()
        self._bits: Optional[bitarray] = None
        self._pos = 0

    def __enter__(self) -> "InputBitStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._data = b""

    def read_frequency_map(self) -> Dict[int, int]:
        if self._bits is not None:
            raise ValueError("frequency map already read")
        table, consumed = decode_frequency_map(self._data)
        try:
            self._bits = deserialize(self._data[consumed:])
        except ValueError as e:
            raise CorruptStreamError(f"unreadable payload: {e}") from e
        self._pos = 0
        return table

    @property
    def bits_remaining(self) -> int:
        if self._bits is None:
            return 0
        return len(self._bits) - self._pos

    def eof(self) -> bool:
        return self.bits_remaining == 0

    def read_bit(self) -> Optional[int]:
        """Next bit (0 or 1), or None once the payload is exhausted"""
        if self._bits is None:
            raise ValueError("read_frequency_map() must come before any bits")
        if self._pos >= len(self._bits):
            return None
        bit = self._bits[self._pos]
        self._pos += 1
        return bit
