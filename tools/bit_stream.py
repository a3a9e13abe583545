#!/usr/bin/env python3
"""
bit_stream.py - Bit-level writer/reader with URL-safe text conversion

Foundation of the roster share format. Values are packed MSB first at
arbitrary bit widths, then the whole stream is rendered 6 bits per
character through a URL-safe alphabet so it can sit in a URL fragment
without escaping.

Text Alphabet (64 symbols, index = 6-bit value):
    A-Z a-z 0-9 - _

This is NOT standard base64: there is no byte framing and no '=' padding.
The stream is zero-padded up to a multiple of 6 bits before rendering.

Usage:
    from bit_stream import BitStream

    stream = BitStream()
    stream.write(1234, 20)
    stream.write(3, 3)
    text = stream.to_text()

    reader = BitStream.from_text(text)
    card_id = reader.read(20)
"""


ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_'
ALPHABET_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}

# Bits per text symbol
SYMBOL_BITS = 6

# Symbol -> its 6 bits, MSB first
SYMBOL_BIT_TABLE = {
    ch: bytes((i >> shift) & 1 for shift in range(SYMBOL_BITS - 1, -1, -1))
    for ch, i in ALPHABET_INDEX.items()
}


class BitRangeError(ValueError):
    """Value does not fit in the requested bit width (strict mode only)."""
    pass


class BitStream:
    """
    Append-only bit sequence with a forward-only read cursor.

    Bits are held one per byte in a bytearray, most significant bit first,
    so writes append and reads index without touching earlier bits.
    Reading past the end yields zero bits rather than failing, so a
    truncated share string decodes into fewer (or zero-valued) fields.

    Write policy:
        strict=False (default): values are silently masked to their low
            `bit_length` bits. Callers pre-validate ranges.
        strict=True: `write` raises BitRangeError for values that are
            negative or wider than `bit_length`.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._bits = bytearray()
        self._read_pos = 0

    def __len__(self) -> int:
        return len(self._bits)

    def __repr__(self) -> str:
        return (f"BitStream(length={len(self._bits)}, read_pos={self._read_pos}, "
                f"strict={self.strict})")

    def write(self, value: int, bit_length: int) -> None:
        """Append `bit_length` bits of `value`, MSB first."""
        if bit_length < 0:
            raise ValueError(f"Negative bit length: {bit_length}")
        if self.strict and (value < 0 or value >= (1 << bit_length)):
            raise BitRangeError(
                f"Value {value} does not fit in {bit_length} unsigned bits")
        self._bits.extend((value >> i) & 1 for i in range(bit_length - 1, -1, -1))

    def read(self, bit_length: int) -> int:
        """Consume the next `bit_length` bits as an unsigned int.

        Bits beyond the written length read as 0. The cursor always
        advances by `bit_length`.
        """
        if bit_length < 0:
            raise ValueError(f"Negative bit length: {bit_length}")
        start = self._read_pos
        chunk = self._bits[start:start + bit_length]
        self._read_pos += bit_length

        value = 0
        for bit in chunk:
            value = (value << 1) | bit
        # Missing tail bits are zero
        return value << (bit_length - len(chunk))

    def read_signed(self, bit_length: int) -> int:
        """Read `bit_length` bits as a two's complement signed int."""
        value = self.read(bit_length)
        if bit_length == 0:
            return 0
        sign_bit = 1 << (bit_length - 1)
        if value & sign_bit:
            return value - (1 << bit_length)
        return value

    def remaining_bits(self) -> int:
        """Bits written but not yet consumed by the read cursor."""
        return max(0, len(self._bits) - self._read_pos)

    def pad_to_alignment(self, alignment: int = SYMBOL_BITS) -> None:
        """Append zero bits until the length is a multiple of `alignment`."""
        if alignment <= 0:
            raise ValueError(f"Alignment must be positive, got {alignment}")
        pad = -len(self._bits) % alignment
        if pad:
            self._bits.extend(bytes(pad))

    def to_text(self) -> str:
        """Pad to 6 bits and render each 6-bit group as an alphabet symbol."""
        self.pad_to_alignment(SYMBOL_BITS)
        bits = self._bits
        symbols = []
        for i in range(0, len(bits), SYMBOL_BITS):
            value = 0
            for bit in bits[i:i + SYMBOL_BITS]:
                value = (value << 1) | bit
            symbols.append(ALPHABET[value])
        return ''.join(symbols)

    @classmethod
    def from_text(cls, text: str) -> 'BitStream':
        """Build a stream from alphabet text.

        Characters outside the alphabet (whitespace, '=', '#', stray
        punctuation) are skipped rather than treated as errors.
        """
        stream = cls()
        bits = stream._bits
        for ch in text:
            symbol_bits = SYMBOL_BIT_TABLE.get(ch)
            if symbol_bits is None:
                continue
            bits.extend(symbol_bits)
        return stream
