"""
Tests for the bit stream primitive and its text alphabet.
"""

import inspect
import pytest
import sys
import time
from pathlib import Path

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'tools'))

from bit_stream import BitStream, BitRangeError, ALPHABET, SYMBOL_BITS


class TestAlphabet:
    """Tests for the 64-symbol text alphabet."""

    def test_alphabet_size(self):
        assert len(ALPHABET) == 64
        assert len(set(ALPHABET)) == 64

    def test_alphabet_order(self):
        """A-Z, a-z, 0-9, then '-' and '_'."""
        assert ALPHABET[0] == 'A'
        assert ALPHABET[26] == 'a'
        assert ALPHABET[52] == '0'
        assert ALPHABET[62] == '-'
        assert ALPHABET[63] == '_'


class TestWriteRead:
    """Tests for writing and reading values."""

    def test_write_read_values(self):
        stream = BitStream()
        stream.write(5, 3)
        stream.write(1, 1)
        stream.write(1234, 20)
        assert len(stream) == 24

        assert stream.read(3) == 5
        assert stream.read(1) == 1
        assert stream.read(20) == 1234
        assert stream.remaining_bits() == 0

    def test_msb_first(self):
        """First written bit is the most significant bit of the first symbol."""
        stream = BitStream()
        stream.write(1, 1)
        stream.write(0, 5)
        assert stream.to_text() == ALPHABET[32]

    def test_overflow_masks_to_low_bits(self):
        """Permissive mode keeps only the low bits."""
        stream = BitStream()
        stream.write(0b1111, 2)
        stream.write(-1, 4)
        assert stream.read(2) == 0b11
        assert stream.read(4) == 0b1111

    def test_zero_width(self):
        stream = BitStream()
        stream.write(7, 0)
        assert len(stream) == 0
        assert stream.read(0) == 0

    def test_negative_width_rejected(self):
        with pytest.raises(ValueError, match="Negative bit length"):
            BitStream().write(1, -1)


class TestStrictMode:
    """Tests for strict range checking on write."""

    def test_rejects_too_wide(self):
        stream = BitStream(strict=True)
        with pytest.raises(BitRangeError, match="does not fit in 3"):
            stream.write(8, 3)

    def test_rejects_negative(self):
        stream = BitStream(strict=True)
        with pytest.raises(BitRangeError):
            stream.write(-1, 3)

    def test_accepts_boundaries(self):
        stream = BitStream(strict=True)
        stream.write(0, 3)
        stream.write(7, 3)
        assert stream.read(3) == 0
        assert stream.read(3) == 7

    def test_range_error_is_value_error(self):
        assert issubclass(BitRangeError, ValueError)


class TestUnderrun:
    """Reading past the end yields zero bits."""

    def test_partial_read_zero_fills(self):
        stream = BitStream()
        stream.write(1, 1)
        # '1' followed by three missing (zero) bits
        assert stream.read(4) == 0b1000

    def test_read_empty_stream(self):
        stream = BitStream()
        assert stream.read(16) == 0
        assert stream.remaining_bits() == 0

    def test_cursor_keeps_advancing(self):
        stream = BitStream()
        stream.write(0b11, 2)
        stream.read(10)
        stream.write(0b1, 1)
        # Cursor is already past the new bit
        assert stream.read(1) == 0
        assert stream.remaining_bits() == 0


class TestReadSigned:
    """Tests for two's complement reads."""

    @pytest.mark.parametrize("bits,value,expected", [
        (3, 0b111, -1),
        (3, 0b100, -4),
        (3, 0b011, 3),
        (8, 0x80, -128),
        (8, 0x7F, 127),
        (16, 0xFFFE, -2),
    ])
    def test_read_signed(self, bits, value, expected):
        stream = BitStream()
        stream.write(value, bits)
        assert stream.read_signed(bits) == expected

    def test_signed_roundtrip_of_negative_write(self):
        stream = BitStream()
        stream.write(-300, 12)
        assert stream.read_signed(12) == -300


class TestPadding:
    """Tests for alignment padding."""

    def test_pad_to_six(self):
        stream = BitStream()
        stream.write(1, 7)
        stream.pad_to_alignment(6)
        assert len(stream) == 12

    def test_pad_already_aligned(self):
        stream = BitStream()
        stream.write(3, 12)
        stream.pad_to_alignment(6)
        assert len(stream) == 12

    def test_pad_bad_alignment(self):
        with pytest.raises(ValueError, match="Alignment"):
            BitStream().pad_to_alignment(0)


class TestText:
    """Tests for text conversion."""

    def test_to_text_pads(self):
        """16-bit roster header pads to 18 bits (3 symbols)."""
        stream = BitStream()
        stream.write(2, 8)
        stream.write(0, 8)
        assert stream.to_text() == 'AgA'
        assert len(stream) == 18

    def test_to_text_all_ones(self):
        stream = BitStream()
        stream.write(0xFFF, 12)
        assert stream.to_text() == '__'

    def test_from_text(self):
        stream = BitStream.from_text('_A')
        assert len(stream) == 2 * SYMBOL_BITS
        assert stream.read(6) == 63
        assert stream.read(6) == 0

    def test_from_text_skips_invalid(self):
        """Characters outside the alphabet are ignored."""
        clean = BitStream.from_text('AgA')
        noisy = BitStream.from_text(' A=g#\nA! ')
        assert len(noisy) == len(clean)
        assert noisy.to_text() == clean.to_text()

    def test_from_text_only_invalid(self):
        stream = BitStream.from_text('!!**==')
        assert len(stream) == 0
        assert stream.to_text() == ''

    def test_text_roundtrip(self):
        text = 'Hello-World_2024'
        assert BitStream.from_text(text).to_text() == text


class TestScaling:
    """Long streams stay linear in the number of bits."""

    def test_long_text_parse(self):
        """A pasted string of 200k symbols parses and reads back quickly."""
        text = ('_A' * 100_000)
        start = time.perf_counter()
        stream = BitStream.from_text(text)
        assert len(stream) == len(text) * SYMBOL_BITS
        for _ in range(1000):
            assert stream.read(6) == 63
            assert stream.read(6) == 0
        stream.read(len(stream))
        assert stream.remaining_bits() == 0
        assert time.perf_counter() - start < 10

    def test_long_write_then_text(self):
        stream = BitStream()
        start = time.perf_counter()
        for i in range(50_000):
            stream.write(i & 0xFFFFF, 20)
        text = stream.to_text()
        assert len(stream) == 50_000 * 20
        assert len(text) == 50_000 * 20 // SYMBOL_BITS + 1

        reader = BitStream.from_text(text)
        assert [reader.read(20) for _ in range(5)] == [0, 1, 2, 3, 4]
        assert time.perf_counter() - start < 10


class TestInterface:
    """Tests for the public surface of BitStream."""

    def test_from_text_takes_only_text(self):
        assert list(inspect.signature(BitStream.from_text).parameters) == ['text']

    def test_no_public_cursor(self):
        assert not hasattr(BitStream(), 'read_pos')
