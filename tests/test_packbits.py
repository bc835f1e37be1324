"""Tests for raster row compression."""

import random

import packbits
import pytest

from ptouchprinter.packbits import MAX_RUN, compress


def iter_runs(encoded: bytes):
    """Yield ("literal" | "repeat", length) for each run in compressed data."""
    pos = 0
    while pos < len(encoded):
        control = encoded[pos]
        if control <= 127:
            yield "literal", control + 1
            pos += control + 2
        else:
            assert control != 0x80, "reserved control byte emitted"
            yield "repeat", 257 - control
            pos += 2


class TestCompress:
    """Test byte-exact compressor output."""

    def test_empty_input(self):
        """Empty input produces empty output."""
        assert compress(b"") == b""

    def test_single_byte(self):
        """A single byte is one literal run of length 1."""
        assert compress(b"\x05") == b"\x00\x05"

    def test_alternating_is_single_literal(self):
        """Alternating bytes compress into one literal run."""
        data = bytes([0, 1] * 5)
        assert compress(data) == bytes([9]) + data

    def test_alternating_max_literal(self):
        """127 distinct-neighbour bytes fit in one literal run."""
        data = bytes([i % 2 for i in range(127)])
        assert compress(data) == bytes([126]) + data

    def test_literal_longer_than_max_is_split(self):
        """A literal run is flushed when it reaches 127 bytes."""
        data = bytes(range(128))
        assert compress(data) == bytes([126]) + bytes(range(127)) + bytes([0, 127])

    def test_200_identical_bytes(self):
        """200 identical bytes compress into 127 + 73 repeat runs."""
        assert compress(bytes([0xAA] * 200)) == bytes([0x82, 0xAA, 0xB8, 0xAA])

    def test_300_identical_bytes(self):
        """300 identical bytes split into runs of at most 127."""
        result = compress(bytes([0xFF] * 300))
        assert result == bytes([0x82, 0xFF, 0x82, 0xFF, 0xD3, 0xFF])
        assert [length for _, length in iter_runs(result)] == [127, 127, 46]

    def test_128_identical_bytes(self):
        """The byte after a full repeat run is emitted on its own."""
        assert compress(bytes([0x11] * 128)) == bytes([0x82, 0x11, 0x00, 0x11])

    def test_literal_then_repeat(self):
        """A literal run is flushed when a repeat run starts."""
        assert compress(bytes([1, 2, 2])) == bytes([0x00, 1, 0xFF, 2])

    def test_repeat_then_literal(self):
        """A repeat run ends at the first different byte."""
        assert compress(bytes([1, 1, 2])) == bytes([0xFF, 1, 0x00, 2])

    def test_mixed_row(self):
        """Mixed literal and repeat runs."""
        data = bytes([0x00] * 4 + [0x12, 0x34] + [0xFF] * 3)
        assert compress(data) == bytes([0xFD, 0x00, 0x01, 0x12, 0x34, 0xFE, 0xFF])

    def test_accepts_bytearray(self):
        """bytearray and memoryview inputs are accepted."""
        data = bytearray([7, 7, 7])
        assert compress(data) == compress(memoryview(data)) == bytes([0xFE, 7])


class TestRoundTrip:
    """Decoding compressed data with a standard PackBits decoder restores the input."""

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"\x00",
            bytes(90),
            bytes([0xFF] * 90),
            bytes([0xAA] * 200),
            bytes([0, 1] * 100),
            bytes(range(256)) * 2,
            bytes([1, 1, 2, 2, 3, 3, 4]),
            bytes([5] * 127 + [6] + [5] * 128),
        ],
    )
    def test_known_rows(self, data):
        """Known rows survive a round trip."""
        assert bytes(packbits.decode(compress(data))) == data

    def test_random_rows(self):
        """Random rows with runs survive a round trip and respect run limits."""
        rng = random.Random(1234)
        for _ in range(200):
            row = bytearray()
            target = rng.randint(0, 400)
            while len(row) < target:
                value = rng.randint(0, 255)
                row.extend([value] * rng.choice([1, 1, 2, 3, 50, 130, 260]))
            data = bytes(row)
            encoded = compress(data)

            assert bytes(packbits.decode(encoded)) == data
            assert all(1 <= length <= MAX_RUN for _, length in iter_runs(encoded))
