"""
Run-length compression for raster rows (TIFF PackBits variant).

Each raster row is compressed on its own. The output is a sequence of
control bytes, each followed by its data:

    0x00-0x7F   copy the next (c + 1) bytes literally
    0x81-0xFF   repeat the next byte (257 - c) times
    0x80        never emitted

Runs are capped at 127 bytes in either mode.
"""

from typing import Union

MAX_RUN = 127


def compress(data: Union[bytes, bytearray, memoryview]) -> bytes:
    """
    Compress one raster row.

    A repeat run starts as soon as a byte equals its successor; anything
    else accumulates in a literal run.

    Args:
        data: Uncompressed row bytes

    Returns:
        Compressed bytes (empty for empty input)
    """
    data = bytes(data)
    out = bytearray()
    literal = bytearray()
    repeats = 0  # bytes counted in the open repeat run, 0 in literal mode

    def flush_literal():
        if not literal:
            return
        out.append(len(literal) - 1)
        out.extend(literal)
        literal.clear()

    def flush_repeat(value: int, count: int):
        # A run of one encodes as 0x00, which decodes as a one-byte literal.
        out.append((256 - (count - 1)) & 0xFF)
        out.append(value)

    def add_literal(value: int):
        if len(literal) == MAX_RUN:
            flush_literal()
        literal.append(value)

    def end_repeat(value: int):
        nonlocal repeats
        if repeats == MAX_RUN:
            flush_repeat(value, repeats)
            repeats = 0
        flush_repeat(value, repeats + 1)
        repeats = 0

    last = len(data) - 1
    for i, b in enumerate(data):
        if i == last:
            if repeats:
                end_repeat(b)
            else:
                add_literal(b)
                flush_literal()
            break

        if b == data[i + 1]:
            if not repeats:
                flush_literal()
                repeats = 1
            else:
                if repeats == MAX_RUN:
                    flush_repeat(b, repeats)
                    repeats = 0
                repeats += 1
        elif repeats:
            end_repeat(b)
        else:
            add_literal(b)

    return bytes(out)
