"""
Variable-width LZW coding as used by GIF image data.

Codes start at ``min_code_size + 1`` bits and grow up to 12 bits. The clear
code is ``2 ** min_code_size`` and the end code follows it. The encoder emits
a clear code and restarts its dictionary once all 4096 codes are in use.

Functions:
    lzw_decode: Decode an LZW byte stream into palette indices
    lzw_encode: Encode palette indices into an LZW byte stream
    min_code_size_for: Smallest valid LZW minimum code size for a palette
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from GR_Libs.constants import LZW_MAX_CODE_BITS, LZW_MAX_CODES, LZW_MIN_CODE_SIZE
from GR_Libs.errors import LzwError


def min_code_size_for(palette_size: int) -> int:
    """Return the LZW minimum code size for a palette of ``palette_size`` entries."""
    bits = max(1, (max(palette_size, 1) - 1).bit_length())
    return max(LZW_MIN_CODE_SIZE, bits)


def _read_codes(data: bytes, code_size_ref: List[int]) -> Iterator[int]:
    # code_size_ref[0] may be changed by the consumer between codes
    bit_buffer = 0
    bit_count = 0
    pos = 0
    length = len(data)
    while True:
        code_size = code_size_ref[0]
        while bit_count < code_size:
            if pos >= length:
                return
            bit_buffer |= data[pos] << bit_count
            pos += 1
            bit_count += 8
        yield bit_buffer & ((1 << code_size) - 1)
        bit_buffer >>= code_size
        bit_count -= code_size


def lzw_decode(data: bytes, min_code_size: int, pixel_count: int) -> bytes:
    """
    Decode GIF LZW data into palette indices.

    Args:
        data: Concatenated image data sub-blocks (without length bytes)
        min_code_size: LZW minimum code size from the image block (2-11)
        pixel_count: Expected number of pixels (width * height)

    Returns:
        Exactly ``pixel_count`` index bytes. A stream that ends early is
        padded with index 0; surplus output is dropped.

    Raises:
        LzwError: If the minimum code size is invalid or the stream
                  references a code that does not exist yet
    """
    if not (LZW_MIN_CODE_SIZE <= min_code_size <= 11):
        raise LzwError(f"invalid LZW minimum code size: {min_code_size}")

    clear_code = 1 << min_code_size
    end_code = clear_code + 1
    base_table = [bytes((i,)) for i in range(clear_code)] + [b"", b""]

    table = list(base_table)
    code_size = [min_code_size + 1]
    previous: Optional[bytes] = None
    output = bytearray()

    for code in _read_codes(data, code_size):
        if code == clear_code:
            table = list(base_table)
            code_size[0] = min_code_size + 1
            previous = None
            continue
        if code == end_code:
            break

        if previous is None:
            if code >= clear_code:
                raise LzwError(f"LZW stream starts with undefined code {code}")
            entry = table[code]
        elif code < len(table):
            entry = table[code]
            if len(table) < LZW_MAX_CODES:
                table.append(previous + entry[:1])
        elif code == len(table) and len(table) < LZW_MAX_CODES:
            entry = previous + previous[:1]
            table.append(entry)
        else:
            raise LzwError(f"LZW code {code} out of range (table size {len(table)})")

        output += entry
        previous = entry

        if len(table) == (1 << code_size[0]) and code_size[0] < LZW_MAX_CODE_BITS:
            code_size[0] += 1

        if len(output) >= pixel_count:
            break

    if len(output) < pixel_count:
        output += bytes(pixel_count - len(output))
    return bytes(output[:pixel_count])


def _generate_codes(indices: bytes, min_code_size: int) -> Iterator[Tuple[int, int]]:
    # yields (code, code_length_in_bits)
    clear_code = 1 << min_code_size
    end_code = clear_code + 1

    def fresh_table():
        return {}, end_code + 1, min_code_size + 1

    table, next_code, code_size = fresh_table()
    yield clear_code, code_size

    prefix: Optional[int] = None
    for value in indices:
        if value >= clear_code:
            raise ValueError(f"index {value} does not fit LZW minimum code size {min_code_size}")
        if prefix is None:
            prefix = value
            continue

        key = (prefix, value)
        code = table.get(key)
        if code is not None:
            prefix = code
            continue

        yield prefix, code_size
        if next_code == (1 << code_size) and code_size < LZW_MAX_CODE_BITS:
            code_size += 1

        if next_code < LZW_MAX_CODES:
            table[key] = next_code
            next_code += 1
        else:
            yield clear_code, code_size
            table, next_code, code_size = fresh_table()
        prefix = value

    if prefix is not None:
        yield prefix, code_size
        if next_code == (1 << code_size) and code_size < LZW_MAX_CODE_BITS:
            code_size += 1

    yield end_code, code_size


def _pack_codes(codes: Iterable[Tuple[int, int]]) -> bytes:
    output = bytearray()
    bits = 0
    bit_count = 0
    for code, length in codes:
        bits |= code << bit_count
        bit_count += length
        while bit_count >= 8:
            output.append(bits & 0xFF)
            bits >>= 8
            bit_count -= 8
    if bit_count:
        output.append(bits & 0xFF)
    return bytes(output)


def lzw_encode(indices: bytes, min_code_size: int) -> bytes:
    """
    Encode palette indices as GIF LZW data.

    Args:
        indices: One palette index per pixel
        min_code_size: LZW minimum code size (2-8 for GIF output)

    Returns:
        The packed code stream, starting with a clear code and ending with
        the end code (not yet split into sub-blocks)

    Raises:
        ValueError: If an index does not fit the minimum code size
    """
    return _pack_codes(_generate_codes(bytes(indices), min_code_size))
