import pytest

from image_builders import GM81_LANE_PATTERN
from gmfind.exceptions import ReadError
from gmfind.image import ByteImage
from gmfind.locator import GM81_MAGIC, find_header, masked_combine


def _image_with_pattern(size: int, offset: int) -> ByteImage:
    buf = bytearray(size)
    buf[offset : offset + 8] = GM81_LANE_PATTERN
    return ByteImage(buf)


def test_masked_combine_ignores_other_lanes() -> None:
    assert masked_combine(0xF7AA00BB, 0xCC14DD67) == GM81_MAGIC
    assert masked_combine(0xF7000000, 0x00140067) == GM81_MAGIC


def test_masked_combine_stays_within_32_bits() -> None:
    assert masked_combine(0xFFFFFFFF, 0xFFFFFFFF) == 0xFFFFFFFF
    # Bits above 32 never leak into the comparison.
    assert masked_combine(0x1_F7000000, 0x3_00140067) == GM81_MAGIC


def test_finds_pattern_after_start_and_leaves_cursor_past_it() -> None:
    image = _image_with_pattern(256, 0x40)
    assert find_header(image, 0x10) == 0x40
    assert image.position == 0x48


def test_match_at_start_offset() -> None:
    image = _image_with_pattern(64, 0)
    assert find_header(image, 0) == 0


def test_last_candidate_is_nine_bytes_from_end() -> None:
    assert find_header(_image_with_pattern(128, 128 - 9), 0) == 128 - 9
    # A pattern flush with the end is never read once the scan has moved on.
    assert find_header(_image_with_pattern(128, 128 - 8), 0) is None


def test_no_match_returns_none() -> None:
    image = ByteImage(bytes(4096))
    assert find_header(image, 0x300) is None


def test_unguarded_first_probe_raises_past_end() -> None:
    image = ByteImage(bytes(16))
    with pytest.raises(ReadError):
        find_header(image, 12)


def test_custom_magic() -> None:
    buf = bytearray(32)
    buf[4:12] = bytes.fromhex("00110022" "33004400")
    assert find_header(ByteImage(buf), 0, magic=masked_combine(0x22001100, 0x00440033)) == 4
