from image_builders import put_u32
from gmfind import gm80
from gmfind.image import ByteImage


def _runner(version: int = gm80.HEADER_VERSION) -> bytearray:
    buf = bytearray(gm80.HEADER_OFFSET + 64)
    put_u32(buf, gm80.HEADER_OFFSET, gm80.HEADER_MAGIC)
    put_u32(buf, gm80.HEADER_OFFSET + 4, version)
    return buf


def test_standard_runner_is_recognised(messages: list) -> None:
    image = ByteImage(_runner())
    assert gm80.check(image, messages.append) is True
    assert image.position == gm80.HEADER_OFFSET + 12
    assert messages[0] == "Checking for standard GM8.0 format"


def test_wrong_version_is_rejected(messages: list) -> None:
    assert gm80.check(ByteImage(_runner(version=810)), messages.append) is False
    assert any("Invalid header version" in line for line in messages)


def test_wrong_magic_is_rejected() -> None:
    buf = _runner()
    buf[gm80.HEADER_OFFSET] ^= 1
    assert gm80.check(ByteImage(buf)) is False


def test_short_image_is_rejected_without_reading(messages: list) -> None:
    image = ByteImage(bytes(4096))
    assert gm80.check(image, messages.append) is False
    assert image.position == 0
    assert "File too short" in messages[-1]
