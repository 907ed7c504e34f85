"""
Shared pytest fixtures for object removal tests
"""
import io
import struct

import pytest
from PIL import Image

from services.removal import (
    NullDiagnostics,
    Point,
    ProviderConstraints,
    RasterAsset,
    RemovalClient,
    Stroke,
    StrokeMode,
)


def build_exif_jpeg(orientation, byte_order="MM", value_type=3, count=1, with_app0=True):
    """Hand-assemble a minimal JPEG byte stream with an EXIF orientation tag"""
    prefix = ">" if byte_order == "MM" else "<"
    tiff = byte_order.encode()
    tiff += struct.pack(prefix + "H", 42)
    tiff += struct.pack(prefix + "I", 8)
    tiff += struct.pack(prefix + "H", 2)
    # An unrelated tag first (ImageWidth), then Orientation
    tiff += struct.pack(prefix + "HHI", 0x0100, 3, 1) + struct.pack(prefix + "H", 640) + b"\x00\x00"
    tiff += struct.pack(prefix + "HHI", 0x0112, value_type, count) + struct.pack(prefix + "H", orientation) + b"\x00\x00"
    tiff += struct.pack(prefix + "I", 0)

    payload = b"Exif\x00\x00" + tiff
    app1 = b"\xff\xe1" + struct.pack(">H", len(payload) + 2) + payload

    data = b"\xff\xd8"
    if with_app0:
        jfif = b"JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        data += b"\xff\xe0" + struct.pack(">H", len(jfif) + 2) + jfif
    data += app1
    data += b"\xff\xda\x00\x08\x01\x01\x00\x00\x3f\x00"  # SOS
    data += b"\x00" * 16
    data += b"\xff\xd9"
    return data


def encode_image(image, format="PNG", orientation=None):
    """Encode a PIL Image, optionally tagging an EXIF orientation"""
    buf = io.BytesIO()
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        image.save(buf, format=format, exif=exif.tobytes())
    else:
        image.save(buf, format=format)
    return buf.getvalue()


class RecordingDiagnostics(NullDiagnostics):
    """Diagnostics sink that keeps every event"""

    def __init__(self):
        self.events = []

    def log(self, event, meta=None):
        self.events.append(("log", event, meta))

    def warn(self, event, meta=None):
        self.events.append(("warn", event, meta))

    def error(self, event, meta=None):
        self.events.append(("error", event, meta))

    def names(self, level=None):
        return [name for lvl, name, _ in self.events if level is None or lvl == level]


class FakeRemovalClient(RemovalClient):
    """Removal client that records submissions instead of sending them"""

    def __init__(self, result="https://cdn.example.com/result.png", error=None):
        self.result = result
        self.error = error
        self.calls = []

    def submit(self, payload, target, token=None):
        self.calls.append((payload, target, token))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def runware_constraints():
    """Runware size constraints"""
    return ProviderConstraints(min_side=128, max_side=2048, step=64)


@pytest.fixture
def diagnostics():
    """Recording diagnostics sink"""
    return RecordingDiagnostics()


@pytest.fixture
def fake_client():
    """Removal client that always succeeds"""
    return FakeRemovalClient()


@pytest.fixture
def exif_jpeg():
    """Factory for hand-built JPEG streams carrying an orientation tag"""
    return build_exif_jpeg


@pytest.fixture
def encode():
    """Factory for encoded images"""
    return encode_image


@pytest.fixture
def corner_image():
    """40x20 grey image with a red top-left corner pixel"""
    image = Image.new("RGB", (40, 20), color=(128, 128, 128))
    image.putpixel((0, 0), (255, 0, 0))
    return image


@pytest.fixture
def blue_seed():
    """100x100 solid blue PNG seed"""
    return RasterAsset.from_image(Image.new("RGB", (100, 100), color=(0, 0, 255)))


@pytest.fixture
def horizontal_stroke():
    """Draw stroke across the middle of a 100x100 image"""
    return Stroke(
        points=(Point(20, 50), Point(50, 50), Point(80, 50)),
        size=10,
        mode=StrokeMode.DRAW,
    )


@pytest.fixture
def erase_stroke():
    """Wide erase stroke over the same region as horizontal_stroke"""
    return Stroke(
        points=(Point(10, 50), Point(50, 50), Point(90, 50)),
        size=30,
        mode=StrokeMode.ERASE,
    )


@pytest.fixture
def client_factory():
    """FakeRemovalClient class, for tests that need a custom result or error"""
    return FakeRemovalClient
