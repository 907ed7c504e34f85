"""
Tests for the upright rasterizer
"""
import io

import pytest
from PIL import Image

from services.removal.assets import RasterAsset
from services.removal.errors import DecodeError
from services.removal.upright import ensure_upright

RED = (255, 0, 0)


def _corner_position(result):
    """Find the red marker pixel in an upright result"""
    with result.asset.open() as image:
        rgb = image.convert("RGB")
        for y in range(rgb.height):
            for x in range(rgb.width):
                if rgb.getpixel((x, y)) == RED:
                    return (x, y)
    return None


class TestEnsureUpright:
    """Tests for ensure_upright"""

    @pytest.fixture
    def corner_asset(self, corner_image):
        return RasterAsset.from_image(corner_image)

    def test_identity_returns_same_asset(self, corner_asset):
        """Test orientation 1 passes the original asset through"""
        result = ensure_upright(corner_asset, orientation=1)

        assert result.asset is corner_asset
        assert result.rotated is False
        assert result.degrees == 0

    def test_unknown_orientation_returns_same_asset(self, corner_asset):
        """Test PNG without orientation is left alone"""
        result = ensure_upright(corner_asset)

        assert result.asset is corner_asset
        assert result.orientation is None

    @pytest.mark.parametrize("orientation,size,corner", [
        (2, (40, 20), (39, 0)),
        (3, (40, 20), (39, 19)),
        (4, (40, 20), (0, 19)),
        (5, (20, 40), (0, 0)),
        (6, (20, 40), (19, 0)),
        (7, (20, 40), (19, 39)),
        (8, (20, 40), (0, 39)),
    ])
    def test_orientation_transforms(self, corner_asset, orientation, size, corner):
        """Test each orientation moves the top-left marker where a viewer shows it"""
        result = ensure_upright(corner_asset, orientation=orientation)

        assert result.rotated is True
        assert result.asset.size == size
        assert _corner_position(result) == corner

    def test_orientation_6_metadata(self, corner_asset):
        """Test rotation details are reported"""
        result = ensure_upright(corner_asset, orientation=6)

        assert result.orientation == 6
        assert result.degrees == 90
        assert result.mirrored is False

    def test_detects_orientation_from_jpeg(self, encode):
        """Test orientation is read from JPEG bytes when not given"""
        data = encode(Image.new("RGB", (16, 8), color=(0, 128, 0)), format="JPEG", orientation=6)
        asset = RasterAsset.from_bytes(data)

        result = ensure_upright(asset)

        assert asset.size == (16, 8)
        assert result.orientation == 6
        assert result.asset.size == (8, 16)
        assert result.asset.format == "PNG"

    def test_output_has_no_orientation_tag(self, encode):
        """Test re-encoded output carries no EXIF orientation"""
        data = encode(Image.new("RGB", (16, 8)), format="JPEG", orientation=6)
        result = ensure_upright(RasterAsset.from_bytes(data))

        with Image.open(io.BytesIO(result.asset.data)) as image:
            assert image.getexif().get(0x0112) is None

    def test_palette_image_converted(self):
        """Test palette images are stored as RGB"""
        asset = RasterAsset.from_image(Image.new("P", (10, 5)))
        result = ensure_upright(asset, orientation=8)

        with result.asset.open() as image:
            assert image.mode == "RGB"
            assert image.size == (5, 10)

    def test_alpha_preserved(self):
        """Test RGBA images keep their alpha channel"""
        asset = RasterAsset.from_image(Image.new("RGBA", (10, 5), color=(0, 0, 0, 0)))
        result = ensure_upright(asset, orientation=3)

        with result.asset.open() as image:
            assert image.mode == "RGBA"

    def test_decode_failure_strict(self):
        """Test undecodable bytes raise when strict"""
        asset = RasterAsset(data=b"not an image", width=10, height=10, format="JPEG")

        with pytest.raises(DecodeError):
            ensure_upright(asset, orientation=6)

    def test_decode_failure_lenient(self, diagnostics):
        """Test undecodable bytes fall back to the input when not strict"""
        asset = RasterAsset(data=b"not an image", width=10, height=10, format="JPEG")

        result = ensure_upright(asset, orientation=6, strict=False, diagnostics=diagnostics)

        assert result.asset is asset
        assert result.rotated is False
        assert "upright:fallback_unrotated" in diagnostics.names("warn")
