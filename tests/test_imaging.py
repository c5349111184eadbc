import io

import pytest
from PIL import Image

from dealer_catalog.utils.exceptions import UnsupportedMediaException
from dealer_catalog.utils.imaging import ImageProcessor


def decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class TestImageProcessor:
    @pytest.mark.parametrize("size", [(1000, 800), (400, 1200), (100, 50), (300, 200)])
    def test_thumbnail_is_always_exact_box(self, processor, make_image, size):
        rendered = processor.render(make_image(*size))

        thumb = decode(rendered.thumbnail)
        assert thumb.size == (300, 200)
        assert thumb.format == "JPEG"
        assert rendered.thumbnail_size == (300, 200)

    def test_full_size_keeps_dimensions_under_bound(self, processor, make_image):
        rendered = processor.render(make_image(1000, 800))

        assert decode(rendered.full).size == (1000, 800)
        assert rendered.size == (1000, 800)

    def test_full_size_is_bounded(self, make_image):
        processor = ImageProcessor(max_dimension=500, workers=1)
        try:
            rendered = processor.render_sync(make_image(1000, 800))
        finally:
            processor.shutdown()

        assert decode(rendered.full).size == (500, 400)

    def test_transparency_is_flattened(self, processor, make_image):
        png = make_image(50, 50, fmt="PNG", mode="RGBA", color=(0, 0, 0, 0))

        full = decode(processor.render(png).full)

        assert full.mode == "RGB"
        r, g, b = full.getpixel((25, 25))
        assert min(r, g, b) > 240

    def test_exif_orientation_is_applied(self, processor):
        img = Image.new("RGB", (400, 200), (10, 200, 10))
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 degrees clockwise on display
        buf = io.BytesIO()
        img.save(buf, format="JPEG", exif=exif)

        rendered = processor.render(buf.getvalue())

        assert rendered.size == (200, 400)

    @pytest.mark.parametrize("data", [b"", b"plain text, not a picture"])
    def test_garbage_is_rejected(self, processor, data):
        with pytest.raises(UnsupportedMediaException):
            processor.render(data)

