import pytest
from PIL import Image


@pytest.fixture
def white_image() -> Image.Image:
    return Image.new("RGB", (120, 60), "white")


@pytest.fixture
def dark_image() -> Image.Image:
    """Dark background with one light horizontal stroke."""
    img = Image.new("RGB", (120, 60), (10, 10, 10))
    for x in range(20, 100):
        img.putpixel((x, 30), (240, 240, 240))
    return img
