import logging
import re
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader

logger = logging.getLogger(__name__)

# tried in this order when the declared type is missing or does not decode
FALLBACK_FORMATS = ("JPEG", "PNG")


@dataclass(frozen=True)
class Logo:
    image: ImageReader
    width: float
    height: float
    x: float

    def draw(self, c, band_bottom, band_height):
        """Draw centred inside the band spanning ``band_bottom`` .. ``+band_height``."""
        y = band_bottom + (band_height - self.height) / 2
        c.drawImage(self.image, self.x, y, width=self.width, height=self.height, mask="auto")


def decode_order(mime_type):
    declared = []
    if mime_type and re.search(r"png", mime_type, re.I):
        declared.append("PNG")
    elif mime_type and re.search(r"jpe?g", mime_type, re.I):
        declared.append("JPEG")
    return declared + [fmt for fmt in FALLBACK_FORMATS if fmt not in declared]


def decode_image(data, mime_type=None):
    """Decode ``data`` as PNG or JPEG, or return None."""
    for fmt in decode_order(mime_type):
        try:
            img = Image.open(BytesIO(data), formats=[fmt])
            img.load()
        except (UnidentifiedImageError, OSError, ValueError):
            logger.debug("Logo is not a valid %s image", fmt)
            continue
        return img
    return None


def scale_to_box(img_width, img_height, max_width, max_height):
    """Scale factor that fits the image into the box, never enlarging it."""
    return min(1, max_width / img_width, max_height / img_height)


def embed_logo(data, mime_type, max_width, max_height, page_width):
    """Prepare the logo for drawing, horizontally centred on the page.

    A logo that cannot be decoded is skipped; the document is rendered
    without it.
    """
    if not data:
        return None
    img = decode_image(data, mime_type)
    if img is None:
        logger.warning("Logo could not be decoded (declared type %r), rendering without it", mime_type)
        return None
    img_width, img_height = img.size
    if not img_width or not img_height:
        return None
    scale = scale_to_box(img_width, img_height, max_width, max_height)
    width = img_width * scale
    height = img_height * scale
    return Logo(image=ImageReader(img), width=width, height=height, x=(page_width - width) / 2)
