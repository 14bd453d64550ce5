from io import BytesIO
import logging
import uuid

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ImageError(Exception):
    pass


def fit_dimensions(width, height, max_width=1200, max_height=1200):
    # Landscape images are bounded by width, the rest by height.
    if width > height:
        if width > max_width:
            height = round(height * max_width / width)
            width = max_width
    else:
        if height > max_height:
            width = round(width * max_height / height)
            height = max_height
    return max(int(width), 1), max(int(height), 1)


def compress_image(data, max_width=1200, max_height=1200, quality=85):
    """Downscale an image and re-encode it as JPEG.

    Returns ``(jpeg_bytes, (width, height))``. Images already within the
    bounds keep their size.
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageError('Image load failed') from e

    width, height = fit_dimensions(
        img.width, img.height, max_width, max_height)
    if (width, height) != img.size:
        img = img.resize((width, height), Image.Resampling.LANCZOS)

    # JPEG has no alpha channel or palette.
    if img.mode != 'RGB':
        img = img.convert('RGB')

    out = BytesIO()
    img.save(out, format='JPEG', quality=quality)
    logger.info(
        "Compressed image %s bytes -> %s bytes (%sx%s)",
        len(data), out.tell(), width, height)
    return out.getvalue(), (width, height)


def random_jpeg_name():
    return f'{uuid.uuid4().hex[:12]}.jpg'
