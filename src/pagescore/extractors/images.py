"""Image inventory: alt text, formats, sizes and suspicious sources."""

import re
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

from pagescore.constants import (
    GOOD_ALT_MAX_LENGTH,
    GOOD_ALT_MIN_LENGTH,
    IMAGE_FORMATS,
    LARGE_IMAGE_BYTES,
    MIN_RELATIVE_SRC_LENGTH,
)
from pagescore.document import Document
from pagescore.extractors.base import Extractor
from pagescore.models import ImageInfo, ImageStats

DATA_URL_FORMAT = re.compile(r'^data:image/([a-z0-9.+-]+)', re.IGNORECASE)

BROKEN_SRC_VALUES = ('', '#', 'javascript:void(0)')


class ImagesExtractor(Extractor):
    """Builds the image inventory of a page.

    File sizes are only known when the host supplied them through
    Document.resource_sizes; nothing is estimated.
    """

    section = "images"

    def extract(self, document: Document, url: str = "") -> ImageStats:
        page_url = url or document.url
        images: List[ImageInfo] = []
        formats: Dict[str, int] = {}
        with_alt = without_alt = empty_alt = good_alt = 0
        missing_dimensions = lazy = 0
        broken: List[str] = []

        for index, img in enumerate(document.soup.find_all('img'), start=1):
            src = (img.get('src') or img.get('data-src') or '').strip()
            alt = img.get('alt')
            image_format = get_image_format(src)

            info = ImageInfo(
                src=src,
                alt=alt,
                width=img.get('width'),
                height=img.get('height'),
                file_size=self._known_size(document, src, page_url),
                format=image_format,
                loading=img.get('loading'),
                locator=f"#{img['id']}" if img.get('id') else f"img:nth-of-type({index})",
            )
            images.append(info)

            if info.has_alt:
                with_alt += 1
                if GOOD_ALT_MIN_LENGTH < len(alt.strip()) < GOOD_ALT_MAX_LENGTH:
                    good_alt += 1
            else:
                without_alt += 1
                if alt is not None:
                    empty_alt += 1

            if not info.width or not info.height:
                missing_dimensions += 1
            if (info.loading or '').lower() == 'lazy':
                lazy += 1

            formats[image_format] = formats.get(image_format, 0) + 1

            if is_broken_src(src):
                broken.append(src)

        sizes = [image.file_size for image in images if image.file_size is not None]
        average_size = round(sum(sizes) / len(sizes)) if sizes else None

        return ImageStats(
            total_images=len(images),
            images_with_alt=with_alt,
            images_without_alt=without_alt,
            images_with_empty_alt=empty_alt,
            images_with_good_alt=good_alt,
            images_missing_dimensions=missing_dimensions,
            lazy_images=lazy,
            image_formats=formats,
            large_images=tuple(
                image for image in images
                if image.file_size is not None and image.file_size > LARGE_IMAGE_BYTES
            ),
            broken_images=tuple(broken),
            average_file_size=average_size,
            images=tuple(images),
        )

    def _known_size(self, document: Document, src: str, page_url: str) -> Optional[int]:
        if not src or not document.resource_sizes:
            return None
        if src in document.resource_sizes:
            return document.resource_sizes[src]
        if page_url:
            return document.resource_sizes.get(urljoin(page_url, src))
        return None


def get_image_format(src: str) -> str:
    """Detect image format from a URL path or data URL.

    Args:
        src: Image source URL

    Returns:
        Format name or 'unknown'
    """
    if not src:
        return 'unknown'

    data_match = DATA_URL_FORMAT.match(src)
    if data_match:
        subtype = data_match.group(1).lower()
        if subtype == 'svg+xml':
            return 'svg'
        return subtype if subtype in IMAGE_FORMATS else 'unknown'

    # Remove query string and fragment
    path = urlparse(src).path.lower()
    filename = path.rsplit('/', 1)[-1]
    if '.' in filename:
        extension = filename.rsplit('.', 1)[-1]
        if extension in IMAGE_FORMATS:
            return extension

    # CDN URLs often name the format in the path instead of an extension
    for modern in ('webp', 'avif'):
        if modern in path:
            return modern

    return 'unknown'


def is_broken_src(src: str) -> bool:
    """Flag sources that cannot load: placeholders, malformed data URLs, stub paths."""
    if src.lower() in BROKEN_SRC_VALUES:
        return True
    if src.lower().startswith('data:') and 'base64' not in src.lower():
        return True
    if src.startswith('./') and len(src) < MIN_RELATIVE_SRC_LENGTH:
        return True
    return False


def extract(document: Document, url: str = "") -> ImageStats:
    return ImagesExtractor().extract(document, url)
