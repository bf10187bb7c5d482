"""
ThumbnailGenerator - Handles image decoding, resizing and encoding.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import UnsupportedImageError


@dataclass
class Thumbnail:
    """An encoded thumbnail and its properties."""
    data: bytes
    content_type: str
    extension: str
    width: int
    height: int


class ThumbnailGenerator:
    """
    Generates thumbnails from original images using Pillow.
    """

    OUTPUT_FORMATS = {
        '.jpg': ('JPEG', 'image/jpeg', 'jpg'),
        '.jpeg': ('JPEG', 'image/jpeg', 'jpg'),
        '.tif': ('JPEG', 'image/jpeg', 'jpg'),
        '.tiff': ('JPEG', 'image/jpeg', 'jpg'),
        '.bmp': ('JPEG', 'image/jpeg', 'jpg'),
        '.webp': ('JPEG', 'image/jpeg', 'jpg'),
        '.png': ('PNG', 'image/png', 'png'),
        '.gif': ('GIF', 'image/gif', 'gif'),
    }
    DEFAULT_FORMAT = ('JPEG', 'image/jpeg', 'jpg')

    def __init__(
        self,
        size: int = 128,
        quality: int = 85,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize thumbnail generator.

        Args:
            size: Edge length of the bounding box (default: 128)
            quality: JPEG quality for output (default: 85)
            logger: Optional logger instance
        """
        self.size = size
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

    def target_dimensions(self, width: int, height: int) -> Tuple[int, int]:
        """
        Compute thumbnail dimensions that fit the bounding box.

        The longer edge becomes the box size and the aspect ratio is kept.
        Images already inside the box are not upscaled.
        """
        if width <= 0 or height <= 0:
            raise UnsupportedImageError(f"Invalid image dimensions {width}x{height}")
        longest = max(width, height)
        if longest <= self.size:
            return width, height
        scale = self.size / longest
        return max(1, round(width * scale)), max(1, round(height * scale))

    def generate(
        self,
        image_data: bytes,
        original_extension: str
    ) -> Thumbnail:
        """
        Generate a thumbnail from image data.

        Args:
            image_data: Original image as bytes
            original_extension: Original file extension (e.g., '.jpg')

        Returns:
            Thumbnail with encoded bytes, content type and dimensions

        Raises:
            UnsupportedImageError: If the data cannot be decoded as an image
        """
        img = self._decode(image_data)
        output_format, content_type, extension = self.output_format(original_extension)

        img = ImageOps.exif_transpose(img)
        img = self._convert_color_mode(img, output_format)
        width, height = self.target_dimensions(*img.size)
        if (width, height) != img.size:
            img = img.resize((width, height), Image.Resampling.LANCZOS)

        output = io.BytesIO()
        if output_format == 'JPEG':
            img.save(output, format='JPEG', quality=self.quality, optimize=True)
        elif output_format == 'PNG':
            img.save(output, format='PNG', optimize=True)
        else:
            img.save(output, format='GIF')

        return Thumbnail(
            data=output.getvalue(),
            content_type=content_type,
            extension=extension,
            width=width,
            height=height,
        )

    def _decode(self, image_data: bytes) -> Image.Image:
        """Open and fully decode the image, classifying failures as permanent."""
        try:
            img = Image.open(io.BytesIO(image_data))
            img.load()
            return img
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            self.logger.error(f"Error decoding image: {e}")
            raise UnsupportedImageError(f"Cannot decode image: {e}") from e

    def _convert_color_mode(self, img: Image.Image, output_format: str) -> Image.Image:
        """Convert image to appropriate color mode for output."""
        if output_format == 'PNG':
            if img.mode == 'P':
                return img.convert('RGBA')
            if img.mode not in ('RGB', 'RGBA', 'L', 'LA'):
                return img.convert('RGB')
            return img
        if output_format == 'GIF':
            # Re-quantized to a palette on save
            return img if img.mode in ('RGB', 'L') else img.convert('RGB')

        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode == 'P':
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img

    def output_format(self, extension: str) -> Tuple[str, str, str]:
        """Determine (Pillow format, content type, file extension) for an original extension."""
        return self.OUTPUT_FORMATS.get(extension.lower(), self.DEFAULT_FORMAT)
