"""
ImageRecord - Metadata row for a processed image.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional


def image_id_from_key(key: str) -> str:
    """
    Derive the stable image identifier from an object key.

    The identifier is the key's basename without its extension, so
    'uploads/photo1.jpg' becomes 'photo1'.
    """
    filename = os.path.basename(key)
    root, _ = os.path.splitext(filename)
    return root or filename


@dataclass
class ImageRecord:
    """
    Record for a single processed image.

    Attributes:
        id: Stable identifier derived from the original key
        thumbnail_url: Resolvable URL of the generated thumbnail
        original_key: Object key of the original image
        thumbnail_key: Object key of the thumbnail
        bucket: Bucket holding the thumbnail
        width: Thumbnail width in pixels
        height: Thumbnail height in pixels
        content_type: MIME type of the thumbnail
    """
    id: str
    thumbnail_url: str
    original_key: Optional[str] = None
    thumbnail_key: Optional[str] = None
    bucket: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    content_type: Optional[str] = None

    def to_item(self) -> Dict[str, Any]:
        """Convert to a metadata table item, leaving out unset attributes."""
        item = {
            'id': self.id,
            'thumbnailUrl': self.thumbnail_url,
            'originalKey': self.original_key,
            'thumbnailKey': self.thumbnail_key,
            'bucket': self.bucket,
            'width': self.width,
            'height': self.height,
            'contentType': self.content_type,
        }
        return {name: value for name, value in item.items() if value is not None}

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'ImageRecord':
        """Create from a metadata table item."""
        # DynamoDB returns numbers as Decimal
        width = item.get('width')
        height = item.get('height')
        return cls(
            id=item['id'],
            thumbnail_url=item.get('thumbnailUrl', ''),
            original_key=item.get('originalKey'),
            thumbnail_key=item.get('thumbnailKey'),
            bucket=item.get('bucket'),
            width=int(width) if width is not None else None,
            height=int(height) if height is not None else None,
            content_type=item.get('contentType'),
        )

    def to_dict(self) -> dict:
        """Public representation returned by the listing endpoint."""
        return {
            'id': self.id,
            'thumbnailUrl': self.thumbnail_url,
        }
