"""
Value types passed into the blob storage adapter.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UploadedImage:
    """An uploaded file as received from the client, before validation."""

    filename: Optional[str]
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return self.size == 0
