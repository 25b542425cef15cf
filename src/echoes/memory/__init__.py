"""Memory module for per-owner memory storage."""

from .manager import MemoryManager
from .media import decode_photo, encode_photo
from .models import Location, Memory, is_valid_coordinate, sanitize_coordinate
from .store import MemoryStore

__all__ = [
    "Location",
    "Memory",
    "MemoryManager",
    "MemoryStore",
    "decode_photo",
    "encode_photo",
    "is_valid_coordinate",
    "sanitize_coordinate",
]
