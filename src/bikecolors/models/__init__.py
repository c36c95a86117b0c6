"""
Data models for bikecolors.
"""

from .photo import BikePhoto, is_valid_url

__all__ = [
    "BikePhoto",
    "is_valid_url",
]
