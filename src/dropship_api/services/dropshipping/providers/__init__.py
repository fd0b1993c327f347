"""Dropshipping provider adapters."""

from .base import DropshippingProvider
from .dsers import DSersProvider
from .printful import PrintfulProvider
from .spocket import SpocketProvider

__all__ = [
    "DSersProvider",
    "DropshippingProvider",
    "PrintfulProvider",
    "SpocketProvider",
]
