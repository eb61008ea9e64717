"""Core components of the Check Point management client.

This package contains the engines shared by every lookup: the object
converter, the pager, single-object finds and the graph exporter.
"""

from .converter import ObjectConverter
from .exporter import ObjectExporter
from .finder import Finder
from .pager import Pager, sort_order

__all__ = [
    "ObjectConverter",
    "ObjectExporter",
    "Finder",
    "Pager",
    "sort_order",
]
