"""Source registry and URL construction."""

from .registry import SOURCES, all_source_ids, get_source_config, source_names
from .urls import build_search_url, lookup_area_id

__all__ = [
    "SOURCES",
    "all_source_ids",
    "get_source_config",
    "source_names",
    "build_search_url",
    "lookup_area_id",
]
