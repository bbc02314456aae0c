"""
naws_import/mappers package marker.
"""

from naws_import.mappers.field_encoders import format_time_for_bmlt, map_day_to_bmlt
from naws_import.mappers.naws_mapper import NAWSMapper, determine_venue_type

__all__ = [
    "NAWSMapper",
    "determine_venue_type",
    "format_time_for_bmlt",
    "map_day_to_bmlt",
]
