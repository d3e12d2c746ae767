"""
app/mappers package marker.
"""

from app.mappers.row_mapper import HEADER_ALIASES, RowMapper

__all__ = [
    "HEADER_ALIASES",
    "RowMapper",
]
