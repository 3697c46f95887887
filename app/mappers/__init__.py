"""
app/mappers package marker.
"""

from app.mappers.registry_event_mapper import (
    ElementName,
    collection_method_code,
    enrich_data_values,
    format_registry_date,
    map_to_data_values,
)

__all__ = [
    "ElementName",
    "collection_method_code",
    "enrich_data_values",
    "format_registry_date",
    "map_to_data_values",
]
