"""
app/validators package marker.
"""

from app.validators.mapping_validator import DimensionMappingValidator, check_mapping_request

__all__ = [
    "DimensionMappingValidator",
    "check_mapping_request",
]
