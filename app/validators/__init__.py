"""
app/validators package marker.
"""

from app.validators.identity_validator import IdentityValidator, calculate_trust_score
from app.validators.mapping_validator import (
    ColumnMappingError,
    ColumnMappingValidator,
    MappingErrorDetail,
)

__all__ = [
    "ColumnMappingError",
    "ColumnMappingValidator",
    "IdentityValidator",
    "MappingErrorDetail",
    "calculate_trust_score",
]
