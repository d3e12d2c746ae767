"""
app/validators/mapping_validator.py

Validation for explicit positional column mappings.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

MAPPING_FIELDS: tuple[str, ...] = ("fullName", "email", "phone")


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    field: str | None = None
    column_index: Any = None
    context: dict[str, Any] | None = None


class ColumnMappingError(ValueError):
    """
    Raised when an explicit column mapping cannot be used safely.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "field": error.field,
                    "column_index": error.column_index,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class ColumnMappingValidator:
    """
    Validates field-name to column-index mappings for headerless CSVs.
    """

    def __init__(self, *, required_fields: Sequence[str] = MAPPING_FIELDS) -> None:
        self._required_fields = tuple(required_fields)
        self._known_fields = set(self._required_fields)

    def parse(self, raw_mapping: str) -> dict[str, int]:
        """
        Decode a JSON mapping document and validate it.
        """

        try:
            decoded = json.loads(raw_mapping)
        except json.JSONDecodeError as exc:
            raise ColumnMappingError(
                message="Invalid mapping JSON.",
                errors=[
                    MappingErrorDetail(
                        code="invalid_mapping_json",
                        message=f"Mapping is not valid JSON: {exc.msg}.",
                    )
                ],
            ) from exc

        if not isinstance(decoded, dict):
            raise ColumnMappingError(
                message="Invalid mapping JSON.",
                errors=[
                    MappingErrorDetail(
                        code="invalid_mapping_json",
                        message="Mapping must be a JSON object of field name to column index.",
                    )
                ],
            )
        return self.validate(decoded)

    def validate(self, mapping: Mapping[str, Any]) -> dict[str, int]:
        """
        Validate mapping and raise structured errors if invalid.

        Returns the mapping with indices coerced to ``int``.
        """

        errors: list[MappingErrorDetail] = []
        resolved: dict[str, int] = {}
        used_indices: dict[int, str] = {}

        for field, index in mapping.items():
            if field not in self._known_fields:
                errors.append(
                    MappingErrorDetail(
                        code="unknown_mapping_field",
                        message="Mapping contains an unknown field name.",
                        field=field,
                        column_index=index,
                        context={"allowed_fields": list(self._required_fields)},
                    )
                )
                continue

            # bool is an int subclass; reject it explicitly
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_column_index",
                        message="Column index must be a non-negative integer.",
                        field=field,
                        column_index=index,
                    )
                )
                continue

            if index in used_indices:
                errors.append(
                    MappingErrorDetail(
                        code="duplicate_column_index",
                        message="Column index is already mapped to another field.",
                        field=field,
                        column_index=index,
                        context={"mapped_field": used_indices[index]},
                    )
                )
                continue

            used_indices[index] = field
            resolved[field] = index

        for required in self._required_fields:
            if required not in mapping:
                errors.append(
                    MappingErrorDetail(
                        code="required_field_unmapped",
                        message="Required field is not mapped to a column.",
                        field=required,
                    )
                )

        if errors:
            missing = sorted(
                {
                    error.field
                    for error in errors
                    if error.code == "required_field_unmapped" and error.field
                }
            )
            missing_csv = ", ".join(missing) or "none"
            raise ColumnMappingError(
                message=f"Column mapping validation failed. Missing required fields: {missing_csv}.",
                errors=errors,
            )

        return resolved
