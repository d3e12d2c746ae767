"""
app/mappers/row_mapper.py

Maps raw CSV records onto identity candidates.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from app.domain.identity import CandidateUser, RawRecord

# Accepted header spellings per field, checked in order. Matching is case-sensitive.
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "full_name": ("Name", "fullName"),
    "email": ("Email", "email"),
    "phone": ("Phone", "phone"),
}

# Keys of an explicit positional mapping, as sent by upload clients.
POSITIONAL_KEYS: dict[str, str] = {
    "full_name": "fullName",
    "email": "email",
    "phone": "phone",
}


class RowMapper:
    """
    Builds a CandidateUser from a header-keyed or positional CSV record.

    Missing values become empty strings; deciding whether a value is
    acceptable is the validator's job.
    """

    def __init__(self, *, aliases: Mapping[str, Sequence[str]] | None = None) -> None:
        self._aliases: dict[str, tuple[str, ...]] = {
            field: tuple(values)
            for field, values in (aliases or HEADER_ALIASES).items()
        }

    def map_record(
        self,
        record: RawRecord,
        *,
        source_file: str,
        mapping: Mapping[str, int] | None = None,
    ) -> CandidateUser:
        if mapping is not None:
            values = self._read_positional(record, mapping)
        else:
            values = self._read_by_header(record)

        return CandidateUser(
            full_name=values["full_name"],
            email=values["email"],
            phone=values["phone"],
            source_file=source_file,
        )

    def _read_by_header(self, record: RawRecord) -> dict[str, str]:
        if not isinstance(record, Mapping):
            raise TypeError("Header mode requires a mapping record.")

        values: dict[str, str] = {}
        for field, aliases in self._aliases.items():
            values[field] = ""
            for alias in aliases:
                value = self._clean(record.get(alias))
                if value:
                    values[field] = value
                    break
        return values

    def _read_positional(
        self,
        record: RawRecord,
        mapping: Mapping[str, int],
    ) -> dict[str, str]:
        if isinstance(record, Mapping):
            raise TypeError("Positional mode requires a sequence record.")

        values: dict[str, str] = {}
        for field, key in POSITIONAL_KEYS.items():
            index = mapping.get(key)
            if index is None or index >= len(record):
                values[field] = ""
            else:
                values[field] = self._clean(record[index])
        return values

    @staticmethod
    def _clean(value: object) -> str:
        # DictReader stores overflow cells as a list under the None key; ignore non-strings.
        if not isinstance(value, str):
            return ""
        return value.strip()
