from __future__ import annotations

import unittest

from app.validators.mapping_validator import ColumnMappingError, ColumnMappingValidator


class TestColumnMappingValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = ColumnMappingValidator()

    def test_accepts_complete_mapping(self) -> None:
        resolved = self.validator.validate({"fullName": 2, "email": 0, "phone": 1})

        self.assertEqual(resolved, {"fullName": 2, "email": 0, "phone": 1})

    def test_raises_on_missing_required_fields(self) -> None:
        with self.assertRaises(ColumnMappingError) as ctx:
            self.validator.validate({"email": 0})

        codes = [error.code for error in ctx.exception.errors]
        self.assertEqual(codes.count("required_field_unmapped"), 2)
        self.assertIn("fullName", ctx.exception.message)
        self.assertIn("phone", ctx.exception.message)

    def test_raises_on_invalid_and_duplicate_indices(self) -> None:
        with self.assertRaises(ColumnMappingError) as ctx:
            self.validator.validate({"fullName": True, "email": 1, "phone": 1})

        codes = [error.code for error in ctx.exception.errors]
        self.assertIn("invalid_column_index", codes)
        self.assertIn("duplicate_column_index", codes)

    def test_raises_on_negative_index_and_unknown_field(self) -> None:
        with self.assertRaises(ColumnMappingError) as ctx:
            self.validator.validate({"fullName": -1, "email": 0, "phone": 1, "age": 3})

        codes = {error.code for error in ctx.exception.errors}
        self.assertEqual(codes, {"invalid_column_index", "unknown_mapping_field"})

    def test_parse_rejects_malformed_json(self) -> None:
        with self.assertRaises(ColumnMappingError) as ctx:
            self.validator.parse("{email: 0")

        self.assertEqual(ctx.exception.errors[0].code, "invalid_mapping_json")

    def test_parse_rejects_non_object(self) -> None:
        with self.assertRaises(ColumnMappingError) as ctx:
            self.validator.parse("[0, 1, 2]")

        self.assertEqual(ctx.exception.errors[0].code, "invalid_mapping_json")

    def test_parse_decodes_and_validates(self) -> None:
        resolved = self.validator.parse('{"fullName": 0, "email": 1, "phone": 2}')

        self.assertEqual(resolved["phone"], 2)

    def test_error_payload_is_serializable(self) -> None:
        with self.assertRaises(ColumnMappingError) as ctx:
            self.validator.validate({})

        payload = ctx.exception.to_dict()
        self.assertEqual(len(payload["errors"]), 3)
        self.assertEqual(payload["errors"][0]["code"], "required_field_unmapped")


if __name__ == "__main__":
    unittest.main()
