from __future__ import annotations

import unittest

from app.config import SyncSettings
from app.domain.registry_sync import SyncRequest
from app.validators.sync_request_validator import SyncRequestValidationError, validate_sync_request


class TestSyncRequestValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = SyncSettings(min_year=2020, max_year=2100)

    def test_valid_request_passes(self) -> None:
        validate_sync_request(SyncRequest(year=2026, month=3, district="Kisumu"), self.settings)

    def test_collects_every_problem(self) -> None:
        with self.assertRaises(SyncRequestValidationError) as ctx:
            validate_sync_request(SyncRequest(year=1999, month=13, district="  "), self.settings)

        codes = [error.code for error in ctx.exception.errors]
        self.assertEqual(codes, ["invalid_year", "invalid_month", "missing_district"])
        self.assertEqual(
            {error["field"] for error in ctx.exception.to_dict()["errors"]},
            {"year", "month", "district"},
        )

    def test_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            validate_sync_request(SyncRequest(year=2026, month=0, district="Kisumu"), self.settings)


if __name__ == "__main__":
    unittest.main()
