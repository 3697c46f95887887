"""
Run one registry sync batch from CLI.

The input file holds the same JSON body the HTTP endpoint accepts:
{"irsData": [...], "households": [...]}.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from app.domain.registry_sync import SyncRequest
from app.logging_utils import configure_logging
from app.schemas.registry_sync import (
    RegistrySyncRequestBody,
    to_household_bundle,
    to_irs_overrides,
    to_sync_response,
)
from app.services.registry_sync_service import ElementMapUnavailableError, get_registry_sync_service
from app.validators.sync_request_validator import SyncRequestValidationError
from db.session import SessionLocal


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Sync household-month bundles to the registry.")
    parser.add_argument("--year", type=int, required=True)
    parser.add_argument("--month", type=int, required=True)
    parser.add_argument("--district", required=True)
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Map only; write nothing.")
    parser.add_argument(
        "--input",
        dest="input_path",
        type=Path,
        required=True,
        help="JSON file with irsData and households.",
    )
    args = parser.parse_args(argv)

    configure_logging()

    try:
        body = RegistrySyncRequestBody.model_validate_json(args.input_path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        print(json.dumps({"error": f"Invalid input file: {exc}"}), file=sys.stderr)
        return 2

    request = SyncRequest(
        year=args.year,
        month=args.month,
        district=args.district,
        dry_run=args.dry_run,
        irs_overrides=to_irs_overrides(body.irs_data),
    )
    bundles = [to_household_bundle(household) for household in body.households]

    service = get_registry_sync_service()
    with SessionLocal() as db:
        try:
            batch = service.sync(db=db, request=request, bundles=bundles)
        except SyncRequestValidationError as exc:
            print(json.dumps({"error": exc.message, "details": exc.to_dict()["errors"]}), file=sys.stderr)
            return 2
        except ElementMapUnavailableError as exc:
            print(json.dumps({"error": str(exc)}), file=sys.stderr)
            return 1

    response = to_sync_response(batch)
    print(json.dumps(response.model_dump(by_alias=True, exclude_unset=True), indent=2))
    return 0 if response.summary.failed_syncs == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
