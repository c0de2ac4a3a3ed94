"""Load claim records for batch indexing.

- CLAIMS_DATA_PATH env or default data/claims.json: a JSON array of claim records
  (camelCase keys, as exported by the claims system).
"""

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from claim_knowledge.errors import InvalidInput
from claim_knowledge.models.claim import ClaimRecord


def _project_data_dir() -> Path:
    return Path(__file__).resolve().parent.parent.parent.parent / "data"


def resolve_claims_path(path: str | Path | None = None) -> Path:
    """Explicit path, else CLAIMS_DATA_PATH, else data/claims.json."""
    if path:
        return Path(path)
    env_path = os.environ.get("CLAIMS_DATA_PATH")
    if env_path:
        return Path(env_path)
    return _project_data_dir() / "claims.json"


def load_raw_claims(path: str | Path | None = None) -> list[dict[str, Any]]:
    """Read the claims file as a list of dicts.

    Raises:
        InvalidInput: If the file is missing, not JSON, or not a list of objects.
    """
    claims_path = resolve_claims_path(path)
    if not claims_path.exists():
        raise InvalidInput(f"Claims file not found: {claims_path}")
    try:
        with open(claims_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInput(f"Invalid JSON in {claims_path}: {e}") from e

    # Accept either a bare array or {"claims": [...]}
    if isinstance(data, dict) and isinstance(data.get("claims"), list):
        data = data["claims"]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise InvalidInput(f"{claims_path} must contain a JSON array of claim objects")
    return data


def load_claim_records(path: str | Path | None = None) -> list[ClaimRecord]:
    """Read and validate every claim record in the file; one bad record fails the load."""
    records = []
    for position, raw in enumerate(load_raw_claims(path)):
        try:
            records.append(ClaimRecord.model_validate(raw))
        except ValidationError as e:
            label = raw.get("claimNumber") or f"position {position}"
            raise InvalidInput(f"Malformed claim record {label}: {e}") from e
    return records
