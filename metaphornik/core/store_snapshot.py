"""Store Snapshot — serialization / validated deserialization of the whole store.

Invariants:
    - store_to_snapshot produces a JSON-safe dict keyed by metaphor (camelCase records)
    - store_from_snapshot accepts ONLY a keyed mapping whose every value conforms to
      StoredMetaphorAnalysis and whose key equals that record's metaphor; anything
      else raises ImportValidationError
    - Missing optional fields fall back to model defaults (forward-compatible)
    - Roundtrip (to_snapshot -> from_snapshot) is lossless

Design Decisions:
    - TypeAdapter over hand-written checks: field-by-field validation with precise
      error locations for the log (ADR: "is it a dict" alone let corrupt imports in)
    - Validation detail goes to the log; the user sees one stable message
"""

import json
import logging

from pydantic import TypeAdapter, ValidationError

from metaphornik.core.analysis_types import StoreState, StoredMetaphorAnalysis
from metaphornik.core.errors import ImportValidationError

logger = logging.getLogger(__name__)

_STORE_ADAPTER = TypeAdapter(dict[str, StoredMetaphorAnalysis])


def store_to_snapshot(state: StoreState) -> dict:
    """Serialize the store to a JSON-safe dict. Pure, no IO."""
    return {metaphor: record.to_wire() for metaphor, record in state.items()}


def store_from_snapshot(data: object) -> StoreState:
    """Validate and rebuild a store from a decoded JSON value.

    Raises ImportValidationError for arrays, scalars, null, any record that
    does not match the StoredMetaphorAnalysis shape, or a record filed under
    a key other than its own metaphor.
    """
    if not isinstance(data, dict):
        raise ImportValidationError(
            f"expected a keyed mapping, got {type(data).__name__}",
        )
    try:
        state = _STORE_ADAPTER.validate_python(data)
    except ValidationError as e:
        logger.warning(
            "Rejected store snapshot: %d validation error(s)", e.error_count(),
        )
        raise ImportValidationError(_first_error(e)) from e
    for key, record in state.items():
        if record.metaphor != key:
            logger.warning("Rejected store snapshot: key/metaphor mismatch")
            raise ImportValidationError(
                f"{key}.metaphor: expected {key!r}, got {record.metaphor!r}",
            )
    return state


def parse_import_payload(raw: bytes | str) -> StoreState:
    """Decode a JSON export file and validate it into a store."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportValidationError(f"invalid JSON: {e}") from e
    return store_from_snapshot(data)


def _first_error(e: ValidationError) -> str:
    """Compact 'loc: msg' for the first validation error."""
    err = e.errors()[0]
    location = ".".join(str(part) for part in err["loc"])
    return f"{location}: {err['msg']}"
