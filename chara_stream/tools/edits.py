"""Sub-operation status for file-editing tool calls.

Edit tools carry `arguments["edits"]`, a list of edit operations. Each
operation gets a `status` mirroring its parent call:

- `applying` while argument text is still streaming
- `pending` once the full arguments arrived but the tool has not run
- `complete` / `error` once a result arrived; on error the message is copied
  onto every operation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping


class EditStatus(str, Enum):
    PENDING = "pending"
    APPLYING = "applying"
    COMPLETE = "complete"
    ERROR = "error"


def _edits_of(args: Mapping[str, Any]) -> list[Any] | None:
    edits = args.get("edits")
    return edits if isinstance(edits, list) else None


def with_edit_status(
    args: Mapping[str, Any],
    status: EditStatus,
    *,
    error: str | None = None,
    keep_existing: bool = False,
) -> dict[str, Any]:
    """Return a copy of `args` whose edit operations carry `status`.

    Args:
        keep_existing: keep a status an operation already has (used while
            streaming, where the model may send its own).
        error: set as `error` on every operation; cleared when None.

    A missing or non-list `edits` becomes an empty list, matching what the
    rendering side expects for edit tools.
    """

    out = dict(args)
    edits = _edits_of(args) or []

    updated: list[Any] = []
    for edit in edits:
        if not isinstance(edit, Mapping):
            updated.append(edit)
            continue
        item = dict(edit)
        if not (keep_existing and item.get("status")):
            item["status"] = status.value
        if error is not None:
            item["error"] = error
        else:
            item.pop("error", None)
        updated.append(item)

    out["edits"] = updated
    return out


def result_error_message(result: Any) -> str | None:
    """The error carried by a tool result, if any.

    A result signals failure by being a mapping with an `error` key.
    """

    if isinstance(result, Mapping) and "error" in result:
        return str(result.get("error"))
    return None
