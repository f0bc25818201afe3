"""RFC4180 CSV export of a collection's submissions.

Header row is "Submitter" followed by the field labels in schema order; one
row per submission. Cells are looked up by the derived response key, so a
relabelled field shows empty cells for submissions made before the edit.
The submitter-selector column repeats the submitter name.
Attachment cells hold the resolved URL, or stay empty when the handle no
longer resolves.
"""

from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable, List, Mapping

from collectbox.logic.attachments import resolve_handle
from collectbox.logic.blob_store import BlobStore
from collectbox.logic.field_keys import is_selector_field, key_for
from collectbox.models.response_values import Attachment, Flag, plain_value

SUBMITTER_HEADER = "Submitter"


def export_filename(collection_name: str) -> str:
    return f"{collection_name}_submissions.csv"


def _cell(value: Any, blob_store: BlobStore) -> str:
    if value is None:
        return ""
    if isinstance(value, Attachment):
        return resolve_handle(blob_store, value.value) or ""
    if isinstance(value, Flag):
        return "true" if value.value else "false"
    return str(plain_value(value))


def build_export_rows(
    fields: Iterable[Mapping[str, Any]],
    submissions: Iterable[Mapping[str, Any]],
    blob_store: BlobStore,
) -> List[List[str]]:
    ordered = sorted(fields, key=lambda f: int(f.get("order", 0)))
    # None marks the selector column, which echoes the submitter name
    keys = [None if is_selector_field(f) else key_for(str(f["label"])) for f in ordered]
    rows: List[List[str]] = [[SUBMITTER_HEADER] + [str(f["label"]) for f in ordered]]
    for s in submissions:
        name = str(s["submitter_name"])
        responses: Dict[str, Any] = s.get("responses") or {}
        rows.append([name] + [name if k is None else _cell(responses.get(k), blob_store) for k in keys])
    return rows


def build_export_csv(
    fields: Iterable[Mapping[str, Any]],
    submissions: Iterable[Mapping[str, Any]],
    blob_store: BlobStore,
    *,
    include_header: bool = True,
) -> bytes:
    rows = build_export_rows(fields, submissions, blob_store)
    if not include_header:
        rows = rows[1:]
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL)
    writer.writerows(rows)
    # BOM so spreadsheet applications detect UTF-8 for non-ASCII labels
    return ("\ufeff" + buf.getvalue()).encode("utf-8")


__all__ = ["SUBMITTER_HEADER", "export_filename", "build_export_rows", "build_export_csv"]
