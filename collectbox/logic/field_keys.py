"""Field label to response key mapping.

Submitters' answers are stored under a key derived from the field label, not
under a field id, so the same derivation must be used by every writer and
reader. Relabelling a field orphans previously stored values; no migration of
response keys is attempted.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

# Well-known labels (Japanese UI defaults and their English equivalents)
CANONICAL_KEYS: dict[str, str] = {
    "名前": "name",
    "Name": "name",
    "年齢": "age",
    "Age": "age",
    "住所": "address",
    "Address": "address",
    "電話番号": "phone",
    "Phone": "phone",
    "メールアドレス": "email",
    "Email": "email",
    "コメント": "comment",
    "Comment": "comment",
    "備考": "notes",
    "Notes": "notes",
}

SELECTOR_LABEL = "Name"
SELECTOR_LABELS = frozenset({"Name", "名前"})

_NON_WORD = re.compile(r"\W+")


def key_for(label: str) -> str:
    """Return the storage key for a field label.

    Canonical labels map to fixed keys; anything else is lower-cased with all
    non-word characters removed ("E-mail" -> "email"). Unicode letters and
    digits count as word characters, so CJK labels keep their text.
    """
    label = label if isinstance(label, str) else str(label)
    canonical = CANONICAL_KEYS.get(label)
    if canonical is not None:
        return canonical
    return _NON_WORD.sub("", label).lower()


def is_selector_field(field: Mapping[str, Any]) -> bool:
    """True for the submitter-selector field seeded on collection creation."""
    return field.get("label") in SELECTOR_LABELS and field.get("kind") == "choice"


__all__ = ["CANONICAL_KEYS", "SELECTOR_LABEL", "SELECTOR_LABELS", "key_for", "is_selector_field"]
