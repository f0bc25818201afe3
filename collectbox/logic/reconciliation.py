"""Respondent reconciliation.

Compares the submitter roster with the submission ledger. Matching is exact
string equality on names; "Taro" and "Taro " are different people here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping


@dataclass(frozen=True)
class Reconciliation:
    respondents: List[str] = field(default_factory=list)
    non_respondents: List[str] = field(default_factory=list)
    # Submissions whose submitter is not on the roster
    orphans: List[str] = field(default_factory=list)


def _distinct(names: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            out.append(name)
    return out


def reconcile(roster: Iterable[str], submissions: Iterable[Mapping[str, Any]]) -> Reconciliation:
    roster_names = _distinct(roster)
    respondents = _distinct(str(s["submitter_name"]) for s in submissions)
    responded = set(respondents)
    on_roster = set(roster_names)
    return Reconciliation(
        respondents=respondents,
        non_respondents=[n for n in roster_names if n not in responded],
        orphans=[n for n in respondents if n not in on_roster],
    )


__all__ = ["Reconciliation", "reconcile"]
