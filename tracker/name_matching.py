"""
Reconcile local project / person names against Hubstaff records.

Project names are matched exact → last "/" segment → substring of the last
segment. Person names additionally go through starts-with, contains and
first-token heuristics. Each accepts only a single hit, and the first one
that finds several candidates ends the search as ambiguous.

Results are tagged (MATCHED / AMBIGUOUS / NOT_FOUND) so callers can log and
handle each case on its own.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from tracker.errors import MatchNotFoundError

logger = logging.getLogger(__name__)

SHADOW_PREFIX = "shadow_"
MIN_SHADOW_NAME_LENGTH = 3


class MatchStatus(str, Enum):
    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass
class MatchResult:
    status: MatchStatus
    entity: Optional[Dict] = None
    candidates: List[Dict] = field(default_factory=list)
    rule: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.status == MatchStatus.MATCHED


def _matched(entity: Dict, rule: str) -> MatchResult:
    return MatchResult(MatchStatus.MATCHED, entity=entity, rule=rule)


NOT_FOUND = MatchResult(MatchStatus.NOT_FOUND)


def normalize(name: Optional[str]) -> str:
    return " ".join((name or "").lower().split())


def last_segment(name: Optional[str]) -> str:
    return normalize((name or "").split("/")[-1])


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------
def match_project(local_name: str, candidates: List[Dict], key: str = "name") -> MatchResult:
    """
    First rule that hits wins. For the exact rules the first candidate in
    order is taken; the substring rule needs a single hit.
    """
    target = normalize(local_name)
    if not target:
        return NOT_FOUND

    for c in candidates:
        if normalize(c.get(key)) == target:
            return _matched(c, "exact")

    base = last_segment(local_name)
    if not base:
        return NOT_FOUND

    for c in candidates:
        if last_segment(c.get(key)) == base:
            return _matched(c, "segment")

    # A substring hit is only trusted when it is the only one
    hits = []
    for c in candidates:
        other = last_segment(c.get(key))
        if other and (base in other or other in base):
            hits.append(c)
    if len(hits) == 1:
        return _matched(hits[0], "substring")
    if len(hits) > 1:
        logger.info(
            "Rejected substring match for '%s': %d candidates", local_name, len(hits)
        )
        return MatchResult(MatchStatus.AMBIGUOUS, candidates=hits)

    return NOT_FOUND


def suggest_close_projects(local_name: str, projects: List[Dict], limit: int = 3) -> List[str]:
    """'Did you mean' hints: projects containing the first five characters."""
    prefix = normalize(local_name)[:5]
    if not prefix:
        return []
    return [p["name"] for p in projects if prefix in normalize(p.get("name"))][:limit]


# -----------------------------------------------------------------------------
# People
# -----------------------------------------------------------------------------
def _first_token(name: str) -> str:
    parts = normalize(name).split(" ")
    return parts[0] if parts else ""


def match_person(name: str, candidates: List[Dict], key: str = "name") -> MatchResult:
    target = normalize(name)
    if not target:
        return NOT_FOUND

    def value(c: Dict) -> str:
        return normalize(c.get(key))

    exact = [c for c in candidates if value(c) == target]
    if len(exact) == 1:
        return _matched(exact[0], "exact")
    if len(exact) > 1:
        logger.warning("Ambiguous exact person match for '%s' (%d hits)", name, len(exact))
        return MatchResult(MatchStatus.AMBIGUOUS, candidates=exact)

    first = _first_token(target)
    heuristics: List[tuple] = [
        ("starts_with", lambda v: v.startswith(target)),
        ("contains", lambda v: target in v),
        ("first_token", lambda v: bool(first) and _first_token(v).startswith(first)),
    ]

    for rule, predicate in heuristics:
        hits = [c for c in candidates if value(c) and predicate(value(c))]
        if len(hits) == 1:
            return _matched(hits[0], rule)
        if len(hits) > 1:
            # Weaker rules are not consulted once a stronger one is ambiguous
            logger.info(
                "Rejected %s match for '%s': %d candidates (%s)",
                rule,
                name,
                len(hits),
                ", ".join(str(c.get(key)) for c in hits[:5]),
            )
            return MatchResult(MatchStatus.AMBIGUOUS, candidates=hits)

    return NOT_FOUND


def shadow_identity(name: str) -> str:
    """
    Deterministic placeholder id for a person who has no real record.

    "Jane  Doe" -> "shadow_jane_doe". Names shorter than three characters are
    rejected rather than given a placeholder.
    """
    cleaned = (name or "").strip()
    if len(cleaned) < MIN_SHADOW_NAME_LENGTH:
        raise MatchNotFoundError(name or "")
    normalized = re.sub(r"[^a-z0-9]+", "_", cleaned.lower()).strip("_")
    if not normalized:
        raise MatchNotFoundError(name)
    return f"{SHADOW_PREFIX}{normalized}"


# -----------------------------------------------------------------------------
# Static Hubstaff name aliases
# -----------------------------------------------------------------------------
HUBSTAFF_TO_LOCAL_NAME: Dict[str, str] = {
    "Aswathi M Ashok": "Aswathi",
    "Minnu Sebastian": "Minnu",
    "Justin Jose": "Justin",
    "Kiran P S": "Kiran",
    "Alfiya Noori": "Alfiya",
    "Neethu Shaji": "Neethu",
    "Akhila Mohanan": "Akhila",
    "Akhila Mohan": "Akhila",
    "Ramees Nuhman": "Ramees",
    "Josin Joseph": "Josin",
    "Sreegith VA": "Sreegith",
    "Samir Mulashiya": "Samir",
    "Amrutha lakshmi": "Amrutha",
    "amrutha ms": "Amrutha",
    "Vishnu": "Vishnu",
    "Vishnu Shaji": "Vishnu",
    "Vishnu shaji": "Vishnu",
    "Jishnu V Gopal": "Jishnu",
    "Sayooj K": "Sayooj",
    "Sayooj": "Sayooj",
    "Abhiram": "Abhiram",
    "Abhiram P Mohan": "Abhiram",
}


def map_hubstaff_name(hubstaff_name: str, aliases: Dict[str, str] = HUBSTAFF_TO_LOCAL_NAME) -> str:
    """Hubstaff full name -> local name, or the name unchanged."""
    return aliases.get(hubstaff_name, hubstaff_name)


def hubstaff_name_for(local_name: str, aliases: Dict[str, str] = HUBSTAFF_TO_LOCAL_NAME) -> Optional[str]:
    """Reverse lookup. An identity entry (name maps to itself) is preferred."""
    if aliases.get(local_name) == local_name:
        return local_name
    for hubstaff_name, mapped in aliases.items():
        if mapped == local_name:
            return hubstaff_name
    return None


def match_hubstaff_user(
    local_name: str,
    users: List[Dict],
    name_of: Callable[[Dict], str] = lambda u: u.get("name") or "",
) -> MatchResult:
    """Find the Hubstaff user for a local person name (alias table first)."""
    alias = hubstaff_name_for(local_name)
    if alias:
        for u in users:
            if name_of(u) == alias:
                return _matched(u, "alias")
    for u in users:
        if map_hubstaff_name(name_of(u)) == local_name:
            return _matched(u, "alias")
    named = [{"name": name_of(u), "_idx": i} for i, u in enumerate(users)]
    result = match_person(local_name, named)
    if result.matched:
        return _matched(users[result.entity["_idx"]], result.rule)
    return MatchResult(
        result.status, candidates=[users[c["_idx"]] for c in result.candidates]
    )
