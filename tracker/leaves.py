"""
Quick leave toggling from the tracker grid.

Assignee names on tasks are free text and do not always match a user
profile. Unresolvable names get a shadow identity so the leave can still be
recorded; it is flagged `is_shadow` for later cleanup.
"""

import logging
from typing import Dict, Optional

from tracker import dates, db
from tracker.name_matching import match_person, shadow_identity

logger = logging.getLogger(__name__)


def resolve_member(name: str) -> Dict:
    """
    Map a display name to {id, team_id, is_shadow}.

    Raises MatchNotFoundError for names too short to get a shadow identity.
    """
    profiles = db.find_user_profiles(name)
    if len(profiles) == 1:
        p = profiles[0]
        return {"id": str(p["id"]), "team_id": p.get("team_id"), "is_shadow": False}

    if not profiles:
        result = match_person(name, db.get_all_user_profiles(), key="full_name")
        if result.matched:
            p = result.entity
            logger.info("Resolved '%s' to profile '%s' (%s)", name, p["full_name"], result.rule)
            return {"id": str(p["id"]), "team_id": p.get("team_id"), "is_shadow": False}
        profiles = result.candidates

    if profiles:
        logger.warning(
            "'%s' matches %d profiles, using shadow identity", name, len(profiles)
        )
    else:
        logger.warning("No user profile for '%s', using shadow identity", name)
    return {"id": shadow_identity(name), "team_id": None, "is_shadow": True}


def mark_quick_leave(
    name: str,
    leave_type: str,
    leave_date: Optional[str] = None,
    team_id: Optional[str] = None,
) -> Dict:
    target_date = leave_date or dates.today_str()
    member = resolve_member(name)
    leave = db.upsert_leave(
        member_id=member["id"],
        member_name=name,
        leave_date=target_date,
        leave_type=leave_type,
        team_id=team_id or member["team_id"],
        is_shadow=member["is_shadow"],
    )
    return {"leave": leave, "is_shadow": member["is_shadow"]}


def clear_quick_leave(name: str, leave_date: Optional[str] = None) -> int:
    target_date = leave_date or dates.today_str()
    member = resolve_member(name)
    return db.delete_leave(member["id"], target_date)
