"""
Hubstaff team → internal team category mapping.
"""

from typing import Dict, Optional

DESIGN = "Design"
FE_DEV = "FE Dev"
BE_DEV = "BE Dev"
TESTING = "Testing"
UNKNOWN = "Unknown"

# Hubstaff team display name -> internal category
HUBSTAFF_TEAM_MAPPING: Dict[str, str] = {
    "UI/UX Designers": DESIGN,
    "Frontend Developers": FE_DEV,
    "Backend Developers": BE_DEV,
    "QA Developers": TESTING,
    "WordPress Developers": FE_DEV,
    "Mobile App Developers": FE_DEV,
}

# Keyword hints used when a user is in none of the mapped teams
KEYWORD_TO_TEAM: Dict[str, str] = {
    "design": DESIGN,
    "designer": DESIGN,
    "ui": DESIGN,
    "ux": DESIGN,
    "frontend": FE_DEV,
    "fe dev": FE_DEV,
    "react": FE_DEV,
    "vue": FE_DEV,
    "angular": FE_DEV,
    "backend": BE_DEV,
    "be dev": BE_DEV,
    "node": BE_DEV,
    "python": BE_DEV,
    "java": BE_DEV,
    "qa": TESTING,
    "test": TESTING,
    "testing": TESTING,
    "quality": TESTING,
}

# AggregateResult.team_breakdown keys
BREAKDOWN_KEYS = {
    DESIGN: "design_days",
    FE_DEV: "fe_dev_days",
    BE_DEV: "be_dev_days",
    TESTING: "testing_days",
    UNKNOWN: "other_days",
}


def category_for_team(team_name: Optional[str]) -> Optional[str]:
    return HUBSTAFF_TEAM_MAPPING.get((team_name or "").strip())


def determine_user_team(user: Dict) -> str:
    """Best-effort team guess from a user's name, role or email."""
    name = (user.get("name") or "").lower()
    role = (user.get("role") or "").lower()
    email = (user.get("email") or "").lower()

    for keyword, team in KEYWORD_TO_TEAM.items():
        if keyword in name or keyword in role or keyword in email:
            return team
    return UNKNOWN
