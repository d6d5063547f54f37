import pytest

from tracker.errors import MatchNotFoundError
from tracker.name_matching import (
    MatchStatus,
    hubstaff_name_for,
    map_hubstaff_name,
    match_hubstaff_user,
    match_person,
    match_project,
    shadow_identity,
    suggest_close_projects,
)


def _projects(*names):
    return [{"id": i, "name": n} for i, n in enumerate(names, start=1)]


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------
def test_exact_match_ignores_case_and_whitespace():
    result = match_project("  mobile   APP ", _projects("Mobile App", "Mobile App v2"))

    assert result.matched
    assert result.entity["id"] == 1
    assert result.rule == "exact"


def test_segment_match_after_last_slash():
    result = match_project("Acme / Website Redesign", _projects("Website Redesign", "Other/Thing"))

    assert result.matched
    assert result.entity["name"] == "Website Redesign"
    assert result.rule == "segment"


def test_segment_match_on_candidate_side():
    result = match_project("Hiring Portal", _projects("Internal / Hiring Portal"))

    assert result.entity["name"] == "Internal / Hiring Portal"


def test_exact_match_takes_first_candidate_in_order():
    result = match_project("Billing", _projects("Billing", "billing"))

    assert result.entity["id"] == 1


def test_single_substring_hit_is_accepted():
    result = match_project("Redesign", _projects("Website Redesign 2026", "Mobile App"))

    assert result.matched
    assert result.rule == "substring"


def test_multiple_substring_hits_are_ambiguous():
    result = match_project("XYZ", _projects("XYZ Alpha", "XYZ Beta"))

    assert not result.matched
    assert result.status == MatchStatus.AMBIGUOUS
    assert {c["name"] for c in result.candidates} == {"XYZ Alpha", "XYZ Beta"}


def test_no_match():
    assert match_project("Payroll", _projects("Mobile App")).status == MatchStatus.NOT_FOUND
    assert match_project("", _projects("Mobile App")).status == MatchStatus.NOT_FOUND


def test_suggest_close_projects_uses_prefix():
    projects = _projects("Website Redesign", "Websites Old", "Mobile App")

    assert suggest_close_projects("Websit Redo", projects) == ["Website Redesign", "Websites Old"]


# -----------------------------------------------------------------------------
# People
# -----------------------------------------------------------------------------
PEOPLE = [{"name": "Priya Nair"}, {"name": "Ravi Kumar"}, {"name": "Anna Thomas"}, {"name": "Annie Paul"}]


def test_person_exact_match():
    assert match_person("ravi kumar", PEOPLE).entity["name"] == "Ravi Kumar"


def test_person_starts_with():
    result = match_person("Priya", PEOPLE)

    assert result.entity["name"] == "Priya Nair"
    assert result.rule == "starts_with"


def test_person_contains():
    result = match_person("Nair", PEOPLE)

    assert result.entity["name"] == "Priya Nair"
    assert result.rule == "contains"


def test_person_first_token():
    result = match_person("Ravi K.", PEOPLE)

    assert result.entity["name"] == "Ravi Kumar"
    assert result.rule == "first_token"


def test_person_with_several_hits_is_ambiguous():
    result = match_person("Ann", PEOPLE)

    assert result.status == MatchStatus.AMBIGUOUS
    assert len(result.candidates) == 2


def test_ambiguous_heuristic_is_not_resolved_by_a_weaker_one():
    candidates = [{"name": "Joann Lee"}, {"name": "Mary Ann Lee"}, {"name": "Anna Brown"}]

    result = match_person("Ann Lee", candidates)

    assert result.status == MatchStatus.AMBIGUOUS
    assert {c["name"] for c in result.candidates} == {"Joann Lee", "Mary Ann Lee"}


def test_duplicate_exact_person_is_ambiguous():
    result = match_person("Ravi Kumar", PEOPLE + [{"name": "ravi kumar"}])

    assert result.status == MatchStatus.AMBIGUOUS


# -----------------------------------------------------------------------------
# Shadow identities
# -----------------------------------------------------------------------------
def test_shadow_identity_is_deterministic():
    assert shadow_identity("Jane  Doe") == "shadow_jane_doe"
    assert shadow_identity(" Jane Doe ") == shadow_identity("jane doe")


def test_shadow_identity_rejects_short_names():
    with pytest.raises(MatchNotFoundError):
        shadow_identity("Al")
    with pytest.raises(MatchNotFoundError):
        shadow_identity("   ")


# -----------------------------------------------------------------------------
# Alias table
# -----------------------------------------------------------------------------
def test_alias_lookups():
    assert map_hubstaff_name("Kiran P S") == "Kiran"
    assert map_hubstaff_name("Someone New") == "Someone New"
    assert hubstaff_name_for("Vishnu") == "Vishnu"
    assert hubstaff_name_for("Aswathi") == "Aswathi M Ashok"
    assert hubstaff_name_for("Nobody") is None


def test_match_hubstaff_user_prefers_alias():
    users = [{"id": 1, "name": "Aswathi Menon"}, {"id": 2, "name": "Aswathi M Ashok"}]

    result = match_hubstaff_user("Aswathi", users)

    assert result.entity["id"] == 2
    assert result.rule == "alias"


def test_match_hubstaff_user_falls_back_to_heuristics():
    users = [{"id": 5, "first_name": "Priya", "last_name": "Nair"}]

    result = match_hubstaff_user(
        "Priya", users, name_of=lambda u: f"{u['first_name']} {u['last_name']}"
    )

    assert result.entity["id"] == 5
