"""
PostgreSQL Database Layer (Direct connection via psycopg2)
"""

import psycopg2
from psycopg2.extras import RealDictCursor
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from tracker import config


# -----------------------------------------------------------------------------
# Connection Helper
# -----------------------------------------------------------------------------
@contextmanager
def db():
    """Database connection context manager with auto-commit."""
    config.require_database_url()
    conn = psycopg2.connect(config.DATABASE_URL)
    try:
        yield conn.cursor(cursor_factory=RealDictCursor)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


# -----------------------------------------------------------------------------
# Hubstaff Tokens (single row, id = 1)
# -----------------------------------------------------------------------------
def load_hubstaff_tokens() -> Optional[Dict]:
    with db() as cur:
        cur.execute(
            "SELECT access_token, refresh_token, expires_at FROM hubstaff_tokens WHERE id = 1"
        )
        row = cur.fetchone()
        return dict(row) if row else None


def save_hubstaff_tokens(access_token: str, refresh_token: str, expires_at: int):
    with db() as cur:
        cur.execute(
            """
            INSERT INTO hubstaff_tokens (id, access_token, refresh_token, expires_at, updated_at)
            VALUES (1, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET access_token=EXCLUDED.access_token,
                refresh_token=EXCLUDED.refresh_token, expires_at=EXCLUDED.expires_at,
                updated_at=EXCLUDED.updated_at
        """,
            (
                access_token,
                refresh_token,
                expires_at,
                datetime.now(timezone.utc).isoformat(),
            ),
        )


# -----------------------------------------------------------------------------
# Tasks
# -----------------------------------------------------------------------------
def get_tasks_for_assignee(names: Iterable[str]) -> List[Dict]:
    """Tasks where assigned_to or assigned_to2 is any of `names`, newest first."""
    names = sorted({n for n in names if n})
    if not names:
        return []
    with db() as cur:
        cur.execute(
            """SELECT * FROM tasks
               WHERE assigned_to = ANY(%s) OR assigned_to2 = ANY(%s)
               ORDER BY created_at DESC""",
            (names, names),
        )
        return [dict(r) for r in cur.fetchall()]


# -----------------------------------------------------------------------------
# User Profiles / Leaves
# -----------------------------------------------------------------------------
def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def find_user_profiles(name: str) -> List[Dict]:
    """Case-insensitive full_name lookup. More than one row means ambiguous."""
    with db() as cur:
        cur.execute(
            "SELECT id, full_name, team_id FROM user_profiles WHERE full_name ILIKE %s",
            (_escape_like(name.strip()),),
        )
        return [dict(r) for r in cur.fetchall()]


def get_all_user_profiles() -> List[Dict]:
    with db() as cur:
        cur.execute("SELECT id, full_name, team_id FROM user_profiles")
        return [dict(r) for r in cur.fetchall()]


def upsert_leave(
    member_id: str,
    member_name: str,
    leave_date: str,
    leave_type: str,
    team_id: Optional[str] = None,
    is_shadow: bool = False,
) -> Dict:
    now = datetime.now(timezone.utc).isoformat()
    with db() as cur:
        cur.execute(
            "SELECT id FROM leaves WHERE team_member_id = %s AND leave_date = %s",
            (member_id, leave_date),
        )
        existing = cur.fetchone()
        if existing:
            cur.execute(
                "UPDATE leaves SET leave_type=%s, updated_at=%s WHERE id=%s RETURNING *",
                (leave_type, now, existing["id"]),
            )
        else:
            cur.execute(
                """
                INSERT INTO leaves (team_member_id, team_member_name, leave_date,
                                    leave_type, status, team_id, is_shadow)
                VALUES (%s, %s, %s, %s, 'Approved', %s, %s)
                RETURNING *
            """,
                (member_id, member_name, leave_date, leave_type, team_id, is_shadow),
            )
        return dict(cur.fetchone())


def delete_leave(member_id: str, leave_date: str) -> int:
    with db() as cur:
        cur.execute(
            "DELETE FROM leaves WHERE team_member_id = %s AND leave_date = %s",
            (member_id, leave_date),
        )
        return cur.rowcount
