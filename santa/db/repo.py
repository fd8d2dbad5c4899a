from __future__ import annotations

import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, select

from santa.db.models import Assignment, Draw, DrawStatus, Exclusion, Member


def get_draw_by_code(session, code: str) -> Optional[Draw]:
    return session.scalar(select(Draw).where(Draw.code == code))


def create_draw(session, code: str) -> Draw:
    draw = Draw(code=code, status=DrawStatus.OPEN)
    session.add(draw)
    session.flush()
    return draw


def get_member_by_token(session, draw_id: int, token: str) -> Optional[Member]:
    return session.scalar(
        select(Member).where(and_(Member.draw_id == draw_id, Member.token == token))
    )


def get_member_by_name(session, draw_id: int, name: str) -> Optional[Member]:
    return session.scalar(
        select(Member).where(and_(Member.draw_id == draw_id, Member.name == name))
    )


def add_member(session, draw: Draw, token: str, name: str) -> Member:
    member = Member(token=token, name=name, ready=False)
    draw.members.append(member)
    session.flush()
    return member


def list_members(session, draw_id: int) -> List[Member]:
    return list(
        session.scalars(select(Member).where(Member.draw_id == draw_id).order_by(Member.id)).all()
    )


def toggle_exclusion(session, giver: Member, excluded: Member) -> bool:
    """Flip the exclusion and return whether it is now set."""
    for exclusion in giver.exclusions:
        if exclusion.excluded_member_id == excluded.id:
            giver.exclusions.remove(exclusion)
            session.flush()
            return False
    giver.exclusions.append(Exclusion(excluded_member_id=excluded.id, excluded=excluded))
    session.flush()
    return True


def list_exclusion_map(session, draw_id: int) -> Dict[int, set[int]]:
    members = list_members(session, draw_id)
    exclusions: Dict[int, set[int]] = {member.id: set() for member in members}
    rows = session.execute(
        select(Exclusion.giver_member_id, Exclusion.excluded_member_id)
        .join(Member, Member.id == Exclusion.giver_member_id)
        .where(Member.draw_id == draw_id)
    ).all()
    for giver_id, excluded_id in rows:
        exclusions.setdefault(giver_id, set()).add(excluded_id)
    return exclusions


def reset_ready_flags(session, draw: Draw) -> None:
    for member in draw.members:
        member.ready = False


def update_draw_status(
    session,
    draw: Draw,
    status: DrawStatus,
    assigned_at: Optional[datetime.datetime] = None,
) -> None:
    draw.status = status
    draw.assigned_at = assigned_at


def update_draw_assignment_seed(session, draw: Draw, seed: Optional[int]) -> None:
    draw.last_assignment_seed = seed


def create_assignments(session, draw_id: int, assignments: Dict[int, int]) -> None:
    rows = [
        Assignment(draw_id=draw_id, giver_member_id=giver_id, receiver_member_id=receiver_id)
        for giver_id, receiver_id in assignments.items()
    ]
    session.add_all(rows)
    session.flush()


def get_assignment_for_giver(session, draw_id: int, giver_member_id: int) -> Optional[Assignment]:
    return session.scalar(
        select(Assignment).where(
            and_(Assignment.draw_id == draw_id, Assignment.giver_member_id == giver_member_id)
        )
    )
