from __future__ import annotations

import datetime
import random
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from santa.db import NAME_MAX_LENGTH, Draw, DrawStatus, Member, repo
from santa.services.assignment import (
    DEFAULT_MAX_ATTEMPTS,
    AssignmentError,
    Participant,
    generate_assignment,
)

CODE_LENGTH = 6


class DrawError(RuntimeError):
    pass


class DrawNotFound(DrawError):
    pass


class MemberNotFound(DrawError):
    pass


class InvalidName(DrawError):
    pass


class NameTaken(DrawError):
    pass


class DrawClosed(DrawError):
    pass


class SelfExclusion(DrawError):
    pass


class NoResultYet(DrawError):
    pass


@dataclass(frozen=True)
class JoinResult:
    draw: Draw
    member: Member


@dataclass(frozen=True)
class MemberView:
    token: str
    name: str
    ready: bool
    excluded_tokens: List[str]


@dataclass(frozen=True)
class DrawView:
    code: str
    members: List[MemberView]
    has_result: bool


@dataclass(frozen=True)
class AssignmentResult:
    assignments: Dict[int, int]
    participants: List[Member]
    draw: Draw
    seed: int


@dataclass(frozen=True)
class ReadyResult:
    draw: Draw
    member: Member
    assignment: Optional[AssignmentResult]

    @property
    def has_result(self) -> bool:
        return self.draw.status == DrawStatus.ASSIGNED


def _new_code() -> str:
    return uuid.uuid4().hex[:CODE_LENGTH]


def _new_token() -> str:
    return str(uuid.uuid4())


def _clean_name(name: Optional[str]) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidName("Invalid name")
    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidName(f"Name must be at most {NAME_MAX_LENGTH} characters")
    return name


def require_draw(session, code: str) -> Draw:
    draw = repo.get_draw_by_code(session, code)
    if not draw:
        raise DrawNotFound("Session not found")
    return draw


def require_member(session, draw: Draw, token: Optional[str]) -> Member:
    member = repo.get_member_by_token(session, draw.id, token) if token else None
    if not member:
        raise MemberNotFound("User not found")
    return member


def create_draw(session, name: Optional[str]) -> JoinResult:
    name = _clean_name(name)

    code = _new_code()
    while repo.get_draw_by_code(session, code):
        code = _new_code()

    draw = repo.create_draw(session, code)
    member = repo.add_member(session, draw, _new_token(), name)
    logger.bind(draw=draw.code).info("Draw created")
    return JoinResult(draw=draw, member=member)


def join_draw(session, code: str, name: Optional[str]) -> JoinResult:
    draw = require_draw(session, code)
    name = _clean_name(name)

    if draw.status == DrawStatus.ASSIGNED:
        raise DrawClosed("Draw already done")
    if repo.get_member_by_name(session, draw.id, name):
        raise NameTaken("Name already used")

    try:
        member = repo.add_member(session, draw, _new_token(), name)
    except IntegrityError as exc:
        raise NameTaken("Name already used") from exc

    logger.bind(draw=draw.code, member=member.id).info("Member joined")
    return JoinResult(draw=draw, member=member)


def describe_draw(session, code: str) -> DrawView:
    draw = require_draw(session, code)
    members = repo.list_members(session, draw.id)
    tokens = {member.id: member.token for member in members}
    exclusions = repo.list_exclusion_map(session, draw.id)

    return DrawView(
        code=draw.code,
        members=[
            MemberView(
                token=member.token,
                name=member.name,
                ready=member.ready,
                excluded_tokens=[tokens[excluded_id] for excluded_id in sorted(exclusions[member.id])],
            )
            for member in members
        ],
        has_result=draw.status == DrawStatus.ASSIGNED,
    )


def toggle_exclusion(
    session,
    code: str,
    member_token: Optional[str],
    excluded_token: Optional[str],
) -> List[str]:
    draw = require_draw(session, code)
    if draw.status == DrawStatus.ASSIGNED:
        raise DrawClosed("Draw already done")

    member = require_member(session, draw, member_token)
    if member_token == excluded_token:
        raise SelfExclusion("Cannot exclude yourself")
    excluded = require_member(session, draw, excluded_token)

    added = repo.toggle_exclusion(session, member, excluded)
    repo.reset_ready_flags(session, draw)
    logger.bind(draw=draw.code, member=member.id, excluded=excluded.id, added=added).debug(
        "Exclusion toggled"
    )
    return [exclusion.excluded.token for exclusion in member.exclusions]


def build_participants(session, draw: Draw) -> List[Participant]:
    exclusions = repo.list_exclusion_map(session, draw.id)
    return [
        Participant(id=member.id, excluded_ids=frozenset(exclusions[member.id]))
        for member in repo.list_members(session, draw.id)
    ]


def assign_draw(
    session,
    draw: Draw,
    seed: Optional[int] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    exhaustive_fallback: bool = False,
) -> AssignmentResult:
    if draw.status == DrawStatus.ASSIGNED:
        raise AssignmentError("Secret Santa has already been assigned for this draw.")

    participants = build_participants(session, draw)

    if seed is None:
        seed = random.randint(1, 2**31 - 1)

    assignments = generate_assignment(
        participants,
        seed=seed,
        max_attempts=max_attempts,
        exhaustive_fallback=exhaustive_fallback,
    )

    try:
        repo.create_assignments(session, draw.id, assignments)
    except IntegrityError as exc:
        raise AssignmentError("Secret Santa assignments already exist for this draw.") from exc
    repo.update_draw_status(
        session,
        draw,
        DrawStatus.ASSIGNED,
        assigned_at=datetime.datetime.now(datetime.timezone.utc),
    )
    repo.update_draw_assignment_seed(session, draw, seed)
    logger.bind(draw=draw.code, seed=seed, participants=len(participants)).info("Assignments generated")

    return AssignmentResult(
        assignments=assignments,
        participants=repo.list_members(session, draw.id),
        draw=draw,
        seed=seed,
    )


def mark_ready(
    session,
    code: str,
    member_token: Optional[str],
    seed: Optional[int] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    exhaustive_fallback: bool = False,
) -> ReadyResult:
    """Flag the member as ready and run the draw once everyone is.

    A draw needs at least two members, so a lone ready member just waits.
    ``AssignmentError`` from the generator propagates after the flag is set;
    the caller decides whether to keep it.
    """
    draw = require_draw(session, code)
    member = require_member(session, draw, member_token)
    member.ready = True

    if draw.status == DrawStatus.ASSIGNED:
        return ReadyResult(draw=draw, member=member, assignment=None)

    members = repo.list_members(session, draw.id)
    if len(members) < 2 or not all(other.ready for other in members):
        return ReadyResult(draw=draw, member=member, assignment=None)

    result = assign_draw(
        session,
        draw,
        seed=seed,
        max_attempts=max_attempts,
        exhaustive_fallback=exhaustive_fallback,
    )
    return ReadyResult(draw=draw, member=member, assignment=result)


def get_recipient(session, code: str, member_token: Optional[str]) -> Member:
    draw = require_draw(session, code)
    if draw.status != DrawStatus.ASSIGNED:
        raise NoResultYet("No result yet")

    member = require_member(session, draw, member_token)
    assignment = repo.get_assignment_for_giver(session, draw.id, member.id)
    if not assignment:
        raise MemberNotFound("Result not found")
    return assignment.receiver
