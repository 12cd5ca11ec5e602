from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models
from .auth import ROLES, ROLE_ADMIN, ROLE_PARTICIPANT
from .querying import race_event_statements
from .schemas import (
    RegisterRequest,
    ParticipantCreate,
    ParticipantUpdate,
    CheckpointCreate,
    CheckpointUpdate,
    CompetitionCreate,
    NestedRaceIn,
    RaceCreate,
    RaceUpdate,
    RaceEventCreate,
    RaceEventUpdate,
    TimingCreate,
)
from .security import hash_password, verify_password
from .settings import settings
from .utils import race_event_slug, to_utc_naive

logger = logging.getLogger(__name__)


class ConflictError(ValueError):
    pass


class AuthenticationError(ValueError):
    pass


# Attempts at inserting a race event before giving up on a free slug.
SLUG_ATTEMPTS = 5


def _commit_unique(session: Session, error: ValueError) -> None:
    """Commit, turning a unique-constraint violation into ``error``.

    The SELECT checks before an insert can race with another request, so the
    database constraint is the final word.
    """
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise error


# ---------------------------
# Users / auth
# ---------------------------

def ensure_admin_user(session: Session) -> None:
    """Create or sync the bootstrap admin account when configured."""
    if not settings.RT_ADMIN_EMAIL or not settings.RT_ADMIN_PASSWORD:
        return
    email = settings.RT_ADMIN_EMAIL.strip().lower()
    existing = session.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()
    if existing:
        existing.role = ROLE_ADMIN
        if not verify_password(settings.RT_ADMIN_PASSWORD, existing.password_hash):
            existing.password_hash = hash_password(settings.RT_ADMIN_PASSWORD)
        session.commit()
        return
    session.add(models.User(email=email, password_hash=hash_password(settings.RT_ADMIN_PASSWORD), role=ROLE_ADMIN))
    session.commit()
    logger.info("Created admin user %s", email)

def get_user_by_email(session: Session, email: str) -> Optional[models.User]:
    return session.execute(
        select(models.User).where(models.User.email == email.strip().lower())
    ).scalar_one_or_none()

def register_user(session: Session, payload: RegisterRequest) -> models.User:
    if get_user_by_email(session, payload.email):
        raise ValueError("User already exists")
    # unknown or missing roles fall back to PARTICIPANT
    role = payload.role if payload.role in ROLES else ROLE_PARTICIPANT
    u = models.User(
        email=payload.email.strip().lower(),
        password_hash=hash_password(payload.password),
        role=role,
    )
    session.add(u)
    _commit_unique(session, ValueError("User already exists"))
    logger.info("Registered user %s with role %s", u.email, u.role)
    return u

def authenticate_user(session: Session, email: str, password: str) -> models.User:
    u = get_user_by_email(session, email)
    if not u:
        raise AuthenticationError("Incorrect email.")
    if not verify_password(password, u.password_hash):
        raise AuthenticationError("Invalid credentials.")
    return u


# ---------------------------
# Participants
# ---------------------------

def _rfid_taken(session: Session, rfid_tag: str, exclude_id: str | None = None) -> bool:
    q = select(models.Participant.id).where(models.Participant.rfid_tag == rfid_tag)
    if exclude_id:
        q = q.where(models.Participant.id != exclude_id)
    return session.execute(q).first() is not None

def list_participants(session: Session):
    return session.execute(select(models.Participant).order_by(models.Participant.name.asc())).scalars().all()

def get_participant(session: Session, participant_id: str) -> Optional[models.Participant]:
    return session.get(models.Participant, participant_id)

def create_participant(session: Session, payload: ParticipantCreate) -> models.Participant:
    if _rfid_taken(session, payload.rfid_tag):
        raise ConflictError("A participant with this rfidTag already exists")
    p = models.Participant(name=payload.name, rfid_tag=payload.rfid_tag)
    session.add(p)
    _commit_unique(session, ConflictError("A participant with this rfidTag already exists"))
    logger.info("Created participant %s (%s)", p.id, p.rfid_tag)
    return p

def update_participant(session: Session, participant: models.Participant, payload: ParticipantUpdate) -> models.Participant:
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "rfid_tag" in data and _rfid_taken(session, data["rfid_tag"], exclude_id=participant.id):
        raise ConflictError("A participant with this rfidTag already exists")
    for key, value in data.items():
        setattr(participant, key, value)
    _commit_unique(session, ConflictError("A participant with this rfidTag already exists"))
    return participant

def delete_participant(session: Session, participant: models.Participant) -> None:
    session.delete(participant)
    session.commit()
    logger.info("Deleted participant %s", participant.id)


# ---------------------------
# Checkpoints
# ---------------------------

def list_checkpoints(session: Session):
    return session.execute(select(models.Checkpoint).order_by(models.Checkpoint.name.asc())).scalars().all()

def get_checkpoint(session: Session, checkpoint_id: str) -> Optional[models.Checkpoint]:
    return session.get(models.Checkpoint, checkpoint_id)

def create_checkpoint(session: Session, payload: CheckpointCreate) -> models.Checkpoint:
    c = models.Checkpoint(name=payload.name, location=payload.location)
    session.add(c)
    session.commit()
    logger.info("Created checkpoint %s", c.id)
    return c

def update_checkpoint(session: Session, checkpoint: models.Checkpoint, payload: CheckpointUpdate) -> models.Checkpoint:
    for key, value in payload.model_dump(exclude_unset=True).items():
        if key == "name" and value is None:
            continue
        setattr(checkpoint, key, value)
    session.commit()
    return checkpoint

def delete_checkpoint(session: Session, checkpoint: models.Checkpoint) -> None:
    session.delete(checkpoint)
    session.commit()
    logger.info("Deleted checkpoint %s", checkpoint.id)


# ---------------------------
# Competitions
# ---------------------------

def list_competitions(session: Session):
    return session.execute(select(models.Competition).order_by(models.Competition.name.asc())).scalars().all()

def get_competition(session: Session, competition_id: str) -> Optional[models.Competition]:
    return session.get(models.Competition, competition_id)

def _competition_name_taken(session: Session, name: str) -> bool:
    return session.execute(select(models.Competition.id).where(models.Competition.name == name)).first() is not None

def create_competition(session: Session, payload: CompetitionCreate) -> models.Competition:
    if _competition_name_taken(session, payload.name):
        raise ConflictError("Competition already exists")
    c = models.Competition(name=payload.name, description=payload.description)
    session.add(c)
    _commit_unique(session, ConflictError("Competition already exists"))
    logger.info("Created competition %s", c.name)
    return c


# ---------------------------
# Race events
# ---------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def validate_races(races: list[NestedRaceIn] | None) -> None:
    for i, race in enumerate(races or [], start=1):
        if race.start_date_time is None:
            raise ValueError(f"Missing startDateTime in race #{i}")
        if not _is_number(race.length):
            raise ValueError(f"Invalid length in race #{i}")
        if race.end_date_time is not None and to_utc_naive(race.end_date_time) <= to_utc_naive(race.start_date_time):
            raise ValueError(f"endDateTime must be after startDateTime in race #{i}")

def _check_date_order(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and to_utc_naive(end) <= to_utc_naive(start):
        raise ValueError("endDateTime must be after startDateTime")

def validate_race_event(payload: RaceEventCreate) -> None:
    for field, label in (("event_name", "eventName"), ("start_location", "startLocation"), ("start_date_time", "startDateTime")):
        if not getattr(payload, field):
            raise ValueError(f"Missing required field: {label}")
    _check_date_order(payload.start_date_time, payload.end_date_time)
    validate_races(payload.races)

def _unique_slug(session: Session, base: str, exclude_id: str | None = None) -> str:
    slug, n = base, 2
    while True:
        q = select(models.RaceEvent.id).where(models.RaceEvent.slug == slug)
        if exclude_id:
            q = q.where(models.RaceEvent.id != exclude_id)
        if session.execute(q).first() is None:
            return slug
        slug = f"{base}-{n}"
        n += 1

def _check_competitions(session: Session, races: list[NestedRaceIn]) -> None:
    for i, race in enumerate(races, start=1):
        if race.competition_id and not session.get(models.Competition, race.competition_id):
            raise ValueError(f"Unknown competitionId in race #{i}")

def _build_race(race: NestedRaceIn) -> models.Race:
    return models.Race(
        name=race.name,
        competition_id=race.competition_id,
        elevation=race.elevation,
        length=float(race.length),
        start_location=race.start_location,
        start_date_time=to_utc_naive(race.start_date_time),
        end_date_time=to_utc_naive(race.end_date_time),
        gps_file=race.gps_file or None,
    )

def _tag_links(tags: list[str]) -> list[models.RaceEventTag]:
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return [models.RaceEventTag(name=t) for t in seen]

def list_race_events(session: Session, params: Mapping[str, str]) -> dict:
    stmt, count_stmt, page = race_event_statements(params)
    items = session.execute(stmt).scalars().all()
    total = session.execute(count_stmt).scalar_one()
    return {"items": items, "total": total, "page": page.page, "limit": page.limit}

def _race_event_query():
    return select(models.RaceEvent).options(
        selectinload(models.RaceEvent.races), selectinload(models.RaceEvent.tag_links)
    )

def get_race_event(session: Session, race_event_id: str) -> Optional[models.RaceEvent]:
    return session.execute(_race_event_query().where(models.RaceEvent.id == race_event_id)).scalar_one_or_none()

def get_race_event_by_slug(session: Session, slug: str) -> Optional[models.RaceEvent]:
    return session.execute(_race_event_query().where(models.RaceEvent.slug == slug)).scalar_one_or_none()

def create_race_event(session: Session, payload: RaceEventCreate) -> models.RaceEvent:
    validate_race_event(payload)
    races = payload.races or []
    _check_competitions(session, races)
    start = to_utc_naive(payload.start_date_time)
    base_slug = race_event_slug(payload.event_name, start)

    for _ in range(SLUG_ATTEMPTS):
        ev = _new_race_event(payload, start, _unique_slug(session, base_slug))
        session.add(ev)
        try:
            session.commit()
        except IntegrityError:
            # another request took the slug between the check and the insert
            session.rollback()
            logger.warning("Slug %s was taken concurrently, retrying", ev.slug)
            continue
        logger.info("Created race event %s (%s) with %d races", ev.id, ev.slug, len(races))
        return ev
    raise ConflictError(f"Could not allocate a unique slug for {base_slug}")

def _new_race_event(payload: RaceEventCreate, start: datetime, slug: str) -> models.RaceEvent:
    return models.RaceEvent(
        event_name=payload.event_name,
        slug=slug,
        description=payload.description or None,
        main_image=payload.main_image or None,
        gallery=list(payload.gallery),
        organizer=payload.organizer,
        contact_phone=payload.contact_phone,
        contact_email=payload.contact_email,
        organizer_site=payload.organizer_site or None,
        registration_site=payload.registration_site or None,
        social_media=payload.social_media or None,
        start_location=payload.start_location,
        start_date_time=start,
        end_date_time=to_utc_naive(payload.end_date_time),
        distance=payload.distance,
        tag_links=_tag_links(payload.tags),
        races=[_build_race(r) for r in payload.races or []],
    )

_EVENT_SCALAR_FIELDS = (
    "event_name",
    "description",
    "main_image",
    "organizer",
    "contact_phone",
    "contact_email",
    "organizer_site",
    "registration_site",
    "social_media",
    "start_location",
    "distance",
)

def update_race_event(session: Session, ev: models.RaceEvent, payload: RaceEventUpdate) -> models.RaceEvent:
    data = payload.model_dump(exclude_unset=True)
    for required, label in (("event_name", "eventName"), ("start_location", "startLocation"), ("start_date_time", "startDateTime")):
        if required in data and not data[required]:
            raise ValueError(f"Missing required field: {label}")

    start = to_utc_naive(payload.start_date_time) if "start_date_time" in data else ev.start_date_time
    end = to_utc_naive(payload.end_date_time) if "end_date_time" in data else ev.end_date_time
    _check_date_order(start, end)
    if payload.races is not None:
        validate_races(payload.races)
        _check_competitions(session, payload.races)

    for field in _EVENT_SCALAR_FIELDS:
        if field in data:
            setattr(ev, field, data[field])
    ev.start_date_time = start
    ev.end_date_time = end
    if payload.gallery is not None:
        ev.gallery = list(payload.gallery)
    if payload.tags is not None:
        # old links must be gone before re-inserting the same names
        ev.tag_links = []
        session.flush()
        ev.tag_links = _tag_links(payload.tags)
    if payload.races is not None:
        # a supplied list replaces the nested races
        ev.races = [_build_race(r) for r in payload.races]
    session.commit()
    logger.info("Updated race event %s", ev.id)
    return ev

def delete_race_event(session: Session, ev: models.RaceEvent) -> None:
    session.delete(ev)
    session.commit()
    logger.info("Deleted race event %s", ev.id)


# ---------------------------
# Races
# ---------------------------

def list_races(session: Session, race_event_id: str | None = None):
    q = select(models.Race).order_by(models.Race.start_date_time.asc(), models.Race.id.asc())
    if race_event_id:
        q = q.where(models.Race.race_event_id == race_event_id)
    return session.execute(q).scalars().all()

def get_race(session: Session, race_id: str) -> Optional[models.Race]:
    return session.get(models.Race, race_id)

def create_race(session: Session, payload: RaceCreate) -> models.Race:
    if not session.get(models.RaceEvent, payload.race_event_id):
        raise ValueError("Race event not found")
    validate_races([payload])
    _check_competitions(session, [payload])
    race = _build_race(payload)
    race.race_event_id = payload.race_event_id
    session.add(race)
    session.commit()
    logger.info("Created race %s for event %s", race.id, race.race_event_id)
    return race

def update_race(session: Session, race: models.Race, payload: RaceUpdate) -> models.Race:
    data = payload.model_dump(exclude_unset=True)
    for required in ("length", "start_date_time"):
        if required in data and data[required] is None:
            raise ValueError(f"{'startDateTime' if required == 'start_date_time' else required} cannot be empty")
    if data.get("competition_id") and not session.get(models.Competition, data["competition_id"]):
        raise ValueError("Unknown competitionId")
    for key in ("start_date_time", "end_date_time"):
        if key in data:
            data[key] = to_utc_naive(data[key])
    _check_date_order(data.get("start_date_time", race.start_date_time), data.get("end_date_time", race.end_date_time))
    for key, value in data.items():
        setattr(race, key, value)
    session.commit()
    logger.info("Updated race %s", race.id)
    return race

def delete_race(session: Session, race: models.Race) -> None:
    session.delete(race)
    session.commit()
    logger.info("Deleted race %s", race.id)


# ---------------------------
# Timings
# ---------------------------

def list_timings(
    session: Session,
    race_id: str | None = None,
    participant_id: str | None = None,
    checkpoint_id: str | None = None,
):
    q = select(models.Timing).options(
        selectinload(models.Timing.participant),
        selectinload(models.Timing.checkpoint),
        selectinload(models.Timing.race),
    )
    if race_id:
        q = q.where(models.Timing.race_id == race_id)
    if participant_id:
        q = q.where(models.Timing.participant_id == participant_id)
    if checkpoint_id:
        q = q.where(models.Timing.checkpoint_id == checkpoint_id)
    return session.execute(q.order_by(models.Timing.timestamp.asc(), models.Timing.id.asc())).scalars().all()

def get_timing(session: Session, timing_id: str) -> Optional[models.Timing]:
    return session.get(models.Timing, timing_id)

def create_timing(session: Session, payload: TimingCreate) -> models.Timing:
    if not session.get(models.Participant, payload.participant_id):
        raise ValueError("Participant not found")
    if not session.get(models.Checkpoint, payload.checkpoint_id):
        raise ValueError("Checkpoint not found")
    if not session.get(models.Race, payload.race_id):
        raise ValueError("Race not found")
    t = models.Timing(
        participant_id=payload.participant_id,
        checkpoint_id=payload.checkpoint_id,
        race_id=payload.race_id,
        timestamp=to_utc_naive(payload.timestamp),
    )
    session.add(t)
    session.commit()
    logger.info("Recorded timing %s: participant %s at checkpoint %s", t.id, t.participant_id, t.checkpoint_id)
    return t

def delete_timing(session: Session, timing: models.Timing) -> None:
    session.delete(timing)
    session.commit()
