from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Float, DateTime, ForeignKey, JSON, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="PARTICIPANT")  # PARTICIPANT | ORGANIZER | ADMIN
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Participant(Base):
    __tablename__ = "participants"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    rfid_tag: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    timings: Mapped[list["Timing"]] = relationship(back_populates="participant", cascade="all, delete-orphan")


class Checkpoint(Base):
    __tablename__ = "checkpoints"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    timings: Mapped[list["Timing"]] = relationship(back_populates="checkpoint", cascade="all, delete-orphan")


class Competition(Base):
    __tablename__ = "competitions"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    races: Mapped[list["Race"]] = relationship(back_populates="competition")


class RaceEvent(Base):
    __tablename__ = "race_events"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    main_image: Mapped[str | None] = mapped_column(String, nullable=True)
    gallery: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    organizer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organizer_site: Mapped[str | None] = mapped_column(String, nullable=True)
    registration_site: Mapped[str | None] = mapped_column(String, nullable=True)
    social_media: Mapped[str | None] = mapped_column(String, nullable=True)

    start_location: Mapped[str] = mapped_column(String(255), nullable=False)
    # stored as naive UTC
    start_date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_date_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    distance: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    races: Mapped[list["Race"]] = relationship(
        back_populates="race_event", cascade="all, delete-orphan", order_by="Race.start_date_time"
    )
    tag_links: Mapped[list["RaceEventTag"]] = relationship(
        back_populates="race_event", cascade="all, delete-orphan", order_by="RaceEventTag.id"
    )

    @property
    def tags(self) -> list[str]:
        return [t.name for t in self.tag_links]


class RaceEventTag(Base):
    __tablename__ = "race_event_tags"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    race_event_id: Mapped[str] = mapped_column(ForeignKey("race_events.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    race_event: Mapped["RaceEvent"] = relationship(back_populates="tag_links")

    __table_args__ = (
        UniqueConstraint("race_event_id", "name", name="uq_race_event_tag"),
        Index("ix_race_event_tags_name", "name"),
    )


class Race(Base):
    __tablename__ = "races"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    race_event_id: Mapped[str] = mapped_column(ForeignKey("race_events.id", ondelete="CASCADE"), nullable=False)
    competition_id: Mapped[str | None] = mapped_column(ForeignKey("competitions.id", ondelete="SET NULL"), nullable=True)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    elevation: Mapped[float | None] = mapped_column(Float, nullable=True)
    length: Mapped[float] = mapped_column(Float, nullable=False)
    start_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    gps_file: Mapped[str | None] = mapped_column(String, nullable=True)

    race_event: Mapped["RaceEvent"] = relationship(back_populates="races")
    competition: Mapped[Optional["Competition"]] = relationship(back_populates="races")
    timings: Mapped[list["Timing"]] = relationship(back_populates="race", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_races_race_event", "race_event_id"),
    )


class Timing(Base):
    __tablename__ = "timings"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    participant_id: Mapped[str] = mapped_column(ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    checkpoint_id: Mapped[str] = mapped_column(ForeignKey("checkpoints.id", ondelete="CASCADE"), nullable=False)
    race_id: Mapped[str] = mapped_column(ForeignKey("races.id", ondelete="CASCADE"), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    participant: Mapped["Participant"] = relationship(back_populates="timings")
    checkpoint: Mapped["Checkpoint"] = relationship(back_populates="timings")
    race: Mapped["Race"] = relationship(back_populates="timings")

    __table_args__ = (
        Index("ix_timings_race", "race_id", "timestamp"),
    )
