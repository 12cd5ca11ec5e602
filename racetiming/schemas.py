from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------
# Auth
# ---------------------------

class RegisterRequest(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    role: Optional[str] = None

class LoginRequest(CamelModel):
    email: str
    password: str

class UserOut(CamelModel):
    id: str
    email: str
    role: str


# ---------------------------
# Participants / checkpoints / competitions
# ---------------------------

class ParticipantCreate(CamelModel):
    name: str = Field(min_length=1)
    rfid_tag: str = Field(min_length=1)

class ParticipantUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    rfid_tag: Optional[str] = Field(default=None, min_length=1)

class ParticipantOut(CamelModel):
    id: str
    name: str
    rfid_tag: str
    created_at: datetime

class CheckpointCreate(CamelModel):
    name: str = Field(min_length=1)
    location: Optional[str] = None

class CheckpointUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = None

class CheckpointOut(CamelModel):
    id: str
    name: str
    location: Optional[str] = None

class CompetitionCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None

class CompetitionOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None


# ---------------------------
# Races / race events
# ---------------------------

class NestedRaceIn(CamelModel):
    # startDateTime and length are checked by services.validate_races so the
    # error can name the offending race.
    name: Optional[str] = None
    competition_id: Optional[str] = None
    elevation: Optional[float] = None
    length: Any = None
    start_location: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    gps_file: Optional[str] = None

class RaceCreate(NestedRaceIn):
    race_event_id: str

class RaceUpdate(CamelModel):
    name: Optional[str] = None
    competition_id: Optional[str] = None
    elevation: Optional[float] = None
    length: Optional[float] = None
    start_location: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    gps_file: Optional[str] = None

class RaceOut(CamelModel):
    id: str
    race_event_id: str
    competition_id: Optional[str] = None
    name: Optional[str] = None
    elevation: Optional[float] = None
    length: float
    start_location: Optional[str] = None
    start_date_time: datetime
    end_date_time: Optional[datetime] = None
    gps_file: Optional[str] = None

class RaceEventCreate(CamelModel):
    # Required fields are checked by services.validate_race_event.
    event_name: Optional[str] = None
    description: Optional[str] = None
    main_image: Optional[str] = None
    gallery: list[str] = Field(default_factory=list)
    organizer: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    organizer_site: Optional[str] = None
    registration_site: Optional[str] = None
    social_media: Optional[str] = None
    start_location: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    distance: Optional[float] = None
    tags: list[str] = Field(default_factory=list)
    races: Optional[list[NestedRaceIn]] = None

class RaceEventUpdate(RaceEventCreate):
    gallery: Optional[list[str]] = None
    tags: Optional[list[str]] = None

class RaceEventOut(CamelModel):
    id: str
    event_name: str
    slug: str
    description: Optional[str] = None
    main_image: Optional[str] = None
    gallery: list[str] = Field(default_factory=list)
    organizer: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    organizer_site: Optional[str] = None
    registration_site: Optional[str] = None
    social_media: Optional[str] = None
    start_location: str
    start_date_time: datetime
    end_date_time: Optional[datetime] = None
    distance: Optional[float] = None
    tags: list[str] = Field(default_factory=list)
    races: list[RaceOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

class RaceEventPage(CamelModel):
    items: list[RaceEventOut]
    total: int
    page: int
    limit: int


# ---------------------------
# Timings
# ---------------------------

class TimingCreate(CamelModel):
    participant_id: str
    checkpoint_id: str
    race_id: str
    timestamp: datetime

class RaceSummary(CamelModel):
    id: str
    race_event_id: str
    name: Optional[str] = None

class TimingOut(CamelModel):
    id: str
    participant_id: str
    checkpoint_id: str
    race_id: str
    timestamp: datetime
    participant: Optional[ParticipantOut] = None
    checkpoint: Optional[CheckpointOut] = None
    race: Optional[RaceSummary] = None
