"""Request bodies and typed domain entities.

Request schemas validate JSON at the HTTP boundary. Entity schemas are built
from ORM rows (``from_attributes``) in :mod:`tasting.store` so that the state
machine and the view projections never handle loosely-typed rows.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic import ValidationError as PydanticValidationError

from tasting.errors import ValidationError

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Status = Literal['waiting', 'collecting', 'reviewing', 'revealed', 'finished']
BottlingType = Literal['IB', 'OB']


def parse(schema, data: Optional[Dict[str, Any]]):
    """Validate ``data`` against ``schema`` or raise a ValidationError naming the bad fields."""
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as exc:
        fields = sorted({'.'.join(str(p) for p in err['loc']) or 'body' for err in exc.errors()})
        raise ValidationError(f"Please fill in all required fields ({', '.join(fields)})") from exc


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---- Auth ----

class SignUpIn(BaseModel):
    email: RequiredText
    password: str = Field(min_length=1)
    name: RequiredText

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        if '@' not in v:
            raise ValueError('invalid email address')
        return v.lower()


class SignInIn(BaseModel):
    email: RequiredText
    password: str = Field(min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class PasswordResetIn(BaseModel):
    email: RequiredText

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class PasswordResetCompleteIn(BaseModel):
    access_token: RequiredText
    type: RequiredText
    password: str = Field(min_length=1)


class ConfirmEmailIn(BaseModel):
    token: RequiredText


# ---- Sessions ----

class SessionCreateIn(BaseModel):
    host_name: RequiredText


class JoinIn(BaseModel):
    code: RequiredText
    name: RequiredText

    @field_validator('code')
    @classmethod
    def upper_code(cls, v):
        return v.upper()


class StatusIn(BaseModel):
    status: RequiredText


class MoveIn(BaseModel):
    direction: Literal['up', 'down']


class WhiskyIn(BaseModel):
    name: RequiredText
    age: Optional[int] = Field(default=None, ge=0)
    abv: float = Field(gt=0, le=100)
    region: RequiredText
    distillery: RequiredText
    category: str = ''
    bottling_type: BottlingType = 'OB'
    cask_type: Optional[str] = None
    host_score: Optional[float] = Field(default=None, ge=0, le=5)
    whiskybase_link: Optional[str] = None
    tasting_reference: Optional[str] = None

    @field_validator('age', 'host_score', 'cask_type', 'whiskybase_link', 'tasting_reference', mode='before')
    @classmethod
    def blank_optional(cls, v):
        return _blank_to_none(v)

    @field_validator('category', mode='before')
    @classmethod
    def category_default(cls, v):
        return (v or '').strip()

    @field_validator('bottling_type', mode='before')
    @classmethod
    def bottling_default(cls, v):
        return v or 'OB'


class GuessIn(BaseModel):
    participant_id: RequiredText
    whisky_id: RequiredText
    guessed_name: RequiredText
    guessed_score: float = Field(ge=0, le=5)
    guessed_age: Optional[int] = Field(default=None, ge=0)
    guessed_abv: float = Field(gt=0, le=100)
    guessed_region: RequiredText
    guessed_distillery: RequiredText
    guessed_category: str = ''
    guessed_bottling_type: BottlingType = 'OB'

    @field_validator('guessed_age', mode='before')
    @classmethod
    def blank_age(cls, v):
        return _blank_to_none(v)

    @field_validator('guessed_category', mode='before')
    @classmethod
    def category_default(cls, v):
        return (v or '').strip()

    @field_validator('guessed_bottling_type', mode='before')
    @classmethod
    def bottling_default(cls, v):
        return v or 'OB'

    def guessed_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude={'participant_id', 'whisky_id'})


class InvitationIn(BaseModel):
    email: RequiredText

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        if '@' not in v:
            raise ValueError('invalid email address')
        return v.lower()


class AcceptInvitationIn(BaseModel):
    name: Optional[str] = None


# ---- Entities ----

class Entity(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SessionEntity(Entity):
    id: str
    code: str
    host_name: str
    host_user_id: Optional[str] = None
    status: Status
    created_at: datetime
    updated_at: datetime


class ParticipantEntity(Entity):
    id: str
    session_id: str
    name: str
    user_id: Optional[str] = None
    created_at: datetime


class WhiskyEntity(Entity):
    id: str
    session_id: str
    name: str
    age: Optional[int] = None
    abv: float
    region: str
    distillery: str
    category: str
    bottling_type: BottlingType
    cask_type: Optional[str] = None
    host_score: Optional[float] = None
    whiskybase_link: Optional[str] = None
    tasting_reference: Optional[str] = None
    order_index: int
    created_at: datetime


class SubmissionEntity(Entity):
    id: str
    session_id: str
    participant_id: str
    whisky_id: str
    guessed_name: str
    guessed_score: float
    guessed_age: Optional[int] = None
    guessed_abv: float
    guessed_region: str
    guessed_distillery: str
    guessed_category: str
    guessed_bottling_type: BottlingType
    created_at: datetime
    updated_at: datetime


class RegionEntity(Entity):
    id: str
    name: str


class DistilleryEntity(Entity):
    id: str
    name: str
    region_id: str


class InvitationEntity(Entity):
    id: str
    session_id: str
    email: str
    invited_by: Optional[str] = None
    status: Literal['pending', 'accepted', 'declined']
    created_at: datetime
    accepted_at: Optional[datetime] = None


class SessionAggregate(SessionEntity):
    participants: List[ParticipantEntity] = []
    whiskies: List[WhiskyEntity] = []
    submissions: List[SubmissionEntity] = []

    def participant(self, participant_id: str) -> Optional[ParticipantEntity]:
        return next((p for p in self.participants if p.id == participant_id), None)

    def whisky(self, whisky_id: str) -> Optional[WhiskyEntity]:
        return next((w for w in self.whiskies if w.id == whisky_id), None)

    def submissions_for_whisky(self, whisky_id: str) -> List[SubmissionEntity]:
        return [s for s in self.submissions if s.whisky_id == whisky_id]

    def submissions_by(self, participant_id: str) -> List[SubmissionEntity]:
        return [s for s in self.submissions if s.participant_id == participant_id]
