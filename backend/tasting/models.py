from tasting import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import string
import random
import uuid

SESSION_STATUSES = ('waiting', 'collecting', 'reviewing', 'revealed', 'finished')
BOTTLING_TYPES = ('IB', 'OB')
INVITATION_STATUSES = ('pending', 'accepted', 'declined')


def _uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user_profiles'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=True)
    password_hash = db.Column(db.String(128), nullable=False)
    email_confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_disabled = db.Column(db.Boolean, default=False, nullable=False)
    disabled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    disabled_by = db.Column(db.String(36), db.ForeignKey('user_profiles.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'email_confirmed': self.email_confirmed_at is not None,
        }


def generate_session_code(length=6):
    """Generate a unique, short session code."""
    alphabet = string.ascii_uppercase + string.digits
    while True:
        code = ''.join(random.choices(alphabet, k=length))
        if not TastingSession.query.filter_by(code=code).first():
            return code


class TastingSession(db.Model):
    __tablename__ = 'sessions'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    host_name = db.Column(db.String(128), nullable=False)
    host_user_id = db.Column(db.String(36), db.ForeignKey('user_profiles.id'), nullable=True, index=True)
    status = db.Column(db.String(16), default='waiting', nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    participants = db.relationship('Participant', back_populates='session', order_by='Participant.created_at')
    whiskies = db.relationship('Whisky', back_populates='session', order_by='Whisky.order_index')
    submissions = db.relationship('Submission', back_populates='session')

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('waiting', 'collecting', 'reviewing', 'revealed', 'finished')",
            name='ck_sessions_status',
        ),
    )


class Participant(db.Model):
    __tablename__ = 'participants'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    session_id = db.Column(db.String(36), db.ForeignKey('sessions.id'), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('user_profiles.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    session = db.relationship('TastingSession', back_populates='participants')


class Whisky(db.Model):
    __tablename__ = 'whiskies'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    session_id = db.Column(db.String(36), db.ForeignKey('sessions.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    age = db.Column(db.Integer, nullable=True)
    abv = db.Column(db.Float, nullable=False)
    region = db.Column(db.String(128), nullable=False)
    distillery = db.Column(db.String(128), nullable=False)
    category = db.Column(db.String(128), default='', nullable=False)
    bottling_type = db.Column(db.String(2), default='OB', nullable=False)
    cask_type = db.Column(db.String(128), nullable=True)
    host_score = db.Column(db.Float, nullable=True)
    whiskybase_link = db.Column(db.String(512), nullable=True)
    tasting_reference = db.Column(db.Text, nullable=True)
    order_index = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    session = db.relationship('TastingSession', back_populates='whiskies')

    __table_args__ = (
        db.UniqueConstraint('session_id', 'order_index', name='uq_whiskies_session_order'),
    )


class Submission(db.Model):
    __tablename__ = 'submissions'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    session_id = db.Column(db.String(36), db.ForeignKey('sessions.id'), nullable=False, index=True)
    participant_id = db.Column(db.String(36), db.ForeignKey('participants.id'), nullable=False)
    whisky_id = db.Column(db.String(36), db.ForeignKey('whiskies.id'), nullable=False)
    guessed_name = db.Column(db.String(255), nullable=False)
    guessed_score = db.Column(db.Float, nullable=False)
    guessed_age = db.Column(db.Integer, nullable=True)
    guessed_abv = db.Column(db.Float, nullable=False)
    guessed_region = db.Column(db.String(128), nullable=False)
    guessed_distillery = db.Column(db.String(128), nullable=False)
    guessed_category = db.Column(db.String(128), default='', nullable=False)
    guessed_bottling_type = db.Column(db.String(2), default='OB', nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    session = db.relationship('TastingSession', back_populates='submissions')

    __table_args__ = (
        db.UniqueConstraint('participant_id', 'whisky_id', name='uq_submissions_participant_whisky'),
    )


class Region(db.Model):
    __tablename__ = 'regions'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(128), unique=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    distilleries = db.relationship('Distillery', backref='region', lazy='dynamic')


class Distillery(db.Model):
    __tablename__ = 'distilleries'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(128), nullable=False)
    region_id = db.Column(db.String(36), db.ForeignKey('regions.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)


class SessionInvitation(db.Model):
    __tablename__ = 'session_invitations'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    session_id = db.Column(db.String(36), db.ForeignKey('sessions.id'), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    invited_by = db.Column(db.String(36), db.ForeignKey('user_profiles.id'), nullable=True)
    status = db.Column(db.String(16), default='pending', nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    session = db.relationship('TastingSession')

    __table_args__ = (
        db.UniqueConstraint('session_id', 'email', name='uq_session_invitations_session_email'),
    )


class KeepAlive(db.Model):
    __tablename__ = 'keep_alive'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=True)
    random = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
