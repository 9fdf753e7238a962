from nerveword import db
from datetime import datetime, timezone
import json


def _utcnow():
    return datetime.now(timezone.utc)


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(12), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    gm_id = db.Column(db.String(64), nullable=False)
    encounter_sentence = db.Column(db.Text, nullable=True)
    encounter_noun = db.Column(db.String(50), nullable=True)
    encounter_verb = db.Column(db.String(50), nullable=True)
    encounter_adjective = db.Column(db.String(50), nullable=True)
    encounter_threat = db.Column(db.Integer, nullable=True)
    encounter_difficulty = db.Column(db.Integer, nullable=True)
    encounter_length = db.Column(db.Integer, nullable=True)
    is_prep_turn = db.Column(db.Boolean, default=False, nullable=False)
    current_prep_word_index = db.Column(db.Integer, default=0, nullable=False)  # 0=noun, 1=verb, 2=adjective
    current_prep_word_turn_count = db.Column(db.Integer, default=0, nullable=False)
    vowels = db.Column(db.Text, nullable=False)  # JSON-encoded list of 6 strings
    current_turn = db.Column(db.Integer, default=1, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    prep_word_meanings = db.Column(db.Text, nullable=True)  # JSON-encoded {word: meaning}
    prep_word_ratings = db.Column(db.Text, nullable=True)  # JSON-encoded {word: {potency, stat}}
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    players = db.relationship('SessionPlayer', back_populates='session', lazy='dynamic')
    words = db.relationship('Word', back_populates='session', lazy='dynamic')

    def vowel_list(self):
        return json.loads(self.vowels) if self.vowels else []

    def meanings(self):
        return json.loads(self.prep_word_meanings) if self.prep_word_meanings else {}

    def ratings(self):
        return json.loads(self.prep_word_ratings) if self.prep_word_ratings else {}


class SessionPlayer(db.Model):
    __tablename__ = 'session_player'
    __table_args__ = (db.UniqueConstraint('session_id', 'user_id', name='uq_session_player_user'),)
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    player_name = db.Column(db.String(100), nullable=True)
    nerve = db.Column(db.Integer, default=8, nullable=False)
    max_nerve = db.Column(db.Integer, default=8, nullable=False)
    turn_order = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_active_turn = db.Column(db.Boolean, default=False, nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    session = db.relationship('GameSession', back_populates='players')


class Word(db.Model):
    __tablename__ = 'word'
    __table_args__ = (db.UniqueConstraint('session_id', 'word', name='uq_word_session_text'),)
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    word = db.Column(db.String(50), nullable=False)
    meaning = db.Column(db.Text, nullable=False, default='')
    category = db.Column(db.String(20), default='noun', nullable=False)
    potency = db.Column(db.Integer, nullable=True)  # null until the GM rates it
    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    session = db.relationship('GameSession', back_populates='words')
    owners = db.relationship('WordOwner', back_populates='word', cascade='all, delete-orphan', order_by='WordOwner.id')


class WordOwner(db.Model):
    __tablename__ = 'word_owner'
    __table_args__ = (db.UniqueConstraint('word_id', 'owner_id', name='uq_word_owner'),)
    id = db.Column(db.Integer, primary_key=True)
    word_id = db.Column(db.Integer, db.ForeignKey('word.id'), nullable=False, index=True)
    owner_id = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    word = db.relationship('Word', back_populates='owners')


class CombatLogEntry(db.Model):
    __tablename__ = 'combat_log'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    player_id = db.Column(db.String(64), nullable=False)
    sentence = db.Column(db.Text, nullable=False)
    used_words = db.Column(db.Text, nullable=False)  # JSON-encoded [{word_id, potency}]
    dice_roll = db.Column(db.Integer, nullable=False)
    total_potency = db.Column(db.Integer, nullable=False)
    final_result = db.Column(db.Integer, nullable=False)
    turn_number = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
