import json
from typing import Iterable

from sqlalchemy.exc import IntegrityError

from nerveword import db
from nerveword.errors import Conflict, PlayerNotFound, SessionNotFound, WordNotFound
from nerveword.models import CombatLogEntry, GameSession, SessionPlayer, Word, WordOwner
from nerveword.records import CombatLogRecord, PlayerRecord, SessionRecord, WordRecord
from .base import PLAYER_FIELDS, SESSION_FIELDS, WORD_FIELDS, SessionStore, check_fields


def _session_record(row: GameSession) -> SessionRecord:
    return SessionRecord(
        id=row.id,
        code=row.code,
        name=row.name,
        gm_id=row.gm_id,
        encounter_sentence=row.encounter_sentence,
        encounter_noun=row.encounter_noun,
        encounter_verb=row.encounter_verb,
        encounter_adjective=row.encounter_adjective,
        encounter_threat=row.encounter_threat,
        encounter_difficulty=row.encounter_difficulty,
        encounter_length=row.encounter_length,
        is_prep_turn=bool(row.is_prep_turn),
        current_prep_word_index=row.current_prep_word_index or 0,
        current_prep_word_turn_count=row.current_prep_word_turn_count or 0,
        vowels=row.vowel_list(),
        current_turn=row.current_turn or 1,
        is_active=bool(row.is_active),
        prep_word_meanings=row.meanings(),
        prep_word_ratings=row.ratings(),
        created_at=row.created_at,
    )


def _player_record(row: SessionPlayer) -> PlayerRecord:
    return PlayerRecord(
        id=row.id,
        session_id=row.session_id,
        user_id=row.user_id,
        player_name=row.player_name,
        nerve=row.nerve,
        max_nerve=row.max_nerve,
        turn_order=row.turn_order,
        is_active=bool(row.is_active),
        is_active_turn=bool(row.is_active_turn),
        joined_at=row.joined_at,
    )


def _word_record(row: Word) -> WordRecord:
    return WordRecord(
        id=row.id,
        session_id=row.session_id,
        word=row.word,
        meaning=row.meaning or '',
        category=row.category,
        potency=row.potency,
        is_approved=bool(row.is_approved),
        owner_ids=[o.owner_id for o in row.owners],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _log_record(row: CombatLogEntry) -> CombatLogRecord:
    return CombatLogRecord(
        id=row.id,
        session_id=row.session_id,
        player_id=row.player_id,
        sentence=row.sentence,
        used_words=json.loads(row.used_words) if row.used_words else [],
        dice_roll=row.dice_roll,
        total_potency=row.total_potency,
        final_result=row.final_result,
        turn_number=row.turn_number,
        created_at=row.created_at,
    )


def _commit(conflict_message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(conflict_message)


class SqlSessionStore(SessionStore):
    """Durable store on top of Flask-SQLAlchemy. Needs an app context."""

    def _session_row(self, session_id) -> GameSession:
        row = db.session.get(GameSession, session_id)
        if row is None:
            raise SessionNotFound()
        return row

    def _player_row(self, session_id, user_id) -> SessionPlayer:
        row = SessionPlayer.query.filter_by(session_id=session_id, user_id=user_id).first()
        if row is None:
            raise PlayerNotFound()
        return row

    def _word_row(self, word_id) -> Word:
        row = db.session.get(Word, word_id)
        if row is None:
            raise WordNotFound()
        return row

    # Sessions

    def create_session(self, code, name, gm_id, vowels):
        row = GameSession(code=code, name=name, gm_id=gm_id, vowels=json.dumps(list(vowels)),
                          prep_word_meanings=json.dumps({}), prep_word_ratings=json.dumps({}))
        db.session.add(row)
        _commit(f'Session code {code} already in use')
        return _session_record(row)

    def get_session(self, session_id):
        row = db.session.get(GameSession, session_id)
        return _session_record(row) if row else None

    def get_session_by_code(self, code):
        row = GameSession.query.filter_by(code=code, is_active=True).first()
        return _session_record(row) if row else None

    def code_exists(self, code):
        return GameSession.query.filter_by(code=code).first() is not None

    def update_session(self, session_id, **changes):
        check_fields(changes, SESSION_FIELDS, 'session')
        row = self._session_row(session_id)
        for key, value in changes.items():
            if key in ('vowels', 'prep_word_meanings', 'prep_word_ratings'):
                value = json.dumps(value)
            setattr(row, key, value)
        db.session.add(row)
        db.session.commit()
        return _session_record(row)

    # Players

    def add_player(self, session_id, user_id, player_name=None, nerve=8, max_nerve=8, turn_order=None):
        self._session_row(session_id)
        row = SessionPlayer(session_id=session_id, user_id=user_id, player_name=player_name,
                            nerve=nerve, max_nerve=max_nerve, turn_order=turn_order,
                            is_active=True, is_active_turn=False)
        db.session.add(row)
        _commit('Player already in session')
        return _player_record(row)

    def get_player(self, session_id, user_id):
        row = SessionPlayer.query.filter_by(session_id=session_id, user_id=user_id).first()
        return _player_record(row) if row else None

    def list_players(self, session_id, include_inactive=False):
        query = SessionPlayer.query.filter_by(session_id=session_id)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        rows = query.order_by(
            SessionPlayer.turn_order.is_(None), SessionPlayer.turn_order, SessionPlayer.id
        ).all()
        return [_player_record(r) for r in rows]

    def update_player(self, session_id, user_id, **changes):
        check_fields(changes, PLAYER_FIELDS, 'player')
        row = self._player_row(session_id, user_id)
        for key, value in changes.items():
            setattr(row, key, value)
        db.session.add(row)
        db.session.commit()
        return _player_record(row)

    def set_turn_orders(self, session_id, orders):
        rows = [self._player_row(session_id, user_id) for user_id in orders]
        for row in rows:
            row.turn_order = orders[row.user_id]
            db.session.add(row)
        db.session.commit()

    def set_active_turn(self, session_id, user_id):
        target = self._player_row(session_id, user_id)
        SessionPlayer.query.filter_by(session_id=session_id).update(
            {SessionPlayer.is_active_turn: False}, synchronize_session='fetch'
        )
        target.is_active_turn = True
        db.session.add(target)
        db.session.commit()

    def clear_active_turn(self, session_id):
        SessionPlayer.query.filter_by(session_id=session_id).update(
            {SessionPlayer.is_active_turn: False}, synchronize_session='fetch'
        )
        db.session.commit()

    # Words

    def create_word(self, session_id, word, meaning='', category='noun', potency=None,
                    is_approved=False, owner_ids: Iterable[str] = ()):
        self._session_row(session_id)
        row = Word(session_id=session_id, word=word, meaning=meaning or '', category=category,
                   potency=potency, is_approved=is_approved)
        seen = set()
        for owner_id in owner_ids:
            if owner_id not in seen:
                seen.add(owner_id)
                row.owners.append(WordOwner(owner_id=owner_id))
        db.session.add(row)
        _commit(f'Word "{word}" already exists in this session')
        return _word_record(row)

    def get_word(self, word_id):
        row = db.session.get(Word, word_id)
        return _word_record(row) if row else None

    def get_word_by_text(self, session_id, text):
        row = Word.query.filter_by(session_id=session_id, word=text).first()
        return _word_record(row) if row else None

    def list_words(self, session_id):
        rows = Word.query.filter_by(session_id=session_id).order_by(Word.id).all()
        return [_word_record(r) for r in rows]

    def update_word(self, word_id, **changes):
        check_fields(changes, WORD_FIELDS, 'word')
        row = self._word_row(word_id)
        for key, value in changes.items():
            setattr(row, key, value)
        db.session.add(row)
        db.session.commit()
        return _word_record(row)

    def add_word_owner(self, word_id, owner_id):
        row = self._word_row(word_id)
        if any(o.owner_id == owner_id for o in row.owners):
            return False
        row.owners.append(WordOwner(owner_id=owner_id))
        db.session.add(row)
        _commit('Owner already recorded for this word')
        return True

    def set_word_owners(self, word_id, owner_ids):
        row = self._word_row(word_id)
        row.owners.clear()
        db.session.flush()
        seen = set()
        for owner_id in owner_ids:
            if owner_id not in seen:
                seen.add(owner_id)
                row.owners.append(WordOwner(owner_id=owner_id))
        db.session.add(row)
        db.session.commit()
        return _word_record(row)

    def delete_word(self, word_id):
        row = self._word_row(word_id)
        db.session.delete(row)
        db.session.commit()

    # Combat log

    def add_combat_log_entry(self, session_id, player_id, sentence, used_words, dice_roll,
                             total_potency, final_result, turn_number):
        self._session_row(session_id)
        row = CombatLogEntry(session_id=session_id, player_id=player_id, sentence=sentence,
                             used_words=json.dumps(used_words), dice_roll=dice_roll,
                             total_potency=total_potency, final_result=final_result,
                             turn_number=turn_number)
        db.session.add(row)
        db.session.commit()
        return _log_record(row)

    def list_combat_log(self, session_id):
        rows = CombatLogEntry.query.filter_by(session_id=session_id).order_by(
            CombatLogEntry.created_at.desc(), CombatLogEntry.id.desc()
        ).all()
        return [_log_record(r) for r in rows]
