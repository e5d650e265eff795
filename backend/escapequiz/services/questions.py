import json
from typing import Any, List, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from escapequiz import db
from escapequiz.errors import Conflict, Internal, InvalidArgument
from escapequiz.models import AnswerKey, GameStatus, Question, Team, current_app_id
from escapequiz.services import live
from escapequiz.services.game_control import get_game_config


def _clean_id(value: Any):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_question_payload(payload: Any) -> Tuple[List[dict], int]:
    """Split an uploaded question file into accepted entries and a skipped count.

    ``payload`` is raw JSON (bytes or str) or an already-decoded object,
    either ``{"questions": [...]}`` or a bare list. An entry is accepted when
    it has both ``id`` and ``correctAnswer``.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise InvalidArgument('Question file must be UTF-8 JSON') from exc
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise InvalidArgument(f'Invalid JSON: {exc}') from exc

    if isinstance(payload, dict) and isinstance(payload.get('questions'), list):
        entries = payload['questions']
    elif isinstance(payload, list):
        entries = payload
    else:
        raise InvalidArgument('Expected {"questions": [...]} or a list of questions')

    accepted = []
    skipped = 0
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            current_app.logger.warning(f"[upload-skip] not an object: {entry!r}")
            skipped += 1
            continue
        qid = _clean_id(entry.get('id'))
        answer = entry.get('correctAnswer')
        if qid is None or answer is None or str(answer).strip() == '':
            current_app.logger.warning(f"[upload-skip] missing id or correctAnswer: id={entry.get('id')!r}")
            skipped += 1
            continue
        if qid in seen:
            current_app.logger.warning(f"[upload-skip] duplicate id={qid}")
            skipped += 1
            continue
        seen.add(qid)
        accepted.append({
            'id': qid,
            'title': entry.get('title'),
            'prompt': entry.get('prompt'),
            'correctAnswer': str(answer),
            'nextQuestionId': _clean_id(entry.get('nextQuestionId')),
        })
    return accepted, skipped


def upload_questions(payload: Any) -> dict:
    """Replace this namespace's questions and answer keys with the uploaded set.

    Questions, answer keys, the config's question count and the starting
    question of teams with no progress are written in a single transaction.
    """
    config = get_game_config()
    if config.status == GameStatus.STARTED:
        raise Conflict('Cannot upload questions while the game is running')

    accepted, skipped = parse_question_payload(payload)
    app_id = current_app_id()
    try:
        Question.query.filter_by(app_id=app_id).delete()
        AnswerKey.query.filter_by(app_id=app_id).delete()
        for position, entry in enumerate(accepted):
            db.session.add(Question(
                app_id=app_id,
                id=entry['id'],
                title=entry['title'],
                prompt=entry['prompt'],
                next_question_id=entry['nextQuestionId'],
                position=position,
            ))
            db.session.add(AnswerKey(app_id=app_id, question_id=entry['id'], correct_answer=entry['correctAnswer']))
        config.total_questions = len(accepted)
        config.first_question_id = accepted[0]['id'] if accepted else None
        # Teams that have not solved anything follow the new chain
        repointed = [t for t in Team.query.filter_by(app_id=app_id).all() if not t.parts and not t.is_finished]
        for team in repointed:
            team.current_question_id = config.first_question_id
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[upload] failed to write questions")
        raise Internal('Could not store uploaded questions')

    current_app.logger.info(f"[upload] accepted={len(accepted)} skipped={skipped}")
    live.publish_config()
    for team in repointed:
        live.publish_team(team)
    return {'accepted': len(accepted), 'skipped': skipped, 'total_questions': len(accepted)}


def get_question(question_id):
    return db.session.get(Question, (current_app_id(), question_id))


def list_questions() -> List[dict]:
    app_id = current_app_id()
    answered = {a.question_id for a in AnswerKey.query.filter_by(app_id=app_id).all()}
    rows = []
    for q in Question.query.filter_by(app_id=app_id).order_by(Question.position).all():
        data = q.to_dict()
        data['has_answer'] = q.id in answered
        rows.append(data)
    return rows
