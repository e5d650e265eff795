"""Answer validation and the progress update it triggers.

This is the only module that reads ``AnswerKey``. A correct answer
advances the team's single authoritative record in one transaction;
every attempt is appended to the audit log on a best-effort basis.
"""
import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from escapequiz import db
from escapequiz.errors import Conflict, Internal, InvalidArgument, NotFound
from escapequiz.models import AnswerAttempt, AnswerKey, GameStatus, SolvedPart, Team, current_app_id
from escapequiz.services import live
from escapequiz.services.game_control import get_game_config
from escapequiz.services.questions import get_question

CORRECT_MESSAGE = 'Correct!'
ALREADY_SOLVED_MESSAGE = 'Already solved.'
WRONG_MESSAGE = 'Try again.'


def normalize_answer(value) -> str:
    return str(value).strip().casefold()


def answers_match(submitted, correct) -> bool:
    return normalize_answer(submitted) == normalize_answer(correct)


def log_attempt(team_id, question_id, submitted_answer, is_correct, now=None) -> None:
    """Append to the audit log. Failures are logged and swallowed."""
    try:
        db.session.add(AnswerAttempt(
            app_id=current_app_id(),
            team_id=team_id,
            question_id=str(question_id),
            submitted_answer=str(submitted_answer),
            is_correct=bool(is_correct),
            timestamp=time.time() if now is None else now,
        ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(f"[audit] failed to log attempt team={team_id} question={question_id}")


def _result(success: bool, message: str) -> dict:
    return {'success': success, 'message': message}


def advance_team(team: Team, question_id: str, next_question_id, now: float) -> None:
    """Mark ``question_id`` solved and move the team to the next question (caller commits)."""
    team.parts.append(SolvedPart(question_id=question_id, solved_at=now))
    team.score = (team.score or 0) + 1
    team.current_question_id = next_question_id or None
    if not next_question_id:
        team.end_time = now


def validate_answer(team_id, question_id, user_answer, now=None) -> dict:
    """Check ``user_answer`` for ``question_id`` on behalf of team ``team_id``.

    Returns ``{"success": bool, "message": str}``; the correct answer is
    never included. Replays are idempotent: re-submitting an already solved
    question mutates nothing. Submitting for any question other than the
    team's current one raises Conflict.
    """
    if question_id is None or str(question_id).strip() == '' or user_answer is None or str(user_answer).strip() == '':
        raise InvalidArgument('questionId and userAnswer are required')
    question_id = str(question_id).strip()
    now = time.time() if now is None else now

    try:
        config = get_game_config()
        if config.status != GameStatus.STARTED:
            raise Conflict('The game is not running')

        team = Team.query.filter_by(id=team_id, app_id=current_app_id()).first()
        if team is None:
            raise NotFound('Team not registered')

        answer_key = db.session.get(AnswerKey, (current_app_id(), question_id))
        if answer_key is None:
            raise NotFound(f'Question {question_id} not found')
        question = get_question(question_id)
        if question is None:
            raise NotFound('Question metadata not found')

        current_app.logger.info(f"[validate] team={team.id} question={question_id}")
        is_correct = answers_match(user_answer, answer_key.correct_answer)

        if team.has_solved(question_id):
            log_attempt(team.id, question_id, user_answer, is_correct, now)
            return _result(True, ALREADY_SOLVED_MESSAGE) if is_correct else _result(False, WRONG_MESSAGE)

        if team.is_finished or team.current_question_id != question_id:
            raise Conflict('That is not your current question')

        if not is_correct:
            log_attempt(team.id, question_id, user_answer, False, now)
            return _result(False, WRONG_MESSAGE)

        advance_team(team, question_id, question.next_question_id, now)
        try:
            db.session.commit()
        except IntegrityError:
            # A concurrent submission already recorded this part
            db.session.rollback()
            current_app.logger.info(f"[validate] duplicate solve ignored team={team_id} question={question_id}")
            log_attempt(team_id, question_id, user_answer, True, now)
            return _result(True, ALREADY_SOLVED_MESSAGE)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[validate] store failure team={team_id} question={question_id}")
        raise Internal('An error occurred while validating the answer')

    if team.is_finished:
        current_app.logger.info(f"[validate] team={team.id} finished at {team.end_time}")
    else:
        current_app.logger.info(f"[validate] team={team.id} advanced to {team.current_question_id}")
    log_attempt(team.id, question_id, user_answer, True, now)
    live.publish_team(team)
    live.publish_leaderboard()
    return _result(True, CORRECT_MESSAGE)
