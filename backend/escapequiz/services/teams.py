"""Team registration and lookup"""
import time

from flask import current_app
from sqlalchemy.exc import IntegrityError

from escapequiz import db
from escapequiz.errors import Conflict, InvalidArgument
from escapequiz.models import GameStatus, Team, current_app_id
from escapequiz.services import live
from escapequiz.services.game_control import get_game_config
from escapequiz.services.leaderboard import rank_of

MAX_TEAM_NAME = 64


def get_team_for_user(user_id):
    return Team.query.filter_by(app_id=current_app_id(), user_id=user_id).first()


def register_team(user_id, name, now=None) -> Team:
    clean_name = (name or '').strip()
    if not clean_name:
        raise InvalidArgument('Team name is required')
    if len(clean_name) > MAX_TEAM_NAME:
        raise InvalidArgument(f'Team name must be at most {MAX_TEAM_NAME} characters')

    config = get_game_config()
    if config.status == GameStatus.FINISHED:
        raise Conflict('The game has finished; wait for a restart')
    if get_team_for_user(user_id):
        raise Conflict('You already registered a team')

    team = Team(
        app_id=current_app_id(),
        user_id=user_id,
        name=clean_name,
        current_question_id=config.first_question_id,
        start_time=None,
        end_time=None,
        score=0,
    )
    # Late joiners start their clock on arrival
    if config.status == GameStatus.STARTED:
        team.start_time = time.time() if now is None else now
    db.session.add(team)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('You already registered a team')

    current_app.logger.info(f"[register] team={team.id} name={clean_name!r} user={user_id}")
    live.publish_team(team)
    live.publish_leaderboard()
    return team


def team_status(team: Team) -> dict:
    """Owner view of a team with its live rank."""
    teams = Team.query.filter_by(app_id=current_app_id()).all()
    data = team.to_private_dict()
    data['rank'] = rank_of(teams, team.id)
    data['total_teams'] = len(teams)
    return data
