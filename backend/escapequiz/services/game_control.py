import time
from typing import Dict, FrozenSet, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from escapequiz import db
from escapequiz.errors import Conflict, Internal
from escapequiz.models import GameConfig, GameStatus, Team, current_app_id
from escapequiz.services import live


def get_game_config() -> GameConfig:
    """Return this namespace's config, creating the WAITING default on first read."""
    app_id = current_app_id()
    config = db.session.get(GameConfig, app_id)
    if config is None:
        config = GameConfig(app_id=app_id, status=GameStatus.WAITING, total_questions=0)
        db.session.add(config)
        try:
            db.session.commit()
        except SQLAlchemyError:
            # Another request created it first
            db.session.rollback()
            config = db.session.get(GameConfig, app_id)
            if config is None:
                raise
        current_app.logger.info(f"[config] created default config app_id={app_id}")
    return config


class GameController:
    """Single owner of ``GameConfig.status`` transitions.

    Every status change goes through ``apply`` so that the transition table
    below is the only place the lifecycle is defined.
    """

    TRANSITIONS: Dict[str, Tuple[FrozenSet[str], str]] = {
        'start': (frozenset({GameStatus.WAITING}), GameStatus.STARTED),
        'end': (frozenset({GameStatus.STARTED}), GameStatus.FINISHED),
        'restart': (frozenset(GameStatus.ALL), GameStatus.WAITING),
    }

    def __init__(self, config: GameConfig):
        self.config = config

    @property
    def status(self) -> str:
        return self.config.status or GameStatus.WAITING

    def can(self, action: str) -> bool:
        allowed, _ = self.TRANSITIONS[action]
        return self.status in allowed

    def apply(self, action: str) -> str:
        """Move to the action's target status, or raise Conflict without mutating."""
        if action not in self.TRANSITIONS:
            raise ValueError(f"unknown game action: {action}")
        allowed, target = self.TRANSITIONS[action]
        if self.status not in allowed:
            raise Conflict(f"Cannot {action} game while it is {self.status}")
        previous = self.status
        self.config.status = target
        current_app.logger.info(f"[game] {action}: {previous} -> {target}")
        return target


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[game] {action} failed")
        raise Internal(f"Could not {action} the game")


def start_game(now=None) -> int:
    """Start the game and stamp ``start_time`` on every team lacking one.

    Teams with no solved parts are (re)pointed at the uploaded first
    question. Returns the number of teams whose clock was started. The
    status change and all team updates are committed together.
    """
    config = get_game_config()
    GameController(config).apply('start')
    now = time.time() if now is None else now
    updated = 0
    for team in Team.query.filter_by(app_id=current_app_id()).all():
        if not team.parts and not team.is_finished:
            team.current_question_id = config.first_question_id
        if team.start_time is None:
            team.start_time = now
            updated += 1
    _commit('start')
    current_app.logger.info(f"[start] start time set for {updated} teams")
    live.publish_config()
    live.publish_leaderboard()
    return updated


def end_game() -> str:
    config = get_game_config()
    status = GameController(config).apply('end')
    _commit('end')
    live.publish_config()
    return status


def restart_game() -> int:
    """Reset to WAITING and delete every team (with its solved parts). Returns teams deleted."""
    config = get_game_config()
    GameController(config).apply('restart')
    teams = Team.query.filter_by(app_id=current_app_id()).all()
    team_ids = [t.id for t in teams]
    for team in teams:
        db.session.delete(team)
    _commit('restart')
    current_app.logger.info(f"[restart] deleted {len(team_ids)} teams")
    live.publish_config()
    live.publish_leaderboard()
    hub = live.get_hub()
    for team_id in team_ids:
        # Last snapshot for the old owner, then the channel and its room go away
        hub.publish(live.team_channel(team_id), None)
        hub.drop(live.team_channel(team_id))
    return len(team_ids)
