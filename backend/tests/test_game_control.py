import pytest

from escapequiz import db
from escapequiz.errors import Conflict
from escapequiz.models import GameConfig, GameStatus, SolvedPart, Team, User
from escapequiz.services.game_control import (
    GameController,
    end_game,
    get_game_config,
    restart_game,
    start_game,
)
from escapequiz.services.live import get_hub, team_channel
from escapequiz.services.questions import upload_questions
from escapequiz.services.teams import register_team
from escapequiz.services.validation import validate_answer


def add_user(username):
    user = User(username=username)
    user.set_password('password')
    db.session.add(user)
    db.session.commit()
    return user


def test_config_is_created_lazily_as_waiting(app_ctx):
    assert db.session.get(GameConfig, 'test-app') is None
    config = get_game_config()
    assert config.status == GameStatus.WAITING
    assert config.total_questions == 0
    assert get_game_config() is config


def test_transition_table():
    config = GameConfig(app_id='x', status=GameStatus.WAITING)
    controller = GameController(config)
    assert controller.can('start')
    assert not controller.can('end')
    assert controller.can('restart')
    config.status = GameStatus.FINISHED
    assert not controller.can('start')
    assert controller.can('restart')


def test_apply_rejects_illegal_transition_without_mutating(app_ctx):
    config = get_game_config()
    with pytest.raises(Conflict) as exc_info:
        GameController(config).apply('end')
    assert 'WAITING' in exc_info.value.message
    assert config.status == GameStatus.WAITING
    with pytest.raises(ValueError):
        GameController(config).apply('pause')


def test_start_sets_start_time_once(app_ctx):
    alpha = register_team(add_user('alpha').id, 'Alpha')
    beta = register_team(add_user('beta').id, 'Beta')
    assert alpha.start_time is None

    assert start_game(now=1000.0) == 2
    assert get_game_config().status == GameStatus.STARTED
    assert alpha.start_time == 1000.0
    assert beta.start_time == 1000.0

    with pytest.raises(Conflict):
        start_game(now=2000.0)
    assert alpha.start_time == 1000.0
    assert beta.start_time == 1000.0


def test_registration_before_upload_has_no_question(app_ctx):
    team = register_team(add_user('alpha').id, 'Alpha')
    assert team.current_question_id is None


def test_start_points_teams_without_progress_at_uploaded_chain(app_ctx):
    team = register_team(add_user('alpha').id, 'Alpha')
    upload_questions([{'id': 'start', 'correctAnswer': 'go', 'nextQuestionId': None}])
    assert team.current_question_id == 'start'
    team.current_question_id = 'stale'
    db.session.commit()

    start_game(now=5.0)
    assert team.current_question_id == 'start'
    assert validate_answer(team.id, 'start', 'go', now=9.0)['success'] is True
    assert team.end_time == 9.0


def test_upload_leaves_teams_with_progress_alone(app_ctx, questions_payload):
    upload_questions(questions_payload)
    team = register_team(add_user('alpha').id, 'Alpha')
    start_game(now=1.0)
    validate_answer(team.id, '1a', 'ohm', now=2.0)
    end_game()
    upload_questions([{'id': 'other', 'correctAnswer': 'x'}])
    assert team.current_question_id == '1b'


def test_late_registration_starts_clock_on_arrival(app_ctx):
    start_game(now=100.0)
    late = register_team(add_user('late').id, 'Late', now=250.0)
    assert late.start_time == 250.0


def test_end_only_from_started(app_ctx):
    with pytest.raises(Conflict):
        end_game()
    start_game(now=1.0)
    assert end_game() == GameStatus.FINISHED
    with pytest.raises(Conflict):
        end_game()
    with pytest.raises(Conflict):
        register_team(add_user('after').id, 'After')


def test_restart_clears_teams_and_allows_fresh_registration(app_ctx):
    user = add_user('alpha')
    team = register_team(user.id, 'Alpha')
    start_game(now=10.0)
    team.parts.append(SolvedPart(question_id='1a', solved_at=20.0))
    team.score = 1
    db.session.commit()
    old_id = team.id

    received = []
    get_hub().subscribe(team_channel(old_id), received.append)

    assert restart_game() == 1
    assert get_game_config().status == GameStatus.WAITING
    assert Team.query.count() == 0
    assert SolvedPart.query.count() == 0
    assert received == [None]
    assert team_channel(old_id) not in get_hub()
    get_hub().publish(team_channel(old_id), {'score': 9})
    assert received == [None]

    fresh = register_team(user.id, 'Alpha Again')
    assert fresh.id != old_id
    assert fresh.score == 0
    assert fresh.parts_solved == {}
    assert fresh.start_time is None
    assert fresh.end_time is None


def test_restart_is_allowed_from_every_status(app_ctx):
    assert restart_game() == 0
    start_game(now=1.0)
    assert restart_game() == 0
    start_game(now=2.0)
    end_game()
    restart_game()
    assert get_game_config().status == GameStatus.WAITING
