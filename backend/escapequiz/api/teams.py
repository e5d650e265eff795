from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from escapequiz.errors import Conflict, InvalidArgument, NotFound, PermissionDenied
from escapequiz.models import GameStatus
from escapequiz.services.game_control import get_game_config
from escapequiz.services.questions import get_question
from escapequiz.services.teams import get_team_for_user, register_team, team_status
from escapequiz.services.validation import validate_answer


teams = Blueprint('teams', __name__)


def _own_team():
    team = get_team_for_user(current_user.id)
    if team is None:
        raise NotFound('Register a team first')
    return team


@teams.route('/teams/register', methods=['POST'])
@login_required
def register():
    data = request.get_json(silent=True) or {}
    team = register_team(current_user.id, data.get('name') or data.get('team_name'))
    return jsonify(team.to_private_dict()), 201


@teams.route('/teams/me', methods=['GET'])
@login_required
def my_team():
    return jsonify(team_status(_own_team()))


@teams.route('/teams/me/question', methods=['GET'])
@login_required
def my_question():
    team = _own_team()
    config = get_game_config()
    if config.status != GameStatus.STARTED:
        raise Conflict('The game is not running')
    if team.is_finished or not team.current_question_id:
        return jsonify({'finished': True, 'question': None})
    question = get_question(team.current_question_id)
    if question is None:
        raise NotFound(f'Question {team.current_question_id} not found')
    return jsonify({'finished': False, 'question': question.to_dict()})


@teams.route('/validate-answer', methods=['POST'])
@login_required
def validate():
    """
    Validate an answer for the caller's team.

    Request:  {"questionId": "1a", "userAnswer": "ohm"}
    Response: {"success": true|false, "message": "..."}

    Admins may pass "teamId" to validate on behalf of a team.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument('questionId and userAnswer are required')
    requested_team_id = data.get('teamId')
    if requested_team_id is not None:
        if not current_user.is_admin:
            raise PermissionDenied('Only the trusted validator may answer for another team')
        try:
            team_id = int(requested_team_id)
        except (TypeError, ValueError):
            raise InvalidArgument('teamId must be an integer')
    else:
        team_id = _own_team().id
    result = validate_answer(team_id, data.get('questionId'), data.get('userAnswer'))
    return jsonify(result)
