"""
Admin endpoints: game lifecycle, question upload and audit log
"""
from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from escapequiz.errors import InvalidArgument, PermissionDenied, Unauthenticated
from escapequiz.models import AnswerAttempt, current_app_id
from escapequiz.services.game_control import end_game, get_game_config, restart_game, start_game
from escapequiz.services.questions import list_questions, upload_questions


admin = Blueprint('admin', __name__)


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            raise Unauthenticated()
        if not current_user.is_admin:
            raise PermissionDenied('Admin access required')
        return view(*args, **kwargs)
    return wrapper


@admin.route('/start', methods=['POST'])
@admin_required
def start():
    updated = start_game()
    return jsonify({
        'success': True,
        'status': get_game_config().status,
        'teams_started': updated,
        'message': f'Game started! Start time set for {updated} teams.',
    })


@admin.route('/end', methods=['POST'])
@admin_required
def end():
    status = end_game()
    return jsonify({'success': True, 'status': status, 'message': 'Game ended.'})


@admin.route('/restart', methods=['POST'])
@admin_required
def restart():
    deleted = restart_game()
    return jsonify({
        'success': True,
        'status': get_game_config().status,
        'teams_deleted': deleted,
        'message': 'Game restarted! All team data has been cleared.',
    })


@admin.route('/questions', methods=['POST'])
@admin_required
def upload():
    """
    Upload the question chain.

    Accepts a multipart ``file`` field or a JSON body, either
    {"questions": [{"id", "title", "prompt", "correctAnswer", "nextQuestionId"}, ...]}
    or a bare list of the same objects.
    """
    upload_file = request.files.get('file')
    if upload_file is not None:
        payload = upload_file.read()
    else:
        payload = request.get_json(silent=True)
        if payload is None:
            raise InvalidArgument('Provide a question file or a JSON body')
    result = upload_questions(payload)
    result['success'] = True
    result['message'] = f"Uploaded {result['accepted']} questions."
    return jsonify(result)


@admin.route('/questions', methods=['GET'])
@admin_required
def questions():
    return jsonify({'questions': list_questions()})


@admin.route('/attempts', methods=['GET'])
@admin_required
def attempts():
    query = AnswerAttempt.query.filter_by(app_id=current_app_id())
    team_id = request.args.get('team_id', type=int)
    if team_id is not None:
        query = query.filter_by(team_id=team_id)
    limit = int(current_app.config.get('ATTEMPTS_PAGE_SIZE', 200))
    rows = query.order_by(AnswerAttempt.timestamp.desc(), AnswerAttempt.id.desc()).limit(limit).all()
    return jsonify({'attempts': [a.to_dict() for a in rows]})
