"""
Public game endpoints: config and live leaderboard
"""
from flask import Blueprint, jsonify

from escapequiz.services.game_control import get_game_config
from escapequiz.services.live import leaderboard_rows


game = Blueprint('game', __name__)


@game.route('/config', methods=['GET'])
def get_config():
    return jsonify(get_game_config().to_dict())


@game.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    """Ranked public team views, same payload as the ``leaderboard`` live channel"""
    rows = leaderboard_rows()
    return jsonify({
        'status': get_game_config().status,
        'teams': rows,
        'total_teams': len(rows),
    })
