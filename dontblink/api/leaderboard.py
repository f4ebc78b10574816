from flask import Blueprint, jsonify, request, current_app
from dontblink.models import SCORE_MAX
from dontblink.services.reaction import Leaderboard, RankStatus


leaderboard = Blueprint('leaderboard', __name__)

SCORE_ERROR = f'score must be an integer between 0 and {SCORE_MAX}'


def _client() -> Leaderboard:
    return current_app.extensions['leaderboard']


def _parse_score(value):
    try:
        score = int(value)
    except (TypeError, ValueError):
        return None
    return score if 0 <= score <= SCORE_MAX else None


@leaderboard.route('/top', methods=['GET'])
def get_top():
    client = _client()
    default = int(current_app.config.get('LEADERBOARD_DISPLAY', 10))
    try:
        limit = int(request.args.get('limit', default))
    except (TypeError, ValueError):
        limit = default
    limit = max(1, min(limit, client.size))
    return jsonify({'entries': client.top(limit), 'limit': limit})


@leaderboard.route('/peek', methods=['GET'])
def peek_rank():
    score = _parse_score(request.args.get('score'))
    if score is None:
        return jsonify({'error': SCORE_ERROR}), 400
    return jsonify(_client().peek(score).to_dict())


@leaderboard.route('/submit', methods=['POST'])
def submit_score():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400
    score = _parse_score(data.get('score'))
    if score is None:
        return jsonify({'error': SCORE_ERROR}), 400
    outcome = _client().submit(data.get('name'), score)
    status = 200 if outcome.status is RankStatus.FAILED else 201
    return jsonify(outcome.to_dict()), status
