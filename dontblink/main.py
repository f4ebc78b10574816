from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({
        'message': "Welcome to the Don't Blink game server!",
        'rounds': int(current_app.config.get('ROUNDS', 5)),
        'leaderboard_size': int(current_app.config.get('LEADERBOARD_SIZE', 100)),
    })
