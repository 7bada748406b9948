from flask import Blueprint, jsonify
from flask_login import current_user, login_required

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the bingo server!'})

@main.route('/api/session')
@login_required
def get_session():
    """Snapshot for the player holding the bearer session token."""
    return jsonify({
        'player': current_user.to_dict(),
        'room': current_user.room.to_dict(include_players=True),
    })
