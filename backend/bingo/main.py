from flask import Blueprint, jsonify
from bingo import get_registry

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the bingo lobby server!'})

@main.route('/health')
def health():
    registry = get_registry()
    return jsonify({'status': 'ok', 'lobbies': len(registry), 'objectives': len(registry.objectives)})
