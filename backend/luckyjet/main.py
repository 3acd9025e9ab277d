from flask import Blueprint, jsonify

from luckyjet.services.rounds import get_scheduler

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'LuckyJet round server'})


@main.route('/health')
def health():
    scheduler = get_scheduler()
    return jsonify({
        'status': 'ok',
        'round_loop_running': scheduler.is_running,
        'observers': scheduler.hub.observer_count,
    })
