import os

from luckyjet import create_app, db, socketio
from luckyjet.services.rounds import start_round_loop

app = create_app()

if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    start_round_loop(app, socketio)
    # Use SocketIO server to enable websockets in dev; no reloader so the loop starts once
    socketio.run(app, host='0.0.0.0', port=int(os.environ.get('PORT', '3000')),
                 use_reloader=False, allow_unsafe_werkzeug=True)
