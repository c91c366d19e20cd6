"""
Guild Desk - Keep-Alive Server
Tiny HTTP endpoint so hosting platforms see the process as alive.
"""

import logging
import threading

from flask import Flask

from config import BOT_PERSONA_NAME, BOT_VERSION, PORT

app = Flask(__name__)


@app.route('/')
def index():
    return f"Hello! I am {BOT_PERSONA_NAME}, Bot version {BOT_VERSION}. I am awake!"


def start_keep_alive(host: str = '0.0.0.0', port: int = PORT) -> threading.Thread:
    """Start the keep-alive server in a background thread."""
    # Disable Flask's request logging
    logging.getLogger('werkzeug').setLevel(logging.ERROR)

    thread = threading.Thread(
        target=lambda: app.run(host=host, port=port, debug=False, use_reloader=False),
        daemon=True
    )
    thread.start()
    return thread
