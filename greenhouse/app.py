import logging

from flask import Flask, jsonify
from flask_cors import CORS

from .errors import GreenhouseError
from .monitoring import MonitoringService

logger = logging.getLogger(__name__)


def create_app(service: MonitoringService) -> Flask:
    """Build the HTTP control API around a monitoring service."""
    app = Flask(__name__)
    CORS(app)

    @app.route('/start')
    def start():
        try:
            loop, created = service.start()
        except GreenhouseError as e:
            logger.error(f"Cannot start monitoring: {e}")
            return jsonify({'error': str(e)}), 503

        message = 'Monitoring started' if created else 'Monitoring already running'
        return jsonify({'message': message, 'state': loop.state.value})

    @app.route('/stop')
    def stop():
        if service.stop():
            return jsonify({'message': 'Monitoring stopped'})
        return jsonify({'message': 'Monitoring not running'})

    @app.route('/status')
    def status():
        return jsonify(service.status())

    return app
