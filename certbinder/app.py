"""
Flask application exposing the DNSimple webhook endpoint.
"""
from flask import Flask, request, jsonify
import logging
from typing import Optional
from datetime import datetime, timezone

from .services.config_service import ConfigService
from .services.dnsimple_service import DNSimpleService
from .services.logging_service import LoggingService


WEBHOOK_ROUTE = '/webhooks/dnsimple'


class WebhookFlaskApp:
    """Flask application receiving certificate webhooks."""

    def __init__(self, config_service: ConfigService, dnsimple_service: DNSimpleService,
                 logging_service: Optional[LoggingService] = None):
        """Initialize the webhook Flask application."""
        self.app = Flask(__name__)
        self.config_service = config_service
        self.config = config_service.get_config()
        self.dnsimple_service = dnsimple_service
        self.logging_service = logging_service
        self.logger = logging.getLogger(__name__)

        self._setup_routes()
        self._setup_error_handlers()
        self._setup_response_headers()

    def _setup_routes(self):
        """Set up webhook and monitoring routes."""

        @self.app.route(WEBHOOK_ROUTE, methods=['POST'])
        def dnsimple_webhook():
            """Process a DNSimple webhook event."""
            body = request.get_data(as_text=True)

            if self.logging_service:
                with self.logging_service.measure_performance('dnsimple_webhook'):
                    result = self.dnsimple_service.process(body)
            else:
                result = self.dnsimple_service.process(body)

            return jsonify(result.to_dict()), result.status_code

        @self.app.route(WEBHOOK_ROUTE, methods=['GET'])
        def dnsimple_webhook_status():
            """Answer reachability checks of the webhook URL."""
            self.logger.info("HTTP trigger function processed a request for DNSimpleWebhook.")
            return jsonify({'message': 'Response from DNSimpleWebhook.'})

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint with logging system status."""
            health_status = {
                'status': 'healthy',
                'service': 'tls-cert-binder',
                'binding_enabled': self.config.binding_enabled and self.config.bind_on_issue,
                'timestamp': datetime.now(timezone.utc).isoformat()
            }

            if self.logging_service:
                health_status['logging'] = self.logging_service.get_health_status()

            return jsonify(health_status)

        @self.app.route('/api/monitoring/metrics', methods=['GET'])
        def get_performance_metrics():
            """Get operation timings."""
            if not self.logging_service:
                return jsonify({'error': 'Logging service not available'}), 503

            operation = request.args.get('operation')
            return jsonify({
                'metrics': self.logging_service.get_performance_stats(operation),
                'timestamp': datetime.now(timezone.utc).isoformat()
            })

        @self.app.route('/api/monitoring/errors', methods=['GET'])
        def get_error_summary():
            """Get a summary of recent errors."""
            if not self.logging_service:
                return jsonify({'error': 'Logging service not available'}), 503

            try:
                since_hours = int(request.args.get('since_hours', 24))
            except ValueError:
                return jsonify({
                    'error': 'Invalid parameter',
                    'message': 'since_hours must be an integer'
                }), 400

            return jsonify({
                'error_summary': self.logging_service.get_error_summary(since_hours),
                'since_hours': since_hours,
                'timestamp': datetime.now(timezone.utc).isoformat()
            })

    def _setup_error_handlers(self):
        """Set up error handlers."""

        @self.app.errorhandler(404)
        def not_found(error):
            return jsonify({
                'error': 'Not found',
                'message': 'The requested endpoint does not exist'
            }), 404

        @self.app.errorhandler(405)
        def method_not_allowed(error):
            return jsonify({
                'error': 'Method not allowed',
                'message': 'The requested method is not allowed for this endpoint'
            }), 405

        @self.app.errorhandler(500)
        def internal_error(error):
            self.logger.error(f"Internal server error: {error}")
            return jsonify({
                'error': 'Internal server error',
                'message': 'An unexpected error occurred'
            }), 500

    def _setup_response_headers(self):

        @self.app.after_request
        def add_response_headers(response):
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['Cache-Control'] = 'no-store'
            response.headers.pop('Server', None)
            return response

    def run(self, host: str = '0.0.0.0', port: Optional[int] = None, debug: bool = False):
        """Run the Flask development server."""
        if port is None:
            port = self.config.api_port

        self.logger.info(f"Starting webhook server on http://{host}:{port}")
        self.app.run(host=host, port=port, debug=debug)

    def get_app(self) -> Flask:
        """Get the Flask application instance."""
        return self.app
