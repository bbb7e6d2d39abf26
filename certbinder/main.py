"""
Main application entry point for the certificate binding service.
Handles configuration, service wiring and graceful shutdown.
"""

import os
import sys
import signal
import logging
from typing import Optional
from datetime import datetime, timezone

from .services.config_service import ConfigService
from .services.logging_service import LoggingService
from .services.clock import SystemClock
from .services.dnsimple_client import DNSimpleClient
from .services.blob_client import BlobClient
from .services.app_service_client import AppServiceClient
from .services.certificate_service import CertificateService
from .services.dnsimple_service import DNSimpleService
from .app import WebhookFlaskApp


DEFAULT_CONFIG_PATHS = [
    "config/default.properties",
    "config.properties",
    os.path.expanduser("~/.cert_binder/config.properties"),
    "/etc/cert_binder/config.properties"
]


class CertBinderApplication:
    """Main application class for the certificate binding service."""

    def __init__(self, config_path: Optional[str] = None, environ=None):
        """
        Initialize the application.

        Args:
            config_path: Path to configuration file; when omitted the first
                existing default path is used, falling back to environment variables
            environ: Environment mapping used instead of os.environ
        """
        self.config_path = config_path or self._get_default_config_path()
        self.environ = environ if environ is not None else os.environ
        self.logger = logging.getLogger(__name__)
        self.config_service = None
        self.config = None
        self.logging_service = None
        self.dnsimple_client = None
        self.blob_client = None
        self.app_service_client = None
        self.certificate_service = None
        self.dnsimple_service = None
        self.flask_app = None
        self.started_at = None
        self._is_running = False

    def _get_default_config_path(self) -> Optional[str]:
        for path in DEFAULT_CONFIG_PATHS:
            if os.path.exists(path):
                return path
        return None

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            self.logger.info(f"Received {signal.Signals(signum).name} signal, initiating graceful shutdown...")
            self.shutdown()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def initialize(self) -> bool:
        """
        Initialize all application components.

        Returns:
            True if initialization successful, False otherwise
        """
        if not self._load_configuration():
            return False

        self._setup_logging()
        self.logger.info("Starting certificate binder initialization...")

        if not self._initialize_services():
            return False

        self.flask_app = WebhookFlaskApp(self.config_service, self.dnsimple_service, self.logging_service)

        self.logger.info("Certificate binder initialized successfully")
        self.started_at = datetime.now(timezone.utc)
        self._is_running = True
        return True

    def _load_configuration(self) -> bool:
        """Load configuration from the property file or the environment."""
        self.config_service = ConfigService(environ=self.environ)

        try:
            if self.config_path is None:
                self.logger.info("No configuration file found, reading environment variables")
                self.config = self.config_service.load_from_environment()
                return True

            if not os.path.exists(self.config_path):
                self.logger.warning(f"Configuration file not found: {self.config_path}")
                self.config_service.create_default_config_file(self.config_path)
                self.logger.info(f"Default configuration created at: {self.config_path}")
                self.logger.info("Please edit the configuration file and restart the application")
                return False

            self.logger.info(f"Loading configuration from: {self.config_path}")
            self.config = self.config_service.load_config(self.config_path)
            return True

        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load configuration: {e}")
            return False

    def _setup_logging(self):
        self.logging_service = LoggingService(self.config)
        self.logger.info(f"Log level set to: {self.config.log_level}")

    def _initialize_services(self) -> bool:
        """Create the clients and services from configuration."""
        config = self.config

        try:
            self.dnsimple_client = DNSimpleClient(
                config.dnsimple_url,
                config.dnsimple_token,
                timeout=config.request_timeout_seconds
            )
            self.blob_client = BlobClient(config.certificate_store_connection)

            if config.binding_enabled:
                self.app_service_client = AppServiceClient(
                    config.appservice_subscription_id,
                    config.appservice_access_token,
                    management_url=config.appservice_management_url,
                    api_version=config.appservice_api_version,
                    timeout=config.request_timeout_seconds
                )
                self.certificate_service = CertificateService(
                    config.certificate_password,
                    self.app_service_client,
                    SystemClock(),
                    max_workers=config.max_binding_workers,
                    logging_service=self.logging_service
                )
            else:
                self.logger.warning("App Service binding is not configured; certificates will only be archived")

            self.dnsimple_service = DNSimpleService(
                config.certificate_password,
                self.dnsimple_client,
                self.blob_client,
                certificate_service=self.certificate_service,
                container_name=config.certificate_container,
                debug=config.debug,
                logging_service=self.logging_service,
                bind_on_issue=config.bind_on_issue
            )
        except ValueError as e:
            self.logger.error(f"Failed to initialize services: {e}")
            return False

        self.logger.info("All services initialized successfully")
        return True

    def run(self, host: str = '0.0.0.0', port: Optional[int] = None, debug: bool = False):
        """
        Run the webhook server.

        Args:
            host: Host to bind to
            port: Port to bind to (uses config if not specified)
            debug: Enable Flask debug mode
        """
        if not self._is_running:
            self.logger.error("Application not initialized. Call initialize() first.")
            return

        self._setup_signal_handlers()

        try:
            self.flask_app.run(host=host, port=port or self.config.api_port, debug=debug)
        finally:
            self.shutdown()

    def shutdown(self):
        """Release HTTP sessions and stop accepting work."""
        if not self._is_running:
            return

        self.logger.info("Initiating graceful shutdown...")
        self._is_running = False

        if self.dnsimple_client:
            self.dnsimple_client.close()
        if self.app_service_client:
            self.app_service_client.close()

        self.logger.info("Graceful shutdown completed")

    def is_running(self) -> bool:
        return self._is_running

    def get_status(self) -> dict:
        """Get application status information."""
        return {
            'running': self._is_running,
            'config_path': self.config_path,
            'dnsimple_url': self.config.dnsimple_url if self.config else None,
            'certificate_container': self.config.certificate_container if self.config else None,
            'binding_enabled': self.certificate_service is not None,
            'bind_on_issue': self.config.bind_on_issue if self.config else False,
            'started_at': self.started_at.isoformat() if self.started_at else None
        }


def main():
    """Main entry point for the application."""
    import argparse

    parser = argparse.ArgumentParser(description='DNSimple certificate webhook and App Service binder')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--host', default='0.0.0.0', help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, help='Port to bind to (uses config if not specified)')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--check-config', action='store_true', help='Check configuration and exit')

    args = parser.parse_args()

    app = CertBinderApplication(config_path=args.config)

    if not app.initialize():
        print("Failed to initialize application")
        sys.exit(1)

    if args.check_config:
        status = app.get_status()
        print("Configuration check passed")
        print(f"Config path: {status['config_path'] or '(environment)'}")
        print(f"DNSimple URL: {status['dnsimple_url']}")
        print(f"Certificate container: {status['certificate_container']}")
        print(f"Binding enabled: {status['binding_enabled']}")
        sys.exit(0)

    try:
        app.run(host=args.host, port=args.port, debug=args.debug)
    except KeyboardInterrupt:
        print("\nShutdown requested by user")


if __name__ == '__main__':
    main()
