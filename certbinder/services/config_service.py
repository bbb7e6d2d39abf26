"""
Configuration service for loading and validating application settings.
"""
import os
import configparser
from typing import Optional, Dict, Any, Mapping
from urllib.parse import urlparse
import logging

from ..models.config import Config, ConfigValidationError, ConfigValidationResult


# Map configuration keys to Config fields
CONFIG_MAPPING = {
    # Certificate settings
    "certificates.password": ("certificate_password", str),
    "certificate_password": ("certificate_password", str),
    "certificates.container": ("certificate_container", str),
    "certificate_container": ("certificate_container", str),
    "certificates.bind_on_issue": ("bind_on_issue", bool),
    "bind_on_issue": ("bind_on_issue", bool),
    "certificates.max_binding_workers": ("max_binding_workers", int),
    "max_binding_workers": ("max_binding_workers", int),

    # Storage settings
    "storage.connection_string": ("certificate_store_connection", str),
    "certificate_store_connection": ("certificate_store_connection", str),

    # DNSimple settings
    "dnsimple.url": ("dnsimple_url", str),
    "dnsimple_url": ("dnsimple_url", str),
    "dnsimple.token": ("dnsimple_token", str),
    "dnsimple_token": ("dnsimple_token", str),

    # App Service settings
    "appservice.subscription_id": ("appservice_subscription_id", str),
    "appservice_subscription_id": ("appservice_subscription_id", str),
    "appservice.access_token": ("appservice_access_token", str),
    "appservice_access_token": ("appservice_access_token", str),
    "appservice.management_url": ("appservice_management_url", str),
    "appservice_management_url": ("appservice_management_url", str),
    "appservice.api_version": ("appservice_api_version", str),
    "appservice_api_version": ("appservice_api_version", str),

    # Application settings
    "app.request_timeout_seconds": ("request_timeout_seconds", int),
    "request_timeout_seconds": ("request_timeout_seconds", int),
    "app.api_port": ("api_port", int),
    "api_port": ("api_port", int),
    "app.debug": ("debug", bool),
    "debug": ("debug", bool),
    "app.log_level": ("log_level", str),
    "log_level": ("log_level", str),
    "app.log_file_path": ("log_file_path", str),
    "log_file_path": ("log_file_path", str),
}

# Environment variables and the Config fields they set
ENVIRONMENT_MAPPING = {
    "CERTIFICATE_PASSWORD": ("certificate_password", str),
    "CERTIFICATE_CONTAINER": ("certificate_container", str),
    "CERTIFICATE_STORE_CONNECTION": ("certificate_store_connection", str),
    "BIND_ON_ISSUE": ("bind_on_issue", bool),
    "DNSIMPLE_TOKEN": ("dnsimple_token", str),
    "DNSIMPLE_URL": ("dnsimple_url", str),
    "APPSERVICE_SUBSCRIPTION_ID": ("appservice_subscription_id", str),
    "APPSERVICE_ACCESS_TOKEN": ("appservice_access_token", str),
    "APPSERVICE_MANAGEMENT_URL": ("appservice_management_url", str),
    "LOG_LEVEL": ("log_level", str),
    "LOG_FILE_PATH": ("log_file_path", str),
    "PORT": ("api_port", int),
}


class ConfigService:
    """Service for loading and validating application configuration."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.logger = logging.getLogger(__name__)
        self._environ = environ if environ is not None else os.environ
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)

    def get_config(self) -> Config:
        """
        Get the loaded configuration.

        Returns:
            Config object

        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_path: str) -> Config:
        """
        Load configuration from a property file, then apply environment overrides.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_kwargs = self._convert_values(self._load_config_file(config_path), CONFIG_MAPPING)
        config_kwargs.update(self._convert_values(self._environ, ENVIRONMENT_MAPPING))

        return self._finish_loading(config_kwargs)

    def load_from_environment(self, environ: Optional[Mapping[str, str]] = None) -> Config:
        """
        Load configuration from environment variables only.

        Args:
            environ: Mapping to read instead of the process environment

        Returns:
            Config object with loaded settings

        Raises:
            ValueError: If the resulting configuration has validation errors
        """
        source = environ if environ is not None else self._environ
        return self._finish_loading(self._convert_values(source, ENVIRONMENT_MAPPING))

    def _finish_loading(self, config_kwargs: Dict[str, Any]) -> Config:
        config = Config(**config_kwargs)

        validation_result = self.validate_config(config)

        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")

        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")

        self._config = config
        return config

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        config_parser = configparser.ConfigParser(interpolation=None)

        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        # Flatten to section.key names
        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value

        for key, value in config_parser.defaults().items():
            config_data.setdefault(key, value)

        return config_data

    def _convert_values(self, raw_values: Mapping[str, Any],
                        mapping: Dict[str, tuple]) -> Dict[str, Any]:
        """Convert raw string settings into typed Config keyword arguments."""
        config_kwargs = {}

        for config_key, (field_name, field_type) in mapping.items():
            if config_key not in raw_values:
                continue

            raw_value = raw_values[config_key]
            try:
                if field_type == bool:
                    value = self._parse_bool(raw_value)
                elif field_type == int:
                    value = int(raw_value)
                else:
                    value = str(raw_value).strip() if raw_value is not None else None
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")

            config_kwargs[field_name] = value

        if config_kwargs.get("appservice_access_token") == "":
            config_kwargs["appservice_access_token"] = None

        return config_kwargs

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "on", "enabled")
        return bool(value)

    def _is_http_url(self, url: str) -> bool:
        parsed = urlparse(url or "")
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    def validate_config(self, config: Config) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []

        if not config.certificate_password:
            errors.append(ConfigValidationError(
                "certificate_password",
                "Certificate password is required to protect exported private keys"
            ))

        if not config.dnsimple_token:
            errors.append(ConfigValidationError(
                "dnsimple_token",
                "DNSimple API token is required to download issued certificates"
            ))

        if not self._is_http_url(config.dnsimple_url):
            errors.append(ConfigValidationError(
                "dnsimple_url",
                f"DNSimple URL must be an http(s) URL: {config.dnsimple_url}"
            ))

        if not self._is_http_url(config.appservice_management_url):
            errors.append(ConfigValidationError(
                "appservice_management_url",
                f"Management URL must be an http(s) URL: {config.appservice_management_url}"
            ))

        if not config.certificate_container:
            errors.append(ConfigValidationError(
                "certificate_container",
                "Certificate container name is required"
            ))

        if not config.appservice_subscription_id:
            warnings.append(ConfigValidationError(
                "appservice_subscription_id",
                "No App Service subscription configured; certificates will not be bound",
                "warning"
            ))
        elif not config.appservice_access_token:
            warnings.append(ConfigValidationError(
                "appservice_access_token",
                "No App Service access token configured; certificates will not be bound",
                "warning"
            ))

        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        if config.request_timeout_seconds > 300:
            warnings.append(ConfigValidationError(
                "request_timeout_seconds",
                "Request timeout over 5 minutes may stall webhook processing",
                "warning"
            ))

        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_content = """# Certificate Binder Configuration File

[certificates]
password = change-me
container = certificates
bind_on_issue = true
max_binding_workers = 1

[storage]
connection_string = UseDevelopmentStorage=true

[dnsimple]
url = https://api.dnsimple.com
token = your-dnsimple-token

[appservice]
subscription_id =
access_token =
management_url = https://management.azure.com
api_version = 2022-09-01

[app]
request_timeout_seconds = 30
api_port = 5000
debug = false
log_level = INFO
log_file_path = logs/cert_binder.log
"""

        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(config_content)

        self.logger.info(f"Created default configuration file: {config_path}")
