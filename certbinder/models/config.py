"""
Configuration data models for the certificate binding service.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    """Main configuration class containing all application settings."""

    # Certificate settings
    certificate_password: str = ""
    certificate_container: str = "certificates"
    bind_on_issue: bool = True
    max_binding_workers: int = 1

    # Storage settings
    certificate_store_connection: str = "UseDevelopmentStorage=true"

    # DNSimple settings
    dnsimple_url: str = "https://api.dnsimple.com"
    dnsimple_token: str = ""

    # App Service settings
    appservice_subscription_id: str = ""
    appservice_access_token: Optional[str] = None
    appservice_management_url: str = "https://management.azure.com"
    appservice_api_version: str = "2022-09-01"

    # Application settings
    request_timeout_seconds: int = 30
    api_port: int = 5000
    debug: bool = False
    log_level: str = "INFO"
    log_file_path: str = "logs/cert_binder.log"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_types()

    def _validate_types(self):
        """Ensure all configuration values have correct types."""
        if not isinstance(self.max_binding_workers, int) or self.max_binding_workers <= 0:
            raise ValueError("max_binding_workers must be a positive integer")

        if not isinstance(self.request_timeout_seconds, int) or self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be a positive integer")

        if not isinstance(self.api_port, int) or not (1 <= self.api_port <= 65535):
            raise ValueError("api_port must be an integer between 1 and 65535")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    @property
    def binding_enabled(self) -> bool:
        """Whether App Service bindings can be managed with these settings."""
        return bool(self.appservice_subscription_id and self.appservice_access_token)

    def __repr__(self) -> str:
        return (
            f"<Config(dnsimple_url='{self.dnsimple_url}', "
            f"appservice_subscription_id='{self.appservice_subscription_id}', "
            f"certificate_container='{self.certificate_container}', log_level='{self.log_level}')>"
        )


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    severity: str = "error"  # error, warning

    def __str__(self):
        return f"{self.severity.upper()}: {self.field} - {self.message}"


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: list[ConfigValidationError]
    warnings: list[ConfigValidationError]

    def __post_init__(self):
        """Separate errors and warnings."""
        all_issues = self.errors + self.warnings
        self.errors = [e for e in all_issues if e.severity == "error"]
        self.warnings = [e for e in all_issues if e.severity == "warning"]

    def has_errors(self) -> bool:
        """Check if there are any validation errors."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if there are any validation warnings."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> str:
        """Get a formatted summary of all errors and warnings."""
        lines = []

        if self.errors:
            lines.append("Configuration Errors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        if self.warnings:
            lines.append("Configuration Warnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines) if lines else "Configuration is valid"
