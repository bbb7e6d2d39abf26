"""
Unit tests for ConfigService and Config models.
"""
import unittest
import tempfile
import os

from certbinder.models.config import Config, ConfigValidationError, ConfigValidationResult
from certbinder.services.config_service import ConfigService


VALID_CONFIG = """
[certificates]
password = pfx-password
container = issued
bind_on_issue = no
max_binding_workers = 4

[storage]
connection_string = DefaultEndpointsProtocol=https;AccountName=certs;AccountKey=a2V5;EndpointSuffix=core.windows.net

[dnsimple]
url = https://api.sandbox.dnsimple.com
token = dnsimple-token

[appservice]
subscription_id = 00000000-0000-0000-0000-000000000001
access_token = management-token

[app]
api_port = 8080
log_level = DEBUG
log_file_path = {log_file_path}
"""


class TestConfig(unittest.TestCase):
    """Test cases for Config data model."""

    def test_config_default_values(self):
        config = Config()

        self.assertEqual(config.certificate_password, "")
        self.assertEqual(config.certificate_container, "certificates")
        self.assertTrue(config.bind_on_issue)
        self.assertEqual(config.max_binding_workers, 1)
        self.assertEqual(config.dnsimple_url, "https://api.dnsimple.com")
        self.assertEqual(config.appservice_management_url, "https://management.azure.com")
        self.assertIsNone(config.appservice_access_token)
        self.assertEqual(config.api_port, 5000)
        self.assertEqual(config.log_level, "INFO")
        self.assertFalse(config.binding_enabled)

    def test_config_type_validation(self):
        with self.assertRaises(ValueError) as cm:
            Config(max_binding_workers=0)
        self.assertIn("max_binding_workers must be a positive integer", str(cm.exception))

        with self.assertRaises(ValueError) as cm:
            Config(request_timeout_seconds=0)
        self.assertIn("request_timeout_seconds must be a positive integer", str(cm.exception))

        with self.assertRaises(ValueError) as cm:
            Config(api_port=70000)
        self.assertIn("api_port must be an integer between 1 and 65535", str(cm.exception))

        with self.assertRaises(ValueError) as cm:
            Config(log_level="VERBOSE")
        self.assertIn("log_level must be one of", str(cm.exception))

    def test_repr_hides_secrets(self):
        config = Config(certificate_password="pfx-password", dnsimple_token="dnsimple-token")

        self.assertNotIn("pfx-password", repr(config))
        self.assertNotIn("dnsimple-token", repr(config))

    def test_validation_result_separates_warnings(self):
        result = ConfigValidationResult(
            is_valid=False,
            errors=[ConfigValidationError("a", "broken"), ConfigValidationError("b", "odd", "warning")],
            warnings=[]
        )

        self.assertEqual(len(result.errors), 1)
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("ERROR: a - broken", result.get_error_summary())
        self.assertIn("WARNING: b - odd", result.get_error_summary())


class TestConfigService(unittest.TestCase):
    """Test cases for ConfigService."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.log_file_path = os.path.join(self.temp_dir.name, "cert_binder.log")
        self.config_path = os.path.join(self.temp_dir.name, "config.properties")
        self.service = ConfigService(environ={})

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write_config(self, content):
        with open(self.config_path, 'w') as f:
            f.write(content)

    def test_load_config(self):
        self._write_config(VALID_CONFIG.format(log_file_path=self.log_file_path))

        config = self.service.load_config(self.config_path)

        self.assertEqual(config.certificate_password, "pfx-password")
        self.assertEqual(config.certificate_container, "issued")
        self.assertFalse(config.bind_on_issue)
        self.assertEqual(config.max_binding_workers, 4)
        self.assertIn("AccountName=certs", config.certificate_store_connection)
        self.assertEqual(config.dnsimple_url, "https://api.sandbox.dnsimple.com")
        self.assertEqual(config.dnsimple_token, "dnsimple-token")
        self.assertEqual(config.appservice_access_token, "management-token")
        self.assertEqual(config.api_port, 8080)
        self.assertEqual(config.log_level, "DEBUG")
        self.assertTrue(config.binding_enabled)
        self.assertIs(self.service.get_config(), config)

    def test_environment_overrides_file(self):
        self._write_config(VALID_CONFIG.format(log_file_path=self.log_file_path))
        service = ConfigService(environ={"DNSIMPLE_TOKEN": "from-environment", "BIND_ON_ISSUE": "true"})

        config = service.load_config(self.config_path)

        self.assertEqual(config.dnsimple_token, "from-environment")
        self.assertTrue(config.bind_on_issue)

    def test_load_from_environment(self):
        config = self.service.load_from_environment({
            "CERTIFICATE_PASSWORD": "pfx-password",
            "CERTIFICATE_STORE_CONNECTION": "UseDevelopmentStorage=true",
            "DNSIMPLE_TOKEN": "dnsimple-token",
            "APPSERVICE_SUBSCRIPTION_ID": "subscription",
            "APPSERVICE_ACCESS_TOKEN": "",
            "PORT": "7071",
            "LOG_FILE_PATH": self.log_file_path,
        })

        self.assertEqual(config.certificate_password, "pfx-password")
        self.assertEqual(config.api_port, 7071)
        self.assertIsNone(config.appservice_access_token)
        self.assertFalse(config.binding_enabled)
        self.assertEqual(config.certificate_container, "certificates")

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.service.load_config(os.path.join(self.temp_dir.name, "missing.properties"))

    def test_invalid_integer(self):
        self._write_config("[app]\napi_port = eighty\n")

        with self.assertRaises(ValueError) as cm:
            self.service.load_config(self.config_path)
        self.assertIn("app.api_port", str(cm.exception))

    def test_missing_secrets_are_errors(self):
        self._write_config(f"[app]\nlog_file_path = {self.log_file_path}\n")

        with self.assertRaises(ValueError) as cm:
            self.service.load_config(self.config_path)

        message = str(cm.exception)
        self.assertIn("certificate_password", message)
        self.assertIn("dnsimple_token", message)

    def test_invalid_url_is_error(self):
        config = Config(certificate_password="p", dnsimple_token="t", dnsimple_url="api.dnsimple.com",
                        log_file_path=self.log_file_path)

        result = self.service.validate_config(config)

        self.assertFalse(result.is_valid)
        self.assertEqual([e.field for e in result.errors], ["dnsimple_url"])

    def test_missing_binding_settings_are_warnings(self):
        config = Config(certificate_password="p", dnsimple_token="t", log_file_path=self.log_file_path)

        result = self.service.validate_config(config)

        self.assertTrue(result.is_valid)
        self.assertEqual([w.field for w in result.warnings], ["appservice_subscription_id"])

    def test_missing_log_directory_is_warning(self):
        config = Config(certificate_password="p", dnsimple_token="t", appservice_subscription_id="s",
                        appservice_access_token="a",
                        log_file_path=os.path.join(self.temp_dir.name, "missing", "app.log"))

        result = self.service.validate_config(config)

        self.assertTrue(result.is_valid)
        self.assertEqual([w.field for w in result.warnings], ["log_file_path"])

    def test_parse_bool(self):
        for value in ("true", "Yes", "1", "on", "enabled"):
            self.assertTrue(self.service._parse_bool(value))
        for value in ("false", "no", "0", "off", ""):
            self.assertFalse(self.service._parse_bool(value))

    def test_get_config_before_loading(self):
        with self.assertRaises(ValueError):
            self.service.get_config()

    def test_create_default_config_file(self):
        path = os.path.join(self.temp_dir.name, "config", "default.properties")

        self.service.create_default_config_file(path)

        self.assertTrue(os.path.exists(path))
        with open(path) as f:
            content = f.read()
        self.assertIn("[certificates]", content)
        self.assertIn("[dnsimple]", content)
        self.assertIn("[appservice]", content)


if __name__ == '__main__':
    unittest.main()
