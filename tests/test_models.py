"""
Unit tests for webhook and certificate data models.
"""
import unittest
from datetime import datetime, timezone

from certbinder.models.certificates import (
    BindingOutcome, BindingResult, CertificateMaterial, RsaKeyParameters
)
from certbinder.models.webhook import CertificateChain, WebhookPayload, WebhookResult


class TestWebhookPayload(unittest.TestCase):
    """Test cases for WebhookPayload."""

    def test_from_dict(self):
        payload = WebhookPayload.from_dict({
            "name": "certificate.issue",
            "api_version": "v2",
            "request_identifier": "abc123",
            "data": {"certificate": {"id": "42", "domain_id": 7, "common_name": "site.local",
                                     "alternate_names": ["www.site.local"]}},
            "account": {"id": 1010, "display": "Example"},
            "actor": {"id": 1, "entity": "user", "pretty": "admin@site.local"}
        })

        self.assertEqual(payload.name, "certificate.issue")
        self.assertEqual(payload.account.id, 1010)
        self.assertEqual(payload.actor.id, "1")

        certificate = payload.get_certificate()
        self.assertEqual(certificate.id, 42)
        self.assertEqual(certificate.domain_id, 7)
        self.assertEqual(certificate.alternate_names, ["www.site.local"])

    def test_missing_sections_default(self):
        payload = WebhookPayload.from_dict({"name": "certificate.issue", "data": None})

        self.assertEqual(payload.data, {})
        self.assertEqual(payload.account.id, 0)
        self.assertEqual(payload.get_certificate().id, 0)

    def test_non_object(self):
        self.assertIsNone(WebhookPayload.from_dict(["certificate.issue"]))
        self.assertIsNone(WebhookPayload.from_dict("certificate.issue"))


class TestWebhookResult(unittest.TestCase):
    """Test cases for WebhookResult."""

    def test_to_dict_omits_missing_details(self):
        result = WebhookResult(processed=True, message="ok", request_id="abc123", bindings_updated=1)

        self.assertEqual(result.to_dict(), {
            'requestId': 'abc123',
            'message': 'ok',
            'processed': True,
            'statusCode': 200,
            'bindingsUpdated': 1
        })

    def test_to_dict_with_details(self):
        result = WebhookResult(status_code=500, details="ValueError: bad")
        self.assertEqual(result.to_dict()['details'], "ValueError: bad")


class TestCertificateModels(unittest.TestCase):
    """Test cases for certificate and binding models."""

    def test_chain_from_dict(self):
        chain = CertificateChain.from_dict({"server": "S", "root": None, "chain": ["A", "B"]})

        self.assertEqual(chain.server, "S")
        self.assertIsNone(chain.root)
        self.assertEqual(chain.chain, ["A", "B"])

    def test_material_covers_case_insensitive(self):
        now = datetime.now(timezone.utc)
        material = CertificateMaterial(
            raw_bytes=b"pfx", thumbprint="ab12", not_before=now, not_after=now,
            host_names=("site.local", "www.site.local"), password="p"
        )

        self.assertTrue(material.covers("WWW.Site.Local"))
        self.assertFalse(material.covers("other.local"))
        self.assertNotIn("pfx", repr(material))

    def test_binding_results(self):
        success = BindingResult.success_result("ab12", {"site-a": 2, "site-b": 1})
        skipped = BindingResult.skipped_result("No valid certificate found to process bindings for.")

        self.assertEqual(success.outcome, BindingOutcome.SUCCESS)
        self.assertEqual(success.updated, 3)
        self.assertFalse(success.skipped)
        self.assertTrue(skipped.skipped)
        self.assertEqual(skipped.updated, 0)

    def test_key_parameters_cleared_on_exit(self):
        parameters = RsaKeyParameters(*(bytearray(b"\x01\x02") for _ in range(8)))

        with parameters:
            self.assertTrue(parameters.is_complete())

        self.assertTrue(parameters.is_cleared())
        self.assertEqual(len(parameters.modulus), 2)


if __name__ == '__main__':
    unittest.main()
