"""
Client for the certificate endpoints of the DNSimple v2 API.
"""
import logging
from typing import Any, List
from urllib.parse import urlparse

import requests

from ..models.webhook import Certificate, CertificateChain, CertificatePrivateKey


class CertificateSourceInterface:
    """Interface for retrieving issued certificates and their private keys."""

    def get_certificates(self, account_id: int, domain_id: int) -> List[Certificate]:
        """List the certificates of a domain."""
        raise NotImplementedError

    def get_certificate(self, account_id: int, domain_id: int, certificate_id: int) -> Certificate:
        """Get a single certificate."""
        raise NotImplementedError

    def get_certificate_chain(self, account_id: int, domain_id: int,
                              certificate_id: int) -> CertificateChain:
        """Download the PEM certificate chain of an issued certificate."""
        raise NotImplementedError

    def get_certificate_private_key(self, account_id: int, domain_id: int,
                                    certificate_id: int) -> CertificatePrivateKey:
        """Download the PEM private key of an issued certificate."""
        raise NotImplementedError


class DNSimpleClient(CertificateSourceInterface):
    """requests-based implementation of the DNSimple certificate API."""

    def __init__(self, base_url: str, token: str, timeout: int = 30, user_agent: str = None):
        """
        Initialize the DNSimple client.

        Args:
            base_url: Root URL of the API, for example https://api.dnsimple.com
            token: OAuth or account access token
            timeout: Request timeout in seconds
            user_agent: Custom user agent string

        Raises:
            ValueError: If the base URL is not an http(s) URL
        """
        parsed = urlparse(base_url or "")
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError(f"Invalid DNSimple API URL: {base_url}")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = self._create_session(token, user_agent or "tls-cert-binder")

    def _create_session(self, token: str, user_agent: str) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'Authorization': f'Bearer {token}',
            'Accept': 'application/json',
            'User-Agent': user_agent,
        })
        return session

    def _certificates_path(self, account_id: int, domain_id: int) -> str:
        return f"/v2/{account_id}/domains/{domain_id}/certificates"

    def _get(self, path: str) -> Any:
        """
        Issue a GET request and unwrap the response envelope.

        Args:
            path: Path relative to the API root

        Returns:
            The value of the "data" member of the response

        Raises:
            requests.HTTPError: If the API responds with an error status
            ValueError: If the response is not a JSON envelope
        """
        url = f"{self.base_url}{path}"
        self.logger.debug(f"GET {url}")

        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict) or 'data' not in body:
            raise ValueError(f"Unexpected response from {url}: missing data envelope")

        return body['data']

    def get_certificates(self, account_id: int, domain_id: int) -> List[Certificate]:
        data = self._get(self._certificates_path(account_id, domain_id))
        certificates = [Certificate.from_dict(item) for item in data or []]
        self.logger.info(f"Found {len(certificates)} certificate(s) for domain {domain_id}")
        return certificates

    def get_certificate(self, account_id: int, domain_id: int, certificate_id: int) -> Certificate:
        path = f"{self._certificates_path(account_id, domain_id)}/{certificate_id}"
        return Certificate.from_dict(self._get(path))

    def get_certificate_chain(self, account_id: int, domain_id: int,
                              certificate_id: int) -> CertificateChain:
        path = f"{self._certificates_path(account_id, domain_id)}/{certificate_id}/download"
        chain = CertificateChain.from_dict(self._get(path))
        self.logger.info(f"Downloaded certificate chain for certificate {certificate_id}")
        return chain

    def get_certificate_private_key(self, account_id: int, domain_id: int,
                                    certificate_id: int) -> CertificatePrivateKey:
        path = f"{self._certificates_path(account_id, domain_id)}/{certificate_id}/private_key"
        private_key = CertificatePrivateKey.from_dict(self._get(path))
        self.logger.info(f"Downloaded private key for certificate {certificate_id}")
        return private_key

    def close(self):
        self.session.close()
