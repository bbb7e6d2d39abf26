"""
Handles DNSimple webhooks for newly issued certificates.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..models.webhook import WebhookPayload, WebhookResult
from ..security.certificates import (
    combine, create_certificate, export_pfx, get_common_name, get_metadata,
    get_thumbprint, get_validity_window
)
from ..security.errors import MissingIdentifierError
from .blob_client import BlobStorageInterface
from .certificate_service import CertificateService
from .dnsimple_client import CertificateSourceInterface


SUPPORTED_API_VERSION = "v2"
CERTIFICATE_ISSUE_EVENT = "certificate.issue"


@dataclass
class IssuedCertificate:
    """PEM and PKCS#12 files downloaded for one issued certificate."""
    server: Optional[str] = None
    root: Optional[str] = None
    chain: List[str] = field(default_factory=list)
    private_key_pem: Optional[str] = field(default=None, repr=False)
    private_key_pfx: Optional[bytes] = field(default=None, repr=False)


class DNSimpleService:
    """Service that archives and binds certificates announced by DNSimple webhooks."""

    def __init__(self,
                 certificate_password: str,
                 certificate_source: CertificateSourceInterface,
                 blob_client: BlobStorageInterface,
                 certificate_service: Optional[CertificateService] = None,
                 container_name: str = "certificates",
                 debug: bool = False,
                 logging_service=None,
                 bind_on_issue: bool = True):
        self.certificate_password = certificate_password
        self.certificate_source = certificate_source
        self.blob_client = blob_client
        self.certificate_service = certificate_service
        self.container_name = container_name
        self.debug = debug
        self.logging_service = logging_service
        self.bind_on_issue = bind_on_issue
        self.logger = logging.getLogger(__name__)

    def process(self, body: Union[str, bytes, Dict[str, Any], None]) -> WebhookResult:
        """
        Process a webhook request body.

        Args:
            body: Raw JSON text or the already decoded JSON value

        Returns:
            WebhookResult describing the outcome; never raises
        """
        result = WebhookResult(status_code=200, processed=False)

        try:
            self.logger.info("Received HTTP request to DNSimpleWebhook.")

            payload = self._deserialize_payload(body)

            if payload is None:
                result.message = "Bad request."
                result.status_code = 400
                return result

            self.logger.info(
                f"Received DNSimple webhook event {payload.name} with request Id {payload.request_identifier}."
            )

            result.request_id = payload.request_identifier
            result.message = f"Webhook '{payload.request_identifier}' acknowledged."

            if self._can_handle_payload(payload):
                result.bindings_updated = self._process_certificate(payload)
                result.processed = True

        except Exception as e:
            self.logger.error(f"Failed to handle DNSimple webhook: {e}", exc_info=True)
            if self.logging_service:
                self.logging_service.track_error(e, {'request_id': result.request_id})

            result.message = "Internal server error."
            result.status_code = 500
            result.processed = False

            if self.debug:
                result.details = f"{type(e).__name__}: {e}"

        return result

    def _deserialize_payload(self, body: Union[str, bytes, Dict[str, Any], None]) -> Optional[WebhookPayload]:
        if isinstance(body, (str, bytes, bytearray)):
            self.logger.debug(f'Request content: "{body!r}"')
            try:
                body = json.loads(body)
            except ValueError:
                self.logger.info("DNSimple webhook body is not valid JSON.")
                return None

        return WebhookPayload.from_dict(body)

    def _can_handle_payload(self, payload: WebhookPayload) -> bool:
        if payload.api_version != SUPPORTED_API_VERSION:
            self.logger.info(
                f"DNSimple payload {payload.request_identifier} is for an unknown API version: {payload.api_version}"
            )
            return False

        if payload.name != CERTIFICATE_ISSUE_EVENT:
            self.logger.info(
                f"DNSimple payload {payload.request_identifier} is of an unknown name: {payload.name}"
            )
            return False

        return True

    def _process_certificate(self, payload: WebhookPayload) -> int:
        """Download, archive and optionally bind the certificate; returns the bindings updated."""
        issued = self._get_certificate_data(payload)
        common_name = self._upload_certificates(issued)

        if self.certificate_service is None or not self.bind_on_issue:
            self.logger.debug("Certificate binding is disabled; not binding issued certificate.")
            return 0

        result = self.certificate_service.bind(issued.private_key_pfx, common_name)
        return result.updated

    def _get_certificate_data(self, payload: WebhookPayload) -> IssuedCertificate:
        certificate = payload.get_certificate()

        account_id = payload.account.id
        domain_id = certificate.domain_id
        certificate_id = certificate.id

        if not account_id:
            raise MissingIdentifierError("Failed to deserialize the account Id from the payload.")
        if not domain_id:
            raise MissingIdentifierError("Failed to deserialize the domain Id from the payload.")
        if not certificate_id:
            raise MissingIdentifierError("Failed to deserialize the certificate Id from the payload.")

        self.logger.info(
            f"Getting data from account {account_id} for domain {domain_id} and certificate {certificate_id}."
        )

        chain = self.certificate_source.get_certificate_chain(account_id, domain_id, certificate_id)
        private_key = self.certificate_source.get_certificate_private_key(account_id, domain_id, certificate_id)

        self.logger.info(
            f"Downloaded certificate data from account {account_id} for domain {domain_id} "
            f"and certificate {certificate_id}."
        )

        issued = IssuedCertificate(
            server=chain.server,
            root=chain.root,
            chain=list(chain.chain),
            private_key_pem=private_key.private_key
        )

        handle = combine(issued.server, issued.private_key_pem)
        handle.friendly_name = get_common_name(handle)
        issued.private_key_pfx = export_pfx(handle, self.certificate_password)

        self.logger.debug("Extracted PFX private key from PEM private key.")

        return issued

    def _upload_certificates(self, issued: IssuedCertificate) -> str:
        """Upload every file of an issued certificate; returns its common name."""
        handle = create_certificate(issued.server)
        metadata = get_metadata(handle)

        common_name = get_common_name(handle)
        not_before, _ = get_validity_window(handle)

        metadata["CommonName"] = common_name

        blob_prefix = (
            f"{common_name.replace('.', '-')}_{get_thumbprint(handle)}_{not_before.strftime('%Y-%m-%d')}"
        )

        self._upload_files(issued, blob_prefix, metadata)

        return common_name

    def _upload_files(self, issued: IssuedCertificate, blob_prefix: str, metadata: Dict[str, str]):
        container = self.container_name
        self.logger.info(f"Uploading certificates to container {container}.")

        count = 0

        if len(issued.chain) == 1:
            self.blob_client.upload_text(container, f"{blob_prefix}.chain.pem", issued.chain[0], metadata)
            count += 1
        else:
            for index, chain_certificate in enumerate(issued.chain):
                self.blob_client.upload_text(
                    container, f"{blob_prefix}.chain.{index}.pem", chain_certificate, metadata
                )
                count += 1

        if issued.server is not None:
            self.blob_client.upload_text(container, f"{blob_prefix}.cert.pem", issued.server, metadata)
            count += 1

        if issued.root is not None:
            self.blob_client.upload_text(container, f"{blob_prefix}.root.pem", issued.root, metadata)
            count += 1

        if issued.private_key_pem is not None:
            self.blob_client.upload_text(container, f"{blob_prefix}.privkey.pem", issued.private_key_pem, metadata)
            count += 1

        if issued.private_key_pfx is not None:
            self.blob_client.upload_bytes(container, f"{blob_prefix}.privkey.pfx", issued.private_key_pfx, metadata)
            count += 1

        self.logger.info(f"Uploaded {count} certificates to container {container}.")
