"""
Data models for DNSimple webhooks and certificate API responses.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class WebhookAccount:
    """The account a webhook event belongs to."""
    id: int = 0
    display: Optional[str] = None
    identifier: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WebhookAccount':
        data = data or {}
        return cls(
            id=_as_int(data.get('id')),
            display=data.get('display'),
            identifier=data.get('identifier')
        )


@dataclass
class WebhookActor:
    """The user or system that triggered a webhook event."""
    id: Optional[str] = None
    entity: Optional[str] = None
    pretty: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WebhookActor':
        data = data or {}
        actor_id = data.get('id')
        return cls(
            id=str(actor_id) if actor_id is not None else None,
            entity=data.get('entity'),
            pretty=data.get('pretty')
        )


@dataclass
class Certificate:
    """A certificate as described by the DNSimple API."""
    id: int = 0
    domain_id: int = 0
    contact_id: int = 0
    name: Optional[str] = None
    common_name: Optional[str] = None
    years: int = 0
    csr: Optional[str] = None
    state: Optional[str] = None
    auto_renew: bool = False
    alternate_names: List[str] = field(default_factory=list)
    authority_identifier: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    expires_on: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Certificate':
        data = data or {}
        return cls(
            id=_as_int(data.get('id')),
            domain_id=_as_int(data.get('domain_id')),
            contact_id=_as_int(data.get('contact_id')),
            name=data.get('name'),
            common_name=data.get('common_name'),
            years=_as_int(data.get('years')),
            csr=data.get('csr'),
            state=data.get('state'),
            auto_renew=bool(data.get('auto_renew', False)),
            alternate_names=list(data.get('alternate_names') or []),
            authority_identifier=data.get('authority_identifier'),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
            expires_on=data.get('expires_on')
        )


@dataclass
class CertificateChain:
    """The PEM-encoded certificates of an issued certificate."""
    server: Optional[str] = None
    root: Optional[str] = None
    chain: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CertificateChain':
        data = data or {}
        return cls(
            server=data.get('server'),
            root=data.get('root'),
            chain=list(data.get('chain') or [])
        )


@dataclass
class CertificatePrivateKey:
    """The PEM-encoded private key of an issued certificate."""
    private_key: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CertificatePrivateKey':
        data = data or {}
        return cls(private_key=data.get('private_key'))


@dataclass
class WebhookPayload:
    """A DNSimple webhook event."""
    name: Optional[str] = None
    api_version: Optional[str] = None
    request_identifier: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    account: WebhookAccount = field(default_factory=WebhookAccount)
    actor: WebhookActor = field(default_factory=WebhookActor)

    @classmethod
    def from_dict(cls, data: Any) -> Optional['WebhookPayload']:
        """Create a payload from decoded JSON, or None if it is not an object."""
        if not isinstance(data, dict):
            return None

        payload_data = data.get('data')

        return cls(
            name=data.get('name'),
            api_version=data.get('api_version'),
            request_identifier=data.get('request_identifier'),
            data=payload_data if isinstance(payload_data, dict) else {},
            account=WebhookAccount.from_dict(data.get('account')),
            actor=WebhookActor.from_dict(data.get('actor'))
        )

    def get_certificate(self) -> Certificate:
        """Get the certificate the event refers to."""
        return Certificate.from_dict(self.data.get('certificate'))


@dataclass
class WebhookResult:
    """Result of processing a webhook request."""
    status_code: int = 200
    processed: bool = False
    message: Optional[str] = None
    request_id: Optional[str] = None
    bindings_updated: int = 0
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON response body."""
        result = {
            'requestId': self.request_id,
            'message': self.message,
            'processed': self.processed,
            'statusCode': self.status_code,
            'bindingsUpdated': self.bindings_updated
        }

        if self.details is not None:
            result['details'] = self.details

        return result
