"""
Certificate and binding data models.
"""
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes


@dataclass
class RsaKeyParameters:
    """
    The eight big-endian integers of a two-prime PKCS#1 RSA private key.

    Each field is a mutable buffer so it can be overwritten with zeros as
    soon as the private key derived from it exists. Use as a context
    manager to guarantee the buffers are cleared on every exit path.
    """
    modulus: bytearray
    public_exponent: bytearray
    private_exponent: bytearray
    prime_p: bytearray
    prime_q: bytearray
    exponent_dp: bytearray
    exponent_dq: bytearray
    coefficient_inverse_q: bytearray

    def buffers(self) -> List[bytearray]:
        """Get the field buffers in PKCS#1 order."""
        return [getattr(self, f.name) for f in fields(self)]

    def is_complete(self) -> bool:
        """Check that every field is present and non-empty."""
        return all(len(buffer) > 0 for buffer in self.buffers())

    def is_cleared(self) -> bool:
        return all(not any(buffer) for buffer in self.buffers())

    def clear(self):
        """Overwrite every buffer with zeros."""
        for buffer in self.buffers():
            for index in range(len(buffer)):
                buffer[index] = 0

    def __enter__(self) -> 'RsaKeyParameters':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        self.clear()
        return False

    def __repr__(self) -> str:
        # Never render key material.
        lengths = ", ".join(f"{f.name}={len(getattr(self, f.name))}B" for f in fields(self))
        return f"<RsaKeyParameters({lengths})>"


@dataclass
class CertificateHandle:
    """An X.509 certificate, optionally carrying its private key."""
    certificate: x509.Certificate
    private_key: Optional[PrivateKeyTypes] = None
    friendly_name: Optional[str] = None

    @property
    def has_private_key(self) -> bool:
        return self.private_key is not None


@dataclass(frozen=True)
class CertificateMaterial:
    """Everything needed to bind one issued certificate to host names."""
    raw_bytes: bytes = field(repr=False)
    thumbprint: str
    not_before: datetime
    not_after: datetime
    host_names: Tuple[str, ...]
    password: str = field(repr=False)
    private_key_pem: Optional[str] = field(default=None, repr=False)
    private_key_pfx: Optional[bytes] = field(default=None, repr=False)

    def covers(self, host_name: str) -> bool:
        """Check whether the certificate covers a host name (case-insensitive)."""
        return host_name.lower() in self.host_names


@dataclass(frozen=True)
class HostNameBindingSnapshot:
    """The certificate currently bound to one host name of an application."""
    host_name: str
    current_thumbprint: Optional[str] = None


@dataclass
class ApplicationTarget:
    """A web application whose host name bindings can be updated."""
    name: str
    resource_group: str = ""
    region: str = ""
    resource_id: str = ""
    handle: Any = field(default=None, repr=False, compare=False)


class BindingOutcome(Enum):
    """Terminal states of a certificate binding operation."""
    SUCCESS = "success"
    SKIPPED = "skipped"


@dataclass
class BindingResult:
    """Result of binding one certificate to the application fleet."""
    outcome: BindingOutcome
    updated: int = 0
    reason: Optional[str] = None
    thumbprint: Optional[str] = None
    per_application: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def success_result(cls, thumbprint: str, per_application: Dict[str, int]) -> 'BindingResult':
        """Create a successful binding result."""
        return cls(
            outcome=BindingOutcome.SUCCESS,
            updated=sum(per_application.values()),
            thumbprint=thumbprint,
            per_application=dict(per_application)
        )

    @classmethod
    def skipped_result(cls, reason: str, thumbprint: Optional[str] = None) -> 'BindingResult':
        """Create a result for a certificate that was not bound at all."""
        return cls(outcome=BindingOutcome.SKIPPED, reason=reason, thumbprint=thumbprint)

    @property
    def skipped(self) -> bool:
        return self.outcome is BindingOutcome.SKIPPED
