"""
Exceptions raised while handling certificate material.
"""
from datetime import datetime
from typing import Optional


class CertificateError(Exception):
    """Base class for all certificate handling errors."""


class FormatError(CertificateError):
    """Malformed PEM, DER or PKCS#12 structure."""


class UnsupportedKeyFormat(FormatError):
    """The private key does not start with a supported SEQUENCE encoding."""


class UnsupportedKeyVersion(FormatError):
    """The private key version field is not an INTEGER of length one."""


class InvalidKeyPadding(FormatError):
    """The private key version is not that of a two-prime RSA key."""


class ExportError(CertificateError):
    """A certificate could not be exported as a password-protected archive."""


class MissingIdentifierError(CertificateError):
    """A webhook payload does not identify the account, domain or certificate."""


class CertificateValidityError(CertificateError):
    """The current instant lies outside a certificate's validity window."""

    def __init__(self, message: str, thumbprint: str, boundary: Optional[datetime] = None):
        super().__init__(message)
        self.thumbprint = thumbprint
        self.boundary = boundary


class NotYetValid(CertificateValidityError):
    """The certificate's notBefore instant is in the future."""


class Expired(CertificateValidityError):
    """The certificate's notAfter instant is in the past."""
