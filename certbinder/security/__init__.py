"""
Security package for decoding, composing and inspecting TLS certificates.
"""
from .errors import (
    CertificateError, FormatError, UnsupportedKeyFormat, UnsupportedKeyVersion,
    InvalidKeyPadding, ExportError, MissingIdentifierError, CertificateValidityError,
    NotYetValid, Expired
)
from .pem import decode_pem
from .pkcs1 import decode_rsa_private_key
from .certificates import (
    create_certificate, compose_private, combine, export_pfx, load_pfx,
    get_thumbprint, get_validity_window, get_subject_alternate_names,
    get_common_name, get_metadata, get_signature_algorithm_name, check_validity,
    current_instant, is_valid_now
)

__all__ = [
    'CertificateError',
    'FormatError',
    'UnsupportedKeyFormat',
    'UnsupportedKeyVersion',
    'InvalidKeyPadding',
    'ExportError',
    'MissingIdentifierError',
    'CertificateValidityError',
    'NotYetValid',
    'Expired',
    'decode_pem',
    'decode_rsa_private_key',
    'create_certificate',
    'compose_private',
    'combine',
    'export_pfx',
    'load_pfx',
    'get_thumbprint',
    'get_validity_window',
    'get_subject_alternate_names',
    'get_common_name',
    'get_metadata',
    'get_signature_algorithm_name',
    'check_validity',
    'current_instant',
    'is_valid_now'
]
