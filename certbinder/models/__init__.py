"""
Models package for the certificate binding service.
"""

from .config import Config, ConfigValidationError, ConfigValidationResult
from .certificates import (
    RsaKeyParameters, CertificateHandle, CertificateMaterial, HostNameBindingSnapshot,
    ApplicationTarget, BindingOutcome, BindingResult
)
from .webhook import (
    WebhookPayload, WebhookAccount, WebhookActor, WebhookResult,
    Certificate, CertificateChain, CertificatePrivateKey
)

__all__ = [
    'Config',
    'ConfigValidationError',
    'ConfigValidationResult',
    'RsaKeyParameters',
    'CertificateHandle',
    'CertificateMaterial',
    'HostNameBindingSnapshot',
    'ApplicationTarget',
    'BindingOutcome',
    'BindingResult',
    'WebhookPayload',
    'WebhookAccount',
    'WebhookActor',
    'WebhookResult',
    'Certificate',
    'CertificateChain',
    'CertificatePrivateKey'
]
