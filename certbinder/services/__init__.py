"""
Services package for the certificate binding service.
"""

from .clock import Clock, SystemClock
from .config_service import ConfigService
from .logging_service import LoggingService
from .dnsimple_client import CertificateSourceInterface, DNSimpleClient
from .blob_client import BlobStorageInterface, BlobClient
from .app_service_client import AppServiceInterface, AppServiceClient
from .certificate_service import CertificateService
from .dnsimple_service import DNSimpleService

__all__ = [
    'Clock',
    'SystemClock',
    'ConfigService',
    'LoggingService',
    'CertificateSourceInterface',
    'DNSimpleClient',
    'BlobStorageInterface',
    'BlobClient',
    'AppServiceInterface',
    'AppServiceClient',
    'CertificateService',
    'DNSimpleService'
]
