"""
Azure Blob Storage client for archiving issued certificates.
"""
import logging
import threading
from typing import Dict, Optional, Set

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings


PEM_CONTENT_TYPE = "application/x-pem-file"
PFX_CONTENT_TYPE = "application/x-pkcs12"


def _filter_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Drop entries with empty values, which blob storage rejects."""
    return {key: str(value) for key, value in (metadata or {}).items() if value}


class BlobStorageInterface:
    """Interface for storing certificate files."""

    def upload_text(self, container: str, name: str, content: str,
                    metadata: Optional[Dict[str, str]] = None) -> None:
        """Upload text content as a blob."""
        raise NotImplementedError

    def upload_bytes(self, container: str, name: str, data: bytes,
                     metadata: Optional[Dict[str, str]] = None) -> None:
        """Upload binary content as a blob."""
        raise NotImplementedError


class BlobClient(BlobStorageInterface):
    """Blob storage backed by the azure-storage-blob SDK."""

    def __init__(self, connection_string: str = None, service_client: BlobServiceClient = None):
        """
        Initialize the blob client.

        Args:
            connection_string: Storage account connection string
            service_client: Pre-built service client, used instead of the connection string

        Raises:
            ValueError: If neither a connection string nor a service client is given
        """
        if service_client is None:
            if not connection_string:
                raise ValueError("A storage connection string is required")
            service_client = BlobServiceClient.from_connection_string(connection_string)

        self.service_client = service_client
        self.logger = logging.getLogger(__name__)
        self._ensured: Set[str] = set()
        self._lock = threading.Lock()

    def _ensure_container(self, container: str):
        with self._lock:
            if container in self._ensured:
                return

            container_client = self.service_client.get_container_client(container)
            try:
                container_client.create_container()
                self.logger.info(f"Created blob container {container}")
            except ResourceExistsError:
                pass

            self._ensured.add(container)

    def _upload(self, container: str, name: str, data, content_type: str,
                metadata: Optional[Dict[str, str]]):
        self._ensure_container(container)

        blob_client = self.service_client.get_blob_client(container=container, blob=name)
        blob_client.upload_blob(
            data,
            overwrite=True,
            metadata=_filter_metadata(metadata),
            content_settings=ContentSettings(content_type=content_type)
        )

        self.logger.info(f"Uploaded blob {container}/{name}")

    def upload_text(self, container: str, name: str, content: str,
                    metadata: Optional[Dict[str, str]] = None) -> None:
        self._upload(container, name, content.encode('utf-8'), PEM_CONTENT_TYPE, metadata)

    def upload_bytes(self, container: str, name: str, data: bytes,
                     metadata: Optional[Dict[str, str]] = None) -> None:
        self._upload(container, name, bytes(data), PFX_CONTENT_TYPE, metadata)
