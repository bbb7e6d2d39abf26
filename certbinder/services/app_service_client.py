"""
Azure App Service management client using the Resource Manager REST API.
"""
import base64
import logging
import threading
import weakref
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import quote

import requests

from ..models.certificates import ApplicationTarget, HostNameBindingSnapshot


class AppServiceInterface:
    """Interface for enumerating and updating web application TLS bindings."""

    def get_applications(self) -> List[ApplicationTarget]:
        """List the web applications available for binding."""
        raise NotImplementedError

    def get_host_name_bindings(self, application: ApplicationTarget) -> List[HostNameBindingSnapshot]:
        """List the host names of an application and the thumbprints bound to them."""
        raise NotImplementedError

    def update_binding(self, application: ApplicationTarget, host_name: str, thumbprint: str,
                       certificate: bytes, password: str) -> ApplicationTarget:
        """Install a certificate and bind it to a host name of an application."""
        raise NotImplementedError


class AppServiceClient(AppServiceInterface):
    """Resource Manager implementation of AppServiceInterface."""

    def __init__(self,
                 subscription_id: str,
                 access_token: str,
                 management_url: str = "https://management.azure.com",
                 api_version: str = "2022-09-01",
                 timeout: int = 30):
        """
        Initialize the App Service client.

        Args:
            subscription_id: Azure subscription containing the applications
            access_token: Bearer token for the management API
            management_url: Resource Manager endpoint
            api_version: Microsoft.Web API version
            timeout: Request timeout in seconds
        """
        if not subscription_id:
            raise ValueError("An Azure subscription id is required")
        if not access_token:
            raise ValueError("A management API access token is required")

        self.subscription_id = subscription_id
        self.management_url = management_url.rstrip('/')
        self.api_version = api_version
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        self._access_token = access_token
        self._local = threading.local()
        # Sessions of finished worker threads are released with the thread.
        self._sessions = weakref.WeakSet()
        self._sessions_lock = threading.Lock()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'Authorization': f'Bearer {self._access_token}',
            'Accept': 'application/json',
        })
        return session

    @property
    def session(self) -> requests.Session:
        """HTTP session of the calling thread; sessions are not shared between threads."""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._create_session()
            self.session = session
        return session

    @session.setter
    def session(self, session: requests.Session):
        self._local.session = session
        with self._sessions_lock:
            self._sessions.add(session)

    def close(self):
        """Close the HTTP sessions of every thread."""
        with self._sessions_lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            session.close()

    def _url(self, resource_path: str) -> str:
        return f"{self.management_url}{resource_path}"

    def _request(self, method: str, url: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = None if 'api-version=' in url else {'api-version': self.api_version}
        response = self.session.request(method, url, params=params, json=body, timeout=self.timeout)
        response.raise_for_status()
        return response.json() if response.content else {}

    def _list(self, url: str) -> Iterator[Dict[str, Any]]:
        """Yield every item of a paged list, following nextLink."""
        while url:
            page = self._request('GET', url)
            yield from page.get('value') or []
            url = page.get('nextLink')

    def _to_target(self, site: Dict[str, Any]) -> ApplicationTarget:
        properties = site.get('properties') or {}
        resource_id = site.get('id', '')
        resource_group = properties.get('resourceGroup') or self._resource_group_from_id(resource_id)

        return ApplicationTarget(
            name=site.get('name', ''),
            resource_group=resource_group,
            region=site.get('location', ''),
            resource_id=resource_id,
            handle=site
        )

    @staticmethod
    def _resource_group_from_id(resource_id: str) -> str:
        parts = resource_id.split('/')
        for index, part in enumerate(parts[:-1]):
            if part.lower() == 'resourcegroups':
                return parts[index + 1]
        return ''

    def get_applications(self) -> List[ApplicationTarget]:
        url = self._url(f"/subscriptions/{self.subscription_id}/providers/Microsoft.Web/sites")
        applications = [self._to_target(site) for site in self._list(url)]
        self.logger.info(f"Found {len(applications)} App Service application(s)")
        return applications

    def get_host_name_bindings(self, application: ApplicationTarget) -> List[HostNameBindingSnapshot]:
        url = self._url(f"{application.resource_id}/hostNameBindings")
        bindings = []

        for item in self._list(url):
            # Binding resources are named "{site}/{hostName}"
            host_name = item.get('name', '').split('/')[-1]
            properties = item.get('properties') or {}
            bindings.append(HostNameBindingSnapshot(
                host_name=host_name,
                current_thumbprint=properties.get('thumbprint') or None
            ))

        return bindings

    def update_binding(self, application: ApplicationTarget, host_name: str, thumbprint: str,
                       certificate: bytes, password: str) -> ApplicationTarget:
        """
        Upload the certificate to the application's resource group and bind it.

        Args:
            application: Application owning the host name
            host_name: Host name to bind the certificate to
            thumbprint: Thumbprint of the certificate
            certificate: PKCS#12 archive of the certificate and its private key
            password: Password protecting the archive

        Returns:
            The refreshed application

        Raises:
            ValueError: If no application is given
            requests.HTTPError: If the management API rejects a request
        """
        if application is None:
            raise ValueError("An application is required")

        certificate_name = quote(f"{thumbprint}##{application.region}#", safe='')
        certificate_url = self._url(
            f"/subscriptions/{self.subscription_id}/resourceGroups/{application.resource_group}"
            f"/providers/Microsoft.Web/certificates/{certificate_name}"
        )
        self._request('PUT', certificate_url, {
            'location': application.region,
            'properties': {
                'pfxBlob': base64.b64encode(certificate).decode('ascii'),
                'password': password,
            }
        })

        binding_url = self._url(f"{application.resource_id}/hostNameBindings/{quote(host_name, safe='')}")
        self._request('PUT', binding_url, {
            'properties': {
                'sslState': 'SniEnabled',
                'thumbprint': thumbprint.upper(),
            }
        })

        self.logger.debug(f"Bound certificate {thumbprint} to {host_name} on {application.name}")

        return self._to_target(self._request('GET', self._url(application.resource_id)))
