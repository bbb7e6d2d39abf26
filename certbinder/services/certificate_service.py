"""
Binds issued TLS certificates to the App Service host names they cover.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from ..models.certificates import ApplicationTarget, BindingResult, CertificateMaterial
from ..security.certificates import (
    check_validity, current_instant, get_subject_alternate_names, get_thumbprint,
    get_validity_window, load_pfx
)
from ..security.errors import CertificateValidityError
from .app_service_client import AppServiceInterface
from .clock import Clock


NO_DATA_REASON = "Not processing certificate as it contains no data."


class CertificateService:
    """Reconciles a certificate against the host name bindings of every application."""

    def __init__(self,
                 certificate_password: str,
                 client: AppServiceInterface,
                 clock: Clock,
                 max_workers: int = 1,
                 logging_service=None):
        """
        Initialize the certificate service.

        Args:
            certificate_password: Password protecting the PKCS#12 archives
            client: Application management client
            clock: Clock used for the validity check
            max_workers: Number of applications reconciled concurrently
            logging_service: Optional LoggingService for timing bind operations
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.certificate_password = certificate_password
        self.client = client
        self.clock = clock
        self.max_workers = max_workers
        self.logging_service = logging_service
        self.logger = logging.getLogger(__name__)

    def parse_certificate(self, raw_data: Optional[bytes],
                          common_name: Optional[str] = None) -> Optional[CertificateMaterial]:
        """
        Parse a PKCS#12 archive into the material needed for binding.

        Args:
            raw_data: The password-protected archive
            common_name: Extra host name to cover, usually the subject's common name

        Returns:
            CertificateMaterial, or None if there is no data or the
            certificate is outside its validity window

        Raises:
            FormatError: If the data is not a readable archive
        """
        if not raw_data:
            self.logger.warning(NO_DATA_REASON)
            return None

        try:
            return self._load_material(raw_data, common_name)
        except CertificateValidityError as e:
            self.logger.warning(str(e))
            return None

    def _load_material(self, raw_data: bytes, common_name: Optional[str]) -> CertificateMaterial:
        handle = load_pfx(raw_data, self.certificate_password)

        check_validity(handle, current_instant(self.clock))

        host_names = get_subject_alternate_names(handle)

        if common_name:
            common_name = common_name.lower()
            if common_name not in host_names:
                host_names.append(common_name)

        not_before, not_after = get_validity_window(handle)

        return CertificateMaterial(
            raw_bytes=bytes(raw_data),
            thumbprint=get_thumbprint(handle),
            not_before=not_before,
            not_after=not_after,
            host_names=tuple(host_names),
            password=self.certificate_password
        )

    def bind(self, raw_data: Optional[bytes], common_name: Optional[str] = None) -> BindingResult:
        """
        Bind a certificate to every application host name it covers.

        Args:
            raw_data: The password-protected PKCS#12 archive
            common_name: Extra host name to cover

        Returns:
            BindingResult with the number of bindings updated, or a skipped
            result giving the reason no binding was attempted

        Raises:
            FormatError: If the data is not a readable archive
        """
        if not raw_data:
            self.logger.warning(NO_DATA_REASON)
            return BindingResult.skipped_result(NO_DATA_REASON)

        try:
            material = self._load_material(raw_data, common_name)
        except CertificateValidityError as e:
            self.logger.warning(str(e))
            return BindingResult.skipped_result(str(e), e.thumbprint)

        if self.logging_service:
            with self.logging_service.measure_performance(
                    'bind_certificate', {'thumbprint': material.thumbprint}):
                return self.reconcile(material)

        return self.reconcile(material)

    def reconcile(self, material: CertificateMaterial) -> BindingResult:
        """
        Update every binding covered by a certificate that does not already use it.

        Args:
            material: The parsed certificate

        Returns:
            BindingResult with per-application update counts
        """
        applications = self.client.get_applications()

        if self.max_workers > 1 and len(applications) > 1:
            per_application = self._reconcile_concurrently(applications, material)
        else:
            per_application = {}
            for application in applications:
                updated = self._update_bindings(application, material)
                per_application[application.name] = per_application.get(application.name, 0) + updated

        result = BindingResult.success_result(material.thumbprint, per_application)

        self.logger.info(
            f"Certificate with thumbprint {material.thumbprint} bound to "
            f"{result.updated:,} App Service instance host name(s)."
        )

        return result

    def _reconcile_concurrently(self, applications: List[ApplicationTarget],
                                material: CertificateMaterial) -> Dict[str, int]:
        per_application = {}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(applications))) as executor:
            future_to_application = {
                executor.submit(self._update_bindings, application, material): application
                for application in applications
            }

            for future in as_completed(future_to_application):
                application = future_to_application[future]
                try:
                    updated = future.result()
                except Exception:
                    self.logger.error(
                        f"Failed to update bindings for App Service {application.name}.",
                        exc_info=True
                    )
                    raise

                per_application[application.name] = per_application.get(application.name, 0) + updated

        return per_application

    def _update_bindings(self, application: ApplicationTarget, material: CertificateMaterial) -> int:
        bindings = self.client.get_host_name_bindings(application)
        updated = 0

        for binding in bindings:
            host_name = binding.host_name

            if not material.covers(host_name):
                self.logger.debug(
                    f"Certificate with thumbprint {material.thumbprint} is not supported for host name {host_name}."
                )
                continue

            if not binding.current_thumbprint:
                self.logger.debug(f"No binding information is available for host name {host_name}.")
                continue

            if binding.current_thumbprint.lower() == material.thumbprint:
                self.logger.debug(
                    f"Certificate with thumbprint {material.thumbprint} is already bound to host name {host_name}."
                )
                continue

            self.client.update_binding(
                application,
                host_name,
                material.thumbprint,
                material.raw_bytes,
                material.password
            )

            self.logger.info(
                f"Bound certificate with thumbprint {material.thumbprint} to host name {host_name} "
                f"for App Service {application.name}."
            )

            updated += 1

        self.logger.info(f"Updated {updated:,} host name binding(s) for App Service {application.name}.")

        return updated
