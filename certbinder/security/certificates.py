"""
Helpers for composing, exporting and inspecting X.509 certificates.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtensionOID, NameOID, SignatureAlgorithmOID

from ..models.certificates import CertificateHandle, RsaKeyParameters
from .errors import CertificateValidityError, ExportError, Expired, FormatError, NotYetValid
from .pem import decode_pem
from .pkcs1 import decode_rsa_private_key

logger = logging.getLogger(__name__)

METADATA_DATE_FORMAT = "%Y-%m-%d %H:%M:%SZ"
PFX_KDF_ROUNDS = 50000

SIGNATURE_ALGORITHM_NAMES = {
    SignatureAlgorithmOID.RSA_WITH_MD5: "md5WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA1: "sha1WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA224: "sha224WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS: "RSASSA-PSS",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ecdsa-with-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224: "ecdsa-with-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.DSA_WITH_SHA1: "dsa-with-sha1",
    SignatureAlgorithmOID.DSA_WITH_SHA224: "dsa-with-sha224",
    SignatureAlgorithmOID.DSA_WITH_SHA256: "dsa-with-sha256",
    SignatureAlgorithmOID.ED25519: "ed25519",
    SignatureAlgorithmOID.ED448: "ed448",
}

_GENERAL_NAME_LABELS = {
    x509.DNSName: "DNS Name",
    x509.RFC822Name: "RFC822 Name",
    x509.UniformResourceIdentifier: "URL",
    x509.IPAddress: "IP Address",
    x509.RegisteredID: "Registered ID",
    x509.DirectoryName: "Directory Address",
    x509.OtherName: "Other Name",
}


def create_certificate(public_key_pem: Union[str, bytes]) -> CertificateHandle:
    """
    Create a certificate without a private key from PEM text.

    Args:
        public_key_pem: The PEM-encoded public certificate

    Returns:
        CertificateHandle for the certificate

    Raises:
        FormatError: If the PEM text is not a certificate
    """
    if isinstance(public_key_pem, str):
        public_key_pem = public_key_pem.encode("utf-8")

    if not public_key_pem:
        raise FormatError("No public certificate PEM text was provided.")

    try:
        certificate = x509.load_pem_x509_certificate(public_key_pem)
    except ValueError as e:
        raise FormatError(f"Failed to load public certificate: {e}") from e

    return CertificateHandle(certificate=certificate)


def _to_private_key(parameters: RsaKeyParameters) -> rsa.RSAPrivateKey:
    def to_int(buffer: bytearray) -> int:
        return int.from_bytes(buffer, "big")

    public_numbers = rsa.RSAPublicNumbers(
        e=to_int(parameters.public_exponent),
        n=to_int(parameters.modulus)
    )

    private_numbers = rsa.RSAPrivateNumbers(
        p=to_int(parameters.prime_p),
        q=to_int(parameters.prime_q),
        d=to_int(parameters.private_exponent),
        dmp1=to_int(parameters.exponent_dp),
        dmq1=to_int(parameters.exponent_dq),
        iqmp=to_int(parameters.coefficient_inverse_q),
        public_numbers=public_numbers
    )

    try:
        return private_numbers.private_key()
    except ValueError as e:
        raise FormatError(f"The RSA parameters do not form a valid private key: {e}") from e


def compose_private(public_key_pem: Union[str, bytes], private_key_der) -> CertificateHandle:
    """
    Combine a public certificate with a DER-encoded PKCS#1 private key.

    The decoded RSA parameter buffers are zeroed before this returns,
    whether or not composition succeeds.

    Args:
        public_key_pem: The PEM-encoded public certificate
        private_key_der: DER bytes of the RSA private key

    Returns:
        CertificateHandle carrying both the certificate and its private key
    """
    with decode_rsa_private_key(private_key_der) as parameters:
        private_key = _to_private_key(parameters)
        handle = create_certificate(public_key_pem)

    handle.private_key = private_key
    return handle


def combine(public_key_pem: Union[str, bytes], private_key_pem: str) -> CertificateHandle:
    """
    Combine PEM-encoded public and private keys into one certificate.

    Args:
        public_key_pem: The PEM-encoded public certificate
        private_key_pem: The PEM-encoded RSA private key

    Returns:
        CertificateHandle carrying both keys
    """
    private_key_der = decode_pem(private_key_pem)

    try:
        return compose_private(public_key_pem, private_key_der)
    finally:
        private_key_der[:] = bytes(len(private_key_der))


def export_pfx(handle: CertificateHandle, password: str) -> bytes:
    """
    Export a certificate and its private key as a PKCS#12 archive.

    Args:
        handle: Certificate with an attached private key
        password: Password protecting the archive; empty means unencrypted

    Returns:
        The PKCS#12 bytes

    Raises:
        ExportError: If no private key is attached
    """
    if not handle.has_private_key:
        raise ExportError("Cannot export a certificate without a private key.")

    if password:
        # App Service imports only SHA1/3DES protected archives.
        encryption = (
            serialization.PrivateFormat.PKCS12.encryption_builder()
            .kdf_rounds(PFX_KDF_ROUNDS)
            .key_cert_algorithm(pkcs12.PBES.PBESv1SHA1And3KeyTripleDESCBC)
            .hmac_hash(hashes.SHA1())
            .build(password.encode("utf-8"))
        )
    else:
        encryption = serialization.NoEncryption()

    name = handle.friendly_name.encode("utf-8") if handle.friendly_name else None

    try:
        return pkcs12.serialize_key_and_certificates(
            name=name,
            key=handle.private_key,
            cert=handle.certificate,
            cas=None,
            encryption_algorithm=encryption
        )
    except (TypeError, ValueError) as e:
        raise ExportError(f"Failed to export certificate: {e}") from e


def load_pfx(raw_data: bytes, password: str) -> CertificateHandle:
    """
    Load a certificate and private key from a password-protected PKCS#12 archive.

    Raises:
        FormatError: If the data is empty, unreadable or holds no certificate
    """
    if not raw_data:
        raise FormatError("The certificate archive contains no data.")

    try:
        archive = pkcs12.load_pkcs12(bytes(raw_data), password.encode("utf-8") if password else None)
    except ValueError as e:
        raise FormatError(f"Failed to load certificate archive: {e}") from e

    if archive.cert is None:
        raise FormatError("The certificate archive does not contain a certificate.")

    friendly_name = archive.cert.friendly_name

    return CertificateHandle(
        certificate=archive.cert.certificate,
        private_key=archive.key,
        friendly_name=friendly_name.decode("utf-8") if friendly_name else None
    )


def get_thumbprint(handle: CertificateHandle) -> str:
    """Get the lower-case SHA-1 thumbprint of the DER-encoded certificate."""
    return handle.certificate.fingerprint(hashes.SHA1()).hex().lower()


def get_validity_window(handle: CertificateHandle) -> Tuple[datetime, datetime]:
    """Get the (notBefore, notAfter) instants of a certificate, in UTC."""
    certificate = handle.certificate
    return certificate.not_valid_before_utc, certificate.not_valid_after_utc


def _format_general_name(name: x509.GeneralName) -> str:
    label = _GENERAL_NAME_LABELS.get(type(name), type(name).__name__)

    if isinstance(name, x509.DirectoryName):
        value = name.value.rfc4514_string()
    elif isinstance(name, x509.RegisteredID):
        value = name.value.dotted_string
    elif isinstance(name, x509.OtherName):
        value = name.value.hex()
    else:
        value = str(name.value)

    return f"{label}={value}"


def format_subject_alternative_names(names: x509.SubjectAlternativeName) -> str:
    """Render a Subject Alternative Name extension as one name per line."""
    return "\n".join(_format_general_name(name) for name in names)


def get_subject_alternate_names(handle: CertificateHandle) -> List[str]:
    """
    Get the Subject Alternative Names of a certificate.

    Args:
        handle: The certificate to inspect

    Returns:
        Lower-cased names in first-seen order without duplicates; empty if
        the certificate has no Subject Alternative Name extension
    """
    try:
        extension = handle.certificate.extensions.get_extension_for_oid(
            ExtensionOID.SUBJECT_ALTERNATIVE_NAME
        )
    except x509.ExtensionNotFound:
        return []

    names = []

    for line in format_subject_alternative_names(extension.value).splitlines():
        if not line:
            continue

        name = re.split(r"[=:]", line)[-1].lower()

        if name not in names:
            names.append(name)

    return names


def _format_name(name: x509.Name) -> str:
    return ", ".join(rdn.rfc4514_string() for rdn in reversed(name.rdns))


def get_common_name(handle: CertificateHandle) -> str:
    """Get the common name of a certificate's subject."""
    attributes = handle.certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)

    if attributes:
        return str(attributes[0].value)

    subject = _format_name(handle.certificate.subject)
    return subject[3:] if subject.startswith("CN=") else subject


def get_signature_algorithm_name(certificate: x509.Certificate) -> str:
    """Get the conventional name of a certificate's signature algorithm, or its dotted OID."""
    oid = certificate.signature_algorithm_oid
    return SIGNATURE_ALGORITHM_NAMES.get(oid, oid.dotted_string)


def get_metadata(handle: CertificateHandle) -> Dict[str, str]:
    """
    Get the descriptive metadata stored alongside a certificate.

    Returns:
        Dictionary with FriendlyName, Issuer, IssuerName, NotAfter, NotBefore,
        SerialNumber, SignatureAlgorithm, Subject, SubjectName, Thumbprint
        and Version entries
    """
    certificate = handle.certificate
    not_before, not_after = get_validity_window(handle)

    serial_number = format(certificate.serial_number, "X")
    if len(serial_number) % 2:
        serial_number = "0" + serial_number

    issuer = _format_name(certificate.issuer)
    subject = _format_name(certificate.subject)

    return {
        "FriendlyName": handle.friendly_name or "",
        "Issuer": issuer,
        "IssuerName": issuer,
        "NotAfter": not_after.strftime(METADATA_DATE_FORMAT),
        "NotBefore": not_before.strftime(METADATA_DATE_FORMAT),
        "SerialNumber": serial_number,
        "SignatureAlgorithm": get_signature_algorithm_name(certificate),
        "Subject": subject,
        "SubjectName": subject,
        "Thumbprint": get_thumbprint(handle).upper(),
        "Version": str(certificate.version.value + 1),
    }


def check_validity(handle: CertificateHandle, now: datetime):
    """
    Check that an instant lies within a certificate's validity window.

    Both boundaries are inclusive.

    Raises:
        NotYetValid: If ``now`` is before notBefore
        Expired: If ``now`` is after notAfter
    """
    not_before, not_after = get_validity_window(handle)
    thumbprint = get_thumbprint(handle)

    if now < not_before:
        raise NotYetValid(
            f"Cannot bind certificate with thumbprint {thumbprint} because it is not valid until "
            f"{not_before.strftime(METADATA_DATE_FORMAT)}.",
            thumbprint,
            not_before
        )

    if now > not_after:
        raise Expired(
            f"Cannot bind certificate with thumbprint {thumbprint} because it expired at "
            f"{not_after.strftime(METADATA_DATE_FORMAT)}.",
            thumbprint,
            not_after
        )


def current_instant(clock) -> datetime:
    """Get the clock's current instant as an aware UTC datetime; naive values are taken as UTC."""
    now = clock.now()

    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)

    return now.astimezone(timezone.utc)


def is_valid_now(handle: CertificateHandle, clock) -> bool:
    """
    Check whether a certificate is valid at the clock's current instant.

    Args:
        handle: The certificate to check
        clock: Object whose ``now()`` returns the current instant

    Returns:
        True if valid, False (after logging the reason) otherwise
    """
    try:
        check_validity(handle, current_instant(clock))
    except CertificateValidityError as e:
        logger.warning(str(e))
        return False

    return True
