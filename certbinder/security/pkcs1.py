"""
Decoder for DER-encoded PKCS#1 RSA private keys.

Reads the structure the way a little-endian binary reader does, so the
two-byte markers below are the DER bytes in reversed order:
``30 81`` (SEQUENCE, one length byte), ``30 82`` (SEQUENCE, two length
bytes) and ``02 01`` (INTEGER of length one, the key version).
"""
from typing import List

from ..models.certificates import RsaKeyParameters
from .errors import FormatError, InvalidKeyPadding, UnsupportedKeyFormat, UnsupportedKeyVersion

SEQUENCE_SHORT_FORM = 0x8130
SEQUENCE_LONG_FORM = 0x8230
VERSION_MARKER = 0x0102
TWO_PRIME_VERSION = 0x00
INTEGER_TAG = 0x02

LENGTH_ONE_BYTE = 0x81
LENGTH_TWO_BYTES = 0x82


class _DerReader:
    """Forward reader over a key buffer that never copies the whole buffer."""

    def __init__(self, data):
        self._view = memoryview(data)
        self._position = 0

    def read_byte(self) -> int:
        if self._position >= len(self._view):
            raise FormatError("Unexpected end of private key data.")
        value = self._view[self._position]
        self._position += 1
        return value

    def read_uint16(self) -> int:
        low = self.read_byte()
        high = self.read_byte()
        return low | (high << 8)

    def read_bytes(self, count: int) -> bytearray:
        if count < 0 or self._position + count > len(self._view):
            raise FormatError(f"Private key field of {count} bytes overruns the key data.")
        value = bytearray(self._view[self._position:self._position + count])
        self._position += count
        return value

    def step_back(self):
        self._position -= 1

    def release(self):
        self._view.release()


def _read_field_length(reader: _DerReader) -> int:
    """Read an INTEGER header and return the length of its value without padding."""
    if reader.read_byte() != INTEGER_TAG:
        raise FormatError("Expected an INTEGER field in the private key.")

    value = reader.read_byte()

    if value == LENGTH_ONE_BYTE:
        length = reader.read_byte()
    elif value == LENGTH_TWO_BYTES:
        high_byte = reader.read_byte()
        low_byte = reader.read_byte()
        length = int.from_bytes(bytes((low_byte, high_byte, 0, 0)), "little")
    else:
        length = value

    # Drop the sign padding; the first non-zero byte belongs to the value.
    while reader.read_byte() == 0x00:
        length -= 1

    reader.step_back()

    return length


def decode_rsa_private_key(private_key_der) -> RsaKeyParameters:
    """
    Decode the numeric components of a PKCS#1 RSA private key.

    Args:
        private_key_der: DER bytes of an ``RSAPrivateKey`` structure

    Returns:
        RsaKeyParameters holding the eight integers in PKCS#1 order

    Raises:
        UnsupportedKeyFormat: If the outer SEQUENCE encoding is not supported
        UnsupportedKeyVersion: If the version field is not a one-byte INTEGER
        InvalidKeyPadding: If the version is not 0 (two-prime key)
        FormatError: If a field is missing, truncated or empty
    """
    reader = _DerReader(private_key_der)
    buffers: List[bytearray] = []

    try:
        key_format = reader.read_uint16()

        if key_format == SEQUENCE_SHORT_FORM:
            reader.read_byte()
        elif key_format == SEQUENCE_LONG_FORM:
            reader.read_uint16()
        else:
            raise UnsupportedKeyFormat("Invalid private key format.")

        if reader.read_uint16() != VERSION_MARKER:
            raise UnsupportedKeyVersion("Invalid private key version.")

        if reader.read_byte() != TWO_PRIME_VERSION:
            raise InvalidKeyPadding("Invalid private key padding.")

        for _ in range(8):
            length = _read_field_length(reader)
            buffers.append(reader.read_bytes(length))

        parameters = RsaKeyParameters(*buffers)

        if not parameters.is_complete():
            raise FormatError("The private key is missing one or more RSA parameters.")

        return parameters
    except Exception:
        for buffer in buffers:
            buffer[:] = bytes(len(buffer))
        raise
    finally:
        reader.release()
