# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Key algorithm policy, key generation and private key loading.

Supported algorithms are ECDSA (P-256, P-384, P-521) and RSA (2048-8192
bits). Generated keys are PEM encoded in the traditional OpenSSL formats,
giving "EC PRIVATE KEY" and "RSA PRIVATE KEY" blocks.
"""

import base64
import enum
import io
import logging
import re
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509 import ObjectIdentifier
from cryptography.x509.oid import PublicKeyAlgorithmOID, SignatureAlgorithmOID

from .errors import CryptoError, EncodingError, ValidationError

logger = logging.getLogger(__name__)

MIN_RSA_KEY_SIZE = 2048
MAX_RSA_KEY_SIZE = 8192
ECDSA_KEY_SIZES = (256, 384, 521)

PrivateKey = Union[ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]
PublicKey = Union[ec.EllipticCurvePublicKey, rsa.RSAPublicKey]

_ECDSA_CURVES = {
    256: ec.SECP256R1,
    384: ec.SECP384R1,
    521: ec.SECP521R1,
}

_ECDSA_SIGNATURES = {
    256: (SignatureAlgorithmOID.ECDSA_WITH_SHA256, hashes.SHA256),
    384: (SignatureAlgorithmOID.ECDSA_WITH_SHA384, hashes.SHA384),
    521: (SignatureAlgorithmOID.ECDSA_WITH_SHA512, hashes.SHA512),
}

# First PEM block of any type; the label is not trusted
_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]+)-----\r?\n(.*?)-----END \1-----", re.DOTALL
)


class KeyAlgorithm(enum.Enum):
    """Closed set of supported key algorithms."""

    ECDSA = "ecdsa"
    RSA = "rsa"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: str) -> "KeyAlgorithm":
        """
        Look up an algorithm by its request name.

        Args:
            name: "ecdsa" or "rsa"

        Raises:
            ValidationError: If the name is not a supported algorithm
        """
        for algorithm in cls:
            if algorithm.value == name:
                return algorithm
        raise ValidationError(f"unknown key type: {name}")

    @property
    def default_size(self) -> int:
        """Key size used when a request leaves it at 0."""
        if self is KeyAlgorithm.ECDSA:
            return 256
        return 4096

    def is_valid_size(self, size: int) -> bool:
        if self is KeyAlgorithm.ECDSA:
            return size == 0 or size in ECDSA_KEY_SIZES
        return size == 0 or MIN_RSA_KEY_SIZE <= size <= MAX_RSA_KEY_SIZE

    def validate_size(self, size: int) -> None:
        """
        Check a requested key size against this algorithm's policy.

        Raises:
            ValidationError: If the size is not acceptable
        """
        if self.is_valid_size(size):
            return
        if self is KeyAlgorithm.ECDSA:
            raise ValidationError(
                f"invalid ecdsa key size {size} - key size must be either 256, 384 or 521"
            )
        raise ValidationError(
            f"invalid rsa key size {size} - key size must be between "
            f"{MIN_RSA_KEY_SIZE} and {MAX_RSA_KEY_SIZE}"
        )

    def resolve_size(self, size: int) -> int:
        """Replace a size of 0 with the algorithm default."""
        return size or self.default_size

    def signature(self, size: int) -> tuple[ObjectIdentifier, hashes.HashAlgorithm]:
        """
        Map an effective key size to its X.509 signature algorithm.

        Only sizes that passed validation may reach this point; anything
        else is a programming error and raises AssertionError.
        """
        if self is KeyAlgorithm.ECDSA:
            if size not in _ECDSA_SIGNATURES:
                raise AssertionError(f"unexpected ecdsa key size {size}")
            oid, hash_cls = _ECDSA_SIGNATURES[size]
            return oid, hash_cls()

        if size >= 4096:
            return SignatureAlgorithmOID.RSA_WITH_SHA512, hashes.SHA512()
        if size >= 3072:
            return SignatureAlgorithmOID.RSA_WITH_SHA384, hashes.SHA384()
        if size >= MIN_RSA_KEY_SIZE:
            return SignatureAlgorithmOID.RSA_WITH_SHA256, hashes.SHA256()
        raise AssertionError(f"unexpected rsa key size {size}")


@dataclass(frozen=True)
class Key:
    """A private key together with its PEM encoding."""

    algorithm: KeyAlgorithm
    size: int
    encoded: bytes
    private_key: PrivateKey

    @property
    def public_key(self) -> PublicKey:
        return self.private_key.public_key()

    @property
    def public_key_algorithm(self) -> ObjectIdentifier:
        if self.algorithm is KeyAlgorithm.ECDSA:
            return PublicKeyAlgorithmOID.EC_PUBLIC_KEY
        return PublicKeyAlgorithmOID.RSAES_PKCS1_v1_5

    @property
    def signature_algorithm(self) -> ObjectIdentifier:
        return self.algorithm.signature(self.size)[0]

    @property
    def hash_algorithm(self) -> hashes.HashAlgorithm:
        """Digest used when this key signs a certificate or request."""
        return self.algorithm.signature(self.size)[1]

    def as_reader(self) -> io.BytesIO:
        return io.BytesIO(self.encoded)


def generate_key(algorithm: KeyAlgorithm, size: int = 0) -> Key:
    """
    Generate a new private key.

    Args:
        algorithm: Key algorithm
        size: Key size in bits, 0 for the algorithm default

    Returns:
        Freshly generated Key

    Raises:
        ValidationError: If the size is not valid for the algorithm
        CryptoError: If the key could not be generated
    """
    algorithm.validate_size(size)

    if algorithm is KeyAlgorithm.ECDSA:
        return _generate_ecdsa_key(size)
    return _generate_rsa_key(size)


def _generate_ecdsa_key(size: int) -> Key:
    size = KeyAlgorithm.ECDSA.resolve_size(size)
    if size not in _ECDSA_CURVES:
        raise AssertionError(f"unexpected key size {size}")

    try:
        private_key = ec.generate_private_key(_ECDSA_CURVES[size]())
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"ecdsa key generation failed: {e}") from e

    logger.debug(f"Generated ecdsa key: size={size}")
    return Key(
        algorithm=KeyAlgorithm.ECDSA,
        size=size,
        encoded=_encode_private_key(private_key),
        private_key=private_key,
    )


def _generate_rsa_key(size: int) -> Key:
    size = KeyAlgorithm.RSA.resolve_size(size)

    try:
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=size)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"rsa key generation failed: {e}") from e

    logger.debug(f"Generated rsa key: size={size}")
    return Key(
        algorithm=KeyAlgorithm.RSA,
        size=size,
        encoded=_encode_private_key(private_key),
        private_key=private_key,
    )


def _encode_private_key(private_key: PrivateKey) -> bytes:
    # TraditionalOpenSSL yields SEC1 for EC keys and PKCS#1 for RSA keys
    try:
        return private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except ValueError as e:
        raise CryptoError(f"private key encoding failed: {e}") from e


def _curve_size(curve: ec.EllipticCurve) -> int:
    for size, curve_cls in _ECDSA_CURVES.items():
        if isinstance(curve, curve_cls):
            return size
    return KeyAlgorithm.ECDSA.default_size


def parse_private_key(key_pem: Union[bytes, str]) -> Key:
    """
    Load a PEM encoded private key of unknown internal encoding.

    The body of the first PEM block is decoded as PKCS#8, then as PKCS#1
    or SEC1, whatever the block label says. Key strength is not checked.

    Args:
        key_pem: Unencrypted PEM private key

    Returns:
        Key whose encoded form is the input PEM

    Raises:
        EncodingError: If the PEM cannot be decoded or holds an
            unsupported key type
    """
    if isinstance(key_pem, str):
        key_pem = key_pem.encode("utf-8")

    block = _PEM_BLOCK.search(key_pem)
    if block is None:
        raise EncodingError("cannot parse private key: no PEM block found")

    try:
        der = base64.b64decode(b"".join(block.group(2).split()), validate=True)
        private_key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncodingError(f"cannot parse private key: {e}") from e

    if isinstance(private_key, rsa.RSAPrivateKey):
        return Key(
            algorithm=KeyAlgorithm.RSA,
            size=private_key.key_size,
            encoded=key_pem,
            private_key=private_key,
        )

    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return Key(
            algorithm=KeyAlgorithm.ECDSA,
            size=_curve_size(private_key.curve),
            encoded=key_pem,
            private_key=private_key,
        )

    raise EncodingError(f"unknown private key type: {type(private_key).__name__}")
