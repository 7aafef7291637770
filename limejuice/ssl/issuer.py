# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Certificate issuance.

Issues self-signed certificate authorities and certificates signed by an
existing CA, plus PKCS#10 signing requests. Every call generates a new
key pair and returns PEM bytes only.
"""

import logging
from datetime import timedelta
from typing import Iterable, NamedTuple, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .errors import CryptoError, EncodingError, ValidationError
from .keys import Key, generate_key, parse_private_key
from .request import CertificateRequest, parse_certificate_request
from .template import CertificateTemplate, build_template
from .usage import CA_USAGES

logger = logging.getLogger(__name__)


class IssuedMaterial(NamedTuple):
    """PEM encoded certificate and the private key it was issued for."""

    certificate: bytes
    private_key: bytes


class RequestMaterial(NamedTuple):
    """PEM encoded signing request and its private key."""

    csr: bytes
    private_key: bytes


def _sign(
    template: CertificateTemplate,
    issuer: x509.Name,
    authority_key_identifier: x509.AuthorityKeyIdentifier,
    signer: Key,
) -> bytes:
    builder = template.to_builder(issuer, authority_key_identifier)
    try:
        certificate = builder.sign(signer.private_key, signer.hash_algorithm)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"certificate signing failed: {e}") from e
    return certificate.public_bytes(serialization.Encoding.PEM)


def _public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def generate_ca(
    request_text: Union[bytes, str],
    expiration: timedelta = timedelta(0),
) -> IssuedMaterial:
    """
    Issue a self-signed certificate authority.

    Args:
        request_text: YAML certificate request
        expiration: Validity period, zero for the 10 year default

    Returns:
        IssuedMaterial with the CA certificate and private key

    Raises:
        ParseError: If the request is malformed
        ValidationError: If the request is invalid
        CryptoError: If key generation or signing fails
    """
    request = parse_certificate_request(request_text)
    key = generate_key(request.key_algorithm, request.size)
    template = build_template(request, key, expiration, CA_USAGES, is_ca=True)

    certificate = _sign(
        template,
        issuer=template.subject,
        authority_key_identifier=x509.AuthorityKeyIdentifier.from_issuer_public_key(
            key.public_key
        ),
        signer=key,
    )

    logger.info(
        f"Issued CA certificate: subject={template.subject.rfc4514_string()}, "
        f"serial={template.serial_number}, algorithm={key.algorithm}, size={key.size}"
    )
    return IssuedMaterial(certificate=certificate, private_key=key.encoded)


def _load_ca_certificate(ca_cert_pem: Union[bytes, str]) -> x509.Certificate:
    if isinstance(ca_cert_pem, str):
        ca_cert_pem = ca_cert_pem.encode("utf-8")
    try:
        return x509.load_pem_x509_certificate(ca_cert_pem)
    except ValueError as e:
        raise EncodingError(f"cannot parse CA certificate: {e}") from e


def _authority_key_identifier(ca_cert: x509.Certificate) -> x509.AuthorityKeyIdentifier:
    try:
        ski = ca_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key())
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)


def _check_ca_certificate(ca_cert: x509.Certificate) -> None:
    try:
        constraints = ca_cert.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        constraints = None
    if constraints is None or not constraints.value.ca:
        logger.warning(
            f"Signing certificate is not marked as a CA: {ca_cert.subject.rfc4514_string()}"
        )


def generate(
    request_text: Union[bytes, str],
    ca_cert_pem: Union[bytes, str],
    ca_key_pem: Union[bytes, str],
    expiration: timedelta = timedelta(0),
    usages: Iterable[str] = (),
) -> IssuedMaterial:
    """
    Issue a certificate signed by an existing CA.

    Args:
        request_text: YAML certificate request
        ca_cert_pem: PEM encoded CA certificate
        ca_key_pem: PEM encoded CA private key (PKCS#8, PKCS#1 or SEC1)
        expiration: Validity period, zero for the 10 year default
        usages: Key usage and extended key usage names

    Returns:
        IssuedMaterial with the new certificate and its private key

    Raises:
        ParseError: If the request is malformed
        ValidationError: If the request, usages or CA key size are invalid
        EncodingError: If the CA certificate or key cannot be decoded
        CryptoError: If key generation or signing fails, or the CA key
            does not belong to the CA certificate
    """
    request = parse_certificate_request(request_text)
    key = generate_key(request.key_algorithm, request.size)
    template = build_template(request, key, expiration, usages, is_ca=False)

    ca_cert = _load_ca_certificate(ca_cert_pem)
    ca_key = parse_private_key(ca_key_pem)

    if not ca_key.algorithm.is_valid_size(ca_key.size):
        raise ValidationError(
            f"unsupported CA key: {ca_key.algorithm} key size {ca_key.size}"
        )
    if _public_key_der(ca_cert.public_key()) != _public_key_der(ca_key.public_key):
        raise CryptoError("CA private key does not match CA certificate")
    _check_ca_certificate(ca_cert)

    certificate = _sign(
        template,
        issuer=ca_cert.subject,
        authority_key_identifier=_authority_key_identifier(ca_cert),
        signer=ca_key,
    )

    logger.info(
        f"Issued certificate: subject={template.subject.rfc4514_string()}, "
        f"issuer={ca_cert.subject.rfc4514_string()}, serial={template.serial_number}"
    )
    return IssuedMaterial(certificate=certificate, private_key=key.encoded)


def create_certificate_request(
    request: CertificateRequest,
    key: Key,
    is_ca: bool = False,
) -> bytes:
    """
    Create a PEM encoded PKCS#10 signing request.

    Args:
        request: Parsed certificate request
        key: Key to sign the request with
        is_ca: Add a critical basicConstraints CA=true extension

    Returns:
        "CERTIFICATE REQUEST" PEM bytes

    Raises:
        ValidationError: If a host cannot be encoded
        CryptoError: If signing fails
    """
    hosts = request.parse_hosts()
    builder = x509.CertificateSigningRequestBuilder().subject_name(request.subject())

    if len(hosts):
        builder = builder.add_extension(
            x509.SubjectAlternativeName(hosts.general_names()),
            critical=False,
        )
    if is_ca:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=None),
            critical=True,
        )

    try:
        csr = builder.sign(key.private_key, key.hash_algorithm)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"certificate request signing failed: {e}") from e
    return csr.public_bytes(serialization.Encoding.PEM)


def generate_csr(request_text: Union[bytes, str], is_ca: bool = False) -> RequestMaterial:
    """Parse a request, generate its key and return a signed PKCS#10 request."""
    request = parse_certificate_request(request_text)
    key = generate_key(request.key_algorithm, request.size)
    csr = create_certificate_request(request, key, is_ca=is_ca)

    logger.info(f"Created certificate request: subject={request.subject().rfc4514_string()}")
    return RequestMaterial(csr=csr, private_key=key.encoded)
