# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Certificate templates.

A template holds everything needed to issue a certificate except the
issuer: subject, public key, subject alternative names, validity window,
random serial number, usage constraints and the CA flag.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from cryptography import x509

from .errors import ValidationError
from .hosts import CertificateHosts
from .keys import Key, PublicKey
from .request import CertificateRequest
from .usage import KeyUsageFlag, resolve_usages

logger = logging.getLogger(__name__)

# 10 years of 365 days
DEFAULT_CERTIFICATE_EXPIRATION = timedelta(hours=10 * 8760)

# Backdating of not-before to absorb verifier clock skew
CLOCK_SKEW_ALLOWANCE = timedelta(minutes=5)

MAX_SERIAL_NUMBER = 2**63 - 1


@dataclass(frozen=True)
class CertificateTemplate:
    """Unsigned certificate contents."""

    subject: x509.Name
    public_key: PublicKey
    public_key_algorithm: x509.ObjectIdentifier
    signature_algorithm: x509.ObjectIdentifier
    hosts: CertificateHosts
    serial_number: int
    not_valid_before: datetime
    not_valid_after: datetime
    key_usage: KeyUsageFlag
    extended_key_usage: tuple[x509.ObjectIdentifier, ...]
    is_ca: bool
    basic_constraints_valid: bool = True

    def to_builder(
        self,
        issuer: x509.Name,
        authority_key_identifier: x509.AuthorityKeyIdentifier,
    ) -> x509.CertificateBuilder:
        """
        Create a certificate builder for this template.

        Args:
            issuer: Issuer name (the subject itself for self-signed CAs)
            authority_key_identifier: Identifier of the signing key

        Returns:
            Builder ready to be signed by the issuer's private key
        """
        builder = (
            x509.CertificateBuilder()
            .subject_name(self.subject)
            .issuer_name(issuer)
            .public_key(self.public_key)
            .serial_number(self.serial_number)
            .not_valid_before(self.not_valid_before)
            .not_valid_after(self.not_valid_after)
            .add_extension(
                x509.BasicConstraints(ca=self.is_ca, path_length=None),
                critical=True,
            )
        )

        if self.key_usage:
            builder = builder.add_extension(self.key_usage.to_extension(), critical=True)

        if self.extended_key_usage:
            builder = builder.add_extension(
                x509.ExtendedKeyUsage(list(self.extended_key_usage)),
                critical=False,
            )

        if len(self.hosts):
            # Critical when the subject is empty (RFC 5280 4.2.1.6)
            builder = builder.add_extension(
                x509.SubjectAlternativeName(self.hosts.general_names()),
                critical=len(self.subject) == 0,
            )

        builder = builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(self.public_key),
            critical=False,
        )
        builder = builder.add_extension(authority_key_identifier, critical=False)

        return builder


def build_template(
    request: CertificateRequest,
    key: Key,
    expiration: timedelta = timedelta(0),
    usages: Iterable[str] = (),
    is_ca: bool = False,
    now: Optional[datetime] = None,
) -> CertificateTemplate:
    """
    Build a certificate template from a parsed request and its key.

    Args:
        request: Parsed certificate request
        key: Key the certificate is issued for
        expiration: Validity period, zero for the 10 year default
        usages: Key usage and extended key usage names
        is_ca: Whether the certificate may sign other certificates
        now: Issuance time, defaults to the current UTC time

    Returns:
        CertificateTemplate valid from five minutes before now

    Raises:
        ValidationError: If no usage name is recognized, the usages are
            inconsistent, the expiration is negative or out of range, or
            a host cannot be encoded
    """
    key_usage, extended_key_usage = resolve_usages(usages)
    if not key_usage and not extended_key_usage:
        raise ValidationError("no key usage(s) specified")

    only_flags = KeyUsageFlag.ENCIPHER_ONLY | KeyUsageFlag.DECIPHER_ONLY
    if key_usage & only_flags and KeyUsageFlag.KEY_AGREEMENT not in key_usage:
        raise ValidationError("encipher only and decipher only require key agreement")

    if expiration < timedelta(0):
        raise ValidationError(f"invalid expiration {expiration} - must not be negative")
    if not expiration:
        expiration = DEFAULT_CERTIFICATE_EXPIRATION

    if now is None:
        now = datetime.now(timezone.utc)

    try:
        not_valid_after = (now + expiration).astimezone(timezone.utc)
    except OverflowError as e:
        raise ValidationError(f"invalid expiration {expiration} - {e}") from e

    hosts = request.parse_hosts()
    hosts.general_names()

    template = CertificateTemplate(
        subject=request.subject(),
        public_key=key.public_key,
        public_key_algorithm=key.public_key_algorithm,
        signature_algorithm=key.signature_algorithm,
        hosts=hosts,
        serial_number=1 + secrets.randbelow(MAX_SERIAL_NUMBER),
        not_valid_before=(now - CLOCK_SKEW_ALLOWANCE).astimezone(timezone.utc),
        not_valid_after=not_valid_after,
        key_usage=key_usage,
        extended_key_usage=tuple(extended_key_usage),
        is_ca=is_ca,
    )

    logger.debug(
        f"Built certificate template: subject={template.subject.rfc4514_string()}, "
        f"serial={template.serial_number}, is_ca={is_ca}"
    )
    return template
