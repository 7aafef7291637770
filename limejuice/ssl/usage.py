# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Key usage and extended key usage names.

Usage names are looked up in two fixed tables. Names found in neither
table are ignored; callers only get an error when nothing at all was
recognized.
"""

import enum
import logging
from types import MappingProxyType
from typing import Iterable

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID

logger = logging.getLogger(__name__)


class KeyUsageFlag(enum.IntFlag):
    """X.509 key usage bits."""

    DIGITAL_SIGNATURE = 1 << 0
    CONTENT_COMMITMENT = 1 << 1
    KEY_ENCIPHERMENT = 1 << 2
    DATA_ENCIPHERMENT = 1 << 3
    KEY_AGREEMENT = 1 << 4
    CERT_SIGN = 1 << 5
    CRL_SIGN = 1 << 6
    ENCIPHER_ONLY = 1 << 7
    DECIPHER_ONLY = 1 << 8

    def to_extension(self) -> x509.KeyUsage:
        """
        Build the keyUsage extension value for these bits.

        Raises:
            ValueError: If encipher/decipher only is set without key agreement
        """
        return x509.KeyUsage(
            digital_signature=KeyUsageFlag.DIGITAL_SIGNATURE in self,
            content_commitment=KeyUsageFlag.CONTENT_COMMITMENT in self,
            key_encipherment=KeyUsageFlag.KEY_ENCIPHERMENT in self,
            data_encipherment=KeyUsageFlag.DATA_ENCIPHERMENT in self,
            key_agreement=KeyUsageFlag.KEY_AGREEMENT in self,
            key_cert_sign=KeyUsageFlag.CERT_SIGN in self,
            crl_sign=KeyUsageFlag.CRL_SIGN in self,
            encipher_only=KeyUsageFlag.ENCIPHER_ONLY in self,
            decipher_only=KeyUsageFlag.DECIPHER_ONLY in self,
        )


# OIDs cryptography does not name
IPSEC_END_SYSTEM = x509.ObjectIdentifier("1.3.6.1.5.5.7.3.5")
IPSEC_TUNNEL = x509.ObjectIdentifier("1.3.6.1.5.5.7.3.6")
IPSEC_USER = x509.ObjectIdentifier("1.3.6.1.5.5.7.3.7")
MICROSOFT_SERVER_GATED_CRYPTO = x509.ObjectIdentifier("1.3.6.1.4.1.311.10.3.3")
NETSCAPE_SERVER_GATED_CRYPTO = x509.ObjectIdentifier("2.16.840.1.113730.4.1")

KEY_USAGES = MappingProxyType({
    "signing": KeyUsageFlag.DIGITAL_SIGNATURE,
    "digital signature": KeyUsageFlag.DIGITAL_SIGNATURE,
    "content commitment": KeyUsageFlag.CONTENT_COMMITMENT,
    "key encipherment": KeyUsageFlag.KEY_ENCIPHERMENT,
    "key agreement": KeyUsageFlag.KEY_AGREEMENT,
    "data encipherment": KeyUsageFlag.DATA_ENCIPHERMENT,
    "cert sign": KeyUsageFlag.CERT_SIGN,
    "crl sign": KeyUsageFlag.CRL_SIGN,
    "encipher only": KeyUsageFlag.ENCIPHER_ONLY,
    "decipher only": KeyUsageFlag.DECIPHER_ONLY,
})

EXTENDED_KEY_USAGES = MappingProxyType({
    "any": ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE,
    "server auth": ExtendedKeyUsageOID.SERVER_AUTH,
    "client auth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "code signing": ExtendedKeyUsageOID.CODE_SIGNING,
    "email protection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "s/mime": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "ipsec end system": IPSEC_END_SYSTEM,
    "ipsec tunnel": IPSEC_TUNNEL,
    "ipsec user": IPSEC_USER,
    "timestamping": ExtendedKeyUsageOID.TIME_STAMPING,
    "ocsp signing": ExtendedKeyUsageOID.OCSP_SIGNING,
    "microsoft sgc": MICROSOFT_SERVER_GATED_CRYPTO,
    "netscape sgc": NETSCAPE_SERVER_GATED_CRYPTO,
})

CA_USAGES = ("cert sign", "crl sign")


def resolve_usages(
    usages: Iterable[str],
) -> tuple[KeyUsageFlag, list[x509.ObjectIdentifier]]:
    """
    Resolve usage names into key usage bits and extended key usages.

    Args:
        usages: Usage names such as "signing" or "server auth"

    Returns:
        Tuple of (combined key usage bits, extended key usage OIDs in
        request order, duplicates kept)
    """
    key_usage = KeyUsageFlag(0)
    extended = []
    for usage in usages:
        if usage in KEY_USAGES:
            key_usage |= KEY_USAGES[usage]
        elif usage in EXTENDED_KEY_USAGES:
            extended.append(EXTENDED_KEY_USAGES[usage])
        else:
            logger.debug(f"Ignoring unknown usage: {usage!r}")
    return key_usage, extended
