# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Classification of request hosts into subject alternative names.
"""

import ipaddress
from dataclasses import dataclass, field
from email import policy
from email.errors import HeaderParseError
from typing import Iterable, Optional, Union

from cryptography import x509
from pydantic import AnyUrl, TypeAdapter

from .errors import ValidationError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_URI_ADAPTER = TypeAdapter(AnyUrl)


@dataclass
class CertificateHosts:
    """Hosts of a request, split by subject alternative name type."""

    dns_names: list[str] = field(default_factory=list)
    email_addresses: list[str] = field(default_factory=list)
    ip_addresses: list[IPAddress] = field(default_factory=list)
    uris: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return (
            len(self.dns_names) + len(self.email_addresses)
            + len(self.ip_addresses) + len(self.uris)
        )

    def general_names(self) -> list[x509.GeneralName]:
        """
        Convert to X.509 general names.

        Names are emitted DNS names first, then email addresses, IP
        addresses and URIs.

        Raises:
            ValidationError: If a name cannot be encoded (e.g. non-ASCII)
        """
        try:
            return (
                [x509.DNSName(name) for name in self.dns_names]
                + [x509.RFC822Name(email) for email in self.email_addresses]
                + [x509.IPAddress(ip) for ip in self.ip_addresses]
                + [x509.UniformResourceIdentifier(uri) for uri in self.uris]
            )
        except ValueError as e:
            raise ValidationError(f"invalid host: {e}") from e


def _parse_ip(host: str) -> Optional[IPAddress]:
    # Zone identifiers ("fe80::1%eth0") are not literal addresses
    if "%" in host:
        return None
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        return None


def _parse_email(host: str) -> Optional[str]:
    """
    Parse a single RFC 5322 mailbox, with or without a display name.

    The domain is not checked for deliverability, so addresses such as
    root@localhost and admin@corp.local are accepted.
    """
    if "@" not in host:
        return None
    try:
        header = policy.default.header_factory("to", host)
    except (ValueError, HeaderParseError):
        return None
    if header.defects or len(header.groups) != 1:
        return None
    group = header.groups[0]
    # Group syntax ("team: a@example.com;") is not a mailbox
    if group.display_name is not None or len(group.addresses) != 1:
        return None
    return group.addresses[0].addr_spec


def _is_uri(host: str) -> bool:
    try:
        _URI_ADAPTER.validate_python(host)
    except ValueError:
        return False
    return True


def classify_hosts(hosts: Iterable[str]) -> CertificateHosts:
    """
    Split hosts into IP addresses, email addresses, URIs and DNS names.

    Each host is tested in that order and the first match wins; anything
    that is not an IP address, email address or absolute URI is kept
    verbatim as a DNS name. Order is preserved within each category.

    Args:
        hosts: Trimmed host strings

    Returns:
        CertificateHosts computed from the given hosts
    """
    out = CertificateHosts()
    for host in hosts:
        ip = _parse_ip(host)
        if ip is not None:
            out.ip_addresses.append(ip)
            continue

        email = _parse_email(host)
        if email is not None:
            out.email_addresses.append(email)
            continue

        if _is_uri(host):
            out.uris.append(host)
            continue

        out.dns_names.append(host)

    return out
