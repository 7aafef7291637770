# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Declarative certificate requests.

A request is a YAML document:

    keyAlgorithm: ecdsa
    keySize: 384
    commonName: test.example.com
    names:
      - C: CA
        ST: QC
        L: Montreal
        O: test org
        OU: test org unit
    hosts:
      - example.com
      - admin@example.com
      - 10.1.0.1
"""

import logging
import re
from typing import Any, Union

import yaml
from cryptography import x509
from cryptography.x509.oid import NameOID
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ParseError, ValidationError
from .hosts import CertificateHosts, classify_hosts
from .keys import KeyAlgorithm

logger = logging.getLogger(__name__)


class _RequestLoader(yaml.SafeLoader):
    """Safe loader that resolves plain scalars only as strings or null."""


# Only nulls are resolved; typing is left to the models, so "NO" stays a
# country code and "keySize: 384" is coerced to an int by pydantic.
_RequestLoader.yaml_implicit_resolvers = {}
_RequestLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null",
    re.compile(r"^(?:~|null|Null|NULL|)$"),
    ["~", "n", "N", ""],
)


def _as_text(value: Any) -> Any:
    return "" if value is None else value


class CertificateName(BaseModel):
    """Subject fields of one name entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    country: str = Field(default="", alias="C")
    province: str = Field(default="", alias="ST")
    locality: str = Field(default="", alias="L")
    organization: str = Field(default="", alias="O")
    organizational_unit: str = Field(default="", alias="OU")
    serial_number: str = Field(default="", alias="serialNumber")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    def trimmed(self) -> "CertificateName":
        return CertificateName(
            country=self.country.strip(),
            province=self.province.strip(),
            locality=self.locality.strip(),
            organization=self.organization.strip(),
            organizational_unit=self.organizational_unit.strip(),
            serial_number=self.serial_number.strip(),
        )

    def empty(self) -> bool:
        """True when no subject field is set. The serial number does not count."""
        return not (
            self.country or self.province or self.locality
            or self.organization or self.organizational_unit
        )


class CertificateRequest(BaseModel):
    """Validated certificate request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    algorithm: str = Field(default="", alias="keyAlgorithm")
    size: int = Field(default=0, alias="keySize")
    common_name: str = Field(default="", alias="commonName")
    names: tuple[CertificateName, ...] = ()
    hosts: tuple[str, ...] = ()
    serial_number: str = Field(default="", alias="serialNumber")

    @field_validator("algorithm", "common_name", "serial_number", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("size", mode="before")
    @classmethod
    def _coerce_size(cls, value: Any) -> Any:
        return 0 if value in (None, "") else value

    @field_validator("names", mode="before")
    @classmethod
    def _coerce_names(cls, value: Any) -> Any:
        if value in (None, ""):
            return ()
        if isinstance(value, list):
            return [{} if item in (None, "") else item for item in value]
        return value

    @field_validator("hosts", mode="before")
    @classmethod
    def _coerce_hosts(cls, value: Any) -> Any:
        if value in (None, ""):
            return ()
        if isinstance(value, list):
            return [_as_text(item) for item in value]
        return value

    @property
    def key_algorithm(self) -> KeyAlgorithm:
        return KeyAlgorithm.parse(self.algorithm)

    def subject(self) -> x509.Name:
        """
        Build the X.509 subject.

        Attributes are ordered country, organization, organizational
        unit, locality, province, serial number, common name. Empty
        values are left out.

        Raises:
            ValidationError: If an attribute cannot be encoded
        """
        ordered = [
            (NameOID.COUNTRY_NAME, "country"),
            (NameOID.ORGANIZATION_NAME, "organization"),
            (NameOID.ORGANIZATIONAL_UNIT_NAME, "organizational_unit"),
            (NameOID.LOCALITY_NAME, "locality"),
            (NameOID.STATE_OR_PROVINCE_NAME, "province"),
        ]
        values = [
            (oid, getattr(name, attr))
            for oid, attr in ordered
            for name in self.names
        ]
        values.append((NameOID.SERIAL_NUMBER, self.serial_number))
        values.append((NameOID.COMMON_NAME, self.common_name))

        try:
            return x509.Name([
                x509.NameAttribute(oid, value) for oid, value in values if value
            ])
        except ValueError as e:
            raise ValidationError(f"invalid subject: {e}") from e

    def parse_hosts(self) -> CertificateHosts:
        """Classify the request hosts. The result is never cached."""
        return classify_hosts(self.hosts)


def parse_certificate_request(text: Union[bytes, str]) -> CertificateRequest:
    """
    Parse and validate a YAML certificate request.

    The key algorithm and size are checked first, then the common name,
    serial number, names and hosts are trimmed and names that end up
    empty are dropped. A request must keep either a common name or at
    least one name.

    Args:
        text: YAML request document

    Returns:
        Validated CertificateRequest

    Raises:
        ParseError: If the document is malformed
        ValidationError: If the algorithm, size or subject is invalid
    """
    try:
        data = yaml.load(text, Loader=_RequestLoader)
    except yaml.YAMLError as e:
        raise ParseError(f"malformed certificate request: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(
            f"malformed certificate request: expected a mapping, got {type(data).__name__}"
        )

    try:
        raw = CertificateRequest.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(f"malformed certificate request: {e}") from e

    raw.key_algorithm.validate_size(raw.size)

    trimmed = (name.trimmed() for name in raw.names)
    request = CertificateRequest(
        algorithm=raw.algorithm,
        size=raw.size,
        common_name=raw.common_name.strip(),
        names=tuple(name for name in trimmed if not name.empty()),
        hosts=tuple(host.strip() for host in raw.hosts),
        serial_number=raw.serial_number.strip(),
    )

    if not request.common_name and not request.names:
        raise ValidationError("no subject information provided")

    # Surface encoder limits (two-letter countries, 64-char CN) now
    request.subject()

    logger.debug(
        f"Parsed certificate request: algorithm={request.algorithm}, "
        f"size={request.size}, names={len(request.names)}, hosts={len(request.hosts)}"
    )
    return request
