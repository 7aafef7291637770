# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Limejuice certificate issuance engine.

Key generation, request parsing, host classification, certificate
templates and CA / leaf certificate issuance.
"""

from .errors import (
    IssuanceError,
    ParseError,
    ValidationError,
    CryptoError,
    EncodingError,
)

from .keys import (
    KeyAlgorithm,
    Key,
    generate_key,
    parse_private_key,
)

from .hosts import (
    CertificateHosts,
    classify_hosts,
)

from .request import (
    CertificateName,
    CertificateRequest,
    parse_certificate_request,
)

from .usage import (
    KeyUsageFlag,
    resolve_usages,
)

from .template import (
    DEFAULT_CERTIFICATE_EXPIRATION,
    CertificateTemplate,
    build_template,
)

from .issuer import (
    IssuedMaterial,
    RequestMaterial,
    generate_ca,
    generate,
    generate_csr,
    create_certificate_request,
)

__all__ = [
    "IssuanceError",
    "ParseError",
    "ValidationError",
    "CryptoError",
    "EncodingError",
    "KeyAlgorithm",
    "Key",
    "generate_key",
    "parse_private_key",
    "CertificateHosts",
    "classify_hosts",
    "CertificateName",
    "CertificateRequest",
    "parse_certificate_request",
    "KeyUsageFlag",
    "resolve_usages",
    "DEFAULT_CERTIFICATE_EXPIRATION",
    "CertificateTemplate",
    "build_template",
    "IssuedMaterial",
    "RequestMaterial",
    "generate_ca",
    "generate",
    "generate_csr",
    "create_certificate_request",
]
