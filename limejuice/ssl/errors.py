# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Exceptions raised by the certificate issuance engine.
"""


class IssuanceError(Exception):
    """Base class for all issuance failures."""


class ParseError(IssuanceError, ValueError):
    """Certificate request text is structurally malformed."""


class ValidationError(IssuanceError, ValueError):
    """Request is well formed but its values are not acceptable."""


class CryptoError(IssuanceError):
    """Key generation or signing failed."""


class EncodingError(IssuanceError):
    """PEM material could not be decoded or parsed."""
