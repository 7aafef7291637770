# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""Pytest configuration and fixtures."""

import pytest

from limejuice.ssl import KeyAlgorithm, generate_ca, generate_key


CA_REQUEST = """
keyAlgorithm: ecdsa
keySize: 384
commonName: Limejuice Test CA
names:
    - C: CA
      ST: QC
      L: Montreal
      O: test org
      OU: test org unit
"""

LEAF_REQUEST = """
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
    - localhost
    - 10.1.0.1
"""

LEAF_USAGES = ["signing", "key encipherment", "server auth", "client auth"]


@pytest.fixture(scope="session")
def ecdsa_ca():
    """Self-signed ECDSA P-384 CA shared by the session."""
    return generate_ca(CA_REQUEST)


@pytest.fixture(scope="session")
def rsa_2048_key():
    """RSA key at the minimum accepted size (cheaper to generate than the default)."""
    return generate_key(KeyAlgorithm.RSA, 2048)


@pytest.fixture
def ca_request():
    return CA_REQUEST


@pytest.fixture
def leaf_request():
    return LEAF_REQUEST


@pytest.fixture
def leaf_usages():
    return list(LEAF_USAGES)
