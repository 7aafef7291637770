# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Unit tests for usage resolution and certificate templates.
"""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, PublicKeyAlgorithmOID

from limejuice.ssl import (
    DEFAULT_CERTIFICATE_EXPIRATION,
    KeyAlgorithm,
    KeyUsageFlag,
    ValidationError,
    build_template,
    generate_key,
    parse_certificate_request,
    resolve_usages,
)
from limejuice.ssl.template import MAX_SERIAL_NUMBER
from limejuice.ssl.usage import KEY_USAGES, EXTENDED_KEY_USAGES


NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def request_and_key(leaf_request):
    request = parse_certificate_request(leaf_request)
    return request, generate_key(request.key_algorithm, request.size)


class TestResolveUsages:
    """Test usage name lookup."""

    def test_ca_usages(self):
        """Test CA key usages."""
        key_usage, extended = resolve_usages(["cert sign", "crl sign"])

        assert key_usage
        assert key_usage == KeyUsageFlag.CERT_SIGN | KeyUsageFlag.CRL_SIGN
        assert extended == []

    def test_mixed(self, leaf_usages):
        """Test splitting key usages from extended key usages."""
        key_usage, extended = resolve_usages(leaf_usages)

        assert key_usage == KeyUsageFlag.DIGITAL_SIGNATURE | KeyUsageFlag.KEY_ENCIPHERMENT
        assert extended == [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]

    def test_aliases(self):
        """Test usage aliases."""
        assert KEY_USAGES["signing"] == KEY_USAGES["digital signature"]
        assert EXTENDED_KEY_USAGES["s/mime"] == ExtendedKeyUsageOID.EMAIL_PROTECTION
        assert resolve_usages(["s/mime"])[1] == [ExtendedKeyUsageOID.EMAIL_PROTECTION]

    def test_duplicates_kept(self):
        """Test that repeated extended usages are kept."""
        _, extended = resolve_usages(["server auth", "server auth", "email protection", "s/mime"])

        assert extended == [
            ExtendedKeyUsageOID.SERVER_AUTH,
            ExtendedKeyUsageOID.SERVER_AUTH,
            ExtendedKeyUsageOID.EMAIL_PROTECTION,
            ExtendedKeyUsageOID.EMAIL_PROTECTION,
        ]

    def test_unknown_names_ignored(self):
        """Test that unknown and miscased names are skipped."""
        key_usage, extended = resolve_usages(["signing", "sever auth", "Signing"])

        assert key_usage == KeyUsageFlag.DIGITAL_SIGNATURE
        assert extended == []

    def test_nothing_recognized(self):
        """Test a list with no known usage."""
        key_usage, extended = resolve_usages(["nonsense"])

        assert not key_usage
        assert extended == []

    def test_tables_are_read_only(self):
        """Test that the usage tables cannot be modified."""
        with pytest.raises(TypeError):
            KEY_USAGES["new"] = KeyUsageFlag.CERT_SIGN

    def test_flags_to_extension(self):
        """Test conversion of flags to a KeyUsage extension."""
        extension = (KeyUsageFlag.CERT_SIGN | KeyUsageFlag.CRL_SIGN).to_extension()

        assert extension.key_cert_sign
        assert extension.crl_sign
        assert not extension.digital_signature
        assert not extension.key_agreement


class TestBuildTemplate:
    """Test template construction."""

    def test_template(self, request_and_key, leaf_usages):
        """Test a leaf template built from a request."""
        request, key = request_and_key
        template = build_template(request, key, timedelta(days=30), leaf_usages, now=NOW)

        assert template.subject == request.subject()
        assert template.public_key.public_numbers() == key.public_key.public_numbers()
        assert template.public_key_algorithm == PublicKeyAlgorithmOID.EC_PUBLIC_KEY
        assert template.signature_algorithm == key.signature_algorithm
        assert template.basic_constraints_valid is True
        assert template.is_ca is False
        assert template.key_usage == KeyUsageFlag.DIGITAL_SIGNATURE | KeyUsageFlag.KEY_ENCIPHERMENT
        assert template.extended_key_usage == (
            ExtendedKeyUsageOID.SERVER_AUTH,
            ExtendedKeyUsageOID.CLIENT_AUTH,
        )
        assert template.hosts.dns_names == ["example.com", "localhost"]
        assert template.hosts.email_addresses == ["admin@example.com"]
        assert len(template.hosts.ip_addresses) == 1

    def test_validity_window(self, request_and_key):
        """Test backdating and expiration."""
        request, key = request_and_key
        template = build_template(request, key, timedelta(hours=1), ["signing"], now=NOW)

        assert template.not_valid_before == NOW - timedelta(minutes=5)
        assert template.not_valid_after == NOW + timedelta(hours=1)
        assert template.not_valid_before.tzinfo is not None

    def test_zero_expiration_defaults_to_ten_years(self, request_and_key):
        """Test the ten year default."""
        request, key = request_and_key
        template = build_template(request, key, timedelta(0), ["signing"], now=NOW)

        assert DEFAULT_CERTIFICATE_EXPIRATION == timedelta(hours=87600)
        assert template.not_valid_after == NOW + timedelta(hours=87600)

    def test_negative_expiration(self, request_and_key):
        """Test that a negative expiration is rejected."""
        request, key = request_and_key

        with pytest.raises(ValidationError, match="must not be negative"):
            build_template(request, key, timedelta(days=-1), ["signing"], now=NOW)

    def test_expiration_past_year_9999(self, request_and_key):
        """Test that an expiration beyond the datetime range is a validation error."""
        request, key = request_and_key

        with pytest.raises(ValidationError, match="invalid expiration"):
            build_template(request, key, timedelta(days=4_000_000), ["signing"], now=NOW)

    def test_default_now(self, request_and_key):
        """Test that the current time is used by default."""
        request, key = request_and_key
        before = datetime.now(timezone.utc)
        template = build_template(request, key, usages=["signing"])
        after = datetime.now(timezone.utc)

        assert before - timedelta(minutes=5) <= template.not_valid_before
        assert template.not_valid_before <= after - timedelta(minutes=5)

    def test_ca_flag(self, request_and_key):
        """Test CA basic constraints."""
        request, key = request_and_key
        template = build_template(request, key, usages=["cert sign", "crl sign"], is_ca=True)

        assert template.is_ca is True
        assert template.basic_constraints_valid is True

    @pytest.mark.parametrize("usages", [[], ["nonsense"], ["Server Auth", "crl-sign"]])
    def test_no_usages(self, request_and_key, usages):
        """Test that at least one recognized usage is required."""
        request, key = request_and_key

        with pytest.raises(ValidationError, match="no key usage"):
            build_template(request, key, usages=usages)

    def test_encipher_only_requires_key_agreement(self, request_and_key):
        """Test that encipher only needs key agreement."""
        request, key = request_and_key

        with pytest.raises(ValidationError, match="key agreement"):
            build_template(request, key, usages=["encipher only"])

        template = build_template(request, key, usages=["key agreement", "encipher only"])
        assert KeyUsageFlag.ENCIPHER_ONLY in template.key_usage

    def test_serial_numbers(self, request_and_key):
        """Test that serial numbers are random, positive and 63-bit."""
        request, key = request_and_key
        serials = {
            build_template(request, key, usages=["signing"]).serial_number
            for _ in range(20)
        }

        assert len(serials) == 20
        assert all(0 < serial <= MAX_SERIAL_NUMBER for serial in serials)
        assert MAX_SERIAL_NUMBER.bit_length() == 63

    def test_invalid_host(self, request_and_key):
        """Test that an unencodable host fails template construction."""
        _, key = request_and_key
        request = parse_certificate_request(
            "keyAlgorithm: ecdsa\ncommonName: x\nhosts:\n  - bücher.example\n"
        )

        with pytest.raises(ValidationError, match="invalid host"):
            build_template(request, key, usages=["signing"])

    def test_rsa_template(self, rsa_2048_key):
        """Test a template for an RSA key."""
        request = parse_certificate_request("keyAlgorithm: rsa\nkeySize: 2048\ncommonName: r")
        template = build_template(request, rsa_2048_key, usages=["key encipherment"])

        assert template.public_key_algorithm == PublicKeyAlgorithmOID.RSAES_PKCS1_v1_5
        assert rsa_2048_key.algorithm is KeyAlgorithm.RSA


class TestToBuilder:
    """Test template to certificate builder conversion."""

    def _sign(self, template, key):
        aki = x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key)
        builder = template.to_builder(template.subject, aki)
        return builder.sign(key.private_key, key.hash_algorithm)

    def test_san_not_critical_with_subject(self, request_and_key):
        """Test a non-critical SAN next to a subject."""
        request, key = request_and_key
        certificate = self._sign(build_template(request, key, usages=["signing"]), key)

        san = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        assert not san.critical

    def test_san_critical_without_subject(self, request_and_key):
        """Test a critical SAN when the subject is empty."""
        request, key = request_and_key
        template = dataclasses.replace(
            build_template(request, key, usages=["signing"]), subject=x509.Name([])
        )
        certificate = self._sign(template, key)

        san = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        assert san.critical

    def test_no_san_without_hosts(self, request_and_key):
        """Test that empty hosts and usages add no extensions."""
        _, key = request_and_key
        request = parse_certificate_request("keyAlgorithm: ecdsa\ncommonName: nohosts")
        certificate = self._sign(build_template(request, key, usages=["server auth"]), key)

        with pytest.raises(x509.ExtensionNotFound):
            certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        with pytest.raises(x509.ExtensionNotFound):
            certificate.extensions.get_extension_for_class(x509.KeyUsage)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
