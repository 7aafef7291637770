# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Command line front end for the certificate issuance engine.

All file reading and writing happens here; the engine itself only sees
and returns bytes.
"""

import argparse
import logging
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

from .config import settings
from .ssl import (
    IssuanceError,
    KeyAlgorithm,
    ValidationError,
    generate,
    generate_ca,
    generate_csr,
    generate_key,
)

logger = logging.getLogger(__name__)


def _write_pem(path: Path, data: bytes, private: bool = False) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if private:
        # Owner-only from creation; fchmod covers a pre-existing file
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            os.fchmod(f.fileno(), 0o600)
            f.write(data)
    else:
        path.write_bytes(data)
    logger.info(f"Wrote {path}")


def _expiration(args: argparse.Namespace) -> timedelta:
    try:
        if args.expiration_hours is None:
            return settings.expiration
        return timedelta(hours=args.expiration_hours)
    except OverflowError as e:
        raise ValidationError(f"invalid expiration: {e}") from e


def _cmd_key(args: argparse.Namespace) -> None:
    key = generate_key(KeyAlgorithm.parse(args.algorithm), args.size)
    _write_pem(args.out_dir / f"{args.name or 'key'}.pem", key.encoded, private=True)


def _cmd_ca(args: argparse.Namespace) -> None:
    material = generate_ca(args.request.read_bytes(), _expiration(args))
    name = args.name or "ca"
    _write_pem(args.out_dir / f"{name}.pem", material.certificate)
    _write_pem(args.out_dir / f"{name}-key.pem", material.private_key, private=True)


def _cmd_cert(args: argparse.Namespace) -> None:
    material = generate(
        args.request.read_bytes(),
        args.ca.read_bytes(),
        args.ca_key.read_bytes(),
        _expiration(args),
        args.usage or settings.leaf_usages_list,
    )
    name = args.name or "cert"
    _write_pem(args.out_dir / f"{name}.pem", material.certificate)
    _write_pem(args.out_dir / f"{name}-key.pem", material.private_key, private=True)


def _cmd_csr(args: argparse.Namespace) -> None:
    material = generate_csr(args.request.read_bytes(), is_ca=args.is_ca)
    name = args.name or "csr"
    _write_pem(args.out_dir / f"{name}.pem", material.csr)
    _write_pem(args.out_dir / f"{name}-key.pem", material.private_key, private=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="limejuice-ssl",
        description="Issue certificate authorities and certificates from YAML requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Self-signed CA
  limejuice-ssl ca ca-request.yaml --name ca

  # Server certificate signed by that CA
  limejuice-ssl cert server.yaml --ca certs/ca.pem --ca-key certs/ca-key.pem \\
      --usage signing --usage "key encipherment" --usage "server auth"

  # PKCS#10 request
  limejuice-ssl csr server.yaml
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--out-dir',
        type=Path,
        default=Path(settings.output_dir),
        help=f'Output directory (default: {settings.output_dir})'
    )
    common.add_argument(
        '--name',
        help='Output file base name'
    )
    common.add_argument(
        '--expiration-hours',
        type=int,
        help='Certificate validity in hours (default: 10 years)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    key_parser = subparsers.add_parser('key', parents=[common], help='Generate a private key')
    key_parser.add_argument(
        '--algorithm',
        choices=[str(algorithm) for algorithm in KeyAlgorithm],
        default=str(KeyAlgorithm.ECDSA),
        help='Key algorithm (default: ecdsa)'
    )
    key_parser.add_argument(
        '--size',
        type=int,
        default=0,
        help='Key size in bits (default: algorithm default)'
    )
    key_parser.set_defaults(func=_cmd_key)

    ca_parser = subparsers.add_parser('ca', parents=[common], help='Issue a self-signed CA')
    ca_parser.add_argument('request', type=Path, help='YAML certificate request')
    ca_parser.set_defaults(func=_cmd_ca)

    cert_parser = subparsers.add_parser(
        'cert', parents=[common], help='Issue a certificate signed by a CA'
    )
    cert_parser.add_argument('request', type=Path, help='YAML certificate request')
    cert_parser.add_argument('--ca', type=Path, required=True, help='CA certificate (PEM)')
    cert_parser.add_argument('--ca-key', type=Path, required=True, help='CA private key (PEM)')
    cert_parser.add_argument(
        '--usage',
        action='append',
        help='Key usage name, repeatable (default: LIMEJUICE_LEAF_USAGES)'
    )
    cert_parser.set_defaults(func=_cmd_cert)

    csr_parser = subparsers.add_parser(
        'csr', parents=[common], help='Create a PKCS#10 certificate request'
    )
    csr_parser.add_argument('request', type=Path, help='YAML certificate request')
    csr_parser.add_argument(
        '--ca',
        dest='is_ca',
        action='store_true',
        help='Request a CA certificate'
    )
    csr_parser.set_defaults(func=_cmd_csr)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        args.func(args)
    except (IssuanceError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
