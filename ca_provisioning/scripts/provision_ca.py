#!/usr/bin/env python3
"""Provision an easy-rsa certificate authority instance."""

import argparse
import sys
from pathlib import Path

from ca_provisioning.lib.cert_utils import summarize_certificate
from ca_provisioning.lib.config import (
    DNMode,
    DistinguishedName,
    KeyAlgorithm,
    ProvisioningRequest,
    ServiceConfig,
)
from ca_provisioning.lib.errors import ConfigurationError, PublishError, StepExecutionError
from ca_provisioning.lib.logging_config import LOGGER
from ca_provisioning.lib.provisioner import CAProvisioner

EXIT_CONFIGURATION_ERROR = 1
EXIT_STEP_FAILED = 2
EXIT_PUBLISH_FAILED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provision an easy-rsa CA instance")
    parser.add_argument("name", help="CA instance name (directory under the base dir)")
    parser.add_argument("--country", required=True)
    parser.add_argument("--province", required=True)
    parser.add_argument("--city", required=True)
    parser.add_argument("--organization", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--common-name", default="server")
    parser.add_argument(
        "--dn-mode", choices=[m.value for m in DNMode], default=DNMode.ORG.value
    )
    parser.add_argument(
        "--key-algo", choices=[a.value for a in KeyAlgorithm], default=KeyAlgorithm.RSA.value
    )
    parser.add_argument("--key-size", type=int, help="RSA key size (rsa only)")
    parser.add_argument("--key-curve", help="Named curve (ec and ed only)")
    parser.add_argument("--ca-expire", type=int, default=3650, help="CA validity in days")
    parser.add_argument("--key-expire", type=int, default=3650, help="Server cert validity in days")
    parser.add_argument("--crl-days", type=int, default=30, help="CRL validity in days")
    parser.add_argument("--digest", default="sha512")
    parser.add_argument("--key-name")
    parser.add_argument("--key-ou")
    parser.add_argument("--key-cn")
    parser.add_argument("--tls-static-key", action="store_true")
    parser.add_argument("--base-dir", type=Path, help="Override CA_PROVISIONING_BASE_DIR")
    parser.add_argument("--easyrsa-version", help="Override CA_PROVISIONING_EASYRSA_VERSION")
    return parser


def request_from_args(args: argparse.Namespace) -> ProvisioningRequest:
    return ProvisioningRequest(
        name=args.name,
        dn=DistinguishedName(
            country=args.country,
            province=args.province,
            city=args.city,
            organization=args.organization,
            email=args.email,
            common_name=args.common_name,
        ),
        dn_mode=DNMode(args.dn_mode),
        key_algorithm=KeyAlgorithm(args.key_algo),
        key_size=args.key_size,
        key_curve=args.key_curve,
        ca_expire=args.ca_expire,
        key_expire=args.key_expire,
        crl_days=args.crl_days,
        digest=args.digest,
        key_name=args.key_name,
        key_ou=args.key_ou,
        key_cn=args.key_cn,
        tls_static_key=args.tls_static_key,
    )


def main(argv: list[str] | None = None) -> int:
    """Provision one CA instance.

    Returns:
        Exit code (0 success, 1 configuration error, 2 step failure, 3 publish failure)
    """
    args = build_parser().parse_args(argv)

    try:
        config = ServiceConfig.from_env()
        if args.base_dir is not None:
            config.base_dir = args.base_dir.absolute()
        if args.easyrsa_version is not None:
            config.easyrsa_version = args.easyrsa_version
        request = request_from_args(args)

        LOGGER.info("Provisioning CA %s...", request.name)
        result = CAProvisioner(config).provision(request)
    except ConfigurationError as e:
        LOGGER.error("Invalid configuration: %s", e)
        return EXIT_CONFIGURATION_ERROR
    except StepExecutionError as e:
        LOGGER.error("Provisioning failed: %s", e)
        if e.failure is not None and e.failure.output:
            LOGGER.error("Step output: %s", e.failure.output)
        return EXIT_STEP_FAILED
    except PublishError as e:
        LOGGER.error("Artifacts generated but not published: %s", e)
        return EXIT_PUBLISH_FAILED

    for step in result.report.results:
        LOGGER.info("  %s: %s", step.name, step.status.value)
    LOGGER.info("CA certificate: %s", result.ca_cert_path)
    LOGGER.info("CRL: %s", result.crl_path)
    LOGGER.info("Keys: %s", result.keys_alias)

    try:
        summary = summarize_certificate(result.ca_cert_path)
    except (OSError, ValueError) as e:
        LOGGER.warning("Could not read CA certificate %s: %s", result.ca_cert_path, e)
    else:
        LOGGER.info("  Serial: %s", summary.serial_number)
        LOGGER.info("  Expires: %s", summary.not_after)

    return 0


if __name__ == "__main__":
    sys.exit(main())
