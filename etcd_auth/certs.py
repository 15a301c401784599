"""Client certificates for tenants.

A tenant authenticates to etcd with a client certificate whose Common Name
is the tenant name; etcd maps the CN to the user of the same name. The
certificate is signed by the cluster CA found in the certificates directory.
"""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Tuple

import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from etcd_auth.config_manager import EtcdAdmConfig
from etcd_auth.exceptions import CertificateIssuanceError

logger = structlog.get_logger(__name__)

CA_CERT_NAME = "ca.crt"
CA_KEY_NAME = "ca.key"


class CertificateIssuer:
    """Issues CA-signed client certificate and key files."""

    def __init__(self, key_size: int = 2048, validity_days: int = 365) -> None:
        self.key_size = key_size
        self.validity_days = validity_days

    def _load_ca(self, cert_dir: Path):
        cert_path = cert_dir / CA_CERT_NAME
        key_path = cert_dir / CA_KEY_NAME
        try:
            ca_cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
            ca_key = serialization.load_pem_private_key(
                key_path.read_bytes(), password=None
            )
        except FileNotFoundError as e:
            raise CertificateIssuanceError(
                f"[certs] CA certificate and key not found in {cert_dir}",
                path=str(e.filename or cert_dir),
                cause=e,
                recovery_suggestion="Run 'etcdadm init' to create the cluster CA",
            ) from e
        except (OSError, ValueError) as e:
            raise CertificateIssuanceError(
                f"[certs] failed to load CA from {cert_dir}",
                path=str(cert_dir),
                cause=e,
            ) from e
        return ca_cert, ca_key

    def issue(self, config: EtcdAdmConfig, common_name: str) -> Tuple[Path, Path]:
        """Write ``<common_name>.crt`` and ``<common_name>.key`` next to the CA.

        Returns:
            Tuple of (certificate path, key path)
        """
        cert_dir = Path(config.certificates_dir)
        ca_cert, ca_key = self._load_ca(cert_dir)

        key = rsa.generate_private_key(public_exponent=65537, key_size=self.key_size)
        now = datetime.now(timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(
                x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
            )
            .issuer_name(ca_cert.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=self.validity_days))
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=True,
                    key_cert_sign=False,
                    crl_sign=False,
                    content_commitment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            .sign(ca_key, hashes.SHA256())
        )

        cert_path = cert_dir / f"{common_name}.crt"
        key_path = cert_dir / f"{common_name}.key"
        try:
            key_path.write_bytes(
                key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.TraditionalOpenSSL,
                    encryption_algorithm=serialization.NoEncryption(),
                )
            )
            os.chmod(key_path, 0o600)
            cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        except OSError as e:
            raise CertificateIssuanceError(
                f"[certs] failed to write client certificate for {common_name}",
                common_name=common_name,
                path=str(cert_dir),
                cause=e,
            ) from e

        logger.info(f"[certs] generated client certificate and key for {common_name}")
        return cert_path, key_path


def issue_tenant_client_certificate(
    config: EtcdAdmConfig, name: str
) -> Tuple[Path, Path]:
    return CertificateIssuer().issue(config, name)
