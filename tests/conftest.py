"""Pytest configuration helpers for the test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

VALID_API_KEY = "k" * 44


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Return a data directory path that does not exist yet."""
    return tmp_path / "data"


@pytest.fixture
def base_env(data_dir: Path) -> dict[str, str]:
    """Minimal environment that builds a local-mode configuration."""
    return {
        "VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS": "example.com",
        "VSB_DATA_PATH": str(data_dir),
        "VSB_LOCAL_API_KEY": VALID_API_KEY,
        "VSB_NODE_ID": "node-test",
    }


def create_self_signed_cert(
    tmp_path: Path,
    *,
    common_name: str = "mail.example.com",
    sans: tuple[str, ...] = ("mail.example.com",),
    valid_from: datetime | None = None,
    valid_to: datetime | None = None,
) -> tuple[Path, Path]:
    """Write a self-signed certificate/key pair and return their paths."""
    now = datetime.now(UTC)
    valid_to = valid_to or (now + timedelta(days=90))
    valid_from = valid_from or min(now - timedelta(days=1), valid_to - timedelta(days=30))
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(valid_from)
        .not_valid_after(valid_to)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
    )
    if sans:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in sans]),
            critical=False,
        )
    cert = builder.sign(key, hashes.SHA256())

    safe = common_name.replace(".", "_")
    cert_path = tmp_path / f"{safe}.pem"
    key_path = tmp_path / f"{safe}.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


@pytest.fixture
def tls_pair(tmp_path: Path) -> tuple[Path, Path]:
    """Self-signed certificate/key pair valid for the next 90 days."""
    return create_self_signed_cert(tmp_path)
