"""Unit tests for TLS material loading and certificate inspection."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from conftest import create_self_signed_cert

from vsbconf.constants import DEFAULT_TLS_CIPHERS
from vsbconf.errors import CrossFieldConflictError, InvalidFormatError
from vsbconf.tls import (
    TLSMaterial,
    has_manual_tls_paths,
    inspect_certificate,
    load_tls_material,
    read_pem_file,
)


def test_read_pem_file_missing_returns_none(tmp_path: Path) -> None:
    """A path that does not exist yet is treated as not provisioned."""
    assert read_pem_file(str(tmp_path / "missing.pem")) is None


def test_read_pem_file_rejects_non_pem(tmp_path: Path) -> None:
    """Files without PEM armour are rejected."""
    path = tmp_path / "cert.der"
    path.write_bytes(b"\x30\x82\x01\x0a")

    with pytest.raises(InvalidFormatError, match="must be in PEM format"):
        read_pem_file(str(path))


def test_load_tls_material_none_when_unconfigured() -> None:
    """No TLS variables means no material."""
    assert load_tls_material({}) is None


def test_load_tls_material_none_when_files_absent(tmp_path: Path) -> None:
    """Configured paths whose files are not provisioned yet yield no material."""
    env = {
        "VSB_TLS_CERT_PATH": str(tmp_path / "cert.pem"),
        "VSB_TLS_KEY_PATH": str(tmp_path / "key.pem"),
    }

    assert load_tls_material(env) is None


def test_load_tls_material_reads_pair_with_defaults(tls_pair: tuple[Path, Path]) -> None:
    """Both files load and hardening defaults are applied."""
    cert_path, key_path = tls_pair
    env = {"VSB_TLS_CERT_PATH": str(cert_path), "VSB_TLS_KEY_PATH": str(key_path)}

    material = load_tls_material(env)

    assert isinstance(material, TLSMaterial)
    assert material.certificate.startswith(b"-----BEGIN CERTIFICATE-----")
    assert b"PRIVATE KEY" in material.key
    assert material.min_version == "TLSv1.2"
    assert material.ciphers == DEFAULT_TLS_CIPHERS
    assert material.honor_cipher_order is True
    assert material.ecdh_curve == "auto"
    assert "key" not in material.to_dict()


def test_load_tls_material_honours_overrides(tls_pair: tuple[Path, Path]) -> None:
    """Hardening options can be overridden from the environment."""
    cert_path, key_path = tls_pair
    env = {
        "VSB_TLS_CERT_PATH": str(cert_path),
        "VSB_TLS_KEY_PATH": str(key_path),
        "VSB_SMTP_TLS_MIN_VERSION": "TLSv1.3",
        "VSB_SMTP_TLS_HONOR_CIPHER_ORDER": "false",
        "VSB_SMTP_TLS_ECDH_CURVE": "X25519",
    }

    material = load_tls_material(env)

    assert material is not None
    assert material.min_version == "TLSv1.3"
    assert material.honor_cipher_order is False
    assert material.ecdh_curve == "X25519"


def test_load_tls_material_rejects_half_pair(tls_pair: tuple[Path, Path]) -> None:
    """A certificate without its key is a cross-field conflict."""
    cert_path, _ = tls_pair

    with pytest.raises(CrossFieldConflictError) as excinfo:
        load_tls_material({"VSB_TLS_CERT_PATH": str(cert_path)})

    assert "Both VSB_TLS_CERT_PATH and VSB_TLS_KEY_PATH must be provided" in str(excinfo.value)
    assert excinfo.value.variable == "VSB_TLS_KEY_PATH"


def test_load_tls_material_rejects_single_unprovisioned_path(tmp_path: Path) -> None:
    """One configured path fails even before its file exists."""
    with pytest.raises(CrossFieldConflictError) as excinfo:
        load_tls_material({"VSB_TLS_KEY_PATH": str(tmp_path / "key.pem")})

    assert excinfo.value.variable == "VSB_TLS_CERT_PATH"


def test_load_tls_material_rejects_pair_with_one_missing_file(
    tmp_path: Path,
    tls_pair: tuple[Path, Path],
) -> None:
    """Both paths set but only the certificate on disk is a conflict."""
    cert_path, _ = tls_pair
    env = {"VSB_TLS_CERT_PATH": str(cert_path), "VSB_TLS_KEY_PATH": str(tmp_path / "nope.key")}

    with pytest.raises(CrossFieldConflictError) as excinfo:
        load_tls_material(env)

    assert excinfo.value.variable == "VSB_TLS_KEY_PATH"


def test_has_manual_tls_paths() -> None:
    """Either variable counts as a manual TLS configuration."""
    assert has_manual_tls_paths({"VSB_TLS_KEY_PATH": "/k"}) is True
    assert has_manual_tls_paths({}) is False


def test_inspect_certificate_reports_identity(tls_pair: tuple[Path, Path]) -> None:
    """Subject, SANs and validity window are extracted."""
    cert_path, key_path = tls_pair
    material = load_tls_material(
        {"VSB_TLS_CERT_PATH": str(cert_path), "VSB_TLS_KEY_PATH": str(key_path)}
    )
    assert material is not None

    details = inspect_certificate(material)

    assert details.subject == "CN=mail.example.com"
    assert details.subject_alt_names == ("mail.example.com",)
    assert details.expired is False
    assert details.not_valid_after > datetime.now(UTC)


def test_inspect_certificate_flags_expired(tmp_path: Path) -> None:
    """A certificate past its end date is reported as expired."""
    cert_path, key_path = create_self_signed_cert(
        tmp_path,
        common_name="old.example.com",
        sans=(),
        valid_to=datetime.now(UTC) - timedelta(days=1),
    )
    material = load_tls_material(
        {"VSB_TLS_CERT_PATH": str(cert_path), "VSB_TLS_KEY_PATH": str(key_path)}
    )
    assert material is not None

    details = inspect_certificate(material)

    assert details.expired is True
    assert details.subject_alt_names == ()


def test_inspect_certificate_rejects_garbage(tmp_path: Path) -> None:
    """Armoured but unparsable content fails with a format error."""
    material = TLSMaterial(
        certificate=b"-----BEGIN CERTIFICATE-----\nnope\n-----END CERTIFICATE-----\n",
        key=b"",
        certificate_path=tmp_path / "bad.pem",
        key_path=tmp_path / "bad.key",
    )

    with pytest.raises(InvalidFormatError, match="Failed to parse certificate"):
        inspect_certificate(material)
