"""TLS material loading for the SMTP listener."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from cryptography import x509

from .constants import (
    DEFAULT_TLS_CIPHERS,
    DEFAULT_TLS_ECDH_CURVE,
    DEFAULT_TLS_HONOR_CIPHER_ORDER,
    DEFAULT_TLS_MIN_VERSION,
)
from .environment import EnvironmentSource
from .errors import CrossFieldConflictError, InvalidFormatError
from .parsers import parse_bool, parse_string

TLS_CERT_PATH_VAR = "VSB_TLS_CERT_PATH"
TLS_KEY_PATH_VAR = "VSB_TLS_KEY_PATH"

_PEM_BEGIN = b"-----BEGIN"
_PEM_END = b"-----END"


@dataclass(frozen=True)
class TLSMaterial:
    """PEM certificate/key pair plus the hardening options for the listener."""

    certificate: bytes = field(repr=False)
    key: bytes = field(repr=False)
    certificate_path: Path
    key_path: Path
    min_version: str = DEFAULT_TLS_MIN_VERSION
    ciphers: str = DEFAULT_TLS_CIPHERS
    honor_cipher_order: bool = DEFAULT_TLS_HONOR_CIPHER_ORDER
    ecdh_curve: str = DEFAULT_TLS_ECDH_CURVE

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation without the key bytes."""
        return {
            "certificate_path": str(self.certificate_path),
            "key_path": str(self.key_path),
            "min_version": self.min_version,
            "ciphers": self.ciphers,
            "honor_cipher_order": self.honor_cipher_order,
            "ecdh_curve": self.ecdh_curve,
        }


@dataclass(frozen=True)
class CertificateDetails:
    """Facts extracted from a loaded certificate for operator diagnostics."""

    subject: str
    subject_alt_names: tuple[str, ...]
    not_valid_before: datetime
    not_valid_after: datetime
    expired: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "subject": self.subject,
            "subject_alt_names": list(self.subject_alt_names),
            "not_valid_before": self.not_valid_before.isoformat(),
            "not_valid_after": self.not_valid_after.isoformat(),
            "expired": self.expired,
        }


def read_pem_file(path: str) -> bytes | None:
    """Read a PEM file, returning ``None`` when it has not been provisioned yet."""
    full_path = Path(path).expanduser().resolve()
    if not full_path.exists():
        return None
    try:
        data = full_path.read_bytes()
    except OSError as exc:
        raise InvalidFormatError(f"Cannot read certificate/key file {path}: {exc}") from exc
    if _PEM_BEGIN not in data or _PEM_END not in data:
        raise InvalidFormatError(
            f"Invalid certificate/key format in {path}: File must be in PEM format"
        )
    return data


def load_tls_material(env: EnvironmentSource) -> TLSMaterial | None:
    """Load the SMTP certificate/key pair configured in *env*.

    Returns ``None`` when neither path is set, or when both are set but
    neither file exists yet (certificate management may provision them
    later). Setting only one path, or a pair where only one file resolves,
    is rejected.
    """
    cert_path = env.get(TLS_CERT_PATH_VAR)
    key_path = env.get(TLS_KEY_PATH_VAR)
    if not cert_path and not key_path:
        return None
    if not cert_path or not key_path:
        raise _half_pair_error(missing=TLS_KEY_PATH_VAR if cert_path else TLS_CERT_PATH_VAR)

    certificate = read_pem_file(cert_path)
    key = read_pem_file(key_path)
    if certificate is None and key is None:
        return None
    if certificate is None or key is None:
        raise _half_pair_error(missing=TLS_KEY_PATH_VAR if key is None else TLS_CERT_PATH_VAR)

    return TLSMaterial(
        certificate=certificate,
        key=key,
        certificate_path=Path(cert_path),
        key_path=Path(key_path),
        min_version=parse_string(env.get("VSB_SMTP_TLS_MIN_VERSION"), DEFAULT_TLS_MIN_VERSION),
        ciphers=parse_string(env.get("VSB_SMTP_TLS_CIPHERS"), DEFAULT_TLS_CIPHERS),
        honor_cipher_order=parse_bool(
            env.get("VSB_SMTP_TLS_HONOR_CIPHER_ORDER"),
            DEFAULT_TLS_HONOR_CIPHER_ORDER,
        ),
        ecdh_curve=parse_string(env.get("VSB_SMTP_TLS_ECDH_CURVE"), DEFAULT_TLS_ECDH_CURVE),
    )


def _half_pair_error(*, missing: str) -> CrossFieldConflictError:
    return CrossFieldConflictError(
        f"Both {TLS_CERT_PATH_VAR} and {TLS_KEY_PATH_VAR} must be provided to enable TLS.",
        variable=missing,
    )


def has_manual_tls_paths(env: EnvironmentSource) -> bool:
    """Return True when either manual TLS path variable is set."""
    return bool(env.get(TLS_CERT_PATH_VAR) or env.get(TLS_KEY_PATH_VAR))


def inspect_certificate(
    material: TLSMaterial,
    *,
    now: datetime | None = None,
) -> CertificateDetails:
    """Parse the certificate in *material* and summarise its identity and validity."""
    now = now or datetime.now(UTC)
    try:
        cert = x509.load_pem_x509_certificate(material.certificate)
    except ValueError as exc:
        raise InvalidFormatError(
            f"Failed to parse certificate {material.certificate_path}: {exc}"
        ) from exc

    try:
        san_extension = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        sans = tuple(san_extension.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        sans = ()

    not_before = cert.not_valid_before_utc
    not_after = cert.not_valid_after_utc
    return CertificateDetails(
        subject=cert.subject.rfc4514_string(),
        subject_alt_names=sans,
        not_valid_before=not_before,
        not_valid_after=not_after,
        expired=not_after <= now,
    )


__all__ = [
    "CertificateDetails",
    "TLSMaterial",
    "TLS_CERT_PATH_VAR",
    "TLS_KEY_PATH_VAR",
    "has_manual_tls_paths",
    "inspect_certificate",
    "load_tls_material",
    "read_pem_file",
]
