"""Immutable section types making up a gateway configuration snapshot.

Each section mirrors one configuration domain and exposes ``to_dict`` for
diagnostics. Secrets are redacted in the serialised form; collaborators read
the real values from the attributes.

The snapshot itself is a tagged union keyed by gateway mode:
:class:`LocalGatewayConfig` carries the local-only sections (API key, email
authentication, spam analysis, chaos) and :class:`BackendGatewayConfig` does
not have them at all.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .constants import EncryptionPolicy, GatewayMode
from .tls import TLSMaterial

REDACTED = "***"


def _redact(value: str | None) -> str | None:
    return REDACTED if value else value


@dataclass(frozen=True)
class BackendConfig:
    """Backend endpoint used in backend mode."""

    url: str | None
    api_key: str | None = field(repr=False)
    timeout: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"url": self.url, "api_key": _redact(self.api_key), "timeout": self.timeout}


@dataclass(frozen=True)
class MainConfig:
    """HTTP server settings and gateway operation mode."""

    gateway_mode: GatewayMode
    port: int
    https_enabled: bool
    https_port: int
    origin: str
    backend: BackendConfig
    data_path: Path
    development: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "gateway_mode": self.gateway_mode.value,
            "port": self.port,
            "https_enabled": self.https_enabled,
            "https_port": self.https_port,
            "origin": self.origin,
            "backend": self.backend.to_dict(),
            "data_path": str(self.data_path),
            "development": self.development,
        }


@dataclass(frozen=True)
class SmtpConfig:
    """Receive-only SMTP listener settings."""

    host: str
    port: int
    secure: bool
    max_message_size: int
    max_header_size: int
    session_timeout: int
    allowed_recipient_domains: tuple[str, ...]
    tls: TLSMaterial | None
    max_connections: int
    close_timeout: int
    disabled_commands: tuple[str, ...]
    disable_pipelining: bool
    early_talker_delay: int
    banner: str
    max_memory_mb: int
    max_email_age_seconds: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "max_message_size": self.max_message_size,
            "max_header_size": self.max_header_size,
            "session_timeout": self.session_timeout,
            "allowed_recipient_domains": list(self.allowed_recipient_domains),
            "tls": self.tls.to_dict() if self.tls is not None else None,
            "max_connections": self.max_connections,
            "close_timeout": self.close_timeout,
            "disabled_commands": list(self.disabled_commands),
            "disable_pipelining": self.disable_pipelining,
            "early_talker_delay": self.early_talker_delay,
            "banner": self.banner,
            "max_memory_mb": self.max_memory_mb,
            "max_email_age_seconds": self.max_email_age_seconds,
        }


@dataclass(frozen=True)
class OrchestrationBackendConfig:
    """Backend used for distributed leadership locks."""

    url: str
    api_key: str = field(repr=False)
    timeout: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"url": self.url, "api_key": _redact(self.api_key), "timeout": self.timeout}


@dataclass(frozen=True)
class OrchestrationConfig:
    """Multi-node coordination settings."""

    enabled: bool
    cluster_name: str
    node_id: str
    peers: tuple[str, ...]
    backend: OrchestrationBackendConfig
    leadership_ttl: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "enabled": self.enabled,
            "cluster_name": self.cluster_name,
            "node_id": self.node_id,
            "peers": list(self.peers),
            "backend": self.backend.to_dict(),
            "leadership": {"ttl": self.leadership_ttl},
        }


@dataclass(frozen=True)
class CertificateConfig:
    """Automatic (ACME) certificate management settings."""

    enabled: bool
    email: str
    domain: str
    additional_domains: tuple[str, ...]
    storage_path: Path
    check_interval: int
    renew_days_before_expiry: int
    acme_directory_url: str
    staging: bool
    peer_shared_secret: str = field(repr=False)

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "enabled": self.enabled,
            "email": self.email,
            "domain": self.domain,
            "additional_domains": list(self.additional_domains),
            "storage_path": str(self.storage_path),
            "check_interval": self.check_interval,
            "renew_days_before_expiry": self.renew_days_before_expiry,
            "acme_directory_url": self.acme_directory_url,
            "staging": self.staging,
            "peer_shared_secret": _redact(self.peer_shared_secret),
        }


@dataclass(frozen=True)
class LocalConfig:
    """Standalone-mode settings, including the client API key."""

    api_key: str = field(repr=False)
    inbox_default_ttl: int
    inbox_max_ttl: int
    cleanup_interval: int
    inbox_alias_random_bytes: int
    hard_mode_reject_code: int
    allow_clear_all_inboxes: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "api_key": _redact(self.api_key),
            "inbox_default_ttl": self.inbox_default_ttl,
            "inbox_max_ttl": self.inbox_max_ttl,
            "cleanup_interval": self.cleanup_interval,
            "inbox_alias_random_bytes": self.inbox_alias_random_bytes,
            "hard_mode_reject_code": self.hard_mode_reject_code,
            "allow_clear_all_inboxes": self.allow_clear_all_inboxes,
        }


@dataclass(frozen=True)
class CryptoConfig:
    """Signing key locations and the inbox encryption policy."""

    sig_sk_path: Path | None
    sig_pk_path: Path | None
    encryption_policy: EncryptionPolicy

    @property
    def has_persistent_keys(self) -> bool:
        """Return True when signing keys are loaded from disk."""
        return self.sig_sk_path is not None and self.sig_pk_path is not None

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "sig_sk_path": str(self.sig_sk_path) if self.sig_sk_path else None,
            "sig_pk_path": str(self.sig_pk_path) if self.sig_pk_path else None,
            "encryption_policy": self.encryption_policy.value,
        }


@dataclass(frozen=True)
class ThrottleConfig:
    """Global HTTP API rate limit."""

    ttl: int
    limit: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"ttl": self.ttl, "limit": self.limit}


@dataclass(frozen=True)
class SmtpRateLimitConfig:
    """Per-IP SMTP rate limit."""

    enabled: bool
    points: int
    duration: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"enabled": self.enabled, "points": self.points, "duration": self.duration}


@dataclass(frozen=True)
class SseConsoleConfig:
    """Server-sent event console broadcast toggle."""

    enabled: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"enabled": self.enabled}


@dataclass(frozen=True)
class WebhookConfig:
    """Limits and defaults for webhook delivery."""

    enabled: bool
    max_global_webhooks: int
    max_inbox_webhooks: int
    delivery_timeout: int
    max_retries: int
    max_retries_per_webhook: int
    allow_http: bool
    require_auth_default: bool
    max_headers: int
    max_header_value_len: int

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "enabled": self.enabled,
            "max_global_webhooks": self.max_global_webhooks,
            "max_inbox_webhooks": self.max_inbox_webhooks,
            "delivery_timeout": self.delivery_timeout,
            "max_retries": self.max_retries,
            "max_retries_per_webhook": self.max_retries_per_webhook,
            "allow_http": self.allow_http,
            "require_auth_default": self.require_auth_default,
            "max_headers": self.max_headers,
            "max_header_value_len": self.max_header_value_len,
        }


@dataclass(frozen=True)
class EmailAuthConfig:
    """Which sender-authentication checks run on inbound mail."""

    enabled: bool
    spf: bool
    dkim: bool
    dmarc: bool
    reverse_dns: bool
    inbox_default: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "enabled": self.enabled,
            "spf": self.spf,
            "dkim": self.dkim,
            "dmarc": self.dmarc,
            "reverse_dns": self.reverse_dns,
            "inbox_default": self.inbox_default,
        }


@dataclass(frozen=True)
class RspamdConfig:
    """Connection settings for the spam-analysis HTTP service."""

    url: str
    timeout_ms: int
    password: str | None = field(repr=False)

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "url": self.url,
            "timeout_ms": self.timeout_ms,
            "password": _redact(self.password),
        }


@dataclass(frozen=True)
class SpamAnalysisConfig:
    """Spam scoring toggle and service settings."""

    enabled: bool
    rspamd: RspamdConfig
    inbox_default: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "enabled": self.enabled,
            "rspamd": self.rspamd.to_dict(),
            "inbox_default": self.inbox_default,
        }


@dataclass(frozen=True)
class ChaosConfig:
    """Fault-injection toggle for test environments."""

    enabled: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"enabled": self.enabled}


@dataclass(frozen=True)
class _GatewayConfigBase:
    environment: str
    main: MainConfig
    smtp: SmtpConfig
    orchestration: OrchestrationConfig
    certificate: CertificateConfig
    crypto: CryptoConfig
    throttle: ThrottleConfig
    smtp_rate_limit: SmtpRateLimitConfig
    sse_console: SseConsoleConfig
    webhook: WebhookConfig

    def _common_dict(self) -> dict[str, object]:
        return {
            "environment": self.environment,
            "gateway_mode": self.main.gateway_mode.value,
            "main": self.main.to_dict(),
            "smtp": self.smtp.to_dict(),
            "orchestration": self.orchestration.to_dict(),
            "certificate": self.certificate.to_dict(),
            "crypto": self.crypto.to_dict(),
            "throttle": self.throttle.to_dict(),
            "smtp_rate_limit": self.smtp_rate_limit.to_dict(),
            "sse_console": self.sse_console.to_dict(),
            "webhook": self.webhook.to_dict(),
        }


@dataclass(frozen=True)
class LocalGatewayConfig(_GatewayConfigBase):
    """Snapshot for a standalone gateway."""

    local: LocalConfig
    email_auth: EmailAuthConfig
    spam_analysis: SpamAnalysisConfig
    chaos: ChaosConfig

    @property
    def gateway_mode(self) -> Literal[GatewayMode.LOCAL]:
        """Return the gateway mode this snapshot was built for."""
        return GatewayMode.LOCAL

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable, redacted representation."""
        payload = self._common_dict()
        payload.update(
            {
                "local": self.local.to_dict(),
                "email_auth": self.email_auth.to_dict(),
                "spam_analysis": self.spam_analysis.to_dict(),
                "chaos": self.chaos.to_dict(),
            }
        )
        return payload


@dataclass(frozen=True)
class BackendGatewayConfig(_GatewayConfigBase):
    """Snapshot for a gateway fronting a backend service."""

    @property
    def gateway_mode(self) -> Literal[GatewayMode.BACKEND]:
        """Return the gateway mode this snapshot was built for."""
        return GatewayMode.BACKEND

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable, redacted representation."""
        return self._common_dict()


GatewayConfig = LocalGatewayConfig | BackendGatewayConfig


__all__ = [
    "REDACTED",
    "BackendConfig",
    "BackendGatewayConfig",
    "CertificateConfig",
    "ChaosConfig",
    "CryptoConfig",
    "EmailAuthConfig",
    "GatewayConfig",
    "LocalConfig",
    "LocalGatewayConfig",
    "MainConfig",
    "OrchestrationBackendConfig",
    "OrchestrationConfig",
    "RspamdConfig",
    "SmtpConfig",
    "SmtpRateLimitConfig",
    "SpamAnalysisConfig",
    "SseConsoleConfig",
    "ThrottleConfig",
    "WebhookConfig",
]
