"""Section builders: one function per configuration domain.

Each builder reads the variables it owns from the environment source, applies
defaults and raises a :class:`~vsbconf.errors.ConfigError` subclass as soon as
an invariant fails. Values that depend on another section (the recipient
domain list, the orchestration flag) are passed in explicitly rather than
re-derived.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from . import constants as c
from .constants import EncryptionPolicy, GatewayMode
from .environment import EnvironmentSource
from .errors import CrossFieldConflictError, InvalidFormatError, MissingRequiredError
from .models import (
    BackendConfig,
    CertificateConfig,
    ChaosConfig,
    CryptoConfig,
    EmailAuthConfig,
    LocalConfig,
    MainConfig,
    OrchestrationBackendConfig,
    OrchestrationConfig,
    RspamdConfig,
    SmtpConfig,
    SmtpRateLimitConfig,
    SpamAnalysisConfig,
    SseConsoleConfig,
    ThrottleConfig,
    WebhookConfig,
)
from .parsers import (
    RECIPIENT_DOMAINS_VAR,
    parse_bool,
    parse_disabled_commands,
    parse_list,
    parse_number,
    parse_recipient_domains,
    parse_string,
)
from .provisioning import (
    API_KEY_STRICT_VAR,
    API_KEY_VAR,
    generate_node_id,
    generate_shared_secret,
    resolve_api_key,
)
from .tls import has_manual_tls_paths, load_tls_material
from .validators import check_tls_posture, is_valid_domain

LOGGER = logging.getLogger(__name__)


def _number(env: EnvironmentSource, name: str, default: int) -> int:
    return parse_number(env.get(name), default, name=name)


def _flag(env: EnvironmentSource, name: str, default: bool) -> bool:
    return parse_bool(env.get(name), default)


def _string(env: EnvironmentSource, name: str, default: str) -> str:
    return parse_string(env.get(name), default)


def _stripped(env: EnvironmentSource, name: str) -> str | None:
    value = env.get(name)
    if value is None:
        return None
    return value.strip() or None


def resolve_data_path(env: EnvironmentSource) -> Path:
    """Return the unified data directory root."""
    return Path(_string(env, "VSB_DATA_PATH", c.DEFAULT_DATA_PATH))


def cert_management_flag(env: EnvironmentSource) -> bool:
    """Return True when ACME certificate management is switched on."""
    return _flag(env, "VSB_CERT_ENABLED", False)


def orchestration_flag(env: EnvironmentSource) -> bool:
    """Return True when multi-node orchestration is switched on."""
    return _flag(env, "VSB_ORCHESTRATION_ENABLED", False)


def parse_gateway_mode(env: EnvironmentSource) -> GatewayMode:
    """Validate ``VSB_GATEWAY_MODE`` against the allowed modes."""
    raw = _string(env, "VSB_GATEWAY_MODE", c.DEFAULT_GATEWAY_MODE)
    try:
        return GatewayMode(raw)
    except ValueError as exc:
        allowed = ", ".join(c.ALLOWED_GATEWAY_MODES)
        raise InvalidFormatError(
            f'Invalid VSB_GATEWAY_MODE: "{raw}". Must be one of: {allowed}',
            variable="VSB_GATEWAY_MODE",
        ) from exc


def build_smtp_config(
    env: EnvironmentSource,
    *,
    logger: logging.Logger | None = None,
) -> SmtpConfig:
    """Build the SMTP listener section and the validated recipient domains."""
    log = logger or LOGGER
    port = _number(env, "VSB_SMTP_PORT", c.DEFAULT_SMTP_PORT)
    secure = _flag(env, "VSB_SMTP_SECURE", False)
    tls = load_tls_material(env)
    cert_enabled = cert_management_flag(env)

    check_tls_posture(
        smtp_port=port,
        smtp_secure=secure,
        cert_enabled=cert_enabled,
        has_manual_paths=has_manual_tls_paths(env),
        logger=log,
    )

    if secure and tls is None and not cert_enabled:
        raise CrossFieldConflictError(
            "VSB_SMTP_SECURE=true requires TLS credentials. Either:\n"
            "  1. Enable certificate management: VSB_CERT_ENABLED=true\n"
            "  2. Provide manual certificates: VSB_TLS_CERT_PATH + VSB_TLS_KEY_PATH",
            variable="VSB_SMTP_SECURE",
        )

    return SmtpConfig(
        host=_string(env, "VSB_SMTP_HOST", c.DEFAULT_SMTP_HOST),
        port=port,
        secure=secure,
        max_message_size=_number(env, "VSB_SMTP_MAX_MESSAGE_SIZE", c.DEFAULT_SMTP_MAX_MESSAGE_SIZE),
        max_header_size=_number(env, "VSB_SMTP_MAX_HEADER_SIZE", c.DEFAULT_SMTP_MAX_HEADER_SIZE),
        session_timeout=_number(env, "VSB_SMTP_SESSION_TIMEOUT", c.DEFAULT_SMTP_SESSION_TIMEOUT),
        allowed_recipient_domains=parse_recipient_domains(env.get(RECIPIENT_DOMAINS_VAR)),
        tls=tls,
        max_connections=_number(env, "VSB_SMTP_MAX_CONNECTIONS", c.DEFAULT_MAX_CONNECTIONS),
        close_timeout=_number(env, "VSB_SMTP_CLOSE_TIMEOUT", c.DEFAULT_CLOSE_TIMEOUT),
        disabled_commands=parse_disabled_commands(
            env.get("VSB_SMTP_DISABLED_COMMANDS"),
            c.DEFAULT_DISABLED_COMMANDS,
        ),
        disable_pipelining=_flag(env, "VSB_SMTP_DISABLE_PIPELINING", False),
        early_talker_delay=_number(env, "VSB_SMTP_EARLY_TALKER_DELAY", c.DEFAULT_EARLY_TALKER_DELAY),
        banner=_string(env, "VSB_SMTP_BANNER", c.DEFAULT_SMTP_BANNER),
        max_memory_mb=_number(env, "VSB_SMTP_MAX_MEMORY_MB", c.DEFAULT_SMTP_MAX_MEMORY_MB),
        max_email_age_seconds=_number(
            env, "VSB_SMTP_MAX_EMAIL_AGE_SECONDS", c.DEFAULT_SMTP_MAX_EMAIL_AGE_SECONDS
        ),
    )


def build_main_config(
    env: EnvironmentSource,
    *,
    recipient_domains: Sequence[str],
    logger: logging.Logger | None = None,
) -> MainConfig:
    """Build the HTTP server section and enforce gateway-mode requirements."""
    log = logger or LOGGER
    gateway_mode = parse_gateway_mode(env)
    cert_enabled = cert_management_flag(env)
    https_enabled = _flag(env, "VSB_SERVER_HTTPS_ENABLED", cert_enabled)

    explicit_origin = env.get("VSB_SERVER_ORIGIN")
    if explicit_origin:
        origin = explicit_origin.strip()
    else:
        protocol = "https" if https_enabled else "http"
        origin = f"{protocol}://{recipient_domains[0]}"
        log.info(
            "VSB_SERVER_ORIGIN not set - auto-derived from %s: %s",
            RECIPIENT_DOMAINS_VAR,
            origin,
        )

    backend_url = _stripped(env, "VSB_BACKEND_URL")
    backend_api_key = _stripped(env, "VSB_BACKEND_API_KEY")
    credentials_missing = backend_url is None or backend_api_key is None

    if gateway_mode is GatewayMode.BACKEND and credentials_missing:
        raise CrossFieldConflictError(
            "VSB_GATEWAY_MODE=backend requires backend configuration:\n"
            "  - VSB_BACKEND_URL: Backend service URL (required)\n"
            "  - VSB_BACKEND_API_KEY: Backend API authentication key (required)",
            variable="VSB_BACKEND_URL" if backend_url is None else "VSB_BACKEND_API_KEY",
        )
    if orchestration_flag(env) and credentials_missing:
        raise CrossFieldConflictError(
            "VSB_ORCHESTRATION_ENABLED=true requires backend configuration for "
            "distributed locking:\n"
            "  - VSB_BACKEND_URL: Backend Redis API URL (required)\n"
            "  - VSB_BACKEND_API_KEY: Backend API key (required)",
            variable="VSB_BACKEND_URL" if backend_url is None else "VSB_BACKEND_API_KEY",
        )

    if https_enabled and not cert_enabled:
        log.warning(
            "HTTPS is enabled but certificate management is disabled; keep HTTP-only "
            "until certificates are configured"
        )

    return MainConfig(
        gateway_mode=gateway_mode,
        port=_number(env, "VSB_SERVER_PORT", c.DEFAULT_SERVER_PORT),
        https_enabled=https_enabled,
        https_port=_number(env, "VSB_SERVER_HTTPS_PORT", c.DEFAULT_HTTPS_PORT),
        origin=origin,
        backend=BackendConfig(
            url=backend_url,
            api_key=backend_api_key,
            timeout=_number(env, "VSB_BACKEND_REQUEST_TIMEOUT", c.DEFAULT_BACKEND_REQUEST_TIMEOUT),
        ),
        data_path=resolve_data_path(env),
        development=_flag(env, "VSB_DEVELOPMENT", False),
    )


def build_orchestration_config(env: EnvironmentSource) -> OrchestrationConfig:
    """Build the multi-node coordination section."""
    node_id = env.get("VSB_NODE_ID") or generate_node_id(env.get("HOSTNAME"))
    return OrchestrationConfig(
        enabled=orchestration_flag(env),
        cluster_name=_string(env, "VSB_CLUSTER_NAME", c.DEFAULT_CLUSTER_NAME),
        node_id=node_id,
        peers=tuple(parse_list(env.get("VSB_CLUSTER_PEERS"))),
        backend=OrchestrationBackendConfig(
            url=_string(env, "VSB_BACKEND_URL", ""),
            api_key=_string(env, "VSB_BACKEND_API_KEY", ""),
            timeout=_number(env, "VSB_BACKEND_REQUEST_TIMEOUT", c.DEFAULT_BACKEND_REQUEST_TIMEOUT),
        ),
        leadership_ttl=_number(env, "VSB_LEADERSHIP_TTL", c.DEFAULT_LEADERSHIP_TTL),
    )


def build_certificate_config(
    env: EnvironmentSource,
    *,
    recipient_domains: Sequence[str],
    orchestration_enabled: bool,
    logger: logging.Logger | None = None,
) -> CertificateConfig:
    """Build the ACME certificate-management section.

    ``recipient_domains`` comes from :func:`build_smtp_config`, which already
    rejected an empty list, so the auto-derived domain is always available.
    """
    log = logger or LOGGER
    enabled = cert_management_flag(env)
    email = _string(env, "VSB_CERT_EMAIL", "").strip()
    domain = _string(env, "VSB_CERT_DOMAIN", "").strip()
    additional_domains = parse_list(env.get("VSB_CERT_ADDITIONAL_DOMAINS"))

    if enabled:
        if not domain and recipient_domains:
            domain = recipient_domains[0]
            log.info(
                "VSB_CERT_DOMAIN not set - auto-derived from %s: %s",
                RECIPIENT_DOMAINS_VAR,
                domain,
            )
        if not domain:
            raise MissingRequiredError(
                "VSB_CERT_DOMAIN is required when VSB_CERT_ENABLED=true. Either set "
                f"VSB_CERT_DOMAIN explicitly or ensure {RECIPIENT_DOMAINS_VAR} contains "
                "at least one domain.",
                variable="VSB_CERT_DOMAIN",
            )
        if not email:
            log.info(
                "VSB_CERT_EMAIL not set - certificate expiry notifications from the ACME "
                "provider will be unavailable"
            )

    invalid = [san for san in additional_domains if not is_valid_domain(san)]
    if invalid:
        raise InvalidFormatError(
            f"Invalid domain format in VSB_CERT_ADDITIONAL_DOMAINS: {', '.join(invalid)}",
            variable="VSB_CERT_ADDITIONAL_DOMAINS",
        )

    peer_shared_secret = env.get("VSB_CERT_PEER_SHARED_SECRET")
    if not peer_shared_secret:
        peer_shared_secret = generate_shared_secret()
        if enabled and orchestration_enabled:
            log.warning(
                "VSB_CERT_PEER_SHARED_SECRET not configured - using auto-generated secret. "
                "For multi-node clusters, all nodes MUST use the same shared secret. Set "
                "VSB_CERT_PEER_SHARED_SECRET in the environment to keep nodes consistent."
            )

    return CertificateConfig(
        enabled=enabled,
        email=email,
        domain=domain,
        additional_domains=tuple(additional_domains),
        storage_path=resolve_data_path(env) / c.CERTIFICATES_DIRNAME,
        check_interval=_number(env, "VSB_CERT_CHECK_INTERVAL", c.DEFAULT_CERT_CHECK_INTERVAL),
        renew_days_before_expiry=_number(
            env, "VSB_CERT_RENEW_THRESHOLD_DAYS", c.DEFAULT_CERT_RENEW_THRESHOLD_DAYS
        ),
        acme_directory_url=_string(env, "VSB_CERT_ACME_DIRECTORY", c.DEFAULT_ACME_DIRECTORY_URL),
        staging=_flag(env, "VSB_CERT_STAGING", False),
        peer_shared_secret=peer_shared_secret,
    )


def build_local_config(
    env: EnvironmentSource,
    *,
    logger: logging.Logger | None = None,
) -> LocalConfig:
    """Build the standalone-mode section, provisioning the API key if needed."""
    record = resolve_api_key(
        env.get(API_KEY_VAR),
        data_path=resolve_data_path(env),
        strict=_flag(env, API_KEY_STRICT_VAR, False),
        logger=logger or LOGGER,
    )

    alias_bytes = _number(
        env, "VSB_INBOX_ALIAS_RANDOM_BYTES", c.DEFAULT_LOCAL_INBOX_ALIAS_RANDOM_BYTES
    )
    if not c.MIN_INBOX_ALIAS_RANDOM_BYTES <= alias_bytes <= c.MAX_INBOX_ALIAS_RANDOM_BYTES:
        raise InvalidFormatError(
            "VSB_INBOX_ALIAS_RANDOM_BYTES must be between "
            f"{c.MIN_INBOX_ALIAS_RANDOM_BYTES} and {c.MAX_INBOX_ALIAS_RANDOM_BYTES} "
            f"(received: {alias_bytes}).",
            variable="VSB_INBOX_ALIAS_RANDOM_BYTES",
        )

    return LocalConfig(
        api_key=record.value,
        inbox_default_ttl=_number(env, "VSB_LOCAL_INBOX_DEFAULT_TTL", c.DEFAULT_LOCAL_INBOX_TTL),
        inbox_max_ttl=_number(env, "VSB_LOCAL_INBOX_MAX_TTL", c.DEFAULT_LOCAL_INBOX_MAX_TTL),
        cleanup_interval=_number(env, "VSB_LOCAL_CLEANUP_INTERVAL", c.DEFAULT_LOCAL_CLEANUP_INTERVAL),
        inbox_alias_random_bytes=alias_bytes,
        hard_mode_reject_code=_number(
            env, "VSB_SMTP_HARD_MODE_REJECT_CODE", c.DEFAULT_HARD_MODE_REJECT_CODE
        ),
        allow_clear_all_inboxes=_flag(env, "VSB_LOCAL_ALLOW_CLEAR_ALL_INBOXES", True),
    )


def build_crypto_config(env: EnvironmentSource) -> CryptoConfig:
    """Build the signing-key and encryption-policy section."""
    sk_path = env.get("VSB_SERVER_SIGNATURE_SECRET_KEY_PATH") or None
    pk_path = env.get("VSB_SERVER_SIGNATURE_PUBLIC_KEY_PATH") or None
    if (sk_path is None) != (pk_path is None):
        raise CrossFieldConflictError(
            "Both VSB_SERVER_SIGNATURE_SECRET_KEY_PATH and "
            "VSB_SERVER_SIGNATURE_PUBLIC_KEY_PATH must be provided together, or neither "
            "for ephemeral keys",
            variable=(
                "VSB_SERVER_SIGNATURE_PUBLIC_KEY_PATH"
                if sk_path
                else "VSB_SERVER_SIGNATURE_SECRET_KEY_PATH"
            ),
        )

    raw_policy = _string(env, "VSB_ENCRYPTION", c.DEFAULT_ENCRYPTION_POLICY).strip().lower()
    try:
        policy = EncryptionPolicy(raw_policy)
    except ValueError as exc:
        allowed = ", ".join(c.ALLOWED_ENCRYPTION_POLICIES)
        raise InvalidFormatError(
            f'Invalid VSB_ENCRYPTION: "{raw_policy}". Must be one of: {allowed}',
            variable="VSB_ENCRYPTION",
        ) from exc

    return CryptoConfig(
        sig_sk_path=Path(os.path.expanduser(sk_path)) if sk_path else None,
        sig_pk_path=Path(os.path.expanduser(pk_path)) if pk_path else None,
        encryption_policy=policy,
    )


def build_throttle_config(env: EnvironmentSource) -> ThrottleConfig:
    """Build the HTTP API rate limit section."""
    return ThrottleConfig(
        ttl=_number(env, "VSB_THROTTLE_TTL", c.DEFAULT_THROTTLE_TTL),
        limit=_number(env, "VSB_THROTTLE_LIMIT", c.DEFAULT_THROTTLE_LIMIT),
    )


def build_smtp_rate_limit_config(env: EnvironmentSource) -> SmtpRateLimitConfig:
    """Build the per-IP SMTP rate limit section."""
    return SmtpRateLimitConfig(
        enabled=_flag(env, "VSB_SMTP_RATE_LIMIT_ENABLED", True),
        points=_number(env, "VSB_SMTP_RATE_LIMIT_MAX_EMAILS", c.DEFAULT_SMTP_RATE_LIMIT_MAX_EMAILS),
        duration=_number(env, "VSB_SMTP_RATE_LIMIT_DURATION", c.DEFAULT_SMTP_RATE_LIMIT_DURATION),
    )


def build_sse_console_config(env: EnvironmentSource) -> SseConsoleConfig:
    """Build the SSE console section."""
    return SseConsoleConfig(enabled=_flag(env, "VSB_SSE_CONSOLE_ENABLED", True))


def build_webhook_config(env: EnvironmentSource) -> WebhookConfig:
    """Build the webhook delivery limits section."""
    return WebhookConfig(
        enabled=_flag(env, "VSB_WEBHOOK_ENABLED", True),
        max_global_webhooks=_number(env, "VSB_WEBHOOK_MAX_GLOBAL", c.DEFAULT_WEBHOOK_MAX_GLOBAL),
        max_inbox_webhooks=_number(env, "VSB_WEBHOOK_MAX_PER_INBOX", c.DEFAULT_WEBHOOK_MAX_PER_INBOX),
        delivery_timeout=_number(env, "VSB_WEBHOOK_TIMEOUT", c.DEFAULT_WEBHOOK_TIMEOUT),
        max_retries=_number(env, "VSB_WEBHOOK_MAX_RETRIES", c.DEFAULT_WEBHOOK_MAX_RETRIES),
        max_retries_per_webhook=_number(
            env, "VSB_WEBHOOK_MAX_RETRIES_PER_WEBHOOK", c.DEFAULT_WEBHOOK_MAX_RETRIES_PER_WEBHOOK
        ),
        allow_http=_flag(env, "VSB_WEBHOOK_ALLOW_HTTP", False),
        require_auth_default=_flag(env, "VSB_WEBHOOK_REQUIRE_AUTH_DEFAULT", False),
        max_headers=_number(env, "VSB_WEBHOOK_MAX_HEADERS", c.DEFAULT_WEBHOOK_MAX_HEADERS),
        max_header_value_len=_number(
            env, "VSB_WEBHOOK_MAX_HEADER_VALUE_LEN", c.DEFAULT_WEBHOOK_MAX_HEADER_VALUE_LEN
        ),
    )


def build_email_auth_config(env: EnvironmentSource) -> EmailAuthConfig:
    """Build the SPF/DKIM/DMARC/reverse-DNS toggles."""
    return EmailAuthConfig(
        enabled=_flag(env, "VSB_EMAIL_AUTH_ENABLED", True),
        spf=_flag(env, "VSB_EMAIL_AUTH_SPF", True),
        dkim=_flag(env, "VSB_EMAIL_AUTH_DKIM", True),
        dmarc=_flag(env, "VSB_EMAIL_AUTH_DMARC", True),
        reverse_dns=_flag(env, "VSB_EMAIL_AUTH_REVERSE_DNS", True),
        inbox_default=_flag(env, "VSB_EMAIL_AUTH_INBOX_DEFAULT", True),
    )


def build_spam_analysis_config(env: EnvironmentSource) -> SpamAnalysisConfig:
    """Build the spam-analysis section."""
    return SpamAnalysisConfig(
        enabled=_flag(env, "VSB_SPAM_ANALYSIS_ENABLED", False),
        rspamd=RspamdConfig(
            url=_string(env, "VSB_RSPAMD_URL", c.DEFAULT_RSPAMD_URL),
            timeout_ms=_number(env, "VSB_RSPAMD_TIMEOUT_MS", c.DEFAULT_RSPAMD_TIMEOUT_MS),
            password=env.get("VSB_RSPAMD_PASSWORD") or None,
        ),
        inbox_default=_flag(env, "VSB_SPAM_ANALYSIS_INBOX_DEFAULT", True),
    )


def build_chaos_config(env: EnvironmentSource) -> ChaosConfig:
    """Build the chaos-engineering toggle."""
    return ChaosConfig(enabled=_flag(env, "VSB_CHAOS_ENABLED", False))


__all__ = [
    "build_certificate_config",
    "build_chaos_config",
    "build_crypto_config",
    "build_email_auth_config",
    "build_local_config",
    "build_main_config",
    "build_orchestration_config",
    "build_smtp_config",
    "build_smtp_rate_limit_config",
    "build_spam_analysis_config",
    "build_sse_console_config",
    "build_throttle_config",
    "build_webhook_config",
    "cert_management_flag",
    "orchestration_flag",
    "parse_gateway_mode",
    "resolve_data_path",
]
