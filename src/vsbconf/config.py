"""Configuration assembler for the mail gateway.

:func:`load_config` runs every section builder exactly once, in dependency
order, against a single environment source:

1. SMTP, which validates the recipient domains and TLS posture.
2. Main, which needs the certificate flag and the first recipient domain.
3. Orchestration.
4. Certificate, which needs the recipient domains and orchestration flag.
5. Local (local mode only).
6. Crypto, throttle, SMTP rate limit, SSE console and webhook.
7. Email authentication, spam analysis and chaos (local mode only).

The first builder to raise aborts the build; no partially populated snapshot
is ever returned. Callers should treat any :class:`ConfigError` as fatal.

Example::

    config = load_config(env={"VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS": "example.com"})
    config.smtp.allowed_recipient_domains  # ("example.com",)
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from .constants import DEFAULT_ENVIRONMENT, GatewayMode
from .environment import EnvironmentSource, resolve_environment
from .errors import ConfigError
from .models import BackendGatewayConfig, GatewayConfig, LocalGatewayConfig
from .sections import (
    build_certificate_config,
    build_chaos_config,
    build_crypto_config,
    build_email_auth_config,
    build_local_config,
    build_main_config,
    build_orchestration_config,
    build_smtp_config,
    build_smtp_rate_limit_config,
    build_spam_analysis_config,
    build_sse_console_config,
    build_throttle_config,
    build_webhook_config,
)

LOGGER = logging.getLogger(__name__)


def load_config(
    env: Mapping[str, str] | None = None,
    *,
    logger: logging.Logger | None = None,
) -> GatewayConfig:
    """Build and validate a :data:`GatewayConfig` snapshot from *env*.

    ``env`` defaults to a copy of ``os.environ``. Advisory warnings and
    derivation notices go to *logger* (``vsbconf.config`` by default).
    """
    source = resolve_environment(env)
    log = logger or LOGGER

    smtp = build_smtp_config(source, logger=log)
    domains = smtp.allowed_recipient_domains
    main = build_main_config(source, recipient_domains=domains, logger=log)
    orchestration = build_orchestration_config(source)
    certificate = build_certificate_config(
        source,
        recipient_domains=domains,
        orchestration_enabled=orchestration.enabled,
        logger=log,
    )
    local = (
        build_local_config(source, logger=log)
        if main.gateway_mode is GatewayMode.LOCAL
        else None
    )
    crypto = build_crypto_config(source)
    throttle = build_throttle_config(source)
    smtp_rate_limit = build_smtp_rate_limit_config(source)
    sse_console = build_sse_console_config(source)
    webhook = build_webhook_config(source)
    environment = _resolve_environment_label(source)

    if local is None:
        return BackendGatewayConfig(
            environment=environment,
            main=main,
            smtp=smtp,
            orchestration=orchestration,
            certificate=certificate,
            crypto=crypto,
            throttle=throttle,
            smtp_rate_limit=smtp_rate_limit,
            sse_console=sse_console,
            webhook=webhook,
        )

    return LocalGatewayConfig(
        environment=environment,
        main=main,
        smtp=smtp,
        orchestration=orchestration,
        certificate=certificate,
        crypto=crypto,
        throttle=throttle,
        smtp_rate_limit=smtp_rate_limit,
        sse_console=sse_console,
        webhook=webhook,
        local=local,
        email_auth=build_email_auth_config(source),
        spam_analysis=build_spam_analysis_config(source),
        chaos=build_chaos_config(source),
    )


def _resolve_environment_label(env: EnvironmentSource) -> str:
    return env.get("VSB_ENVIRONMENT") or env.get("NODE_ENV") or DEFAULT_ENVIRONMENT


def log_configuration_summary(
    config: GatewayConfig,
    logger: logging.Logger | None = None,
) -> None:
    """Log a redacted, human-readable summary of *config*."""
    log = logger or LOGGER
    main = config.main
    smtp = config.smtp

    log.info("Environment: %s", config.environment)
    log.info("Gateway Mode: %s", config.gateway_mode.value)
    log.info("HTTP Server: port %d", main.port)
    if main.https_enabled:
        log.info("HTTPS Server: enabled (port %d)", main.https_port)
    else:
        log.info("HTTPS Server: disabled")

    log.info("SMTP Server: %s:%d (secure: %s)", smtp.host, smtp.port, smtp.secure)
    log.info("SMTP Allowed Domains: %s", ", ".join(smtp.allowed_recipient_domains))
    log.info("SMTP Max Message Size: %d bytes", smtp.max_message_size)
    log.info("SMTP Max Connections: %d", smtp.max_connections)

    certificate = config.certificate
    if certificate.enabled:
        log.info("Certificate Management: enabled (domain: %s)", certificate.domain)
        if certificate.additional_domains:
            log.info("Certificate SANs: %s", ", ".join(certificate.additional_domains))
        log.info("ACME Directory: %s", "STAGING" if certificate.staging else "PRODUCTION")
    else:
        log.info("Certificate Management: disabled")

    orchestration = config.orchestration
    if orchestration.enabled:
        log.info(
            "Orchestration: enabled (cluster: %s, node: %s)",
            orchestration.cluster_name,
            orchestration.node_id,
        )
        log.info("Cluster Peers: %s", ", ".join(orchestration.peers) or "none")
        log.info("Backend URL: %s", orchestration.backend.url or "not configured")
    else:
        log.info("Orchestration: disabled")

    rate_limit = config.smtp_rate_limit
    if rate_limit.enabled:
        log.info(
            "SMTP Rate Limiting: enabled (%d emails per %ds)",
            rate_limit.points,
            rate_limit.duration,
        )
    else:
        log.info("SMTP Rate Limiting: disabled")

    log.info(
        "API Rate Limiting: %d requests per %dms",
        config.throttle.limit,
        config.throttle.ttl,
    )
    log.info(
        "Quantum-Safe Signing: %s",
        "persistent keys"
        if config.crypto.has_persistent_keys
        else "ephemeral keys (generated on startup)",
    )
    log.info("Configuration loaded successfully")


__all__ = [
    "BackendGatewayConfig",
    "ConfigError",
    "GatewayConfig",
    "LocalGatewayConfig",
    "load_config",
    "log_configuration_summary",
]
