"""Domain-format checks and advisory TLS posture warnings."""
from __future__ import annotations

import logging
import re

from .constants import DEVELOPMENT_HOSTNAMES

LOGGER = logging.getLogger(__name__)

_IPV4 = re.compile(r"([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})")
_FQDN = re.compile(r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}")


def is_private_ip(value: str) -> bool:
    """Return True for loopback or RFC 1918 IPv4 literals in dotted-quad form."""
    match = _IPV4.fullmatch(value)
    if match is None:
        return False
    octets = [int(part) for part in match.groups()]
    if any(octet > 255 for octet in octets):
        return False

    first, second = octets[0], octets[1]
    if first in (127, 10):
        return True
    if first == 172 and 16 <= second <= 31:
        return True
    return first == 192 and second == 168


def is_valid_domain(value: str) -> bool:
    """Return True when *value* is an acceptable recipient or certificate domain.

    Development hostnames and private IPv4 addresses are accepted so the
    gateway can run on a laptop or LAN; everything else must look like an FQDN
    with at least one dot and an alphabetic TLD of two or more characters.
    """
    if value in DEVELOPMENT_HOSTNAMES:
        return True
    if is_private_ip(value):
        return True
    return _FQDN.fullmatch(value) is not None


def check_tls_posture(
    *,
    smtp_port: int,
    smtp_secure: bool,
    cert_enabled: bool,
    has_manual_paths: bool,
    logger: logging.Logger | None = None,
) -> None:
    """Log warnings for TLS settings that are legal but usually mistaken."""
    log = logger or LOGGER
    if smtp_port == 25 and smtp_secure:
        log.warning(
            "Port 25 is configured with VSB_SMTP_SECURE=true. For server-to-server "
            "delivery on port 25, VSB_SMTP_SECURE should be false to enable STARTTLS."
        )
    if cert_enabled and has_manual_paths:
        log.warning(
            "Both automatic certificate management (VSB_CERT_ENABLED=true) and manual "
            "TLS paths (VSB_TLS_CERT_PATH/VSB_TLS_KEY_PATH) are configured. Manual TLS "
            "paths will be used; ACME certificate renewal will be skipped."
        )


__all__ = ["check_tls_posture", "is_private_ip", "is_valid_domain"]
