"""Built-in defaults for every configuration section."""
from __future__ import annotations

from enum import Enum

BOOLEAN_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
BOOLEAN_FALSE_VALUES = frozenset({"false", "0"})


class GatewayMode(str, Enum):
    """Whether the gateway runs standalone or in front of a backend."""

    LOCAL = "local"
    BACKEND = "backend"


class EncryptionPolicy(str, Enum):
    """Server-level encryption policy for inboxes."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    ALWAYS = "always"
    NEVER = "never"


ALLOWED_GATEWAY_MODES = tuple(mode.value for mode in GatewayMode)
ALLOWED_ENCRYPTION_POLICIES = tuple(policy.value for policy in EncryptionPolicy)

DEFAULT_ENVIRONMENT = "production"
DEFAULT_GATEWAY_MODE = GatewayMode.LOCAL.value
DEFAULT_ENCRYPTION_POLICY = EncryptionPolicy.ALWAYS.value
DEFAULT_DATA_PATH = "/app/data"
API_KEY_FILENAME = ".api-key"
CERTIFICATES_DIRNAME = "certificates"
MIN_API_KEY_LENGTH = 32

# Main server
DEFAULT_SERVER_PORT = 80
DEFAULT_HTTPS_PORT = 443
DEFAULT_BACKEND_REQUEST_TIMEOUT = 10_000

# SMTP
DEFAULT_SMTP_HOST = "0.0.0.0"  # noqa: S104 - the SMTP listener binds all interfaces
DEFAULT_SMTP_PORT = 25
DEFAULT_SMTP_MAX_MESSAGE_SIZE = 10_485_760  # 10MB
DEFAULT_SMTP_MAX_HEADER_SIZE = 65_536  # 64KB
DEFAULT_SMTP_SESSION_TIMEOUT = 300_000  # 5 minutes
DEFAULT_MAX_CONNECTIONS = 25
DEFAULT_CLOSE_TIMEOUT = 30_000
DEFAULT_EARLY_TALKER_DELAY = 300
DEFAULT_SMTP_BANNER = "VaultSandbox Test SMTP Server (Receive-Only)"
DEFAULT_DISABLED_COMMANDS = ("VRFY", "EXPN", "ETRN", "TURN", "AUTH")
DEFAULT_SMTP_MAX_MEMORY_MB = 500
DEFAULT_SMTP_MAX_EMAIL_AGE_SECONDS = 0

# TLS hardening (TLS 1.0/1.1 are deprecated by RFC 8996)
DEFAULT_TLS_MIN_VERSION = "TLSv1.2"
DEFAULT_TLS_CIPHERS = ":".join(
    (
        "ECDHE-ECDSA-AES256-GCM-SHA384",
        "ECDHE-RSA-AES256-GCM-SHA384",
        "ECDHE-ECDSA-AES128-GCM-SHA256",
        "ECDHE-RSA-AES128-GCM-SHA256",
        "ECDHE-ECDSA-CHACHA20-POLY1305",
        "ECDHE-RSA-CHACHA20-POLY1305",
    )
)
DEFAULT_TLS_HONOR_CIPHER_ORDER = True
DEFAULT_TLS_ECDH_CURVE = "auto"

# Local mode
DEFAULT_LOCAL_INBOX_TTL = 3_600  # 1 hour
DEFAULT_LOCAL_INBOX_MAX_TTL = 604_800  # 7 days
DEFAULT_LOCAL_CLEANUP_INTERVAL = 300
DEFAULT_LOCAL_INBOX_ALIAS_RANDOM_BYTES = 4
MIN_INBOX_ALIAS_RANDOM_BYTES = 4
MAX_INBOX_ALIAS_RANDOM_BYTES = 32
DEFAULT_HARD_MODE_REJECT_CODE = 421

# Orchestration
DEFAULT_CLUSTER_NAME = "default"
DEFAULT_LEADERSHIP_TTL = 300

# Certificate management
DEFAULT_CERT_CHECK_INTERVAL = 86_400_000
DEFAULT_CERT_RENEW_THRESHOLD_DAYS = 30
DEFAULT_ACME_DIRECTORY_URL = "https://acme-v02.api.letsencrypt.org/directory"

# Rate limits
DEFAULT_THROTTLE_TTL = 60_000
DEFAULT_THROTTLE_LIMIT = 500
DEFAULT_SMTP_RATE_LIMIT_MAX_EMAILS = 500
DEFAULT_SMTP_RATE_LIMIT_DURATION = 900

# Webhooks
DEFAULT_WEBHOOK_MAX_GLOBAL = 100
DEFAULT_WEBHOOK_MAX_PER_INBOX = 50
DEFAULT_WEBHOOK_TIMEOUT = 10_000
DEFAULT_WEBHOOK_MAX_RETRIES = 5
DEFAULT_WEBHOOK_MAX_RETRIES_PER_WEBHOOK = 100
DEFAULT_WEBHOOK_MAX_HEADERS = 50
DEFAULT_WEBHOOK_MAX_HEADER_VALUE_LEN = 1_000

# Spam analysis
DEFAULT_RSPAMD_URL = "http://localhost:11333"
DEFAULT_RSPAMD_TIMEOUT_MS = 5_000

# Domain validation
DEVELOPMENT_HOSTNAMES = frozenset({"localhost", "vaultsandbox"})
