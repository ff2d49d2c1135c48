"""Internal constants shared across the library."""

SUBSCRIBER_URL = "wss://rtls.ubudu.com/api/ws/subscriber"
PUBLISHER_URL = "wss://rtls.ubudu.com/api/ws/publisher"

DEFAULT_RECONNECT_INTERVAL: float = 5.0
DEFAULT_MAX_RECONNECT_DELAY: float = 30.0
DEFAULT_RECONNECT_MULTIPLIER: float = 2.0
DEFAULT_CONNECTION_TIMEOUT: float = 10.0
DEFAULT_CLOSE_TIMEOUT: float = 3.0
DEFAULT_HEARTBEAT: float = 30.0

# ------------------------------------------------------------------
# WebSocket close codes
# ------------------------------------------------------------------

WS_NORMAL_CLOSURE = 1000
WS_ABNORMAL_CLOSURE = 1006

#: Close codes the server uses to reject credentials. Reconnecting with the
#: same credentials cannot succeed, so these never trigger the retry policy.
AUTH_FAILURE_CLOSE_CODES: frozenset[int] = frozenset({401, 403, 4001, 4003})

# ------------------------------------------------------------------
# Position publishing
# ------------------------------------------------------------------

ORIGIN_EXTERNAL_API = 4

DEFAULT_TAG_MODEL = "GenericTag"
DEFAULT_TAG_COLOR = "#0088FF"

DEVICE_INFO: dict[str, str] = {
    "model": "GNSS",
    "system_build_number": "1.0",
    "system_name": "PyRtlsSdk",
    "system_version": "1.0",
}


def is_auth_failure_close(code: int | None) -> bool:
    """Return ``True`` when *code* signals rejected credentials."""
    return code in AUTH_FAILURE_CLOSE_CODES
