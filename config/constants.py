"""
System constants for the OpenVPN admin panel.
These are the PiVPN/OpenVPN conventions observed on supported hosts.
"""


class OpenVPNConstants:
    """Immutable defaults for the wrapped tools and their files."""

    # Client management tool (PiVPN)
    TOOL = "pivpn"
    LIST_ARGS = ("-l",)
    LIST_JSON_FLAG = "--json"
    ADD_ARGS = ("-a", "-n")
    ADD_PASSWORDLESS_FLAG = "-p"
    ADD_DAYS_FLAG = "-d"
    REVOKE_ARGS = ("-r",)
    CONNECTIONS_ARGS = ("-c",)

    # Generated client profiles
    OVPN_CONFIG_DIR = "/home/pi/ovpns"
    ARTIFACT_EXTENSION = ".ovpn"

    # Specific server instances first; the bare "openvpn" unit on Debian is
    # an umbrella unit that stays active with no server running.
    SERVICE_ALIASES = (
        "openvpn-server@server",
        "openvpn@server",
        "openvpn",
    )

    # Status log locations, highest priority first
    STATUS_LOG_PATHS = (
        "/var/log/openvpn-status.log",
        "/var/log/openvpn/openvpn-status.log",
        "/etc/openvpn/openvpn-status.log",
        "/run/openvpn-server/status-server.log",
        "/var/log/openvpn/status.log",
    )

    PUBLIC_IP_ENDPOINT = "ifconfig.me"
    OS_RELEASE_FILE = "/etc/os-release"


class CommandDefaults:
    """Limits applied to every external command."""

    TIMEOUT_SECONDS = 30
    MAX_OUTPUT_BYTES = 512 * 1024
    LOCALE = "C"
    REVOKE_CONFIRMATIONS = 16

    DEFAULT_LOG_LINES = 200
    MAX_LOG_LINES = 5000
    RESTART_SETTLE_SECONDS = 2.0


UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"
