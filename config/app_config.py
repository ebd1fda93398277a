"""
Centralized application configuration management.
Provides type-safe configuration with environment variable support.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple, List
from dotenv import load_dotenv
from config.constants import OpenVPNConstants, CommandDefaults


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if not value:
        return tuple(default)
    items = [item.strip() for item in value.split(",")]
    return tuple(item for item in items if item)


@dataclass
class ServerConfig:
    """HTTP server settings."""
    host: str = "0.0.0.0"
    port: int = 8080
    threads: int = 0  # 0 = derive from CPU count


@dataclass
class SecurityConfig:
    """Admin credentials and token settings."""
    admin_username: str = "admin"
    admin_password_hash: Optional[str] = None
    jwt_secret: Optional[str] = None
    token_expiry_hours: int = 24


@dataclass
class CommandConfig:
    """Limits and privilege handling for external commands."""
    timeout_seconds: float = CommandDefaults.TIMEOUT_SECONDS
    max_output_bytes: int = CommandDefaults.MAX_OUTPUT_BYTES
    use_sudo: bool = True
    locale: str = CommandDefaults.LOCALE


@dataclass
class ToolDialect:
    """Argument shapes of the client-management tool."""
    tool: str = OpenVPNConstants.TOOL
    list_args: Tuple[str, ...] = OpenVPNConstants.LIST_ARGS
    list_json_flag: str = OpenVPNConstants.LIST_JSON_FLAG
    structured_list: bool = True
    add_args: Tuple[str, ...] = OpenVPNConstants.ADD_ARGS
    passwordless_flag: str = OpenVPNConstants.ADD_PASSWORDLESS_FLAG
    days_flag: str = OpenVPNConstants.ADD_DAYS_FLAG
    validity_days: Optional[int] = None
    revoke_args: Tuple[str, ...] = OpenVPNConstants.REVOKE_ARGS
    revoke_confirmations: int = CommandDefaults.REVOKE_CONFIRMATIONS
    connections_args: Tuple[str, ...] = OpenVPNConstants.CONNECTIONS_ARGS

    def list_command(self, structured: bool = False) -> List[str]:
        argv = [self.tool, *self.list_args]
        if structured:
            argv.append(self.list_json_flag)
        return argv

    def add_command(self, username: str, days: Optional[int] = None) -> List[str]:
        argv = [self.tool, *self.add_args, username]
        validity = days if days is not None else self.validity_days
        if validity:
            argv.extend([self.days_flag, str(validity)])
        else:
            argv.append(self.passwordless_flag)
        return argv

    def revoke_command(self, username: str) -> List[str]:
        return [self.tool, *self.revoke_args, username]

    def connections_command(self) -> List[str]:
        return [self.tool, *self.connections_args]


@dataclass
class ServiceConfig:
    """Service-manager aliases and restart behaviour."""
    aliases: Tuple[str, ...] = OpenVPNConstants.SERVICE_ALIASES
    verify_restart: bool = True
    restart_settle_seconds: float = CommandDefaults.RESTART_SETTLE_SECONDS
    default_log_lines: int = CommandDefaults.DEFAULT_LOG_LINES
    max_log_lines: int = CommandDefaults.MAX_LOG_LINES
    public_ip_endpoint: str = OpenVPNConstants.PUBLIC_IP_ENDPOINT
    os_release_file: str = OpenVPNConstants.OS_RELEASE_FILE


@dataclass
class PathsConfig:
    """Filesystem locations read or written by the panel."""
    ovpn_config_dir: str = OpenVPNConstants.OVPN_CONFIG_DIR
    artifact_extension: str = OpenVPNConstants.ARTIFACT_EXTENSION
    status_log_paths: Tuple[str, ...] = OpenVPNConstants.STATUS_LOG_PATHS


@dataclass
class MonitoringConfig:
    """Logging settings."""
    log_level: str = "INFO"


@dataclass
class AppConfig:
    """Main application configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    commands: CommandConfig = field(default_factory=CommandConfig)
    dialect: ToolDialect = field(default_factory=ToolDialect)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'AppConfig':
        """Load configuration from environment variables."""
        if env_file and os.path.exists(env_file):
            load_dotenv(env_file)

        validity = os.getenv("CLIENT_VALIDITY_DAYS")

        return cls(
            server=ServerConfig(
                host=os.getenv("HOST", "0.0.0.0"),
                port=int(os.getenv("PORT", "8080")),
                threads=int(os.getenv("SERVER_THREADS", "0"))
            ),
            security=SecurityConfig(
                admin_username=os.getenv("ADMIN_USERNAME", "admin"),
                admin_password_hash=os.getenv("ADMIN_PASSWORD_HASH"),
                jwt_secret=os.getenv("JWT_SECRET"),
                token_expiry_hours=int(os.getenv("TOKEN_EXPIRY_HOURS", "24"))
            ),
            commands=CommandConfig(
                timeout_seconds=float(os.getenv("COMMAND_TIMEOUT", str(CommandDefaults.TIMEOUT_SECONDS))),
                max_output_bytes=int(os.getenv("COMMAND_MAX_OUTPUT", str(CommandDefaults.MAX_OUTPUT_BYTES))),
                use_sudo=_env_bool("USE_SUDO", True),
                locale=os.getenv("COMMAND_LOCALE", CommandDefaults.LOCALE)
            ),
            dialect=ToolDialect(
                tool=os.getenv("VPN_TOOL", OpenVPNConstants.TOOL),
                structured_list=_env_bool("VPN_TOOL_JSON", True),
                validity_days=int(validity) if validity else None
            ),
            service=ServiceConfig(
                aliases=_env_list("OPENVPN_SERVICE_ALIASES", OpenVPNConstants.SERVICE_ALIASES),
                verify_restart=_env_bool("RESTART_VERIFY", True),
                restart_settle_seconds=float(os.getenv("RESTART_SETTLE_SECONDS", str(CommandDefaults.RESTART_SETTLE_SECONDS))),
                public_ip_endpoint=os.getenv("PUBLIC_IP_ENDPOINT", OpenVPNConstants.PUBLIC_IP_ENDPOINT)
            ),
            paths=PathsConfig(
                ovpn_config_dir=os.getenv("OVPN_CONFIG_DIR", OpenVPNConstants.OVPN_CONFIG_DIR),
                status_log_paths=_env_list("STATUS_LOG_PATHS", OpenVPNConstants.STATUS_LOG_PATHS)
            ),
            monitoring=MonitoringConfig(
                log_level=os.getenv("LOG_LEVEL", "INFO")
            )
        )

    def validate(self) -> None:
        """Validate configuration settings."""
        if not self.security.jwt_secret:
            raise ValueError("JWT_SECRET is required")
        if not self.security.admin_password_hash:
            raise ValueError("ADMIN_PASSWORD_HASH is required")
        if not self.service.aliases:
            raise ValueError("At least one OpenVPN service alias is required")
        if self.commands.timeout_seconds <= 0:
            raise ValueError("COMMAND_TIMEOUT must be positive")


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        env_file = os.getenv("PANEL_ENV_FILE", "/etc/ovpn-panel/.env")
        _config = AppConfig.from_env(env_file)
        _config.validate()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
