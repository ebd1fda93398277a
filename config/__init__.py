# Configuration module exports
from .app_config import AppConfig, ToolDialect, get_config, set_config
from .constants import OpenVPNConstants, CommandDefaults

__all__ = [
    'AppConfig',
    'ToolDialect',
    'get_config',
    'set_config',
    'OpenVPNConstants',
    'CommandDefaults'
]
