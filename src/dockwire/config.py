"""
Client settings
Defaults, an optional JSON settings file and the DOCKER_* environment
"""

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from .endpoint import EndpointTarget, TLSConfig, default_socket_path

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    'docker_host': '',
    'cert_path': '',
    'tls_verify': False,
    'timeout': 60,
    'api_version': '',
    'log_level': 'WARNING',
}

# Environment variable -> setting key
ENV_OVERRIDES = {
    'DOCKER_HOST': 'docker_host',
    'DOCKER_CERT_PATH': 'cert_path',
    'DOCKER_TLS_VERIFY': 'tls_verify',
    'DOCKER_API_VERSION': 'api_version',
    'DOCKWIRE_TIMEOUT': 'timeout',
    'DOCKWIRE_LOG_LEVEL': 'log_level',
}


def get_user_settings_path() -> str:
    """Get path to user settings file"""
    if os.name == 'nt':  # Windows
        base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
    else:  # macOS, Linux
        base_dir = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return os.path.join(base_dir, 'dockwire', 'settings.json')


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ('', '0', 'false', 'no', 'off')


class ClientSettings:
    """
    Settings used to build a client

    Later sources override earlier ones: built-in defaults, the JSON settings
    file, then the environment.
    """

    def __init__(self, settings_file: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Load settings

        Args:
            settings_file: JSON settings file (default: user settings path)
            environ: Environment mapping (default: os.environ)
        """
        self.settings_file = settings_file or get_user_settings_path()
        self.environ = os.environ if environ is None else environ
        self.settings: Dict[str, Any] = {}
        self.load()

    def _load_file_settings(self) -> Dict[str, Any]:
        if not os.path.exists(self.settings_file):
            return {}
        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load settings from {self.settings_file}: {e}")
            return {}
        if not isinstance(loaded, dict):
            logger.warning(f"Ignoring {self.settings_file}: expected a JSON object")
            return {}
        logger.debug(f"Settings loaded from {self.settings_file}")
        return loaded

    def load(self):
        """(Re)load settings from all sources"""
        settings = DEFAULT_SETTINGS.copy()
        settings.update(self._load_file_settings())
        for env_name, key in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                settings[key] = value

        settings['tls_verify'] = _parse_flag(settings['tls_verify'])
        try:
            settings['timeout'] = float(settings['timeout'])
        except (TypeError, ValueError):
            logger.warning(f"Invalid timeout {settings['timeout']!r}, using default")
            settings['timeout'] = float(DEFAULT_SETTINGS['timeout'])
        self.settings = settings

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value
        """
        return self.settings.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        return self.settings.copy()

    @property
    def timeout(self) -> float:
        return self.settings['timeout']

    @property
    def api_version(self) -> Optional[str]:
        return self.settings['api_version'] or None

    @property
    def log_level(self) -> str:
        return str(self.settings['log_level']).upper()

    def tls_config(self) -> Optional[TLSConfig]:
        """TLS material, if a cert path or verification is configured"""
        cert_path = self.settings['cert_path']
        verify = self.settings['tls_verify']
        if not cert_path and not verify:
            return None
        return TLSConfig.from_cert_path(cert_path or '~/.docker', verify=verify)

    def endpoint(self) -> EndpointTarget:
        """Endpoint target for these settings (local unix socket by default)"""
        host = str(self.settings['docker_host']).strip()
        if not host:
            return EndpointTarget.unix(default_socket_path())
        return EndpointTarget.parse(host, tls=self.tls_config())
