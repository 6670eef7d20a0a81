# This handles the global instances used by the switcher control server

import threading
from logging import Logger

# Lazy imports to avoid circular dependencies
_HomerunConfig = None
_HomerunDevice = None
_Config = None

_lock = threading.RLock()

_config_instance = None
_serverconfig_instance = None
_switcher_instance = None


def get_config():
    """Get or create the global device configuration instance."""
    global _config_instance, _HomerunConfig

    if _config_instance is None:
        with _lock:
            if _config_instance is None:
                if _HomerunConfig is None:
                    import HomerunConfig as _HomerunConfig
                _config_instance = _HomerunConfig.HomerunConfig()

    return _config_instance


def get_serverconfig():
    """Get or create the global server configuration instance."""
    global _serverconfig_instance, _Config

    if _serverconfig_instance is None:
        with _lock:
            if _serverconfig_instance is None:
                if _Config is None:
                    import config as _Config
                _serverconfig_instance = _Config.Config()

    return _serverconfig_instance


def get_switcher(logger: Logger):
    """Get or create the global switcher instance."""
    global _switcher_instance, _HomerunDevice

    if _switcher_instance is None:
        with _lock:
            if _switcher_instance is None:
                if _HomerunDevice is None:
                    import HomerunDevice as _HomerunDevice
                _switcher_instance = _HomerunDevice.HomerunMatrixSwitcher.from_config(
                    get_config(), logger
                )

    return _switcher_instance


def set_switcher(switcher) -> None:
    """Install a switcher instance (tests, alternate transports)."""
    global _switcher_instance

    with _lock:
        _switcher_instance = switcher


def reset_switcher() -> None:
    """Disconnect and drop the switcher instance (for cleanup)."""
    global _switcher_instance

    with _lock:
        if _switcher_instance is not None:
            # disconnect() logs its own release failures and never raises
            _switcher_instance.disconnect()
            _switcher_instance = None
