from shooting_pulse.shared.config import Settings, get_config, reload_config

__all__ = [
    "get_config",
    "reload_config",
    "Settings",
]
