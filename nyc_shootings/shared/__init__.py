from nyc_shootings.shared.config import Settings, get_config, get_dataset_config, reload_config
from nyc_shootings.shared.log_setup import JsonFormatter, configure_logging

__all__ = [
    "get_config",
    "get_dataset_config",
    "reload_config",
    "Settings",
    "configure_logging",
    "JsonFormatter",
]
