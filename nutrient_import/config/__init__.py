from .loader import ConfigError, DatabaseConfig, ImportConfig, UploadConfig, load_config

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "ImportConfig",
    "UploadConfig",
    "load_config",
]
