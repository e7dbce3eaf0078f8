"""
Centralized logging configuration for the application.
"""

import logging
import sys
from typing import Optional

from .config import AppConfig

# Client libraries that log every HTTP round trip at INFO/DEBUG
NOISY_LOGGERS = ('botocore', 'boto3', 'urllib3', 'opensearch')


def setup_logging(config: Optional[AppConfig] = None) -> None:
    """
    Setup centralized logging configuration.

    Args:
        config: AppConfig instance, uses default if None
    """
    if config is None:
        from .config import config as default_config
        config = default_config

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                        handlers=[logging.StreamHandler(sys.stdout)])

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str, config: Optional[AppConfig] = None) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Logger name (usually __name__)
        config: AppConfig instance, uses default if None

    Returns:
        Logger at the configured level
    """
    if config is None:
        from .config import config as default_config
        config = default_config

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    return logger
