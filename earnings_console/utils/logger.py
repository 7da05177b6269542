import logging

from earnings_console.config.config import Config

log = logging.getLogger(Config.APP_NAME)
