# Configuration settings should be set in app.config
# The AdminKit class variables hold the defaults, get_config resolves the current value:
#   app.config -> AdminKit class attribute -> environment variable
#
# These settings are only read when a resource is registered, the request pipeline
# receives them through the frozen ResourceConfig
import os
import logging
from flask import current_app
import adminkit
from typing import Any, Optional


def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # KeyError: not set in the app, RuntimeError: no app context
        result = getattr(adminkit.AdminKit, option, None)
        if result is None:
            result = os.environ.get(option, None)
    return result


def get_int_config(option: str, default: int) -> int:
    """
    :param option: configuration parameter
    :param default: value used when the option is not set or not an integer
    :return: integer configuration value
    """
    value = get_config(option)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        adminkit.log.warning(f"Invalid integer configuration {option}={value!r}, using {default}")
        return default


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return adminkit.log.getEffectiveLevel() < logging.INFO
