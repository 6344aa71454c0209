import logging

from pythonjsonlogger import jsonlogger

from accounts.utils.config import settings


def setup_logger() -> None:
    """Install a single stream handler on the root logger.

    JSON output (python-json-logger) unless ``log_json`` is turned off, in
    which case a plain text line format is used for local development.
    """
    handler = logging.StreamHandler()
    if settings.log_json:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)

    logger = logging.getLogger()
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(settings.log_level.upper())
