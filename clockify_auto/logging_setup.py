"""Logging configuration with a custom TRACE level."""

import logging
import sys

# Custom TRACE level
logging.TRACE = 5
logging.addLevelName(logging.TRACE, "TRACE")


# Add trace method to standard Logger class for all instances
def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(logging.TRACE):
        self._log(logging.TRACE, msg, args, **kwargs)


logging.Logger.trace = trace_method

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'


def configure_logging(level: str = "INFO", debug: bool = False, stream=None) -> None:
    """
    Configure the root logger once per process.

    Levels: TRACE, VERBOSE (DEBUG plus HTTP wire details), or any standard
    logging level name. ``debug`` forces DEBUG unless TRACE was requested.
    """
    log_level_str = (level or "INFO").upper()
    if debug and log_level_str not in ("TRACE", "VERBOSE"):
        log_level_str = "DEBUG"

    if log_level_str == "TRACE":
        root_level = logging.TRACE
        http_level = logging.TRACE
        connectors_level = logging.TRACE
    elif log_level_str == "VERBOSE":
        root_level = logging.DEBUG
        http_level = logging.DEBUG
        connectors_level = logging.TRACE
    else:
        root_level = getattr(logging, log_level_str, logging.INFO)
        http_level = logging.WARNING
        connectors_level = logging.DEBUG if root_level <= logging.DEBUG else root_level

    root = logging.getLogger()
    if not root.hasHandlers():
        logging.basicConfig(level=root_level, format=LOG_FORMAT, stream=stream or sys.stderr)
    root.setLevel(root_level)

    logging.getLogger("httpcore").setLevel(http_level)
    logging.getLogger("httpx").setLevel(http_level)
    logging.getLogger("clockify_auto.connectors").setLevel(connectors_level)

    if log_level_str == "TRACE":
        root.trace("Trace logging enabled at startup (verbose details).")
    elif root_level <= logging.DEBUG:
        root.debug("Debug logging enabled at startup.")
