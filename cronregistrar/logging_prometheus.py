import logging

from prometheus_client import Counter

log_entries = Counter("cronregistrar_logging_messages", "Count of log entries by logger and level.", ["logger", "level"])


class ExportingLogHandler(logging.Handler):
    """A LogHandler that counts log records per logger and level in a Prometheus counter."""

    def emit(self, record: logging.LogRecord) -> None:
        log_entries.labels(record.name, record.levelname).inc()


def export_log_stats_on_root_logger(logger: logging.Logger = logging.getLogger()) -> None:
    """Attaches an ExportingLogHandler to the given logger, the root logger by default.

    Loggers propagate to the root logger unless ``propagate`` is turned off, so this counts every registry, installer
    and runtime log line. Calling it twice on the same logger does not add a second handler.

    param: logger the logger to attach to (root logger is default)
    """
    if any(isinstance(handler, ExportingLogHandler) for handler in logger.handlers):
        return

    logger.addHandler(ExportingLogHandler())
