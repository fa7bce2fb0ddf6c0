from __future__ import annotations

import logging

from rich.logging import RichHandler

from .config import DieConfig

LOGGER_NAME = "die"


class _LabelContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        # Ensure `label` and `ordinal` exist for the formatter
        if not hasattr(record, "label"):
            setattr(record, "label", "-")
        if getattr(record, "ordinal", None) is None:
            setattr(record, "ordinal", "-")
        return True


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def configure_logging(*, cfg: DieConfig) -> logging.Logger:
    """
    Configure console + file diagnostics for the ``die`` logger.

    Capture records are written to sinks, not here; this logger carries the
    DEBUG diagnostics emitted alongside them (classification, ordinal,
    dropped sink writes).

    Returns
    -------
    logger
        The configured ``die`` logger.

    Usage example
    -------------
        logger = configure_logging(cfg=DieConfig(log_path=Path("logs/die.log")))
    """
    logger = get_logger()
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for flt in list(logger.filters):
        logger.removeFilter(flt)
    logger.propagate = False

    logger.addFilter(_LabelContextFilter())

    console_handler = RichHandler(show_path=False)
    console_handler.setLevel(cfg.console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if cfg.log_path is not None:
        cfg.log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(cfg.log_path, encoding="utf-8")
        file_handler.setLevel(cfg.file_level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)sZ | label=%(label)s | point=%(ordinal)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    logger.debug("Logging configured (log_path=%s)", cfg.log_path)
    return logger
