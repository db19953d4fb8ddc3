import logging

from colorlog import ColoredFormatter


_LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a colored console handler to the package logger (once)."""
    logger = logging.getLogger("capital_curve_app")
    logger.setLevel(level)
    logger.propagate = False  # uvicorn installs its own root handlers

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            ColoredFormatter(
                "%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                log_colors=_LOG_COLORS,
            )
        )
        logger.addHandler(console_handler)
    return logger
