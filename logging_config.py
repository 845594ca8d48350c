import logging


def setup_logging(log_level: str = "INFO") -> None:
    """Configures the root logger once with a console handler."""
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

    if not any(getattr(h, "_weather_console", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handler._weather_console = True
        logger.addHandler(handler)

    # Request lines from the HTTP client are too noisy at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
