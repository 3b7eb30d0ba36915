import logging
import sys


class Log:
    """Structured logging facade, passed to each component that logs."""

    def __init__(self, name: str = "tratativas") -> None:
        self._logger = logging.getLogger(name)

    def configure(self, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        self._logger.setLevel(log_level.upper())
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            self._logger.addHandler(handler)

    def child(self, suffix: str) -> "Log":
        """Return a Log writing under '<name>.<suffix>'."""
        return Log(f"{self._logger.name}.{suffix}")

    def info(self, message: str, **kwargs: object) -> None:
        """Log an info message."""
        self._logger.info(message, extra=kwargs)

    def error(self, message: str, **kwargs: object) -> None:
        """Log an error message."""
        self._logger.error(message, extra=kwargs)

    def warning(self, message: str, **kwargs: object) -> None:
        """Log a warning message."""
        self._logger.warning(message, extra=kwargs)

    def debug(self, message: str, **kwargs: object) -> None:
        """Log a debug message."""
        self._logger.debug(message, extra=kwargs)
