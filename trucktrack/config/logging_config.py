"""
Configuration du logging.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler


class _QuietHealthFilter(logging.Filter):
    """Filtre les lignes d'accès uvicorn des health checks."""

    _NOISY = ("/api/health",)

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(path in msg for path in self._NOISY)


def setup_logging(level: str | int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Installe un RichHandler sur le root logger et, si demandé, un fichier.

    Args:
        level: niveau de log (nom ou valeur numérique)
        log_file: chemin optionnel d'un fichier de log
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = RichHandler(show_time=False, show_path=False, rich_tracebacks=True)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn.access").addFilter(_QuietHealthFilter())
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
