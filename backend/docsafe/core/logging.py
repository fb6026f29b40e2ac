import logging
import sys
from pathlib import Path

from docsafe.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
BACKEND_ROOT = Path(__file__).resolve().parents[2]

_configured = False


def configure_logging() -> None:
    """Install stdout and file handlers on the root logger. Safe to call twice."""
    global _configured
    if _configured:
        return

    handlers = [logging.StreamHandler(sys.stdout)]
    log_dir = Path(settings.LOG_DIR)
    if not log_dir.is_absolute():
        log_dir = BACKEND_ROOT / log_dir
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / settings.LOG_FILE, encoding="utf-8"))
    except OSError as exc:
        # Read-only filesystems still get stdout logging
        print(f"File logging disabled: {exc}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
