import logging
import logging.handlers
from pathlib import Path


def setup_logging(app) -> None:
    """Configure root logging once; optional rotating file from LOG_FILE."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_reservision", False) for h in root.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        stream._reservision = True
        root.addHandler(stream)

    log_file = app.config.get("LOG_FILE")
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        # avoid duplicate handlers when create_app runs more than once
        if not any(getattr(h, "baseFilename", "") == str(path.resolve()) for h in root.handlers):
            handler = logging.handlers.RotatingFileHandler(path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
            handler.setFormatter(fmt)
            root.addHandler(handler)

    app.logger.setLevel(level)
