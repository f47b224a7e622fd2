import logging
import sys

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(name)s:%(lineno)d %(levelname)s %(message)s"
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def configure_logging(prefix: str, level: str = "INFO") -> None:
    """Send process logs to stderr, each line tagged with `prefix`.

    Stdout stays untouched so it can carry a stdio protocol.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(f"[{prefix}] {LOG_FORMAT}", datefmt=DATE_FORMAT))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
