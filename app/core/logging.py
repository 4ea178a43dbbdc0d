"""Process-wide logging setup.

One stream handler on the root logger; every module logs through
``logging.getLogger(__name__)``. Extra fields passed via ``extra=`` are
appended to the line as ``key=value`` pairs.
"""

import logging
import sys

from app.core.config import settings

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

_configured = False


class KeyValueFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {key: value for key, value in record.__dict__.items() if key not in _RESERVED}
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return line


def configure_logging(level: str | None = None) -> None:
    global _configured
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KeyValueFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)
    _configured = True
