"""
LogStore: structured event log for call relay lifecycle events.

Events are written as one JSON object per line to the ``callrelay.events``
logger, e.g.::

    [EVENT] turn_completed {"character": "sara", "end_call": false, ...}

so they can be routed (or silenced) independently of the module loggers.
"""

import json
import logging
from typing import Any, Dict


class LogStore:
    """Append-only event sink on top of stdlib logging."""

    def __init__(self, logger_name: str = "callrelay.events"):
        self._logger = logging.getLogger(logger_name)

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Record one event; ``payload`` must be JSON-serializable."""
        self._logger.info(
            "[EVENT] %s %s",
            event_type,
            json.dumps(payload, ensure_ascii=False, sort_keys=True),
        )
