import json
import os

from collections import deque
from datetime import datetime
from os.path import expanduser

from logzero import logger

from typing import Any, List


class Journal(object):
    """
    Structured sink for the step records emitted while Actions run.

    Every record is logged, kept in memory (the most recent 'max_entries', see
    'entries') and, when a path is given, appended to that file as one JSON
    document per line. Reading the journal after a pass tells an operator which
    checks held, which commands ran and which actions faulted.
    """

    def __init__(self, path: str = None, max_entries: int = 10000):
        self.path = expanduser(path) if path else None
        # Bounded; the reconciliation loop records forever.
        self.entries = deque(maxlen=max_entries)
        if self.path:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)

    def record(self, phase: str, name: str, payload: Any = None) -> None:
        entry = {
            'ts': datetime.now().isoformat(),
            'phase': phase,
            'name': name,
            'payload': payload,
        }
        self.entries.append(entry)
        logger.info("[%s] %s: %s", name, phase,
                    json.dumps(payload, default=str))
        if self.path:
            try:
                with open(self.path, 'a') as f:
                    f.write(json.dumps(entry, default=str))
                    f.write("\n")
            except OSError as e:
                # Entry stays in memory and in the log
                logger.error("Unable to append to journal %s", self.path)
                logger.exception(e)

    def phases(self, name: str = None) -> List[str]:
        """
        Phases recorded so far, optionally only those for one step name.
        """
        return [e['phase'] for e in self.entries
                if name is None or e['name'] == name]
