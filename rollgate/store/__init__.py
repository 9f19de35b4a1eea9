"""
Key-value store used to remember facts between actions and cycles.

Keys are tuples of strings, e.g. ("shards", "rs0", "mongod:27020", "version").
The store is opened once at process start and passed by reference into the
check and command factories that need it.
"""
import json
import os

from os.path import expanduser

from logzero import logger

from typing import Any, Iterator, Optional, Tuple

Key = Tuple[str, ...]


class KeyValueStore(object):
    """
    Tuple keyed store, optionally persisted to a JSON file.

    Without a path the store lives in memory only. With a path every set or
    delete rewrites the file so a restarted process picks up where the last one
    left off. Access is not locked; callers run on a single event loop.
    """

    def __init__(self, path: str = None):
        self.path = expanduser(path) if path else None
        self._data = {}
        self._closed = False
        if self.path:
            self._load()

    def _load(self):
        if not os.path.exists(self.path):
            logger.debug("Store file %s does not exist yet", self.path)
            return
        with open(self.path, 'r') as f:
            entries = json.load(f)
        for entry in entries:
            self._data[tuple(entry['key'])] = entry['value']
        logger.debug("Loaded %d entries from %s", len(self._data), self.path)

    def _flush(self):
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        entries = [{'key': list(k), 'value': v}
                   for k, v in sorted(self._data.items())]
        tmp_path = "{}.tmp".format(self.path)
        with open(tmp_path, 'w') as f:
            json.dump(entries, f, indent=2)
        os.replace(tmp_path, self.path)

    def _check_open(self):
        if self._closed:
            raise ValueError("Operation on closed store")

    @staticmethod
    def _key(key) -> Key:
        if isinstance(key, str):
            return (key,)
        return tuple(str(k) for k in key)

    def get(self, key) -> Optional[Any]:
        self._check_open()
        return self._data.get(self._key(key))

    def set(self, key, value) -> None:
        self._check_open()
        self._data[self._key(key)] = value
        self._flush()

    def delete(self, key) -> None:
        self._check_open()
        if self._data.pop(self._key(key), None) is not None:
            self._flush()

    def list(self, prefix=()) -> Iterator[Tuple[Key, Any]]:
        """
        Lazily yield (key, value) pairs whose key starts with prefix, in key
        order.
        """
        self._check_open()
        prefix = self._key(prefix)
        n = len(prefix)
        for key in sorted(k for k in self._data if k[:n] == prefix):
            if key in self._data:
                yield key, self._data[key]

    def close(self) -> None:
        if not self._closed:
            self._flush()
            self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __len__(self):
        return len(self._data)


def open_store(path: str = None) -> KeyValueStore:
    """
    Open the store backed by 'path' (in memory when None).

    :param path: The relative or absolute path to the store file.
        Optional. (Default: None)
    :type path: str
    :return: KeyValueStore
    """
    store = KeyValueStore(path)
    logger.info("Opened store %s", store.path or "<memory>")
    return store
