"""Durable key-value storage for whole collections.

Each collection (``jobs``, ``applications``, ``feedbacks``) lives under its
own key and is always written in full; there are no partial updates and no
transaction spanning several keys.

Two back ends share the same interface (``load``, ``save``, ``remove``,
``rename``, ``exists`` and ``raw``):

``MemoryStorage``
    Keeps the encoded JSON text in a dict.  Used in tests and for the
    ``memory`` backend setting.
``JsonFileStorage``
    One ``<key>.json`` file per collection inside a directory.  Writes go to
    a temporary file that is then renamed over the target, so a reader never
    sees a half-written collection.

Typical usage
-------------
>>> storage = MemoryStorage()
>>> storage.save("jobs", [])
>>> storage.load("jobs")
[]
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from jobboard.errors import StorageError

if TYPE_CHECKING:
    from jobboard.config import Settings

logger = logging.getLogger(__name__)

JSONValue = Union[dict, list, str, int, float, bool, None]

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def encode(value: JSONValue) -> str:
    """Serialise *value* the same way on every back end."""
    return json.dumps(value, ensure_ascii=False, indent=2)


def decode(key: str, text: str) -> JSONValue:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageError(f"collection {key!r} is not valid JSON: {exc}") from exc


def _check_key(key: str) -> str:
    if not _KEY_RE.match(key):
        raise ValueError(f"invalid storage key: {key!r}")
    return key


# ---------------------------------------------------------------------------
# In-memory back end
# ---------------------------------------------------------------------------


class MemoryStorage:
    """Storage held in a plain dict of encoded JSON strings.

    Parameters
    ----------
    initial:
        Optional mapping of key to already-encoded JSON text, e.g. a
        snapshot captured from another storage via :meth:`raw`.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[JSONValue]:
        """Return the decoded value under *key*, or ``None`` if absent."""
        text = self._data.get(_check_key(key))
        if text is None:
            return None
        return decode(key, text)

    def save(self, key: str, value: JSONValue) -> None:
        """Overwrite the value under *key*."""
        self._data[_check_key(key)] = encode(value)

    def remove(self, key: str) -> None:
        """Delete *key*; missing keys are ignored."""
        self._data.pop(_check_key(key), None)

    def raw(self, key: str) -> Optional[str]:
        """Return the encoded text stored under *key*."""
        return self._data.get(_check_key(key))

    def exists(self, key: str) -> bool:
        return _check_key(key) in self._data

    def rename(self, key: str, new_key: str) -> None:
        """Move the text under *key* to *new_key*; a missing *key* is ignored."""
        text = self._data.pop(_check_key(key), None)
        if text is not None:
            self._data[_check_key(new_key)] = text

    def keys(self) -> list[str]:
        return sorted(self._data)


# ---------------------------------------------------------------------------
# JSON file back end
# ---------------------------------------------------------------------------


class JsonFileStorage:
    """Storage backed by one JSON file per key.

    Parameters
    ----------
    directory:
        Folder holding the ``<key>.json`` files.  Created on first write.
    """

    def __init__(self, directory: Path | str) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        return self._dir / f"{_check_key(key)}.json"

    def load(self, key: str) -> Optional[JSONValue]:
        """Return the decoded value under *key*, or ``None`` if the file is absent.

        Raises
        ------
        StorageError
            If the file exists but cannot be read or parsed.
        """
        text = self.raw(key)
        if text is None:
            return None
        return decode(key, text)

    def save(self, key: str, value: JSONValue) -> None:
        """Atomically replace the file for *key* with *value*."""
        target = self.path_for(key)
        data = encode(value)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{key}.", suffix=".tmp", dir=self._dir
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(data)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"could not write {target}: {exc}") from exc
        logger.debug("Wrote %s (%d bytes)", target.name, len(data))

    def remove(self, key: str) -> None:
        """Delete the file for *key*; a missing file is ignored."""
        target = self.path_for(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"could not remove {target}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def rename(self, key: str, new_key: str) -> None:
        """Move the file for *key* to the file for *new_key*, replacing it.

        A missing file is ignored.
        """
        source, target = self.path_for(key), self.path_for(new_key)
        try:
            os.replace(source, target)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"could not move {source} to {target}: {exc}") from exc
        logger.debug("Moved %s to %s", source.name, target.name)

    def raw(self, key: str) -> Optional[str]:
        """Return the stored text for *key*, or ``None`` if absent."""
        target = self.path_for(key)
        try:
            return target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"could not read {target}: {exc}") from exc


Storage = Union[MemoryStorage, JsonFileStorage]


def build_storage(settings: Settings) -> Storage:
    """Return the storage back end selected by *settings*."""
    if settings.storage_backend == "memory":
        return MemoryStorage()
    return JsonFileStorage(settings.data_dir)
