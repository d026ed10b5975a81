#!/usr/bin/env python3
"""
File: credential_store.py
Author: Bastian Cerf
Date: 10/10/2025
Description:
    Storage of the client instance identity: instance identifier,
    access token, device fingerprint, device name and display name.

    Attendance data is never stored. The encrypted platform storage of
    the mobile client is an external collaborator; an in-memory store
    and a plain JSON file store are provided.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

KEY_INSTANCE_ID = "instance_id"
KEY_INSTANCE_TOKEN = "instance_token"
KEY_DEVICE_FINGERPRINT = "device_fingerprint"
KEY_DEVICE_NAME = "device_name"
KEY_DISPLAY_NAME = "display_name"

_KEYS = (
    KEY_INSTANCE_ID,
    KEY_INSTANCE_TOKEN,
    KEY_DEVICE_FINGERPRINT,
    KEY_DEVICE_NAME,
    KEY_DISPLAY_NAME,
)


class CredentialStore(ABC):
    """
    Key-value storage of the instance identity. Typed accessors are
    built on top of the abstract `_get()`, `_set()` and `_remove()`.
    """

    @abstractmethod
    def _get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def _set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def _remove(self, key: str) -> None:
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Forget everything."""
        pass

    def __get_or_none(self, key: str) -> Optional[str]:
        # Blank values are treated as missing
        value = self._get(key)
        return value if value else None

    @property
    def instance_id(self) -> Optional[str]:
        return self.__get_or_none(KEY_INSTANCE_ID)

    @instance_id.setter
    def instance_id(self, value: Optional[str]):
        self.__put(KEY_INSTANCE_ID, value)

    @property
    def instance_token(self) -> Optional[str]:
        return self.__get_or_none(KEY_INSTANCE_TOKEN)

    @instance_token.setter
    def instance_token(self, value: Optional[str]):
        self.__put(KEY_INSTANCE_TOKEN, value)

    @property
    def device_fingerprint(self) -> Optional[str]:
        return self.__get_or_none(KEY_DEVICE_FINGERPRINT)

    @device_fingerprint.setter
    def device_fingerprint(self, value: Optional[str]):
        self.__put(KEY_DEVICE_FINGERPRINT, value)

    @property
    def device_name(self) -> Optional[str]:
        return self.__get_or_none(KEY_DEVICE_NAME)

    @device_name.setter
    def device_name(self, value: Optional[str]):
        self.__put(KEY_DEVICE_NAME, value)

    @property
    def display_name(self) -> Optional[str]:
        return self.__get_or_none(KEY_DISPLAY_NAME)

    @display_name.setter
    def display_name(self, value: Optional[str]):
        self.__put(KEY_DISPLAY_NAME, value)

    def __put(self, key: str, value: Optional[str]):
        if value:
            self._set(key, value)
        else:
            self._remove(key)

    def clear_identity(self):
        """
        Forget the instance identifier and its token. The device
        fingerprint and names are kept.
        """
        self._remove(KEY_INSTANCE_TOKEN)
        self._remove(KEY_INSTANCE_ID)


class MemoryCredentialStore(CredentialStore):
    """
    Volatile store, lost when the process exits.
    """

    def __init__(self, **initial: str):
        unknown = set(initial) - set(_KEYS)
        if unknown:
            raise KeyError(f"Unknown credential key(s): {', '.join(sorted(unknown))}.")
        self._data: dict[str, str] = dict(initial)

    def _get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _set(self, key: str, value: str) -> None:
        self._data[key] = value

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear_all(self) -> None:
        self._data.clear()


class JsonFileCredentialStore(CredentialStore):
    """
    Store persisted in a JSON file. The file is rewritten on each change
    through a temporary file to never leave a truncated file behind.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = Lock()
        self._data: dict[str, str] = {}

        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as file:
                    data = json.load(file)
            except (OSError, json.JSONDecodeError):
                logger.warning(
                    f"Unreadable credentials file '{self._path}', starting fresh.",
                    exc_info=True,
                )
                data = {}

            if isinstance(data, dict):
                self._data = {
                    k: str(v) for k, v in data.items() if k in _KEYS and v is not None
                }

    def _get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self.__save()

    def _remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self.__save()

    def clear_all(self) -> None:
        with self._lock:
            self._data.clear()
            self.__save()

    def __save(self):
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as file:
            json.dump(self._data, file, indent=2)
        os.replace(tmp_path, self._path)
