from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from common.config import default_home

from . import crypt
from .errors import DecryptionFailedError, StateFileError
from .models import Scope, State
from .store import Store


_LOGGER = logging.getLogger(__name__)

STAGE_FILENAME = "stage.json"


def stage_file_path(scope: Scope, home: Optional[os.PathLike[str] | str] = None) -> Path:
    base = Path(home).expanduser() if home else default_home()
    return base / scope.account_id / scope.region / STAGE_FILENAME


def _dump_state_json(state: State) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    return json.dumps(state.model_dump(mode="json"), separators=(",", ":"), sort_keys=True).encode("utf-8")


def _load_state_json(data: bytes) -> State:
    try:
        raw = json.loads(data.decode("utf-8"))
        return State.model_validate(raw)
    except (UnicodeDecodeError, ValueError, ValidationError) as ex:
        raise StateFileError(f"failed to parse staging file: {ex}") from ex


class FileStore(Store):
    """
    Staging store backed by a single JSON file, optionally encrypted.

    Usage
    - `FileStore(scope)` addresses `$CLOUDSTAGE_HOME/<account>/<region>/stage.json`;
      `FileStore(path=...)` uses an explicit file (tests).
    - With a `passphrase`, writes produce an encrypted envelope (see `state.crypt`);
      reading an encrypted file requires the same passphrase.
    - A missing file reads as an empty `State`. Writing an empty state removes
      the file. Writes go to a temp file in the same directory and are moved into
      place with `os.replace`, so readers never see a partial file.
    """

    def __init__(
        self,
        scope: Optional[Scope] = None,
        *,
        path: Optional[os.PathLike[str] | str] = None,
        passphrase: Optional[str] = None,
        home: Optional[os.PathLike[str] | str] = None,
    ) -> None:
        super().__init__()
        if path is None:
            if scope is None:
                raise ValueError("either scope or path is required")
            path = stage_file_path(scope, home)
        self.scope = scope
        self.path = Path(path)
        self._passphrase = passphrase or None

    @property
    def encrypting(self) -> bool:
        return self._passphrase is not None

    # -------- File inspection --------
    def exists(self) -> bool:
        return self.path.is_file()

    def is_encrypted(self) -> bool:
        data = self._read_bytes()
        return data is not None and crypt.is_encrypted(data)

    def delete(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)

    # -------- Store hooks --------
    def _read_bytes(self) -> Optional[bytes]:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as ex:
            raise StateFileError(f"failed to read staging file {self.path}: {ex}") from ex

    def _load(self) -> State:
        data = self._read_bytes()
        if data is None:
            return State.empty()
        if crypt.is_encrypted(data):
            if self._passphrase is None:
                raise DecryptionFailedError("staging file is encrypted; a passphrase is required")
            data = crypt.decrypt(data, self._passphrase)
        return _load_state_json(data)

    def _commit(self, state: State) -> None:
        if state.is_empty():
            if self.path.exists():
                self.path.unlink()
                _LOGGER.info("removed empty staging file %s", self.path)
            return
        payload = _dump_state_json(state)
        if self._passphrase is not None:
            payload = crypt.encrypt(payload, self._passphrase)
        self._atomic_write(payload)
        _LOGGER.info(
            "wrote staging file %s (%d entries, %d tags, encrypted=%s)",
            self.path,
            state.entry_count(),
            state.tag_count(),
            self.encrypting,
        )

    def _atomic_write(self, payload: bytes) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".stage-", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


__all__ = ["STAGE_FILENAME", "stage_file_path", "FileStore"]
