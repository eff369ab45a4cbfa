"""File-backed enrollment store, one JSON document per device."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator, Protocol

from .errors import AmbiguousDeviceError, StoreError
from .models import EnrollmentRecord

__all__ = ["EnrollmentStore", "FileEnrollmentStore", "check_device_id", "record_path"]

_log = logging.getLogger("guardian_shell.mfa.enrollments")

_SUFFIX = ".json"


class EnrollmentStore(Protocol):
    def get(self, device_id: str) -> EnrollmentRecord | None: ...

    def require(self, device_id: str) -> EnrollmentRecord: ...

    def put(self, record: EnrollmentRecord) -> None: ...

    def delete(self, device_id: str) -> bool: ...

    def device_ids(self) -> list[str]: ...

    def select_single(self) -> EnrollmentRecord: ...


def check_device_id(device_id: str) -> str:
    value = (device_id or "").strip()
    if not value or value in {".", ".."} or "/" in value or "\\" in value or "\x00" in value:
        raise StoreError(f"invalid device id: {device_id!r}")
    return value


def record_path(base_dir: Path, device_id: str) -> Path:
    return base_dir / f"{check_device_id(device_id)}{_SUFFIX}"


def _fsync_dir(directory: Path) -> None:
    # persist the rename or unlink itself, not only the file contents
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class FileEnrollmentStore:
    """Persist enrollment records under ``base_dir/{device_id}.json``.

    Writes go to a temporary file in the same directory followed by
    ``os.replace`` so a crash never leaves a partial record behind.
    """

    def __init__(self, base_dir: Path):
        self._base = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base

    def path_for(self, device_id: str) -> Path:
        return record_path(self._base, device_id)

    def get(self, device_id: str) -> EnrollmentRecord | None:
        path = self.path_for(device_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreError(f"failed to read enrollment data {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"enrollment data {path} is not a JSON object")
        record = EnrollmentRecord.from_mapping(data)
        if not record.device_id:
            record.device_id = device_id
        return record

    def require(self, device_id: str) -> EnrollmentRecord:
        record = self.get(device_id)
        if record is None:
            raise StoreError(
                f"enrollment data not found for device: {device_id} (expected {self.path_for(device_id)})"
            )
        return record

    def put(self, record: EnrollmentRecord) -> None:
        path = self.path_for(record.device_id)
        payload = json.dumps(record.as_json(), ensure_ascii=False, indent=2) + "\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
        except OSError as exc:
            raise StoreError(f"failed to write enrollment data {path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            try:
                os.chmod(tmp_name, 0o600)
            except PermissionError:
                pass
            os.replace(tmp_name, path)
            _fsync_dir(path.parent)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StoreError(f"failed to write enrollment data {path}: {exc}") from exc
        _log.debug("saved enrollment", extra={"device_id": record.device_id, "path": str(path)})

    def delete(self, device_id: str) -> bool:
        path = self.path_for(device_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StoreError(f"failed to remove enrollment data {path}: {exc}") from exc
        try:
            _fsync_dir(path.parent)
        except OSError as exc:
            raise StoreError(f"failed to sync {path.parent}: {exc}") from exc
        _log.debug("removed enrollment", extra={"device_id": device_id, "path": str(path)})
        return True

    def _files(self) -> Iterator[Path]:
        if not self._base.is_dir():
            return iter(())
        return (p for p in sorted(self._base.glob(f"*{_SUFFIX}")) if p.is_file() and not p.name.startswith("."))

    def device_ids(self) -> list[str]:
        return [p.stem for p in self._files()]

    def records(self) -> list[EnrollmentRecord]:
        return [self.require(device_id) for device_id in self.device_ids()]

    def select_single(self) -> EnrollmentRecord:
        """Return the only stored enrollment, used when no device id is given."""

        ids = self.device_ids()
        if not ids:
            raise StoreError(f"no enrolled devices found in {self._base}")
        if len(ids) > 1:
            raise AmbiguousDeviceError(ids)
        _log.info("auto-detected device id: %s", ids[0])
        return self.require(ids[0])
