from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from google.cloud import storage

from grades import RunSnapshot, snapshot_from_dicts, snapshot_to_dicts

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """What the previous successful notification saw."""

    digest: Optional[str] = None
    snapshot: Optional[RunSnapshot] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "digest": self.digest,
            "snapshot": snapshot_to_dicts(self.snapshot) if self.snapshot is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunState":
        snapshot = data.get("snapshot")
        return cls(
            digest=data.get("digest"),
            snapshot=snapshot_from_dicts(snapshot) if snapshot is not None else None,
        )


class StateStore(ABC):
    @abstractmethod
    def load(self) -> RunState:
        pass

    @abstractmethod
    def save(self, state: RunState) -> None:
        pass


class JsonFileStateStore(StateStore):
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> RunState:
        if not self.path.exists():
            logger.info(f"No state file at {self.path}, starting fresh.")
            return RunState()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Could not read state file {self.path} ({exc}), starting fresh.")
            return RunState()
        return RunState.from_dict(data)

    def save(self, state: RunState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(state.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Saved state to {self.path}.")


class GcsStateStore(StateStore):
    """Keep the state as one JSON blob in a Cloud Storage bucket."""

    def __init__(self, bucket_name: str, blob_name: str, client: Optional[storage.Client] = None):
        self.bucket_name = bucket_name
        self.blob_name = blob_name
        self._client = client

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def _blob(self):
        return self.client.bucket(self.bucket_name).blob(self.blob_name)

    def load(self) -> RunState:
        try:
            blob = self._blob()
            if not blob.exists():
                logger.info(f"No state blob gs://{self.bucket_name}/{self.blob_name}, starting fresh.")
                return RunState()
            data = json.loads(blob.download_as_text())
        except Exception as exc:  # pragma: no cover - network access
            logger.warning(f"Error loading state from GCS ({self.blob_name}): {exc}")
            return RunState()
        return RunState.from_dict(data)

    def save(self, state: RunState) -> None:
        self._blob().upload_from_string(
            json.dumps(state.to_dict(), ensure_ascii=False, indent=2),
            content_type="application/json",
        )
        logger.info(f"Saved state to gs://{self.bucket_name}/{self.blob_name}.")


def load_baseline(path: Path) -> RunSnapshot:
    """Read a reference snapshot (list of course dicts) from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return snapshot_from_dicts(data)
