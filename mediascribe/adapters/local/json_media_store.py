"""JsonMediaStore: media records kept in one JSON index file keyed by path."""

import json
import logging
import os
import tempfile
import threading
from typing import Optional

from pydantic import ValidationError

from mediascribe.domain.models import MediaRecord
from mediascribe.mappers import dto_to_record, record_to_dto
from mediascribe.models import MediaRecordModel
from mediascribe.ports.media_store import MediaStorePort

logger = logging.getLogger(__name__)


class JsonMediaStore(MediaStorePort):
    def __init__(self, index_file: str = "/data/media-index.json"):
        self._index_file = index_file
        self._lock = threading.Lock()
        self._records: dict[str, MediaRecord] = self._load()

    def _load(self) -> dict[str, MediaRecord]:
        try:
            with open(self._index_file, encoding="utf-8") as f:
                data = json.load(f)
            records = [dto_to_record(MediaRecordModel.model_validate(item)) for item in data.get("records", [])]
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.warning(f"Could not load media index {self._index_file}, starting empty: {e}")
            return {}
        logger.info(f"Loaded {len(records)} media records from {self._index_file}")
        return {r.path: r for r in records}

    def _write(self) -> None:
        directory = os.path.dirname(os.path.abspath(self._index_file))
        os.makedirs(directory, exist_ok=True)
        payload = {"records": [record_to_dto(r).model_dump(mode="json") for r in self._records.values()]}
        fd, tmp_path = tempfile.mkstemp(suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self._index_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, path: str) -> Optional[MediaRecord]:
        with self._lock:
            return self._records.get(path)

    def get_or_create(self, path: str) -> MediaRecord:
        # New records stay out of the index until save().
        with self._lock:
            record = self._records.get(path)
        return record if record is not None else MediaRecord(path=path)

    def save(self, record: MediaRecord) -> None:
        with self._lock:
            self._records[record.path] = record
            self._write()

    def all(self) -> list[MediaRecord]:
        with self._lock:
            return list(self._records.values())
