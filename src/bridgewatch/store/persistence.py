"""
Preserved Frame Persistence
===========================

Keeps preserved frames across restarts.

Layout (one pair per useful category):
    <directory>/bridge.jpg
    <directory>/bridge.json      {"category": "bridge", "timestamp": ..., "image_file": "bridge.jpg"}

The sidecar is written after the JPEG, so a sidecar always points at a
complete image. Files are replaced atomically via a temporary file.
"""

import logging
import os
from pathlib import Path
from typing import List

from pydantic import ValidationError

from bridgewatch.capture.frame import Frame
from bridgewatch.exceptions import PersistenceError
from bridgewatch.models.output import PreservedFrameRecord
from bridgewatch.models.view import USEFUL_CATEGORIES


logger = logging.getLogger(__name__)


class FilePreservedStore:
    """
    Filesystem store for preserved frames.

    Blocking I/O: call from a worker thread when on the event loop.

    Attributes:
        directory: Folder holding the JPEG + JSON pairs
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)
        self._saves: int = 0
        self._errors: int = 0

    def save(self, frame: Frame) -> None:
        """
        Persist a preserved frame, replacing any previous one of its category.

        Raises:
            PersistenceError: On write failure or unpreservable frame
        """
        if frame.category is None or not frame.category.is_useful:
            raise PersistenceError(f"cannot persist frame of category {frame.category}")

        name = frame.category.value
        image_file = f"{name}.jpg"
        record = PreservedFrameRecord(
            category=frame.category,
            timestamp=frame.timestamp,
            image_file=image_file,
        )

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._write_atomic(self.directory / image_file, frame.image)
            self._write_atomic(
                self.directory / f"{name}.json",
                record.model_dump_json().encode("utf-8"),
            )
        except OSError as e:
            self._errors += 1
            raise PersistenceError(f"failed to persist {name} frame: {e}") from e

        self._saves += 1
        logger.debug(f"Persisted preserved {name} frame ({frame.size} bytes)")

    def load(self) -> List[Frame]:
        """
        Load every readable preserved frame.

        Missing or corrupt entries are skipped with a warning.
        """
        frames: List[Frame] = []
        if not self.directory.is_dir():
            return frames

        for category in USEFUL_CATEGORIES:
            sidecar = self.directory / f"{category.value}.json"
            if not sidecar.exists():
                continue
            try:
                record = PreservedFrameRecord.model_validate_json(sidecar.read_text())
                image = (self.directory / record.image_file).read_bytes()
            except (OSError, ValidationError) as e:
                self._errors += 1
                logger.warning(f"Skipping preserved {category.value} frame: {e}")
                continue

            if record.category is not category or not image:
                logger.warning(f"Skipping inconsistent preserved entry: {sidecar}")
                continue

            frames.append(
                Frame(image=image, timestamp=record.timestamp, category=record.category)
            )

        logger.info(f"Loaded {len(frames)} preserved frame(s) from {self.directory}")
        return frames

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "wb") as f:
            f.write(data)
        os.replace(tmp, path)

    def get_metrics(self) -> dict:
        return {
            "directory": str(self.directory),
            "saves": self._saves,
            "errors": self._errors,
        }
