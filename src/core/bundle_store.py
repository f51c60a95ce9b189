"""Bundle file persistence for resuming a submission."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .bundle import Bundle
from .serializer import CanonicalSerializer

logger = logging.getLogger(__name__)


class BundleStore:
    """
    Saves and reloads the signed bundle as a JSON array of
    ``{"signedTransaction": "0x..."}`` objects.

    A saved bundle is a checkpoint: the deposit in it is signed and cannot be
    recreated without repeating the smartnode deposit, so the file is written
    before anything is submitted.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, bundle: Bundle) -> None:
        logger.info("Saving bundle to %s", self._path)
        self._path.write_text(
            CanonicalSerializer.dumps(bundle.to_payload()), encoding="utf-8"
        )

    def load(self) -> Bundle:
        logger.info("Loading bundle from %s", self._path)
        try:
            payload = CanonicalSerializer.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ValueError(f"Bundle file not found: {self._path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in bundle file {self._path}") from exc
        return Bundle.from_payload(payload)
