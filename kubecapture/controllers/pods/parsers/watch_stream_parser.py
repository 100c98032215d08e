"""Decoder for the JSON stream printed by ``kubectl get --watch -o json``.

kubectl prints one pretty-printed JSON document per event with no
delimiter, and a read may end in the middle of a document.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class WatchStreamDecoder:
    """Incrementally splits concatenated JSON documents."""

    def __init__(self) -> None:
        self._decoder = json.JSONDecoder()
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: str) -> list[dict[str, Any]]:
        """Add text and return every complete document now available."""
        self._buffer += chunk
        documents: list[dict[str, Any]] = []
        while True:
            text = self._buffer.lstrip()
            if not text:
                self._buffer = ""
                break
            if text[0] != "{":
                # Skip anything that cannot start an object, up to the next line.
                newline = text.find("\n")
                logger.warning("Skipping unexpected watch output: %r", text[:80])
                self._buffer = text[newline + 1:] if newline >= 0 else ""
                continue
            try:
                document, end = self._decoder.raw_decode(text)
            except json.JSONDecodeError:
                # Incomplete document; wait for more input.
                self._buffer = text
                break
            self._buffer = text[end:]
            if isinstance(document, dict):
                documents.append(document)
        return documents
