"""Capture file naming and cleanup helpers."""

from __future__ import annotations

import glob
import logging
from dataclasses import dataclass, field
from pathlib import Path

from kubecapture.constants.values import CAPTURE_FILE_PREFIX, CAPTURE_FILE_SUFFIX

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """Outcome of deleting one capture's files."""

    deleted: list[Path] = field(default_factory=list)
    failed: dict[Path, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def capture_output_prefix(capture_dir: str | Path, pod_name: str) -> Path:
    """Return the canonical output path for a pod, before rotation suffixes."""
    return Path(capture_dir) / f"{CAPTURE_FILE_PREFIX}{pod_name}{CAPTURE_FILE_SUFFIX}"


def find_capture_files(output_prefix: str | Path) -> list[Path]:
    """List files written under ``output_prefix`` including rotated ones.

    tcpdump only appends decimal rotation numbers, so ``capture-web.pcap0``
    belongs to ``web`` but ``capture-web.pcap-canary.pcap0`` does not.
    """
    prefix = str(output_prefix)
    matches = []
    for match in glob.glob(glob.escape(prefix) + "[0-9]*"):
        suffix = match[len(prefix):]
        if suffix.isascii() and suffix.isdigit():
            matches.append(Path(match))
    if Path(prefix).is_file():
        matches.append(Path(prefix))
    return sorted(matches)


def delete_capture_files(output_prefix: str | Path) -> CleanupResult:
    """Delete every file matching the prefix.

    A failure on one file is logged and does not stop the others.
    """
    result = CleanupResult()
    for path in find_capture_files(output_prefix):
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            result.failed[path] = str(exc)
        else:
            logger.info("Deleted %s", path)
            result.deleted.append(path)
    return result
