"""Desired capture state derived from pod annotations."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from kubecapture.constants.values import ANNOTATION_KEY


class CaptureRequest(BaseModel):
    """Whether a capture is wanted and how many rotated files it may keep."""

    model_config = ConfigDict(frozen=True)

    present: bool = False
    max_files: int | None = None
    invalid_value: str | None = None

    @classmethod
    def absent(cls) -> CaptureRequest:
        return cls()


def parse_max_files(value: str) -> int | None:
    """Return the positive integer in ``value`` or None when it is not one."""
    text = value.strip()
    if not text or not text.isascii() or not text.lstrip("+").isdigit():
        return None
    try:
        max_files = int(text)
    except ValueError:
        return None
    return max_files if max_files > 0 else None


def parse_capture_request(
    annotations: Mapping[str, str],
    annotation_key: str = ANNOTATION_KEY,
) -> CaptureRequest:
    """Derive a CaptureRequest from a pod's annotations.

    An annotation whose value is not a positive decimal integer yields an
    absent request that carries the rejected value in ``invalid_value``.
    """
    value = annotations.get(annotation_key)
    if value is None:
        return CaptureRequest.absent()

    max_files = parse_max_files(value)
    if max_files is None:
        return CaptureRequest(present=False, invalid_value=value)
    return CaptureRequest(present=True, max_files=max_files)
