"""Domain models for image uploads."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PendingImage:
    """An accepted upload that has not been handed to storage yet."""

    reference: str
    content_type: str
    data: bytes
