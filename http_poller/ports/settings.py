"""Settings port definition (DTO)."""

from dataclasses import dataclass

from http_poller.core.request_table import RequestTable

__all__ = ["SettingsPort"]


@dataclass
class SettingsPort:
    """Runtime settings for the core loop.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        interval_in_sec: Seconds between the starts of two poll cycles.
        requests: Validated table of named requests.
        metadata_target: Field receiving request metadata; None disables it.
        target: Field wrapping decoded content; None merges it at top level.
    """

    interval_in_sec: float
    requests: RequestTable
    metadata_target: str | None = "@metadata"
    target: str | None = None
