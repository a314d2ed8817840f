"""Provider payload shapes and their normalisation into raw event records."""

from .normalization import (  # noqa: F401
    EventbritePayload,
    PredictHQPayload,
    ScrapedPayload,
    TicketmasterPayload,
    normalize,
    payload_from_document,
)

__all__ = [
    "TicketmasterPayload",
    "PredictHQPayload",
    "EventbritePayload",
    "ScrapedPayload",
    "normalize",
    "payload_from_document",
]
