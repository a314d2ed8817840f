"""Centralised logging configuration.

Importing this module sets the default logging format/level. Other modules
should simply import `logging` and call `logging.getLogger(__name__)`.
The HTTP client libraries are quietened to WARNING so per-request chatter
from the OpenAI SDK does not drown the analysis log.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

for _noisy in ("httpx", "openai", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

__all__ = ["logging"]
