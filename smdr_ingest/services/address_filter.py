import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AddressFilter:
    """Single-source allowlist applied before a connection is read.

    The match is a substring test against ``host:port`` text, so an allowed
    ``10.0.0.5`` admits ``10.0.0.5:51324``.
    """

    def __init__(self, allowed: Optional[str] = None, log: Optional[logging.Logger] = None) -> None:
        self.allowed = allowed or None
        self.logger = log or logger

    def admits(self, remote_address: str) -> bool:
        if self.allowed is None:
            return True
        if self.allowed in remote_address:
            return True
        self.logger.warning("Blocked connection from %s", remote_address)
        return False
