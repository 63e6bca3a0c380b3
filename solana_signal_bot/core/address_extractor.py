"""
Address Extractor

Pulls a candidate Solana mint address out of raw chat text.

- Link-embedded addresses (<host>/solana/<address>) are checked first
- Otherwise the first base58 run of 32-44 chars that passes validation wins
- In "reject" link policy, any mention of a link host drops the message
"""

import logging
import re
from typing import Iterable, Optional

import base58

from ..constants import (
    ADDRESS_MAX_LEN,
    ADDRESS_MIN_LEN,
    ADDRESS_SUFFIX,
    BASE58_ALPHABET,
    DEFAULT_LINK_HOSTS,
)

logger = logging.getLogger(__name__)

_B58 = "1-9A-HJ-NP-Za-km-z"
# Whole base58 runs only, so 45+ char blobs are not sliced into candidates
ADDRESS_PATTERN = re.compile(
    rf"(?<![{_B58}])[{_B58}]{{{ADDRESS_MIN_LEN},{ADDRESS_MAX_LEN}}}(?![{_B58}])"
)


def is_valid_address(address: str) -> bool:
    """Syntactic check only; on-chain existence is verified at execution time."""
    if not address or not isinstance(address, str):
        return False
    if not ADDRESS_MIN_LEN <= len(address) <= ADDRESS_MAX_LEN:
        return False

    # pump.fun mints
    if address.endswith(ADDRESS_SUFFIX):
        return True

    if any(ch not in BASE58_ALPHABET for ch in address):
        return False
    try:
        base58.b58decode(address)
        return True
    except ValueError:
        return False


class AddressExtractor:
    def __init__(
        self,
        link_hosts: Optional[Iterable[str]] = None,
        link_policy: str = "prefer",
    ):
        self.link_hosts = [h.lower() for h in (link_hosts if link_hosts is not None else DEFAULT_LINK_HOSTS)]
        self.link_policy = link_policy

        hosts = "|".join(re.escape(h) for h in self.link_hosts)
        self._link_pattern = (
            re.compile(rf"(?:{hosts})/solana/([{_B58}]{{{ADDRESS_MIN_LEN},{ADDRESS_MAX_LEN}}})(?![{_B58}])", re.IGNORECASE)
            if hosts else None
        )

    def mentions_link_host(self, text: str) -> bool:
        lowered = text.lower()
        return any(host in lowered for host in self.link_hosts)

    def extract(self, text: Optional[str]) -> Optional[str]:
        if not text or not isinstance(text, str):
            return None

        if self.link_policy == "reject":
            if self.mentions_link_host(text):
                logger.debug("🚫 REJECT message references a blocked link host")
                return None
        elif self._link_pattern is not None:
            match = self._link_pattern.search(text)
            if match and is_valid_address(match.group(1)):
                logger.debug(f"Found link address: {match.group(1)}")
                return match.group(1)

        for match in ADDRESS_PATTERN.finditer(text):
            candidate = match.group(0)
            if is_valid_address(candidate):
                logger.debug(f"Found valid address: {candidate}")
                return candidate

        return None
