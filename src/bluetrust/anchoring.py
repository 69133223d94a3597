"""
Ledger Anchoring

Optional mirroring of committed ledger entries to an external ledger.
Anchoring is best-effort: the local ledger is the source of truth and an
anchoring failure never rolls a committed entry back.
"""

import hashlib
import logging
from typing import Protocol

import httpx

from bluetrust.config import EngineSettings
from bluetrust.enums import AnchorBackend
from bluetrust.types import LedgerEntry


logger = logging.getLogger(__name__)


class AnchorError(Exception):
    """External ledger rejected or did not receive an entry"""

    pass


class LedgerAnchor(Protocol):
    """Anchoring collaborator contract"""

    async def anchor(self, entry: LedgerEntry) -> str | None:
        """
        Mirror a committed entry.

        Returns:
            External reference (e.g. transaction hash) or None when not anchored

        Raises:
            AnchorError: The external ledger failed
        """
        ...


def entry_digest(entry: LedgerEntry) -> str:
    """Deterministic 64-char hex digest of an entry"""
    return hashlib.sha256(entry.model_dump_json(exclude={"anchor_ref"}).encode()).hexdigest()


class NullAnchor:
    """Anchor that mirrors nothing"""

    async def anchor(self, entry: LedgerEntry) -> str | None:
        return None


class InMemoryAnchor:
    """Anchor that keeps mirrored entries in memory, keyed by digest"""

    def __init__(self):
        self.entries: dict[str, LedgerEntry] = {}

    async def anchor(self, entry: LedgerEntry) -> str | None:
        tx_hash = entry_digest(entry)
        self.entries[tx_hash] = entry
        return tx_hash


class HttpLedgerAnchor:
    """
    Anchor that POSTs entries to an external ledger gateway.

    The gateway answers with {"tx_hash": "..."}.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport

    async def anchor(self, entry: LedgerEntry) -> str | None:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    "/entries", content=entry.model_dump_json(), headers={"Content-Type": "application/json", **self.headers}
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            raise AnchorError(f"Anchor gateway returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AnchorError(f"Anchor gateway request failed: {str(e)}") from e
        except ValueError as e:
            raise AnchorError("Anchor gateway returned a non-JSON body") from e

        tx_hash = result.get("tx_hash") if isinstance(result, dict) else None
        if not tx_hash:
            raise AnchorError("Anchor gateway response has no tx_hash")
        logger.info(f"Ledger entry {entry.sequence} anchored: {tx_hash}")
        return tx_hash


def build_anchor(settings: EngineSettings) -> LedgerAnchor:
    """Create the anchor selected by settings.anchor_backend"""
    if settings.anchor_backend == AnchorBackend.HTTP:
        return HttpLedgerAnchor(settings.anchor_url, timeout=settings.anchor_timeout_seconds)
    if settings.anchor_backend == AnchorBackend.MEMORY:
        return InMemoryAnchor()
    return NullAnchor()
