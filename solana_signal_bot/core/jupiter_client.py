"""
Jupiter Aggregator Client

Swap-quoting collaborator:
- Get quotes across all Solana DEXs
- Build a signable swap transaction for a quote
"""

import asyncio
import aiohttp
import logging
from typing import Optional, Dict, Any

from ..constants import JUPITER_API_BASE
from ..utils.retry import CircuitBreaker

logger = logging.getLogger(__name__)


class JupiterClient:
    """
    Client for Jupiter Aggregator API v6.

    Quote failures are returned as None or as a dict carrying "error", never
    raised; callers decide whether that means "no route" or "no data".
    """
    
    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = JUPITER_API_BASE,
        compute_unit_price_micro_lamports: int = 0,
        timeout_sec: float = 15.0,
    ):
        """
        Args:
            session: aiohttp session for API calls
            base_url: Jupiter v6 API root
            compute_unit_price_micro_lamports: priority fee forwarded to /swap (0 = auto)
            timeout_sec: per-request timeout
        """
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.compute_unit_price = compute_unit_price_micro_lamports
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self.circuit_breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=60.0, name="Jupiter")
    
    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = 50
    ) -> Optional[Dict[str, Any]]:
        """
        Get swap quote from Jupiter.
        
        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest units (lamports for SOL)
            slippage_bps: Slippage tolerance in basis points (50 = 0.5%)
        
        Returns:
            Quote data (possibly with an "error" field) or None if the request failed
        """
        if not self.circuit_breaker.can_execute():
            logger.warning("⚠️ Jupiter circuit breaker OPEN - skipping quote request")
            return None

        params = {
            "inputMint": str(input_mint),
            "outputMint": str(output_mint),
            "amount": str(int(amount)),
            "slippageBps": slippage_bps
        }

        try:
            async with self.session.get(f"{self.base_url}/quote", params=params, timeout=self.timeout) as resp:
                if resp.status == 429:
                    self.circuit_breaker.record_failure()
                    logger.warning(
                        f"⚠️ Jupiter rate limited (429) - circuit breaker: "
                        f"{self.circuit_breaker.failures}/{self.circuit_breaker.failure_threshold}"
                    )
                    return None

                quote = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.error(f"Error getting quote: {e}")
            return None

        self.circuit_breaker.record_success()

        if resp.status != 200 and "error" not in quote:
            quote = {"error": f"HTTP {resp.status}"}

        if "error" in quote:
            logger.debug(f"Quote error for {input_mint[:8]}... → {output_mint[:8]}...: {quote['error']}")
        else:
            logger.debug(
                f"Quote: {quote.get('inAmount')} → {quote.get('outAmount')} "
                f"(impact: {float(quote.get('priceImpactPct', 0) or 0):.2f}%)"
            )
        return quote
    
    async def build_swap(self, quote: Dict[str, Any], user_public_key: str) -> Optional[str]:
        """Get a serialized (base64, unsigned) swap transaction for a quote."""
        payload = {
            "quoteResponse": quote,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
        }
        if self.compute_unit_price:
            payload["computeUnitPriceMicroLamports"] = self.compute_unit_price
        else:
            payload["prioritizationFeeLamports"] = "auto"

        try:
            async with self.session.post(f"{self.base_url}/swap", json=payload, timeout=self.timeout) as resp:
                if resp.status != 200:
                    error = await resp.text()
                    logger.error(f"Swap transaction request failed: {resp.status} - {error}")
                    return None
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error getting swap transaction: {e}")
            return None

        return data.get("swapTransaction")
