"""
Balance Checker
Wallet balances and minimum-balance checks.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import aiohttp

from shared.errors import BalanceCheckError
from shared.models import AccountBalances, BalanceCheck

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = "0x70a08231"
WEI_PER_POL = 10 ** 18


class BalanceChecker(ABC):
    """
    Abstract balance collaborator.

    Subclasses fetch balances; the sufficiency rule is shared.
    """

    def __init__(self, min_gas_balance: float = 0.01) -> None:
        self._min_gas_balance = min_gas_balance

    @abstractmethod
    async def check_balances(self, address: str) -> AccountBalances:
        """
        Fetch balances for a wallet.

        Args:
            address: Wallet address

        Returns:
            Per-asset balances
        """
        pass

    def check_sufficient_balance(
        self,
        balances: AccountBalances,
        minimum: float,
        buffer_fraction: float,
    ) -> BalanceCheck:
        """
        Check USDC covers the minimum plus a safety buffer.

        Args:
            balances: Balances to check
            minimum: Minimum USDC balance
            buffer_fraction: Extra margin required above the minimum (0.05 = 5%)

        Returns:
            Sufficiency flag and human-readable warnings
        """
        required = minimum * (1 + buffer_fraction)
        warnings: List[str] = []
        sufficient = balances.usdc >= required

        if sufficient:
            warnings.append(f"USDC: ${balances.usdc:.2f} (required ${required:.2f})")
        else:
            warnings.append(
                f"USDC balance ${balances.usdc:.2f} is below required ${required:.2f} "
                f"(minimum ${minimum:.2f} + {buffer_fraction * 100:.0f}% buffer)"
            )

        if balances.pol < self._min_gas_balance:
            warnings.append(
                f"Low POL balance: {balances.pol:.4f} (recommended {self._min_gas_balance:.4f})"
            )

        return BalanceCheck(sufficient=sufficient, warnings=warnings)

    def display_balances(self, balances: AccountBalances) -> None:
        """Log balances."""
        logger.info(f"Wallet: {balances.address}")
        logger.info(f"  USDC: ${balances.usdc:.2f}")
        logger.info(f"  POL:  {balances.pol:.4f}")


class PolygonBalanceChecker(BalanceChecker):
    """Reads USDC and POL balances over Polygon JSON-RPC."""

    def __init__(
        self,
        rpc_url: str,
        usdc_address: str,
        usdc_decimals: int = 6,
        min_gas_balance: float = 0.01,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(min_gas_balance)
        self._rpc_url = rpc_url
        self._usdc_address = usdc_address
        self._usdc_decimals = usdc_decimals
        self._session = session
        self._request_id = 0

    async def check_balances(self, address: str) -> AccountBalances:
        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession()
        try:
            pol_wei = await self._rpc(session, "eth_getBalance", [address, "latest"])
            usdc_raw = await self._rpc(
                session,
                "eth_call",
                [{"to": self._usdc_address, "data": balance_of_calldata(address)}, "latest"],
            )
            usdc = int(usdc_raw, 16) / 10 ** self._usdc_decimals
            pol = int(pol_wei, 16) / WEI_PER_POL
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BalanceCheckError(f"Balance request failed: {e!r}") from e
        except (TypeError, ValueError) as e:
            raise BalanceCheckError(f"Malformed balance response: {e}") from e
        finally:
            if owns_session:
                await session.close()

        return AccountBalances(address=address, usdc=usdc, pol=pol)

    async def _rpc(self, session: aiohttp.ClientSession, method: str, params: list) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        async with session.post(self._rpc_url, json=payload) as response:
            response.raise_for_status()
            data = await response.json()

        if "error" in data:
            raise BalanceCheckError(f"RPC {method} failed: {data['error']}")
        return data.get("result") or "0x0"


class PaperBalanceChecker(BalanceChecker):
    """Fixed balances for paper trading."""

    def __init__(self, usdc: float, pol: float = 1.0, min_gas_balance: float = 0.01) -> None:
        super().__init__(min_gas_balance)
        self._usdc = usdc
        self._pol = pol

    async def check_balances(self, address: str) -> AccountBalances:
        return AccountBalances(address=address, usdc=self._usdc, pol=self._pol)


def balance_of_calldata(address: str) -> str:
    """ABI-encode ``balanceOf(address)``."""
    stripped = address[2:] if address.startswith("0x") else address
    return BALANCE_OF_SELECTOR + stripped.lower().rjust(64, "0")
