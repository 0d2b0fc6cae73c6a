import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import httpx

from CWT_Wallet.cwt_shared import config
from CWT_Wallet.cwt_shared.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class PriceClient:
    """USDC -> fiat rate from the CoinGecko simple price endpoint."""

    def __init__(
        self,
        base_url: str = config.COINGECKO_API,
        coin_id: str = config.COINGECKO_COIN_ID,
        fiat: str = config.FIAT_CURRENCY,
        client: Optional[httpx.Client] = None,
    ):
        self.coin_id = coin_id
        self.fiat = fiat
        self.client = client or httpx.Client(base_url=base_url, timeout=config.HTTP_TIMEOUT_SECONDS)

    def get_rate(self) -> Decimal:
        params = {"ids": self.coin_id, "vs_currencies": self.fiat}
        try:
            resp = self.client.get("/simple/price", params=params)
            resp.raise_for_status()
            # parse_float keeps the quoted rate exact.
            data = resp.json(parse_float=Decimal)
            rate = Decimal(data[self.coin_id][self.fiat])
        except httpx.HTTPError as e:
            logger.warning("Price lookup failed: %s", e)
            raise UpstreamUnavailableError("get exchange rate", e) from e
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            logger.warning("Malformed price response: %s", e)
            raise UpstreamUnavailableError("get exchange rate", f"malformed response: {e}") from e

        return rate.quantize(CENT, rounding=ROUND_HALF_UP)

    def close(self) -> None:
        self.client.close()


def fiat_value(usdc_micro: int, rate: Decimal) -> Decimal:
    """USDC holdings times the rate, rounded to cents."""
    usdc = Decimal(usdc_micro).scaleb(-config.USDC_DECIMALS)
    return (usdc * rate).quantize(CENT, rounding=ROUND_HALF_UP)
