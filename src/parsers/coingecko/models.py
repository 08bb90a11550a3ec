"""Pydantic models for the CoinGecko responses used for token logos."""

from pydantic import BaseModel


class CoinGeckoImage(BaseModel):
    thumb: str | None = None
    small: str | None = None
    large: str | None = None

    model_config = {"extra": "ignore"}

    def best(self) -> str | None:
        """Preferred display size: small, then thumb, then large."""
        return self.small or self.thumb or self.large


class CoinGeckoContractCoin(BaseModel):
    """Response from /coins/{platform}/contract/{address}."""

    id: str | None = None
    symbol: str | None = None
    name: str | None = None
    image: CoinGeckoImage | None = None

    model_config = {"extra": "ignore"}


class CoinGeckoSearchCoin(BaseModel):
    """Single entry of /search ``coins``. Image URLs sit directly on the coin."""

    id: str | None = None
    name: str | None = None
    symbol: str | None = None
    thumb: str | None = None
    small: str | None = None
    large: str | None = None

    model_config = {"extra": "ignore"}

    def best_image(self) -> str | None:
        return self.small or self.thumb or self.large


class CoinGeckoSearchResult(BaseModel):
    coins: list[CoinGeckoSearchCoin] = []

    model_config = {"extra": "ignore"}

    def find_symbol(self, symbol: str) -> CoinGeckoSearchCoin | None:
        """First coin whose symbol matches case-insensitively."""
        wanted = symbol.lower()
        for coin in self.coins:
            if coin.symbol and coin.symbol.lower() == wanted:
                return coin
        return None
