"""Process-wide portfolio state exposed to the dashboard API.

State lives in one frozen ``PortfolioSnapshot`` that is replaced whole on
every change, so readers never see a half-updated portfolio. Listeners
registered with ``subscribe`` get each new snapshot.

Every ``fetch_portfolio`` run is tagged with a generation number. Switching
wallets or forcing a refresh bumps the generation; results from an older run
are dropped instead of overwriting newer state. Overlapping non-forced
refreshes for the same wallet (timer + manual click) share one in-flight task.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from loguru import logger

from src.parsers.oneinch.client import OneInchClient
from src.portfolio import rebalancing
from src.portfolio.aggregator import PortfolioAggregator
from src.portfolio.models import (
    AllocationValidation,
    ChainPortfolio,
    MultiChainPortfolio,
    RebalancingResult,
    RebalancingSuggestion,
)

ERR_NO_WALLET = "No wallet address provided"
ERR_NOT_CONFIGURED = "1inch API key not configured"
ERR_REBALANCE_UNAVAILABLE = "Wallet address or API service not available"


@dataclass(frozen=True)
class PortfolioSnapshot:
    wallet_address: str | None = None
    total_value: float = 0.0
    chains: list[ChainPortfolio] = field(default_factory=list)
    degraded_chains: list[int] = field(default_factory=list)
    is_loading: bool = False
    error: str | None = None
    last_updated: datetime | None = None

    target_allocations: dict[str, float] = field(default_factory=dict)
    drift_threshold: float = rebalancing.DEFAULT_DRIFT_THRESHOLD
    rebalancing_suggestions: list[RebalancingSuggestion] = field(default_factory=list)
    needs_rebalancing: bool = False
    max_drift: float = 0.0


Listener = Callable[[PortfolioSnapshot], None]


class PortfolioStore:
    def __init__(
        self,
        client: OneInchClient,
        aggregator: PortfolioAggregator,
        *,
        target_allocations: dict[str, float] | None = None,
        drift_threshold: float = rebalancing.DEFAULT_DRIFT_THRESHOLD,
    ) -> None:
        self._client = client
        self._aggregator = aggregator
        self._snapshot = PortfolioSnapshot(
            target_allocations=dict(target_allocations or {}),
            drift_threshold=drift_threshold,
        )
        self._listeners: list[Listener] = []
        self._generation = 0
        self._wallet_generation = 0  # bumped only when the wallet changes
        self._inflight: asyncio.Task[None] | None = None
        self._inflight_wallet: str | None = None

    # -- read side --------------------------------------------------------

    @property
    def snapshot(self) -> PortfolioSnapshot:
        return self._snapshot

    @property
    def wallet_address(self) -> str | None:
        return self._snapshot.wallet_address

    @property
    def total_value(self) -> float:
        return self._snapshot.total_value

    @property
    def chains(self) -> list[ChainPortfolio]:
        return self._snapshot.chains

    @property
    def is_loading(self) -> bool:
        return self._snapshot.is_loading

    @property
    def error(self) -> str | None:
        return self._snapshot.error

    @property
    def last_updated(self) -> datetime | None:
        return self._snapshot.last_updated

    @property
    def needs_rebalancing(self) -> bool:
        return self._snapshot.needs_rebalancing

    @property
    def max_drift(self) -> float:
        return self._snapshot.max_drift

    @property
    def generation(self) -> int:
        return self._generation

    def portfolio(self) -> MultiChainPortfolio | None:
        snap = self._snapshot
        if snap.wallet_address is None or snap.last_updated is None:
            return None
        return MultiChainPortfolio(
            wallet_address=snap.wallet_address,
            total_value=snap.total_value,
            chains=snap.chains,
            degraded_chains=snap.degraded_chains,
        )

    def is_stale(self, max_age_sec: float) -> bool:
        updated = self._snapshot.last_updated
        if updated is None:
            return True
        return (datetime.now(UTC) - updated).total_seconds() >= max_age_sec

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set(self, **changes: object) -> None:
        self._snapshot = replace(self._snapshot, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                logger.error(f"[STORE] Listener {listener!r} failed: {e}")

    # -- actions ----------------------------------------------------------

    def set_wallet_address(self, address: str) -> None:
        address = address.strip()
        if address == self._snapshot.wallet_address:
            return
        # New wallet: anything still in flight belongs to the old one
        self._generation += 1
        self._wallet_generation += 1
        self._set(
            wallet_address=address or None,
            total_value=0.0,
            chains=[],
            degraded_chains=[],
            is_loading=False,
            error=None,
            last_updated=None,
            rebalancing_suggestions=[],
            needs_rebalancing=False,
            max_drift=0.0,
        )
        logger.info(f"[STORE] Wallet set to {address or '<none>'}")

    def set_target_allocations(self, allocations: dict[str, float]) -> AllocationValidation:
        """Store targets if valid; the validation result is returned either way."""
        validation = rebalancing.validate_target_allocations(allocations)
        if validation.is_valid:
            self._set(target_allocations=dict(allocations))
        return validation

    def set_drift_threshold(self, threshold: float) -> None:
        if threshold < 0:
            self._set(error=f"Drift threshold must be non-negative, got {threshold}")
            return
        self._set(drift_threshold=threshold)

    def clear_error(self) -> None:
        self._set(error=None)

    async def fetch_portfolio(self, *, force: bool = False) -> None:
        """Refresh the snapshot for the current wallet.

        ``force`` drops the API response cache first (manual refresh) and
        supersedes any in-flight run.
        """
        wallet = self._snapshot.wallet_address
        if not wallet:
            self._set(error=ERR_NO_WALLET)
            return
        if not self._client.is_configured:
            self._set(error=ERR_NOT_CONFIGURED)
            return

        inflight = self._inflight
        if (
            not force
            and inflight is not None
            and not inflight.done()
            and self._inflight_wallet == wallet
        ):
            logger.debug(f"[STORE] Joining in-flight refresh for {wallet}")
            await asyncio.shield(inflight)
            return

        if force:
            self._client.clear_cache()

        self._generation += 1
        task = asyncio.create_task(self._run_fetch(wallet, self._generation))
        self._inflight = task
        self._inflight_wallet = wallet
        await asyncio.shield(task)

    async def _run_fetch(self, wallet: str, generation: int) -> None:
        if generation == self._generation:
            self._set(is_loading=True, error=None)
        try:
            portfolio = await self._aggregator.get_multi_chain_portfolio(wallet)
        except Exception as e:
            logger.error(f"[STORE] Portfolio fetch failed for {wallet}: {e}")
            if generation == self._generation:
                self._set(error=str(e) or "Failed to fetch portfolio", is_loading=False)
            return

        if generation != self._generation:
            logger.debug(f"[STORE] Discarding stale portfolio (gen {generation} < {self._generation})")
            return

        self._set(
            total_value=portfolio.total_value,
            chains=portfolio.chains,
            degraded_chains=portfolio.degraded_chains,
            is_loading=False,
            last_updated=datetime.now(UTC),
        )

    async def generate_rebalancing_suggestions(self) -> RebalancingResult | None:
        """Compare current allocations with targets and publish suggestions."""
        snap = self._snapshot
        if not snap.wallet_address or not self._client.is_configured:
            self._set(error=ERR_REBALANCE_UNAVAILABLE)
            return None

        validation = rebalancing.validate_target_allocations(snap.target_allocations)
        if not validation.is_valid:
            self._set(error="; ".join(validation.errors))
            return None

        wallet_generation = self._wallet_generation
        self._set(is_loading=True, error=None)
        try:
            portfolio = await self._aggregator.get_multi_chain_portfolio(snap.wallet_address)
        except Exception as e:
            logger.error(f"[STORE] Rebalancing failed for {snap.wallet_address}: {e}")
            if wallet_generation == self._wallet_generation:
                self._set(error=str(e) or "Failed to generate rebalancing suggestions", is_loading=False)
            return None

        current = rebalancing.calculate_current_allocations(portfolio.chains, portfolio.total_value)
        result = rebalancing.generate_rebalancing_suggestions(
            current,
            snap.target_allocations,
            portfolio.total_value,
            snap.drift_threshold,
        )
        # Same-wallet refreshes do not invalidate suggestions; a wallet switch does
        if wallet_generation != self._wallet_generation:
            logger.debug("[STORE] Discarding rebalancing result for a previous wallet")
            return None

        self._set(
            rebalancing_suggestions=result.suggestions,
            needs_rebalancing=result.needs_rebalancing,
            max_drift=result.max_drift or 0.0,
            is_loading=False,
        )
        return result


async def portfolio_refresh_loop(store: PortfolioStore, interval_sec: float) -> None:
    """Background loop: refresh the current wallet every ``interval_sec``."""
    while True:
        await asyncio.sleep(interval_sec)
        if not store.wallet_address:
            continue
        logger.info("[STORE] Auto-refreshing portfolio data...")
        try:
            await store.fetch_portfolio()
        except Exception as e:
            logger.error(f"[STORE] Auto-refresh failed: {e}")
