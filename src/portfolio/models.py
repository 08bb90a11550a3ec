"""Domain types for aggregated portfolios, rebalancing and analytics."""

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(frozen=True)
class TokenHolding:
    """One token position on one chain, normalized from a holdings row."""

    address: str
    symbol: str
    name: str
    decimals: int
    balance: float
    price: float
    value: float  # USD, balance × price as reported upstream
    logo: str
    protocol: str = "ERC20"
    profit_loss: float = 0.0  # USD
    profit_loss_percent: float = 0.0  # roi × 100
    roi: float = 0.0
    balance_formatted: str = "0"
    last_updated: str = ""


@dataclass(frozen=True)
class PortfolioResult:
    """Per-chain fetch outcome before the chain name is attached."""

    total_value: float = 0.0
    tokens: list[TokenHolding] = field(default_factory=list)
    degraded: bool = False  # holdings request failed, result zeroed


@dataclass(frozen=True)
class ChainPortfolio:
    chain_id: int
    chain_name: str
    total_value: float = 0.0
    tokens: list[TokenHolding] = field(default_factory=list)


@dataclass(frozen=True)
class MultiChainPortfolio:
    wallet_address: str
    total_value: float
    chains: list[ChainPortfolio]
    degraded_chains: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class RebalancingSuggestion:
    token: str
    action: Literal["buy", "sell"]
    current_allocation: float
    target_allocation: float
    drift: float  # absolute percentage points
    suggested_amount: float  # USD


@dataclass(frozen=True)
class RebalancingResult:
    needs_rebalancing: bool
    suggestions: list[RebalancingSuggestion] = field(default_factory=list)
    max_drift: float | None = None
    portfolio_value: float | None = None


@dataclass(frozen=True)
class AllocationValidation:
    is_valid: bool
    total_percentage: float
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PortfolioSummary:
    total_tokens: int
    total_chains: int
    average_token_value: float
    largest_holding: TokenHolding | None
    chain_distribution: dict[str, float]


@dataclass(frozen=True)
class PortfolioDiversity:
    number_of_assets: int
    concentration_risk: float  # highest single allocation, %
    diversity_score: float  # 0-100, higher is more diverse
    herfindahl_index: float


@dataclass(frozen=True)
class RiskMetrics:
    total_pnl: float
    average_roi: float
    volatility_score: float
    risk_level: Literal["Low", "Medium", "High"]


@dataclass(frozen=True)
class RankedToken:
    symbol: str
    value: float
    profit_loss: float
    roi: float
    rank: int


@dataclass
class ActivityBreakdown:
    swaps: int = 0
    transfers: int = 0
    approvals: int = 0
    other: int = 0


@dataclass
class TimelinePoint:
    date: str  # YYYY-MM-DD, UTC
    count: int = 0
    volume: float = 0.0


@dataclass
class TransactionAnalytics:
    recent_transactions: list[dict[str, Any]]
    total_transactions: int
    total_volume: float
    activity_breakdown: ActivityBreakdown
    timeline_data: list[TimelinePoint]


@dataclass
class TransactionStats:
    total_count: int
    total_volume: float
    average_volume: float
    date_range: tuple[str, str] | None
    most_active_day: TimelinePoint | None


@dataclass(frozen=True)
class HistoryMetrics:
    """Per-token P/L taken from the loaded portfolio."""

    index: str  # "{chain_id}_{address}"
    profit_abs_usd: float | None
    roi: float | None


@dataclass
class TokenPageData:
    """Everything the token page shows; each part is None when unavailable."""

    chain_id: int
    chain_name: str
    token_address: str
    wallet_address: str | None
    price: float | None = None
    holding: TokenHolding | None = None
    history_metrics: HistoryMetrics | None = None
    transaction_analytics: TransactionAnalytics | None = None
