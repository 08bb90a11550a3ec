"""Allocation drift and rebalancing suggestions.

Allocations are percentages keyed by token symbol, summed across chains
(USDC on Ethereum and USDC on Base count as one USDC position).

Rebalancing is all-or-nothing on the largest drift: if no target symbol
drifts by at least ``drift_threshold`` points, nothing is suggested, even
for symbols individually close to it.
"""

import math
from collections.abc import Iterable, Mapping

from src.portfolio.models import (
    AllocationValidation,
    ChainPortfolio,
    PortfolioDiversity,
    RankedToken,
    RebalancingResult,
    RebalancingSuggestion,
    RiskMetrics,
    TokenHolding,
)

DEFAULT_DRIFT_THRESHOLD = 5.0
ALLOCATION_TOLERANCE = 0.01


def calculate_current_allocations(
    chains: Iterable[ChainPortfolio],
    total_value: float,
) -> dict[str, float]:
    """Percent of total portfolio value per symbol."""
    if total_value <= 0:
        return {}
    allocations: dict[str, float] = {}
    for chain in chains:
        for token in chain.tokens:
            share = token.value / total_value * 100
            allocations[token.symbol] = allocations.get(token.symbol, 0.0) + share
    return allocations


def calculate_portfolio_drift(
    current: Mapping[str, float],
    target: Mapping[str, float],
) -> tuple[dict[str, float], float]:
    """Per-symbol absolute drift for every target symbol, plus the max."""
    drifts: dict[str, float] = {}
    max_drift = 0.0
    for symbol, target_pct in target.items():
        drift = abs(current.get(symbol, 0.0) - target_pct)
        drifts[symbol] = drift
        max_drift = max(max_drift, drift)
    return drifts, max_drift


def generate_rebalancing_suggestions(
    current: Mapping[str, float],
    target: Mapping[str, float],
    total_value: float,
    drift_threshold: float = DEFAULT_DRIFT_THRESHOLD,
) -> RebalancingResult:
    drifts, max_drift = calculate_portfolio_drift(current, target)

    if max_drift < drift_threshold:
        return RebalancingResult(needs_rebalancing=False)

    suggestions: list[RebalancingSuggestion] = []
    for symbol, drift in drifts.items():
        if drift < drift_threshold:
            continue
        current_pct = current.get(symbol, 0.0)
        target_pct = target[symbol]
        suggestions.append(
            RebalancingSuggestion(
                token=symbol,
                action="sell" if current_pct > target_pct else "buy",
                current_allocation=current_pct,
                target_allocation=target_pct,
                drift=drift,
                suggested_amount=drift / 100 * total_value,
            )
        )

    return RebalancingResult(
        needs_rebalancing=True,
        suggestions=suggestions,
        max_drift=max_drift,
        portfolio_value=total_value,
    )


def validate_target_allocations(target: Mapping[str, float]) -> AllocationValidation:
    """Targets must sum to 100% (±0.01) with every entry in [0, 100]."""
    errors: list[str] = []
    total = sum(target.values())

    if abs(total - 100) > ALLOCATION_TOLERANCE:
        errors.append(f"Total allocation is {total:.2f}%, should be 100%")

    for symbol, pct in target.items():
        if pct < 0:
            errors.append(f"{symbol} has negative allocation: {pct:g}%")
        if pct > 100:
            errors.append(f"{symbol} allocation exceeds 100%: {pct:g}%")

    return AllocationValidation(is_valid=not errors, total_percentage=total, errors=errors)


def calculate_portfolio_diversity(allocations: Mapping[str, float]) -> PortfolioDiversity:
    values = list(allocations.values())
    if not values:
        return PortfolioDiversity(
            number_of_assets=0,
            concentration_risk=0.0,
            diversity_score=0.0,
            herfindahl_index=0.0,
        )

    concentration = max(values)
    return PortfolioDiversity(
        number_of_assets=len(values),
        concentration_risk=concentration,
        diversity_score=max(0.0, 100 - concentration),
        herfindahl_index=sum((v / 100) ** 2 for v in values),
    )


def calculate_risk_metrics(tokens: list[TokenHolding]) -> RiskMetrics:
    """P&L total, mean ROI and ROI dispersion bucketed into a risk level."""
    if not tokens:
        return RiskMetrics(total_pnl=0.0, average_roi=0.0, volatility_score=0.0, risk_level="Low")

    total_pnl = sum(t.profit_loss for t in tokens)
    average_roi = sum(t.roi for t in tokens) / len(tokens)
    variance = sum((t.roi - average_roi) ** 2 for t in tokens) / len(tokens)
    volatility = math.sqrt(variance) * 100

    if volatility < 10:
        risk_level = "Low"
    elif volatility < 25:
        risk_level = "Medium"
    else:
        risk_level = "High"

    return RiskMetrics(
        total_pnl=total_pnl,
        average_roi=average_roi,
        volatility_score=volatility,
        risk_level=risk_level,
    )


def _ranked(tokens: list[TokenHolding], limit: int, *, best_first: bool) -> list[RankedToken]:
    ordered = sorted(tokens, key=lambda t: t.roi, reverse=best_first)
    return [
        RankedToken(symbol=t.symbol, value=t.value, profit_loss=t.profit_loss, roi=t.roi, rank=i + 1)
        for i, t in enumerate(ordered[:limit])
    ]


def get_top_performers(tokens: list[TokenHolding], limit: int = 5) -> list[RankedToken]:
    return _ranked(tokens, limit, best_first=True)


def get_worst_performers(tokens: list[TokenHolding], limit: int = 5) -> list[RankedToken]:
    return _ranked(tokens, limit, best_first=False)
