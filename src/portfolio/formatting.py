"""Display formatting for balances and USD amounts."""


def _exponential(value: float, digits: int) -> str:
    """Exponential notation without zero-padded exponent (``5.00e-5``)."""
    mantissa, exponent = f"{value:.{digits}e}".split("e")
    exp = int(exponent)
    sign = "-" if exp < 0 else "+"
    return f"{mantissa}e{sign}{abs(exp)}"


def format_token_balance(balance: float, decimals: int = 18) -> str:
    """Human-readable token balance with magnitude-based precision.

    ``decimals`` is accepted for call-site symmetry with on-chain amounts;
    the balance passed in is already scaled.
    """
    if balance == 0:
        return "0"
    magnitude = abs(balance)
    if magnitude < 0.0001:
        return _exponential(balance, 2)
    if magnitude < 1:
        return f"{balance:.6f}"
    if magnitude < 1000:
        return f"{balance:.4f}"
    return f"{balance:,.2f}".rstrip("0").rstrip(".")


def format_usd_value(value: float) -> str:
    if value == 0:
        return "$0.00"
    if value < 0.01:
        return "<$0.01"
    if value < 1_000:
        return f"${value:.2f}"
    if value < 1_000_000:
        return f"${value / 1_000:.1f}K"
    if value < 1_000_000_000:
        return f"${value / 1_000_000:.1f}M"
    return f"${value / 1_000_000_000:.1f}B"
