BASE_URL = "https://api.1inch.dev"

# Portfolio v4: per-token holdings with P&L for one chain
TOKEN_DETAILS = "portfolio/portfolio/v4/overview/erc20/details"

# Token API: chain token list (name/symbol/decimals/logoURI by address)
TOKEN_LIST = "token/v1.2/{chain_id}/token-list"

# History API: wallet events, optionally narrowed to one token
HISTORY_EVENTS = "history/v2.0/history/{address}/events"

# Holdings query defaults (closed positions included, 1 week P&L window)
TOKEN_DETAILS_DEFAULTS = {
    "timerange": "1week",
    "closed": "true",
    "closed_threshold": "1",
    "use_cache": "true",
}

# Spot Price API: USD prices for comma-separated token addresses
SPOT_PRICE = "price/v1.1/{chain_id}/{addresses}"
