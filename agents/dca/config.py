from shared.config import settings

AGENT_NAME = "dca"

# Scheduling
DCA_CHECK_INTERVAL = 300          # Execution pass every 5 minutes
PRICE_REFRESH_INTERVAL = 900      # Token market data every 15 minutes
PORTFOLIO_SNAPSHOT_HOUR = 0       # UTC 00:00

# Plan variants
VARIANT_AGGREGATOR = "aggregator"
VARIANT_LEDGER = "ledger"

# 1inch swap parameters
DEFAULT_SLIPPAGE_PCT = 5
AGGREGATOR_FEE_PCT = 3

# The SwapExecuted event carries no fee; the executor charges this rate on amountIn
EXECUTOR_FEE_BPS = 300
BPS_DENOMINATOR = 10_000

# Uniswap v3 pool fee tier when the token row has none (0.3%)
DEFAULT_POOL_FEE = 3000

# Gas limits for executor calls
SWAP_GAS_LIMIT = 600_000
PLAN_GAS_LIMIT = 400_000

# Revert reasons that mean the user's approval ran out
ALLOWANCE_REVERT_MARKERS = (
    "transfer amount exceeds allowance",
    "insufficient allowance",
    "erc20insufficientallowance",
)

# Micro-units of the funding asset (USDC has 6 decimals)
FUNDING_UNIT = 10 ** settings.FUNDING_TOKEN_DECIMALS
