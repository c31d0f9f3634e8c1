"""Pure accounting library: conversions, previews, limits, allocation and fees."""

from .allocation import (
    Allocation,
    RebalancePlan,
    WithdrawAllocation,
    calculate_rebalance_plan,
    calculate_deposit_allocation,
    calculate_withdraw_allocation,
    split_proportionally,
)
from .books import Books
from .conversions import (
    DepositQuote,
    WithdrawQuote,
    convert_to_assets,
    convert_to_shares,
    max_deposit,
    max_mint,
    max_redeem,
    max_withdraw,
    preview_deposit,
    preview_mint,
    preview_redeem,
    preview_withdraw,
    quote_deposit,
    quote_mint,
    quote_redeem,
    quote_withdraw,
)
from .fees import FeeAccrual, calculate_management_fee, calculate_performance_fee
from .math import Rounding, ceil_div, mul_div

__all__ = [
    "Allocation",
    "RebalancePlan",
    "WithdrawAllocation",
    "calculate_rebalance_plan",
    "calculate_deposit_allocation",
    "calculate_withdraw_allocation",
    "split_proportionally",
    "Books",
    "DepositQuote",
    "WithdrawQuote",
    "convert_to_assets",
    "convert_to_shares",
    "max_deposit",
    "max_mint",
    "max_redeem",
    "max_withdraw",
    "preview_deposit",
    "preview_mint",
    "preview_redeem",
    "preview_withdraw",
    "quote_deposit",
    "quote_mint",
    "quote_redeem",
    "quote_withdraw",
    "FeeAccrual",
    "calculate_management_fee",
    "calculate_performance_fee",
    "Rounding",
    "ceil_div",
    "mul_div",
]
