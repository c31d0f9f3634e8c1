from __future__ import annotations

import pytest

from nexus_vault.accounting import (
    Books,
    Rounding,
    ceil_div,
    convert_to_assets,
    convert_to_shares,
    max_deposit,
    max_mint,
    max_redeem,
    max_withdraw,
    mul_div,
    preview_deposit,
    preview_mint,
    preview_redeem,
    preview_withdraw,
    quote_deposit,
    quote_mint,
    quote_redeem,
    quote_withdraw,
)
from nexus_vault.config.constants import UNLIMITED, WAD

ONE_PERCENT = WAD // 100


def test_mul_div_rounding() -> None:
    assert mul_div(10, 1, 3) == 3
    assert mul_div(10, 1, 3, Rounding.CEIL) == 4
    assert mul_div(9, 1, 3, Rounding.CEIL) == 3
    assert ceil_div(7, 2) == 4
    with pytest.raises(ZeroDivisionError):
        mul_div(1, 1, 0)


@pytest.mark.parametrize("assets", [0, 1, 999, 10**30])
def test_conversion_is_one_to_one_while_empty(assets: int) -> None:
    assert convert_to_shares(Books(total_supply=0, idle_assets=0), assets) == assets
    # Shares outstanding but nothing backing them still bootstraps 1:1.
    assert convert_to_shares(Books(total_supply=500, idle_assets=0), assets) == assets


def test_conversion_uses_pool_ratio_and_floors() -> None:
    books = Books(total_supply=1_000, idle_assets=2_000)
    assert convert_to_shares(books, 100) == 50
    assert convert_to_assets(books, 50) == 100
    assert convert_to_shares(books, 3) == 1
    assert convert_to_shares(books, 3, Rounding.CEIL) == 2


def test_total_assets_counts_idle_and_holdings() -> None:
    books = Books(total_supply=10, idle_assets=5, holdings={"a": 7, "b": 3})
    assert books.deployed_assets == 10
    assert books.total_assets == 15


def test_deposit_fee_rounds_up() -> None:
    books = Books(total_supply=0, idle_assets=0, deposit_fee_rate=ONE_PERCENT)

    quote = quote_deposit(books, 1_000)
    assert (quote.fee, quote.net, quote.shares) == (10, 990, 990)

    quote = quote_deposit(books, 1_001)
    assert quote.fee == 11
    assert quote.net == 990
    assert preview_deposit(books, 1_001) == 990


def test_mint_quote_grosses_up_for_fee() -> None:
    books = Books(total_supply=0, idle_assets=0, deposit_fee_rate=ONE_PERCENT)

    quote = quote_mint(books, 990)
    assert quote.net == 990
    assert quote.assets == 1_000
    assert quote.fee == 10
    assert preview_mint(books, 990) == 1_000


def test_withdraw_and_redeem_quotes_with_fee() -> None:
    books = Books(total_supply=1_000, idle_assets=1_000, withdraw_fee_rate=ONE_PERCENT)

    withdraw = quote_withdraw(books, 990)
    assert (withdraw.gross, withdraw.fee, withdraw.shares) == (1_000, 10, 1_000)
    assert preview_withdraw(books, 990) == 1_000

    redeem = quote_redeem(books, 1_000)
    assert (redeem.gross, redeem.fee, redeem.assets) == (1_000, 10, 990)
    assert preview_redeem(books, 1_000) == 990


def test_rounding_favours_the_pool() -> None:
    books = Books(total_supply=3, idle_assets=10)
    # Redeeming one share pays out the floor of 10/3.
    assert preview_redeem(books, 1) == 3
    # Withdrawing those 3 assets costs the ceiling of 0.9 shares.
    assert preview_withdraw(books, 3) == 1
    # Minting one share costs the ceiling of 10/3 assets.
    assert preview_mint(books, 1) == 4


def test_max_deposit_respects_state_and_caps() -> None:
    assert max_deposit(Books(total_supply=0, idle_assets=0)) == UNLIMITED
    assert max_deposit(Books(total_supply=0, idle_assets=0, paused=True)) == 0
    assert max_deposit(Books(total_supply=0, idle_assets=0, shutdown=True)) == 0

    capped = Books(total_supply=500, idle_assets=500, max_total_deposits=800)
    assert max_deposit(capped) == 300

    per_user = Books(
        total_supply=500, idle_assets=500, max_total_deposits=800, max_deposit_per_user=400
    )
    assert max_deposit(per_user, receiver_shares=100) == 300
    assert max_deposit(per_user, receiver_shares=200) == 200
    assert max_deposit(per_user, receiver_shares=500) == 0


def test_max_mint_follows_max_deposit() -> None:
    assert max_mint(Books(total_supply=0, idle_assets=0)) == UNLIMITED
    assert max_mint(Books(total_supply=500, idle_assets=500, max_total_deposits=800)) == 300
    assert max_mint(Books(total_supply=0, idle_assets=0, paused=True)) == 0


def test_withdraw_limits_only_blocked_by_pause() -> None:
    books = Books(total_supply=1_000, idle_assets=1_000)
    assert max_withdraw(books, 400) == 400
    assert max_redeem(books, 400) == 400

    paused = Books(total_supply=1_000, idle_assets=1_000, paused=True)
    assert max_withdraw(paused, 400) == 0
    assert max_redeem(paused, 400) == 0

    shutdown = Books(total_supply=1_000, idle_assets=1_000, shutdown=True)
    assert max_withdraw(shutdown, 400) == 400
    assert max_redeem(shutdown, 400) == 400
