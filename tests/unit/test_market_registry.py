"""Tests for MarketRegistry: market creation and wager placement rules."""

from datetime import datetime, timedelta, timezone

import pytest

from src.wb_common.enums import BalanceChangeReason, MarketStatus
from src.wb_common.errors import (
    DuplicateWagerError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidMarketDefinitionError,
    InvalidOddsError,
    InvalidOptionCountError,
    InvalidOptionError,
    MarketClosedError,
    MarketExistsError,
    MarketNotFoundError,
)

OPTIONS = [("A", 1.5), ("B", 3.0)]


class TestCreateMarket:
    def test_creates_open_market(self, registry, clock) -> None:
        market = registry.create_market("M-1", "Who wins?", OPTIONS, "creator")
        assert market.status == MarketStatus.OPEN
        assert market.total_pool == 0
        assert market.bettors == {}
        assert market.created_at == clock.now
        assert [o.name for o in market.options] == ["A", "B"]
        assert not market.is_boosted
        assert registry.get("M-1") is market

    def test_strips_names(self, registry) -> None:
        market = registry.create_market("M-1", "  Q?  ", [(" A ", 1.5), ("B", 2)], "c")
        assert market.question == "Q?"
        assert market.options[0].name == "A"
        assert market.options[1].fixed_odds == 2.0

    @pytest.mark.parametrize("count", [0, 1, 11])
    def test_option_count_bounds(self, registry, count) -> None:
        options = [(f"O{i}", 2.0) for i in range(count)]
        with pytest.raises(InvalidOptionCountError):
            registry.create_market("M-1", "Q?", options, "c")

    def test_ten_options_allowed(self, registry) -> None:
        options = [(f"O{i}", 2.0) for i in range(10)]
        assert len(registry.create_market("M-1", "Q?", options, "c").options) == 10

    def test_odds_below_minimum(self, registry) -> None:
        with pytest.raises(InvalidOddsError):
            registry.create_market("M-1", "Q?", [("A", 1.0), ("B", 2.0)], "c")

    def test_blank_question(self, registry) -> None:
        with pytest.raises(InvalidMarketDefinitionError):
            registry.create_market("M-1", "   ", OPTIONS, "c")

    def test_blank_option_name(self, registry) -> None:
        with pytest.raises(InvalidMarketDefinitionError):
            registry.create_market("M-1", "Q?", [("", 1.5), ("B", 2.0)], "c")

    def test_naive_closing_time_rejected(self, registry) -> None:
        with pytest.raises(InvalidMarketDefinitionError):
            registry.create_market("M-1", "Q?", OPTIONS, "c", closing_time=datetime(2026, 1, 1))

    def test_duplicate_id(self, registry) -> None:
        registry.create_market("M-1", "Q?", OPTIONS, "c")
        with pytest.raises(MarketExistsError):
            registry.create_market("M-1", "Other?", OPTIONS, "c")

    def test_boosted_market_has_one_option(self, registry) -> None:
        closing = datetime(2026, 10, 17, 21, 0, tzinfo=timezone.utc)
        market = registry.create_boosted_market("B-1", "PSG wins", 2.5, "c", closing, "chan")
        assert market.is_boosted
        assert len(market.options) == 1
        assert market.options[0].name == "PSG wins"
        assert market.options[0].fixed_odds == 2.5
        assert market.closing_time == closing
        assert market.channel_id == "chan"

    def test_boosted_market_validates_odds(self, registry) -> None:
        with pytest.raises(InvalidOddsError):
            registry.create_boosted_market("B-1", "Event", 0.9, "c")


class TestPlaceWager:
    @pytest.fixture
    def market(self, registry):
        return registry.create_market("M-1", "Who wins?", OPTIONS, "creator")

    def test_debits_and_records(self, registry, ledger, market, clock) -> None:
        wager = registry.place_wager("M-1", "x", 0, 50)
        assert wager.odds_at_placement == 1.5
        assert wager.placed_at == clock.now
        assert market.bettors["x"] is wager
        assert market.total_pool == 50
        assert ledger.get_balance("x") == 50
        latest = ledger.get_balance_history("x", 1)[0]
        assert latest.reason == BalanceChangeReason.WAGER_PLACED
        assert latest.amount == -50
        assert latest.reference_id == "M-1"

    def test_unknown_market(self, registry) -> None:
        with pytest.raises(MarketNotFoundError):
            registry.place_wager("nope", "x", 0, 10)

    def test_locked_market(self, registry, market) -> None:
        market.transition_to(MarketStatus.LOCKED)
        with pytest.raises(MarketClosedError):
            registry.place_wager("M-1", "x", 0, 10)

    def test_duplicate_wager_leaves_first(self, registry, ledger, market) -> None:
        registry.place_wager("M-1", "x", 0, 10)
        with pytest.raises(DuplicateWagerError):
            registry.place_wager("M-1", "x", 1, 20)
        assert market.bettors["x"].option_index == 0
        assert market.total_pool == 10
        assert ledger.get_balance("x") == 90

    @pytest.mark.parametrize("amount", [0, -5, 1.5])
    def test_invalid_amount(self, registry, market, amount) -> None:
        with pytest.raises(InvalidAmountError):
            registry.place_wager("M-1", "x", 0, amount)

    def test_invalid_option(self, registry, ledger, market) -> None:
        with pytest.raises(InvalidOptionError):
            registry.place_wager("M-1", "x", 2, 10)
        assert market.total_pool == 0

    def test_insufficient_balance_leaves_no_trace(self, registry, ledger, market) -> None:
        with pytest.raises(InsufficientBalanceError):
            registry.place_wager("M-1", "x", 0, 101)
        assert ledger.get_balance("x") == 100
        assert market.bettors == {}
        assert market.total_pool == 0

    def test_whole_balance_allowed(self, registry, ledger, market) -> None:
        registry.place_wager("M-1", "x", 1, 100)
        assert ledger.get_balance("x") == 0


class TestListings:
    def test_list_active_ordered_and_filtered(self, registry, clock) -> None:
        registry.create_market("M-2", "Second?", OPTIONS, "c")
        clock.advance(minutes=1)
        registry.create_market("M-1", "Later?", OPTIONS, "c")
        clock.advance(minutes=1)
        done = registry.create_market("M-3", "Done?", OPTIONS, "c")
        done.transition_to(MarketStatus.CANCELLED)

        assert [m.id for m in registry.list_active()] == ["M-2", "M-1"]
        assert len(registry.list_all()) == 3

    def test_list_user_wagers(self, registry, clock) -> None:
        registry.create_market("M-1", "Q1?", OPTIONS, "c")
        clock.advance(seconds=1)
        registry.create_market("M-2", "Q2?", OPTIONS, "c")
        clock.advance(seconds=1)
        settled = registry.create_market("M-3", "Q3?", OPTIONS, "c")
        registry.place_wager("M-2", "x", 1, 5)
        registry.place_wager("M-1", "x", 0, 5)
        registry.place_wager("M-3", "x", 0, 5)
        settled.transition_to(MarketStatus.CANCELLED)

        wagers = registry.list_user_wagers("x")
        assert [(m.id, w.option_index) for m, w in wagers] == [("M-1", 0), ("M-2", 1)]
        assert registry.list_user_wagers("nobody") == []

    def test_restore_replaces(self, registry) -> None:
        market = registry.create_market("M-1", "Q?", OPTIONS, "c")
        registry.restore([])
        assert registry.get("M-1") is None
        registry.restore([market])
        assert registry.require("M-1") is market


def test_closing_time_kept(registry, clock) -> None:
    closing = clock.now + timedelta(hours=2)
    market = registry.create_market("M-1", "Q?", OPTIONS, "c", closing_time=closing)
    assert market.closing_time == closing
