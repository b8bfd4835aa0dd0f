import pytest

from navi_ptb.core.errors import DoubleConsumption, PTBError, SplitExceedsValue
from navi_ptb.ptb.threader import DataflowThreader
from navi_ptb.ptb.types import CommandKind, HandleKind, Produces
from navi_ptb.ptb.unit import TransactionUnit

SUI = "0x2::sui::SUI"


def test_consume_twice_raises():
    threader = DataflowThreader()
    handle = threader.issue(Produces(HandleKind.COIN, SUI, 10), command=0, result_index=0)
    threader.consume(handle)
    with pytest.raises(DoubleConsumption):
        threader.consume(handle)


def test_scalar_handles_are_copyable():
    threader = DataflowThreader()
    factor = threader.issue(Produces(HandleKind.SCALAR), command=0, result_index=0)
    threader.consume(factor)
    threader.consume(factor)
    assert threader.unconsumed() == []


def test_merge_then_split_preserves_total():
    """
    GIVEN three owned coins of the same type
    WHEN they are merged and the result is split into two amounts
    THEN the parts add up to the merged total with nothing lost.
    """
    unit = TransactionUnit()
    coins = [
        unit.owned_coin("0xa", SUI, 100),
        unit.owned_coin("0xb", SUI, 200),
        unit.owned_coin("0xc", SUI, 300),
    ]
    merged = unit.merge_coins(coins)
    assert merged.amount == 600
    assert merged.object_id == "0xa"

    parts = unit.split_coins(merged, [250, 350])

    assert [p.amount for p in parts] == [250, 350]
    assert sum(p.amount for p in parts) == 600
    assert unit.threader.remainder_of(merged) is None
    assert [inv.kind for inv in unit.invocations] == [CommandKind.MERGE_COINS, CommandKind.SPLIT_COINS]
    assert {h.id for h in unit.unconsumed()} == {p.id for p in parts}


def test_merge_keeps_first_handle_as_target():
    unit = TransactionUnit()
    first, second = unit.owned_coin("0xa", SUI, 1), unit.owned_coin("0xb", SUI, 2)
    merged = unit.merge_coins([second, first])
    assert merged.object_id == "0xb"
    assert unit.invocations[0].arguments == (second, first)


def test_split_leaves_remainder_in_source():
    unit = TransactionUnit()
    coin = unit.owned_coin("0xa", SUI, 1_000)
    [part] = unit.split_coins(coin, [400])
    remainder = unit.threader.remainder_of(coin)
    assert part.amount == 400
    assert remainder.amount == 600
    assert remainder.object_id == "0xa"
    assert unit.threader.is_consumed(coin)


def test_split_exceeding_value_raises_and_leaves_unit_unchanged():
    unit = TransactionUnit()
    coin = unit.owned_coin("0xa", SUI, 100)
    with pytest.raises(SplitExceedsValue):
        unit.split_coins(coin, [60, 50])
    assert len(unit) == 0
    assert not unit.threader.is_consumed(coin)


def test_merge_rejects_mixed_types():
    unit = TransactionUnit()
    a = unit.owned_coin("0xa", SUI, 1)
    b = unit.owned_coin("0xb", "0xdead::usdc::USDC", 1)
    with pytest.raises(PTBError):
        unit.merge_coins([a, b])


def test_consumed_owned_object_cannot_be_adopted_again():
    unit = TransactionUnit()
    coin = unit.owned_coin("0xa", SUI, 5)
    unit.transfer([coin], "0xrecipient")
    with pytest.raises(DoubleConsumption):
        unit.owned_coin("0xa", SUI, 5)


def test_same_handle_twice_in_one_invocation_raises():
    unit = TransactionUnit()
    coin = unit.owned_coin("0xa", SUI, 5)
    with pytest.raises(DoubleConsumption):
        unit.emit("0xpkg::m::f", [coin, coin])
    assert len(unit) == 0


def test_threading_is_deterministic():
    def build():
        unit = TransactionUnit()
        coins = [unit.owned_coin(f"0x{i}", SUI, i + 1) for i in range(3)]
        merged = unit.merge_coins(coins)
        parts = unit.split_coins(merged, [1, 2])
        return [inv.encode() for inv in unit.invocations], [p.id for p in parts]

    assert build() == build()


def test_handle_from_another_unit_is_rejected():
    """
    GIVEN two units whose handles share the same ids
    WHEN a handle of the first unit is used in the second
    THEN the second unit refuses it and its own handle stays live.
    """
    unit_a, unit_b = TransactionUnit(), TransactionUnit()
    foreign = unit_a.owned_coin("0xa", SUI, 10)
    own = unit_b.owned_coin("0xb", SUI, 10)
    assert foreign.id == own.id

    with pytest.raises(PTBError):
        unit_b.emit("0xpkg::pool::deposit", [foreign])
    with pytest.raises(PTBError):
        unit_b.split_coins(foreign, [5])

    assert len(unit_b) == 0
    assert not unit_b.threader.is_consumed(own)
    assert unit_b.unconsumed() == [own]


def test_out_of_range_split_leaves_unit_unchanged():
    unit = TransactionUnit()
    coin = unit.owned_coin("0xa", SUI)

    with pytest.raises(ValueError):
        unit.split_coins(coin, [1, 2**64])

    assert len(unit) == 0
    assert not unit.threader.is_consumed(coin)
    assert unit.unconsumed() == [coin]
    assert unit.threader.remainder_of(coin) is None
