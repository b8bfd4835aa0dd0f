# /navi_ptb/ptb/threader.py
# Dataflow bookkeeping for value handles. Pure and deterministic: replaying
# the same sequence of calls yields the same handle ids.
from typing import Dict, List, Sequence, Set

from navi_ptb.core.errors import DoubleConsumption, PTBError, SplitExceedsValue
from navi_ptb.core.logger import get_logger
from navi_ptb.ptb.types import FlashLoanReceipt, HandleKind, Produces, ValueHandle

log = get_logger(__name__)


class DataflowThreader:
    """
    Tracks the lifecycle of every value handle in one transaction unit.

    A tracked handle (coin, balance, receipt) is consumed exactly once, either
    by an invocation, by ``split`` (which reissues the value as new handles)
    or by ``merge`` (which folds it into the first handle).
    """

    def __init__(self):
        self._next_id = 0
        self._handles: Dict[int, ValueHandle] = {}
        self._consumed: Set[int] = set()
        self._adopted: Dict[str, int] = {}
        self._remainders: Dict[int, ValueHandle] = {}

    def _issue(self, handle_cls=ValueHandle, **fields) -> ValueHandle:
        handle = handle_cls(id=self._next_id, **fields)
        self._next_id += 1
        self._handles[handle.id] = handle
        return handle

    def issue(self, shape: Produces, command: int, result_index: int | None) -> ValueHandle:
        """Registers a handle for one value returned by the command at index ``command``."""
        fields = dict(
            kind=shape.kind,
            type_tag=shape.type_tag,
            amount=shape.amount,
            command=command,
            result_index=result_index,
        )
        if shape.kind == HandleKind.RECEIPT:
            return self._issue(FlashLoanReceipt, pool_id=shape.pool_id, **fields)
        return self._issue(**fields)

    def adopt(self, object_id: str, type_tag: str | None = None, amount: int | None = None) -> ValueHandle:
        """Wraps a caller-owned coin object so it can be threaded like any produced value."""
        if object_id in self._adopted:
            existing = self._handles[self._adopted[object_id]]
            if existing.id in self._consumed:
                raise DoubleConsumption(
                    f"Owned object {object_id} was already consumed in this unit",
                    handle_id=existing.id,
                    details={"object_id": object_id},
                )
            return existing
        handle = self._issue(kind=HandleKind.COIN, type_tag=type_tag, amount=amount, object_id=object_id)
        self._adopted[object_id] = handle.id
        return handle

    def check_available(self, handle: ValueHandle):
        if self._handles.get(handle.id) is not handle:
            raise PTBError(f"Handle {handle.id} does not belong to this unit", details={"handle_id": handle.id})
        if handle.is_tracked and handle.id in self._consumed:
            raise DoubleConsumption(f"Handle {handle.id} was already consumed", handle_id=handle.id)

    def check_all_available(self, handles: Sequence[ValueHandle]):
        seen = set()
        for handle in handles:
            self.check_available(handle)
            if handle.is_tracked:
                if handle.id in seen:
                    raise DoubleConsumption(f"Handle {handle.id} passed twice to one invocation", handle_id=handle.id)
                seen.add(handle.id)

    def consume(self, handle: ValueHandle) -> ValueHandle:
        self.check_available(handle)
        if handle.is_tracked:
            self._consumed.add(handle.id)
            log.debug("HANDLE_CONSUMED", handle_id=handle.id, kind=handle.kind.value)
        return handle

    def split(self, handle: ValueHandle, amounts: Sequence[int], command: int) -> List[ValueHandle]:
        """
        Consumes ``handle`` and returns one new coin handle per amount, in order.

        When the source value is known and larger than the total requested, the
        remainder stays in the source coin and is reissued as a fresh handle,
        retrievable with ``remainder_of``.
        """
        if not amounts:
            raise PTBError("split requires at least one amount")
        if any(int(a) <= 0 for a in amounts):
            raise PTBError("split amounts must be positive", details={"amounts": list(amounts)})
        if handle.kind != HandleKind.COIN:
            raise PTBError(f"Only coins can be split, got {handle.kind.value}", details={"handle_id": handle.id})
        self.check_available(handle)

        total = sum(int(a) for a in amounts)
        if handle.amount is not None and total > handle.amount:
            raise SplitExceedsValue(
                f"Split of {total} exceeds coin value {handle.amount}",
                details={"handle_id": handle.id, "amounts": list(amounts)},
            )

        self.consume(handle)
        parts = [
            self._issue(
                kind=HandleKind.COIN,
                type_tag=handle.type_tag,
                amount=int(amount),
                command=command,
                result_index=i,
            )
            for i, amount in enumerate(amounts)
        ]
        if handle.amount is None or handle.amount > total:
            remainder = self._issue(
                kind=HandleKind.COIN,
                type_tag=handle.type_tag,
                amount=None if handle.amount is None else handle.amount - total,
                command=handle.command,
                result_index=handle.result_index,
                object_id=handle.object_id,
            )
            self._remainders[handle.id] = remainder
        return parts

    def merge(self, handles: Sequence[ValueHandle]) -> ValueHandle:
        """
        Folds all handles into the first one, in the order supplied. The
        surviving value is reissued as a new handle on the first handle's origin.
        """
        if not handles:
            raise PTBError("merge requires at least one handle")
        type_tags = {h.type_tag for h in handles if h.type_tag is not None}
        if len(type_tags) > 1:
            raise PTBError("Cannot merge coins of different types", details={"types": sorted(type_tags)})
        if any(h.kind != HandleKind.COIN for h in handles):
            raise PTBError("Only coins can be merged")
        self.check_all_available(handles)
        if len(handles) == 1:
            return handles[0]

        for handle in handles:
            self.consume(handle)
        amounts = [h.amount for h in handles]
        target = handles[0]
        return self._issue(
            kind=HandleKind.COIN,
            type_tag=next(iter(type_tags), None),
            amount=None if None in amounts else sum(amounts),
            command=target.command,
            result_index=target.result_index,
            object_id=target.object_id,
        )

    def remainder_of(self, handle: ValueHandle) -> ValueHandle | None:
        return self._remainders.get(handle.id)

    def is_consumed(self, handle: ValueHandle) -> bool:
        return handle.id in self._consumed

    def unconsumed(self) -> List[ValueHandle]:
        return [
            h for h in self._handles.values()
            if h.is_tracked and h.id not in self._consumed
        ]

    def unconsumed_receipts(self) -> List[FlashLoanReceipt]:
        return [h for h in self.unconsumed() if isinstance(h, FlashLoanReceipt)]
