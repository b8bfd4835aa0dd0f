# /navi_ptb/ptb/unit.py
# The transaction unit: an append-only, ordered list of invocations plus the
# dataflow bookkeeping that threads handles between them.
import uuid
from typing import Any, Dict, List, Sequence

from navi_ptb.core.errors import PTBError, UnpairedReceipt
from navi_ptb.core.logger import INVOCATIONS_EMITTED, UNITS_VALIDATED, get_logger
from navi_ptb.ptb.threader import DataflowThreader
from navi_ptb.ptb.types import (
    Argument,
    CommandKind,
    HandleKind,
    Invocation,
    Produces,
    Pure,
    ValueHandle,
)

log = get_logger(__name__)

# The only call that redeems a flash loan receipt
FLASH_REPAY_TARGET = "::lending::flash_repay_with_ctx"


class TransactionUnit:
    """Builds one atomic unit. Never shared between concurrent builders."""

    def __init__(self, sender: str | None = None):
        self.id = uuid.uuid4().hex
        self.sender = sender
        self.invocations: List[Invocation] = []
        self.threader = DataflowThreader()

    def __len__(self) -> int:
        return len(self.invocations)

    def emit(
        self,
        target: str,
        arguments: Sequence[Argument],
        type_arguments: Sequence[str] = (),
        produces: Sequence[Produces] = (),
    ) -> List[ValueHandle]:
        """
        Appends one MoveCall and returns a handle per value in ``produces``.

        Every value handle among the arguments is consumed. The check runs
        before anything is appended, so a failed emit leaves the unit intact.
        """
        handles = [a for a in arguments if isinstance(a, ValueHandle)]
        self.threader.check_all_available(handles)
        receipts = [h for h in handles if h.kind == HandleKind.RECEIPT]
        if receipts and not target.endswith(FLASH_REPAY_TARGET):
            raise UnpairedReceipt(
                f"Flash loan receipt passed to {target}; only {FLASH_REPAY_TARGET} redeems it",
                details={"target": target, "receipts": [r.id for r in receipts]},
            )

        index = len(self.invocations)
        self.invocations.append(
            Invocation(target=target, arguments=tuple(arguments), type_arguments=tuple(type_arguments))
        )
        for handle in handles:
            self.threader.consume(handle)

        results = [
            self.threader.issue(shape, command=index, result_index=i)
            for i, shape in enumerate(produces)
        ]
        function = target.rsplit("::", 1)[-1]
        INVOCATIONS_EMITTED.labels(function).inc()
        log.debug("INVOCATION_EMITTED", unit_id=self.id, index=index, target=target, produced=len(results))
        return results

    def owned_coin(self, object_id: str, type_tag: str | None = None, amount: int | None = None) -> ValueHandle:
        """Adopts a caller-owned coin object as a single-use input."""
        return self.threader.adopt(object_id, type_tag=type_tag, amount=amount)

    def split_coins(self, coin: ValueHandle, amounts: Sequence[int]) -> List[ValueHandle]:
        amount_args = [Pure.u64(a) for a in amounts]
        index = len(self.invocations)
        parts = self.threader.split(coin, amounts, command=index)
        self.invocations.append(
            Invocation(kind=CommandKind.SPLIT_COINS, arguments=(coin, *amount_args))
        )
        log.debug("COINS_SPLIT", unit_id=self.id, index=index, source=coin.id, parts=len(parts))
        return parts

    def merge_coins(self, coins: Sequence[ValueHandle]) -> ValueHandle:
        """Merges ``coins[1:]`` into ``coins[0]``; returns the surviving handle."""
        merged = self.threader.merge(coins)
        if len(coins) > 1:
            self.invocations.append(Invocation(kind=CommandKind.MERGE_COINS, arguments=tuple(coins)))
            log.debug("COINS_MERGED", unit_id=self.id, target=coins[0].id, count=len(coins))
        return merged

    def transfer(self, handles: Sequence[ValueHandle], recipient: str):
        """Hands value out of the unit to ``recipient``."""
        if any(h.kind != HandleKind.COIN for h in handles):
            raise PTBError("Only coin objects can be transferred")
        self.threader.check_all_available(handles)
        self.invocations.append(
            Invocation(
                kind=CommandKind.TRANSFER_OBJECTS,
                arguments=(*handles, Pure.address(recipient)),
            )
        )
        for handle in handles:
            self.threader.consume(handle)

    def calls_to(self, prefix: str) -> List[Invocation]:
        """MoveCalls whose target starts with ``prefix`` (a package or package::module)."""
        return [
            inv for inv in self.invocations
            if inv.kind == CommandKind.MOVE_CALL and inv.target.startswith(prefix)
        ]

    def unconsumed(self) -> List[ValueHandle]:
        return self.threader.unconsumed()

    def validate(self) -> List[ValueHandle]:
        """
        Checks the unit is well-formed for hand-off.

        Returns the unconsumed value handles (legal only as final outputs the
        caller intends to transfer out). Raises UnpairedReceipt if any flash
        loan receipt is still outstanding.
        """
        receipts = self.threader.unconsumed_receipts()
        if receipts:
            UNITS_VALIDATED.labels("rejected").inc()
            log.error(
                "UNIT_VALIDATION_FAILED",
                unit_id=self.id,
                unpaired_receipts=[(r.id, r.pool_id) for r in receipts],
            )
            raise UnpairedReceipt(
                f"{len(receipts)} flash loan receipt(s) never repaid",
                details={"receipts": [{"handle_id": r.id, "pool_id": r.pool_id, "type": r.type_tag} for r in receipts]},
            )
        UNITS_VALIDATED.labels("ok").inc()
        leftovers = self.unconsumed()
        log.info("UNIT_VALIDATED", unit_id=self.id, invocations=len(self.invocations), unconsumed=len(leftovers))
        return leftovers

    def to_dict(self) -> Dict[str, Any]:
        """Validated hand-off form of the unit."""
        leftovers = self.validate()
        return {
            "sender": self.sender,
            "commands": [inv.encode() for inv in self.invocations],
            "unconsumed": [h.encode() for h in leftovers],
        }
