# /navi_ptb/adapters/mock.py
# Test implementations of the external collaborators.
# - MockQueryExecutor serves canned incentive-pool records.
# - MockSubmitter "executes" units against a fee-free in-memory lending pool.

from collections import defaultdict
from typing import Any, Dict, List, Sequence, Set, Tuple

from navi_ptb.adapters.query import QueryExecutor
from navi_ptb.adapters.submission import SubmissionResult, Submitter
from navi_ptb.core.logger import get_logger
from navi_ptb.ptb.types import Argument, CommandKind, Invocation, Pure, ValueHandle
from navi_ptb.ptb.unit import TransactionUnit

log = get_logger(__name__)


class MockQueryExecutor(QueryExecutor):
    """
    Returns pre-configured incentive pool records keyed by (asset_id, option).
    Unconfigured keys return an empty vector.
    """

    def __init__(self):
        self.responses: Dict[Tuple[int, int], List[Dict[str, Any]]] = {}
        self.failing: Set[Tuple[int, int]] = set()
        self.calls: List[Dict[str, Any]] = []
        log.info("MOCK_QUERY_EXECUTOR_INITIALIZED")

    def set_pools(self, asset_id: int, option: int, records: List[Dict[str, Any]]):
        self.responses[(asset_id, int(option))] = records

    def set_failure(self, asset_id: int, option: int):
        self.failing.add((asset_id, int(option)))

    async def query(self, unit, caller, target, arguments, type_arguments, result_shape) -> List[Any]:
        asset_id, option = arguments[3].value, arguments[4].value
        self.calls.append({"caller": caller, "target": target, "asset_id": asset_id, "option": option})
        if (asset_id, option) in self.failing:
            log.error("MOCK_QUERY_FORCED_FAILURE", asset_id=asset_id, option=option)
            raise ConnectionError(f"Forced query failure for asset {asset_id}")
        return [self.responses.get((asset_id, option), [])]


class MockSubmitter(Submitter):
    """
    Interprets a unit against an in-memory, fee-free lending market.

    Supports deposit, withdraw, borrow, repay, coin/balance conversion and the
    split/merge/transfer commands. Any other target makes the submission fail,
    the way a real node would report an abort.
    """

    def __init__(self, sender: str = "0xMockSender"):
        self.sender = sender
        # object_id -> [type, amount]
        self.objects: Dict[str, List] = {}
        self.owners: Dict[str, str] = {}
        self.supplied: Dict[str, int] = defaultdict(int)
        self.debt: Dict[str, int] = defaultdict(int)
        self.submitted: List[TransactionUnit] = []
        self._next_object = 0
        self._must_fail = False

    def mint(self, type_tag: str, amount: int, owner: str | None = None) -> str:
        object_id = f"0xcoin{self._next_object}"
        self._next_object += 1
        self.objects[object_id] = [type_tag, amount]
        self.owners[object_id] = owner or self.sender
        return object_id

    def wallet_total(self, type_tag: str, owner: str | None = None) -> int:
        owner = owner or self.sender
        return sum(
            amount for object_id, (t, amount) in self.objects.items()
            if t == type_tag and self.owners[object_id] == owner
        )

    def set_next_call_to_fail(self, fail: bool = True):
        self._must_fail = fail

    async def sign_and_submit(self, unit: TransactionUnit, signer: Any) -> SubmissionResult:
        unit.validate()
        digest = f"0xfake_digest_{len(self.submitted)}"
        self.submitted.append(unit)
        if self._must_fail:
            self._must_fail = False
            return SubmissionResult(digest=digest, success=False, error="MoveAbort: forced failure")

        # Snapshot so a failed unit leaves no effects (atomicity)
        snapshot = (
            {k: list(v) for k, v in self.objects.items()},
            dict(self.owners),
            dict(self.supplied),
            dict(self.debt),
        )
        try:
            self._execute(unit)
        except (KeyError, ValueError) as e:
            self.objects, self.owners = snapshot[0], snapshot[1]
            self.supplied, self.debt = defaultdict(int, snapshot[2]), defaultdict(int, snapshot[3])
            log.error("MOCK_SUBMISSION_ABORTED", digest=digest, error=str(e))
            return SubmissionResult(digest=digest, success=False, error=str(e))

        log.info("MOCK_UNIT_EXECUTED", digest=digest, commands=len(unit.invocations))
        return SubmissionResult(
            digest=digest,
            success=True,
            effects={"supplied": dict(self.supplied), "debt": dict(self.debt)},
        )

    # --- interpreter ---

    def _execute(self, unit: TransactionUnit):
        slots: Dict[Any, List] = {}

        def slot(arg: ValueHandle) -> List:
            if arg.object_id is not None:
                return self.objects[arg.object_id]
            return slots[(arg.command, arg.result_index or 0)]

        for index, inv in enumerate(unit.invocations):
            if inv.kind == CommandKind.SPLIT_COINS:
                source = slot(inv.arguments[0])
                for i, amount in enumerate(a.value for a in inv.arguments[1:]):
                    if amount > source[1]:
                        raise ValueError("InsufficientCoinBalance")
                    source[1] -= amount
                    slots[(index, i)] = [source[0], amount]
            elif inv.kind == CommandKind.MERGE_COINS:
                target = slot(inv.arguments[0])
                for arg in inv.arguments[1:]:
                    merged = slot(arg)
                    target[1] += merged[1]
                    merged[1] = 0
            elif inv.kind == CommandKind.TRANSFER_OBJECTS:
                recipient = inv.arguments[-1].value
                for arg in inv.arguments[:-1]:
                    coin = slot(arg)
                    if arg.object_id is not None:
                        self.owners[arg.object_id] = recipient
                    else:
                        object_id = self.mint(coin[0], coin[1], recipient)
                        slots[(arg.command, arg.result_index or 0)] = self.objects[object_id]
            else:
                self._call(index, inv, slots, slot)

    def _call(self, index: int, inv: Invocation, slots: Dict, slot):
        function = inv.function
        args: Sequence[Argument] = inv.arguments
        type_tag = inv.type_arguments[0] if inv.type_arguments else None
        pure = [a.value for a in args if isinstance(a, Pure)]

        if function in ("from_balance", "into_balance"):
            value = slot(args[0])
            slots[(index, 0)] = [value[0], value[1]]
            value[1] = 0
        elif function == "entry_deposit":
            coin = slot(args[4])
            amount = pure[1]
            if amount > coin[1]:
                raise ValueError("InsufficientCoinBalance")
            coin[1] -= amount
            self.supplied[type_tag] += amount
        elif function == "withdraw":
            amount = pure[1]
            if amount > self.supplied[type_tag]:
                raise ValueError("InsufficientSupply")
            self.supplied[type_tag] -= amount
            slots[(index, 0)] = [type_tag, amount]
        elif function == "borrow":
            amount = pure[1]
            self.debt[type_tag] += amount
            slots[(index, 0)] = [type_tag, amount]
        elif function == "entry_repay":
            coin = slot(args[5])
            paid = min(pure[1], coin[1], self.debt[type_tag])
            coin[1] -= paid
            self.debt[type_tag] -= paid
        else:
            raise ValueError(f"Unsupported target in mock: {inv.target}")
