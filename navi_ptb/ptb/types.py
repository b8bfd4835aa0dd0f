# /navi_ptb/ptb/types.py
# Argument and invocation types for a programmable transaction block.
# Arguments form a closed set: Pure | SharedRef | OwnedRef | ValueHandle.
from enum import Enum
from typing import Any, Dict, NamedTuple, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

U8_MAX = 2**8 - 1
U64_MAX = 2**64 - 1


class Pure(BaseModel):
    """A literal BCS-encodable value."""

    model_config = ConfigDict(frozen=True)

    type: str
    value: Any

    @classmethod
    def u8(cls, value: int) -> "Pure":
        if not 0 <= int(value) <= U8_MAX:
            raise ValueError(f"u8 out of range: {value}")
        return cls(type="u8", value=int(value))

    @classmethod
    def u64(cls, value: int) -> "Pure":
        if not 0 <= int(value) <= U64_MAX:
            raise ValueError(f"u64 out of range: {value}")
        return cls(type="u64", value=int(value))

    @classmethod
    def address(cls, value: str) -> "Pure":
        return cls(type="address", value=value)

    def encode(self) -> Dict[str, Any]:
        return {"Pure": {"type": self.type, "value": self.value}}


class SharedRef(BaseModel):
    """Long-lived protocol state (clock, storage, oracle, pool, incentive)."""

    model_config = ConfigDict(frozen=True)

    object_id: str
    mutable: bool = True
    initial_shared_version: int | None = None

    def encode(self) -> Dict[str, Any]:
        obj = {"objectId": self.object_id, "shared": True, "mutable": self.mutable}
        if self.initial_shared_version is not None:
            obj["initialSharedVersion"] = self.initial_shared_version
        return {"Object": obj}


class OwnedRef(BaseModel):
    """A caller-held object passed by reference (e.g. an account cap)."""

    model_config = ConfigDict(frozen=True)

    object_id: str

    def encode(self) -> Dict[str, Any]:
        return {"Object": {"objectId": self.object_id, "shared": False}}


ResourceRef = Union[SharedRef, OwnedRef]


class HandleKind(str, Enum):
    COIN = "coin"
    BALANCE = "balance"
    RECEIPT = "receipt"
    # Copyable return values (u64, u256...); never tracked for consumption
    SCALAR = "scalar"


class ValueHandle(BaseModel):
    """
    Reference to a value produced inside the unit, or to a caller-owned coin
    adopted as an input. Exclusively owned by the unit until consumed once.

    A handle points either at a command result (``command``/``result_index``)
    or at an owned input object (``object_id``).
    """

    model_config = ConfigDict(frozen=True)

    id: int
    kind: HandleKind
    type_tag: str | None = None
    amount: int | None = None
    command: int | None = None
    result_index: int | None = None
    object_id: str | None = None

    @property
    def is_tracked(self) -> bool:
        return self.kind != HandleKind.SCALAR

    def encode(self) -> Dict[str, Any]:
        if self.object_id is not None:
            return OwnedRef(object_id=self.object_id).encode()
        if self.result_index is None:
            return {"Result": self.command}
        return {"NestedResult": [self.command, self.result_index]}


class FlashLoanReceipt(ValueHandle):
    """Proof of debt; must be repaid in the same unit against the same pool and type."""

    kind: HandleKind = HandleKind.RECEIPT
    pool_id: str

    @field_validator("kind")
    @classmethod
    def _must_be_receipt(cls, v):
        if v != HandleKind.RECEIPT:
            raise ValueError("FlashLoanReceipt kind must be RECEIPT")
        return v


Argument = Union[Pure, SharedRef, OwnedRef, ValueHandle]


class Produces(NamedTuple):
    """Shape of one value returned by a target."""

    kind: HandleKind
    type_tag: str | None = None
    amount: int | None = None
    pool_id: str | None = None


class CommandKind(str, Enum):
    MOVE_CALL = "MoveCall"
    SPLIT_COINS = "SplitCoins"
    MERGE_COINS = "MergeCoins"
    TRANSFER_OBJECTS = "TransferObjects"


class Invocation(BaseModel):
    """One command of the unit. Argument and type-argument order is positional and fixed."""

    model_config = ConfigDict(frozen=True)

    kind: CommandKind = CommandKind.MOVE_CALL
    target: str | None = None
    arguments: Tuple[Argument, ...] = ()
    type_arguments: Tuple[str, ...] = ()

    @property
    def function(self) -> str | None:
        return self.target.rsplit("::", 1)[-1] if self.target else None

    def encode(self) -> Dict[str, Any]:
        if self.kind == CommandKind.MOVE_CALL:
            return {
                "kind": self.kind.value,
                "target": self.target,
                "arguments": [a.encode() for a in self.arguments],
                "typeArguments": list(self.type_arguments),
            }
        return {"kind": self.kind.value, "arguments": [a.encode() for a in self.arguments]}


class OptionType(int, Enum):
    """Which side of a market a reward stream is earned on."""

    SUPPLY = 1
    BORROW = 3
