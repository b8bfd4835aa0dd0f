# /navi_ptb/adapters/query.py
# Interface to the read-only simulation facility (dev-inspect) of a fullnode.
from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from navi_ptb.ptb.types import Argument
from navi_ptb.ptb.unit import TransactionUnit


class IncentivePoolInfo(BaseModel):
    """One record of `incentive_getter::get_incentive_pools`."""

    model_config = ConfigDict(extra="allow", frozen=True)

    asset_id: int
    funds: str
    available: str

    @field_validator("available")
    @classmethod
    def _must_be_integer_string(cls, v: str) -> str:
        if not v.strip().isdigit():
            raise ValueError(f"available must be an unsigned integer string, got {v!r}")
        return v


class QueryExecutor(ABC):
    """
    Runs a single MoveCall against current chain state without committing it.
    Implementations must never mutate protocol state.
    """

    @abstractmethod
    async def query(
        self,
        unit: TransactionUnit,
        caller: str,
        target: str,
        arguments: Sequence[Argument],
        type_arguments: Sequence[str],
        result_shape: str,
    ) -> List[Any]:
        """Returns the decoded return values of ``target``, one entry per value."""
        raise NotImplementedError
