# /navi_ptb/ptb/rewards.py
# Reward aggregation: Fetch -> Filter -> Normalize -> Sum -> Plan.
import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List

from pydantic import BaseModel, ConfigDict

from navi_ptb.adapters.query import IncentivePoolInfo, QueryExecutor
from navi_ptb.core.errors import AggregationQueryFailure
from navi_ptb.core.logger import REWARD_AGGREGATIONS, get_logger
from navi_ptb.ptb.builders import LendingBuilder
from navi_ptb.ptb.resolver import ReferenceResolver
from navi_ptb.ptb.types import OptionType, Pure
from navi_ptb.ptb.unit import TransactionUnit

log = get_logger(__name__)

# Closed set of lending assets queried for rewards
ASSET_IDS = tuple(range(8))
ASSET_SYMBOLS = {
    0: "Sui",
    1: "USDC",
    2: "USDT",
    3: "WETH",
    4: "CETUS",
    5: "vSui",
    6: "haSui",
    7: "NAVX",
}

# Protocol-fixed: rewards accrue in a 1e27 accumulator, claims are in 1e9 units
RAY = 10**27
CLAIM_UNIT = Decimal(10**9)
DISPLAY_QUANTUM = Decimal("0.00001")

INCENTIVE_POOLS_SHAPE = "vector<IncentivePoolInfo>"


class RewardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_id: int
    funds_pool_id: str
    available_amount: Decimal


def normalize_amount(raw: str) -> Decimal:
    """Integer-divides by 1e27, then scales by 1e9 and rounds to 5 places."""
    scaled = int(raw.strip()) // RAY
    return (Decimal(scaled) / CLAIM_UNIT).quantize(DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)


def sum_rewards(records: Iterable[IncentivePoolInfo]) -> Dict[int, RewardEntry]:
    """
    Drops zero records, normalizes, and sums per asset id.

    Amounts are rounded before they are summed. When several funds pools pay
    out for the same asset id, the entry keeps the first funds pool seen.
    """
    summed: Dict[int, RewardEntry] = {}
    for record in records:
        if record.available.strip() == "0":
            continue
        amount = normalize_amount(record.available)
        existing = summed.get(record.asset_id)
        if existing is None:
            summed[record.asset_id] = RewardEntry(
                asset_id=record.asset_id,
                funds_pool_id=record.funds,
                available_amount=amount,
            )
        else:
            summed[record.asset_id] = existing.model_copy(
                update={"available_amount": (existing.available_amount + amount).quantize(DISPLAY_QUANTUM)}
            )
    return summed


class RewardAggregator:
    def __init__(self, executor: QueryExecutor, resolver: ReferenceResolver):
        self.executor = executor
        self.resolver = resolver

    async def incentive_pools(self, asset_id: int, option: OptionType, user: str) -> List[IncentivePoolInfo]:
        """
        Reads the incentive pools of one asset/option. Passing the user's
        address makes the getter report what that address can still claim.
        """
        r = self.resolver
        unit = TransactionUnit(sender=user)
        target = r.ui_getter_target("incentive_getter", "get_incentive_pools")
        arguments = [
            r.clock(),
            r.incentive_v2(),
            r.storage(),
            Pure.u8(asset_id),
            Pure.u8(int(option)),
            Pure.address(user),
        ]
        try:
            result = await self.executor.query(unit, user, target, arguments, [], INCENTIVE_POOLS_SHAPE)
            return [IncentivePoolInfo.model_validate(record) for record in result[0]]
        except Exception as e:
            raise AggregationQueryFailure(
                f"Incentive pool query failed for asset {asset_id}",
                asset_id=asset_id,
                option=int(option),
                details={"error": str(e)},
            ) from e

    async def available_rewards(
        self,
        user: str,
        option: OptionType = OptionType.SUPPLY,
        pretty_print: bool = False,
    ) -> Dict[int, RewardEntry]:
        """All-or-nothing: one failed query fails the whole aggregation."""
        tasks = [
            asyncio.ensure_future(self.incentive_pools(asset_id, option, user))
            for asset_id in ASSET_IDS
        ]
        try:
            results = await asyncio.gather(*tasks)
        except AggregationQueryFailure as e:
            # Stop the queries still in flight and collect their outcomes
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            REWARD_AGGREGATIONS.labels(option.name.lower(), "failed").inc()
            log.error(
                "REWARD_QUERY_FAILED",
                user=user,
                option=option.name,
                asset_id=e.asset_id,
                error=e.details.get("error"),
            )
            raise

        rewards = sum_rewards(record for pools in results for record in pools)
        REWARD_AGGREGATIONS.labels(option.name.lower(), "ok").inc()

        if pretty_print:
            log.info(
                "AVAILABLE_REWARDS",
                user=user,
                option=option.name,
                rewards={ASSET_SYMBOLS.get(a, str(a)): str(e.available_amount) for a, e in rewards.items()},
            )
        return rewards

    async def claim_all_rewards(self, user: str, unit: TransactionUnit | None = None) -> TransactionUnit:
        """Appends one claim per (funds pool, asset) for supply rewards, then borrow rewards."""
        if unit is None:
            unit = TransactionUnit(sender=user)
        builder = LendingBuilder(unit, self.resolver)
        for option in (OptionType.SUPPLY, OptionType.BORROW):
            rewards = await self.available_rewards(user, option)
            for entry in rewards.values():
                builder.claim_reward(entry.funds_pool_id, entry.asset_id, option)
            log.info("REWARD_CLAIMS_PLANNED", unit_id=unit.id, option=option.name, claims=len(rewards))
        return unit
