# /navi_ptb/ptb/builders.py
# Atomic pattern builders for the lending protocol and vSUI liquid staking.
# Each builder binds a fixed, positional argument list to one protocol
# action. Reordering arguments here is a functional bug.

from typing import List, Sequence, Tuple, Union

from navi_ptb.core.config import PoolConfig
from navi_ptb.core.errors import PTBError, UnpairedReceipt
from navi_ptb.core.logger import get_logger
from navi_ptb.ptb.resolver import ReferenceResolver
from navi_ptb.ptb.types import (
    FlashLoanReceipt,
    HandleKind,
    OptionType,
    OwnedRef,
    Produces,
    Pure,
    ValueHandle,
)
from navi_ptb.ptb.unit import TransactionUnit

log = get_logger(__name__)

SUI_TYPE = "0x2::sui::SUI"
COIN_FROM_BALANCE = "0x2::coin::from_balance"
COIN_INTO_BALANCE = "0x2::coin::into_balance"

PoolLike = Union[PoolConfig, str]


class LendingBuilder:
    """
    Appends protocol actions to a TransactionUnit.

    Amounts must already carry the asset's on-chain decimals
    (1 SUI => 1_000_000_000); the builder never rescales.
    """

    def __init__(self, unit: TransactionUnit, resolver: ReferenceResolver):
        self.unit = unit
        self.resolver = resolver

    def _pool(self, pool: PoolLike) -> PoolConfig:
        if isinstance(pool, str):
            return self.resolver.pool_by_symbol(pool)
        return pool

    # --- value wrapping ---

    def from_balance(self, balance: ValueHandle, type_tag: str) -> ValueHandle:
        [coin] = self.unit.emit(
            COIN_FROM_BALANCE,
            [balance],
            [type_tag],
            [Produces(HandleKind.COIN, type_tag, balance.amount)],
        )
        return coin

    def into_balance(self, coin: ValueHandle, type_tag: str) -> ValueHandle:
        [balance] = self.unit.emit(
            COIN_INTO_BALANCE,
            [coin],
            [type_tag],
            [Produces(HandleKind.BALANCE, type_tag, coin.amount)],
        )
        return balance

    def merge_owned_coins(self, object_ids: Sequence[str], type_tag: str | None = None) -> ValueHandle:
        """Adopts caller-owned coin objects and merges them into the first one."""
        if not object_ids:
            raise PTBError("merge_owned_coins requires at least one coin object")
        coins = [self.unit.owned_coin(object_id, type_tag=type_tag) for object_id in object_ids]
        return self.unit.merge_coins(coins)

    # --- supply side ---

    def deposit(self, pool: PoolLike, coin: ValueHandle, amount: Union[int, ValueHandle]):
        pool = self._pool(pool)
        r = self.resolver
        amount_arg = Pure.u64(amount) if isinstance(amount, int) else amount
        self.unit.emit(
            r.target("incentive_v2", "entry_deposit"),
            [
                r.clock(),
                r.storage(),
                r.pool(pool),
                Pure.u8(pool.asset_id),
                coin,
                amount_arg,
                r.incentive(),
                r.incentive_v2(),
            ],
            [pool.type],
        )

    def deposit_with_account_cap(self, pool: PoolLike, coin: ValueHandle, account_cap: str):
        pool = self._pool(pool)
        r = self.resolver
        self.unit.emit(
            r.target("incentive_v2", "deposit_with_account_cap"),
            [
                r.clock(),
                r.storage(),
                r.pool(pool),
                Pure.u8(pool.asset_id),
                coin,
                r.incentive(),
                r.incentive_v2(),
                OwnedRef(object_id=account_cap),
            ],
            [pool.type],
        )

    def withdraw(self, pool: PoolLike, amount: int) -> ValueHandle:
        pool = self._pool(pool)
        r = self.resolver
        [balance] = self.unit.emit(
            r.target("incentive_v2", "withdraw"),
            [
                r.clock(),
                r.oracle(),
                r.storage(),
                r.pool(pool),
                Pure.u8(pool.asset_id),
                Pure.u64(amount),
                r.incentive(),
                r.incentive_v2(),
            ],
            [pool.type],
            [Produces(HandleKind.BALANCE, pool.type, amount)],
        )
        return self.from_balance(balance, pool.type)

    def withdraw_with_account_cap(self, pool: PoolLike, account_cap: str, amount: int) -> ValueHandle:
        pool = self._pool(pool)
        r = self.resolver
        [balance] = self.unit.emit(
            r.target("incentive_v2", "withdraw_with_account_cap"),
            [
                r.clock(mutable=False),
                r.oracle(),
                r.storage(),
                r.pool(pool),
                Pure.u8(pool.asset_id),
                Pure.u64(amount),
                r.incentive(),
                r.incentive_v2(),
                OwnedRef(object_id=account_cap),
            ],
            [pool.type],
            [Produces(HandleKind.BALANCE, pool.type, amount)],
        )
        return self.from_balance(balance, pool.type)

    # --- borrow side ---

    def borrow(self, pool: PoolLike, amount: int) -> ValueHandle:
        pool = self._pool(pool)
        r = self.resolver
        [balance] = self.unit.emit(
            r.target("incentive_v2", "borrow"),
            [
                r.clock(),
                r.oracle(),
                r.storage(),
                r.pool(pool),
                Pure.u8(pool.asset_id),
                Pure.u64(amount),
                r.incentive_v2(),
            ],
            [pool.type],
            [Produces(HandleKind.BALANCE, pool.type, amount)],
        )
        return self.from_balance(balance, pool.type)

    def repay(self, pool: PoolLike, coin: ValueHandle, amount: int):
        """Repays up to ``amount``; the protocol applies partial repayment."""
        pool = self._pool(pool)
        r = self.resolver
        self.unit.emit(
            r.target("incentive_v2", "entry_repay"),
            [
                r.clock(),
                r.oracle(),
                r.storage(),
                r.pool(pool),
                Pure.u8(pool.asset_id),
                coin,
                Pure.u64(amount),
                r.incentive_v2(),
            ],
            [pool.type],
        )

    def health_factor(self, address: str) -> ValueHandle:
        r = self.resolver
        [factor] = self.unit.emit(
            r.target("logic", "user_health_factor"),
            [r.clock(), r.storage(), r.oracle(), Pure.address(address)],
            [],
            [Produces(HandleKind.SCALAR)],
        )
        return factor

    def liquidate(
        self,
        pay_pool: PoolLike,
        pay_coin: ValueHandle,
        collateral_pool: PoolLike,
        target_address: str,
    ) -> Tuple[ValueHandle, ValueHandle]:
        """
        Liquidates ``target_address``, paying with ``pay_coin``.

        Type arguments are ``[pay type, collateral type]`` in that order.
        Swapping the pools still builds a structurally valid unit; only the
        protocol notices.

        Returns (collateral balance, remaining debt balance).
        """
        pay = self._pool(pay_pool)
        collateral = self._pool(collateral_pool)
        r = self.resolver
        log.info(
            "LIQUIDATION_QUEUED",
            unit_id=self.unit.id,
            target=target_address,
            pay_asset=pay.asset_id,
            collateral_asset=collateral.asset_id,
        )
        collateral_balance, remaining_debt = self.unit.emit(
            r.target("incentive_v2", "liquidation"),
            [
                r.clock(),
                r.oracle(),
                r.storage(),
                Pure.u8(pay.asset_id),
                r.pool(pay),
                pay_coin,
                Pure.u8(collateral.asset_id),
                r.pool(collateral),
                Pure.address(target_address),
                r.incentive(),
                r.incentive_v2(),
            ],
            [pay.type, collateral.type],
            [
                Produces(HandleKind.BALANCE, collateral.type),
                Produces(HandleKind.BALANCE, pay.type),
            ],
        )
        return collateral_balance, remaining_debt

    # --- flash loans ---

    def flashloan(self, pool: PoolLike, amount: int) -> Tuple[ValueHandle, FlashLoanReceipt]:
        """
        Returns (loaned balance, receipt). The receipt must be passed to
        ``repay_flash_loan`` for the same pool before the unit is handed off.
        """
        pool = self._pool(pool)
        r = self.resolver
        balance, receipt = self.unit.emit(
            r.target("lending", "flash_loan_with_ctx"),
            [r.flashloan_config(), r.pool(pool), Pure.u64(amount)],
            [pool.type],
            [
                Produces(HandleKind.BALANCE, pool.type, amount),
                Produces(HandleKind.RECEIPT, pool.type, amount, pool.pool_id),
            ],
        )
        log.info("FLASHLOAN_QUEUED", unit_id=self.unit.id, pool=pool.pool_id, amount=amount)
        return balance, receipt

    def repay_flash_loan(self, pool: PoolLike, receipt: ValueHandle, repay_balance: ValueHandle) -> ValueHandle:
        """Consumes the receipt; returns the leftover balance after repayment."""
        pool = self._pool(pool)
        if not isinstance(receipt, FlashLoanReceipt):
            raise UnpairedReceipt("repay_flash_loan needs the receipt returned by flashloan")
        if receipt.pool_id != pool.pool_id or receipt.type_tag != pool.type:
            raise UnpairedReceipt(
                "Flash loan receipt repaid against a different pool",
                details={
                    "receipt_pool": receipt.pool_id,
                    "receipt_type": receipt.type_tag,
                    "repay_pool": pool.pool_id,
                    "repay_type": pool.type,
                },
            )
        if repay_balance.kind != HandleKind.BALANCE:
            raise PTBError("Flash loans are repaid with a Balance; convert coins with into_balance first")
        r = self.resolver
        [leftover] = self.unit.emit(
            r.target("lending", "flash_repay_with_ctx"),
            [r.clock(), r.storage(), r.pool(pool), receipt, repay_balance],
            [pool.type],
            [Produces(HandleKind.BALANCE, pool.type)],
        )
        return leftover

    # --- incentives ---

    def claim_reward(self, funds_pool: str, asset_id: int, option: OptionType):
        info = self.resolver.funds_pool(funds_pool)
        r = self.resolver
        self.unit.emit(
            r.target("incentive_v2", "claim_reward"),
            [
                r.clock(),
                r.incentive_v2(),
                r.funds_pool_ref(funds_pool),
                r.storage(),
                Pure.u8(int(asset_id)),
                Pure.u8(int(option)),
            ],
            [info.coin_type],
        )

    # --- vSUI liquid staking ---

    def stake_vsui(self, sui_coin: ValueHandle) -> ValueHandle:
        vsui = self.resolver.vsui()
        [coin] = self.unit.emit(
            f"{vsui.package}::native_pool::stake_non_entry",
            self._vsui_args(sui_coin),
            [],
            [Produces(HandleKind.COIN, vsui.coin_type)],
        )
        return coin

    def unstake_vsui(self, vsui_coin: ValueHandle) -> ValueHandle:
        vsui = self.resolver.vsui()
        [coin] = self.unit.emit(
            f"{vsui.package}::native_pool::unstake",
            self._vsui_args(vsui_coin),
            [],
            [Produces(HandleKind.COIN, SUI_TYPE)],
        )
        return coin

    def _vsui_args(self, coin: ValueHandle) -> List:
        vsui = self.resolver.vsui()
        return [
            self.resolver.shared(vsui.pool),
            self.resolver.shared(vsui.metadata),
            self.resolver.shared(vsui.wrapper),
            coin,
        ]
