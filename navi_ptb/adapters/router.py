# /navi_ptb/adapters/router.py
# Client for the swap-route discovery service. The returned Quote is an
# opaque, immutable artifact: nothing here inspects or rewrites routes.
from typing import List, Sequence

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from navi_ptb.core.config import get_settings
from navi_ptb.core.decorators import retriable_network_call
from navi_ptb.core.logger import get_logger

log = get_logger(__name__)


class Hop(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    provider: str
    from_type: str = Field(alias="from")
    target: str
    amount_in: str
    amount_out: str


class Route(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    path: List[Hop]
    amount_in: str
    amount_out: str


class Quote(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    from_type: str = Field(alias="from")
    target: str
    amount_in: str
    amount_out: str
    routes: List[Route] = Field(default_factory=list)

    @property
    def depth(self) -> int:
        return max((len(r.path) for r in self.routes), default=0)

    @property
    def dexes(self) -> List[str]:
        seen = []
        for route in self.routes:
            for hop in route.path:
                if hop.provider not in seen:
                    seen.append(hop.provider)
        return seen


class QuoteClient:
    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout_s: float = 10):
        self.base_url = base_url or get_settings().ROUTER_BASE_URL
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()

    @retriable_network_call
    async def get_quote(
        self,
        from_type: str,
        to_type: str,
        amount_in: int | str,
        dex_list: Sequence[str] = (),
        by_amount_in: bool = True,
        depth: int = 3,
    ) -> Quote:
        params = {
            "from": from_type,
            "target": to_type,
            "amount": str(amount_in),
            "by_amount_in": str(by_amount_in).lower(),
            "depth": str(depth),
        }
        if dex_list:
            params["providers"] = ",".join(dex_list)
        headers = {"x-navi-token": self.api_key} if self.api_key else {}

        async with self._get_session().get(self.base_url, params=params, headers=headers) as resp:
            resp.raise_for_status()
            payload = await resp.json()

        quote = Quote.model_validate(payload.get("data", payload))
        log.info(
            "QUOTE_RECEIVED",
            from_type=from_type,
            to_type=to_type,
            amount_in=quote.amount_in,
            amount_out=quote.amount_out,
            depth=quote.depth,
            dexes=quote.dexes,
        )
        return quote
