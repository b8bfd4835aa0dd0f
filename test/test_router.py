import aiohttp
import pytest

from navi_ptb.adapters.router import Quote, QuoteClient

QUOTE_PAYLOAD = {
    "data": {
        "from": "0x2::sui::SUI",
        "target": "0x549e8b69270defbfafd4f94e17ec44cdbdd99820b33bda2278dea3b9a32d3f55::cert::CERT",
        "amount_in": "1000000000",
        "amount_out": "951234567",
        "routes": [
            {
                "amount_in": "600000000",
                "amount_out": "570000000",
                "path": [
                    {"provider": "cetus", "from": "0x2::sui::SUI", "target": "0xusdc", "amount_in": "600000000", "amount_out": "2100000"},
                    {"provider": "turbos", "from": "0xusdc", "target": "0xcert", "amount_in": "2100000", "amount_out": "570000000"},
                ],
            },
            {
                "amount_in": "400000000",
                "amount_out": "381234567",
                "path": [
                    {"provider": "cetus", "from": "0x2::sui::SUI", "target": "0xcert", "amount_in": "400000000", "amount_out": "381234567"},
                ],
            },
        ],
    }
}


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        pass

    async def json(self):
        return self.payload


class FakeSession:
    def __init__(self, failures=0):
        self.failures = failures
        self.requests = []
        self.closed = False

    def get(self, url, params=None, headers=None):
        self.requests.append((url, params, headers))
        if self.failures:
            self.failures -= 1
            raise aiohttp.ClientConnectionError("connection reset")
        return FakeResponse(QUOTE_PAYLOAD)


def test_quote_exposes_depth_and_dexes():
    quote = Quote.model_validate(QUOTE_PAYLOAD["data"])
    assert quote.depth == 2
    assert quote.dexes == ["cetus", "turbos"]
    assert quote.routes[0].path[1].from_type == "0xusdc"


@pytest.mark.asyncio
async def test_get_quote_sends_route_request():
    session = FakeSession()
    client = QuoteClient(base_url="http://localhost:8000/find_routes", api_key="key")
    client._session = session

    quote = await client.get_quote("0x2::sui::SUI", "0xcert", 1_000_000_000, dex_list=["cetus", "turbos"], depth=3)

    url, params, headers = session.requests[0]
    assert url == "http://localhost:8000/find_routes"
    assert params == {
        "from": "0x2::sui::SUI",
        "target": "0xcert",
        "amount": "1000000000",
        "by_amount_in": "true",
        "depth": "3",
        "providers": "cetus,turbos",
    }
    assert headers == {"x-navi-token": "key"}
    assert quote.amount_out == "951234567"


@pytest.mark.asyncio
async def test_get_quote_retries_transient_errors():
    session = FakeSession(failures=1)
    client = QuoteClient(base_url="http://localhost:8000/find_routes")
    client._session = session

    quote = await client.get_quote("0x2::sui::SUI", "0xcert", 10)

    assert len(session.requests) == 2
    assert quote.depth == 2
