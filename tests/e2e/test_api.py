"""E2E tests for the HTTP API.

Each test gets a fresh app over its own in-memory database.
"""

from types import SimpleNamespace

import pytest
import requests
from fastapi.testclient import TestClient

from api.deps import get_market_client
from shared.errors import ExchangeError

SECRET = "super-secret-value"
PASSPHRASE = "my-passphrase"


def create_bot(client, payload, **overrides):
    response = client.post("/api/bots", json={**payload, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestBotsAPI:
    def test_create_bot_returns_camel_case(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        assert bot["id"] > 0
        assert bot["userId"] == 1
        assert bot["tradingPair"] == "BTC/USDT"
        assert bot["baseAsset"] == "BTC"
        assert bot["quoteAsset"] == "USDT"
        assert bot["gridCount"] == 10
        assert bot["isPaperTrading"] is False
        assert bot["createdAt"] == bot["lastActiveAt"]

    def test_new_bot_has_zeroed_stats(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.get(f"/api/bots/{bot['id']}/stats")

        assert response.status_code == 200
        stats = response.json()
        assert stats["botId"] == bot["id"]
        assert stats["totalProfit"] == 0
        assert stats["completedTrades"] == 0
        assert stats["returnPercentage"] == 0

    def test_create_rejects_inverted_range(self, client, bot_payload):
        response = client.post("/api/bots", json={**bot_payload, "upperLimit": 25000, "lowerLimit": 30000})

        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Validation error"
        assert data["errors"]

        assert client.get("/api/bots").json() == []

    def test_create_requires_status(self, client, bot_payload):
        payload = dict(bot_payload)
        del payload["status"]

        response = client.post("/api/bots", json=payload)

        assert response.status_code == 400
        assert any(err["loc"][-1] == "status" for err in response.json()["errors"])

    def test_list_bots_per_user(self, client, bot_payload):
        create_bot(client, bot_payload, name="first")
        create_bot(client, bot_payload, name="second")
        client.post("/api/bots", json=bot_payload, headers={"X-User-Id": "2"})

        names = [bot["name"] for bot in client.get("/api/bots").json()]
        assert names == ["first", "second"]
        assert len(client.get("/api/bots", headers={"X-User-Id": "2"}).json()) == 1

    def test_bad_user_header(self, client):
        response = client.get("/api/bots", headers={"X-User-Id": "nobody"})
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_get_missing_bot_is_404(self, client):
        response = client.get("/api/bots/9999")
        assert response.status_code == 404
        assert response.json() == {"message": "Bot not found"}

    def test_invalid_bot_id_is_400(self, client):
        response = client.get("/api/bots/abc")
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid bot ID"}

    def test_update_bot(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.patch(
            f"/api/bots/{bot['id']}",
            json={"status": "paused", "userId": 77, "name": "renamed"},
        )

        assert response.status_code == 200
        updated = response.json()
        assert updated["status"] == "paused"
        assert updated["name"] == "renamed"
        assert updated["userId"] == 1
        assert updated["createdAt"] == bot["createdAt"]
        assert updated["lastActiveAt"] >= bot["lastActiveAt"]

    def test_update_breaking_range_rejected(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.patch(f"/api/bots/{bot['id']}", json={"lowerLimit": 40000})

        assert response.status_code == 400
        assert client.get(f"/api/bots/{bot['id']}").json()["lowerLimit"] == 25000

    def test_update_missing_bot(self, client):
        response = client.patch("/api/bots/9999", json={"name": "x"})
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "field",
        ["name", "tradingPair", "baseAsset", "quoteAsset", "isPaperTrading", "status", "upperLimit"],
    )
    def test_update_null_required_field_is_400(self, client, bot_payload, field):
        bot = create_bot(client, bot_payload)

        response = client.patch(f"/api/bots/{bot['id']}", json={field: None})

        assert response.status_code == 400
        assert any(err["loc"][-1] == field for err in response.json()["errors"])
        assert client.get(f"/api/bots/{bot['id']}").json() == bot

    def test_update_clears_stop_loss(self, client, bot_payload):
        bot = create_bot(client, bot_payload, stopLoss=24000)

        response = client.patch(f"/api/bots/{bot['id']}", json={"stopLoss": None})

        assert response.status_code == 200
        assert response.json()["stopLoss"] is None

    def test_update_trading_pair_rederives_assets(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.patch(f"/api/bots/{bot['id']}", json={"tradingPair": "ETH/BTC"})

        assert response.status_code == 200
        updated = response.json()
        assert updated["tradingPair"] == "ETH/BTC"
        assert updated["baseAsset"] == "ETH"
        assert updated["quoteAsset"] == "BTC"

    def test_grid_summary(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.get(f"/api/bots/{bot['id']}/grid", params={"levels": 3})

        assert response.status_code == 200
        grid = response.json()
        assert grid["stepSize"] == 500
        assert grid["levels"] == [30000, 27500, 25000]
        assert grid["potentialProfit"] == pytest.approx(5.0)

    def test_grid_order_is_simulated(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.post(f"/api/bots/{bot['id']}/grid-order", params={"paper": "true"})

        assert response.status_code == 201
        ack = response.json()
        assert ack["status"] == "simulated"
        assert ack["orderId"].startswith("mock_grid_")
        assert ack["params"]["symbol"] == "BTC_USDT"


class TestTransactionsAPI:
    def test_sell_updates_stats(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.post(
            "/api/transactions",
            json={"botId": bot["id"], "side": "SELL", "price": 100, "amount": 1, "value": 100, "fee": 0.1},
        )

        assert response.status_code == 201
        transaction = response.json()
        assert transaction["type"] == "SELL"
        assert transaction["botId"] == bot["id"]

        stats = client.get(f"/api/bots/{bot['id']}/stats").json()
        assert stats["completedTrades"] == 1
        assert stats["totalProfit"] == pytest.approx(0.5)
        assert stats["returnPercentage"] == pytest.approx(0.5)

    def test_type_field_accepted(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.post(
            "/api/transactions",
            json={"botId": bot["id"], "type": "BUY", "price": 100, "amount": 1, "value": 100},
        )

        assert response.status_code == 201
        assert response.json()["fee"] == 0

    def test_unknown_bot_is_404(self, client):
        response = client.post(
            "/api/transactions",
            json={"botId": 9999, "type": "BUY", "price": 1, "amount": 1, "value": 1},
        )
        assert response.status_code == 404

    def test_invalid_side_is_400(self, client, bot_payload):
        bot = create_bot(client, bot_payload)

        response = client.post(
            "/api/transactions",
            json={"botId": bot["id"], "type": "HOLD", "price": 1, "amount": 1, "value": 1},
        )

        assert response.status_code == 400
        assert client.get(f"/api/bots/{bot['id']}/stats").json()["completedTrades"] == 0

    def test_list_and_limit(self, client, bot_payload):
        bot = create_bot(client, bot_payload)
        for price in (1, 2, 3):
            client.post(
                "/api/transactions",
                json={"botId": bot["id"], "type": "BUY", "price": price, "amount": 1, "value": price},
            )

        everything = client.get(f"/api/bots/{bot['id']}/transactions").json()
        recent = client.get(f"/api/bots/{bot['id']}/transactions", params={"limit": 2}).json()

        assert [t["price"] for t in everything] == [3, 2, 1]
        assert recent == everything[:2]
        assert client.get(f"/api/bots/{bot['id']}/transactions", params={"limit": 0}).json() == []

    def test_list_invalid_bot_id(self, client):
        response = client.get("/api/bots/x/transactions")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid bot ID"


class TestStatsAPI:
    def test_totals(self, client, bot_payload):
        first = create_bot(client, bot_payload)
        create_bot(client, bot_payload, status="stopped", investment=50)
        client.post(
            "/api/transactions",
            json={"botId": first["id"], "type": "SELL", "price": 100, "amount": 1, "value": 100},
        )

        response = client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {
            "totalBots": 2,
            "activeBots": 1,
            "totalInvestment": 150,
            "totalProfit": pytest.approx(0.5),
            "completedTrades": 1,
        }


class TestApiConfigAPI:
    def test_missing_config_is_404(self, client):
        response = client.get("/api/api-config")
        assert response.status_code == 404

    def test_masked_response(self, client):
        response = client.post(
            "/api/api-config",
            json={"apiKey": "abcd1234efgh", "apiSecret": SECRET, "passphrase": PASSPHRASE},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["apiKey"] == "abcd...efgh"
        assert data["apiSecret"] == "••••••••"
        assert data["passphrase"] == "••••••••"

        fetched = client.get("/api/api-config")
        assert fetched.status_code == 200
        for body in (response.text, fetched.text):
            assert "abcd1234efgh" not in body
            assert SECRET not in body
            assert PASSPHRASE not in body
        assert fetched.json()["apiKey"] == "abcd...efgh"

    def test_short_key_fully_masked(self, client):
        response = client.post(
            "/api/api-config",
            json={"apiKey": "short", "apiSecret": SECRET, "passphrase": PASSPHRASE},
        )
        assert response.json()["apiKey"] == "********"

    def test_post_replaces_existing(self, client):
        first = client.post(
            "/api/api-config",
            json={"apiKey": "abcd1234efgh", "apiSecret": SECRET, "passphrase": PASSPHRASE},
        ).json()
        second = client.post(
            "/api/api-config",
            json={"apiKey": "wxyz5678ijkl", "apiSecret": SECRET, "passphrase": PASSPHRASE},
        ).json()

        assert second["id"] == first["id"]
        assert client.get("/api/api-config").json()["apiKey"] == "wxyz...ijkl"

    def test_patch(self, client):
        client.post(
            "/api/api-config",
            json={"apiKey": "abcd1234efgh", "apiSecret": SECRET, "passphrase": PASSPHRASE},
        )

        response = client.patch("/api/api-config", json={"apiKey": "9999aaaabbbb"})

        assert response.status_code == 200
        assert response.json()["apiKey"] == "9999...bbbb"

    def test_missing_field_is_400(self, client):
        response = client.post("/api/api-config", json={"apiKey": "abcd1234efgh"})
        assert response.status_code == 400


class FakeMarketClient:
    def __init__(self, pairs=None, price=None, error=None, failures=0):
        self.pairs = pairs
        self.price = price
        self.error = error
        self.failures = failures
        self.calls = []

    def _maybe_fail(self):
        if self.failures:
            self.failures -= 1
            raise requests.ConnectionError("connection reset")
        if self.error is not None:
            raise self.error

    def get_trading_pairs(self):
        self.calls.append("pairs")
        self._maybe_fail()
        return self.pairs

    def get_ticker_price(self, symbol):
        self.calls.append(symbol)
        self._maybe_fail()
        return self.price


@pytest.fixture
def market(app, settings):
    settings.exchange.read_retry_base_delay = 0

    def install(fake):
        app.dependency_overrides[get_market_client] = lambda: fake
        return fake

    yield install
    app.dependency_overrides.clear()


class TestMarketAPI:
    def test_pairs_passthrough(self, client, market):
        payload = {"code": "00000", "data": [{"symbol": "BTCUSDT_UMCBL"}]}
        market(FakeMarketClient(pairs=payload))

        response = client.get("/api/market/pairs")

        assert response.status_code == 200
        assert response.json() == payload

    def test_price_retries_transport_errors(self, client, market):
        fake = market(FakeMarketClient(price={"data": {"last": "27000"}}, failures=2))

        response = client.get("/api/market/price/BTCUSDT_UMCBL")

        assert response.status_code == 200
        assert response.json() == {"data": {"last": "27000"}}
        assert fake.calls == ["BTCUSDT_UMCBL"] * 3

    def test_exchange_error_not_retried(self, client, market):
        fake = market(FakeMarketClient(error=ExchangeError(400, "bad symbol")))

        response = client.get("/api/market/price/NOPE")

        assert response.status_code == 500
        data = response.json()
        assert data["message"] == "Failed to fetch price"
        assert "400" in data["error"]
        assert fake.calls == ["NOPE"]

    def test_pairs_failure(self, client, market):
        market(FakeMarketClient(error=ExchangeError(503, "maintenance")))

        response = client.get("/api/market/pairs")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to fetch trading pairs"

    def test_missing_symbol(self, client):
        response = client.get("/api/market/price")
        assert response.status_code == 400
        assert response.json() == {"message": "Symbol is required"}


class TestVenueClients:
    def test_clients_share_app_http_session(self, app, client):
        market_client = get_market_client(SimpleNamespace(app=app), paper=True)

        assert market_client._session is app.state.http_session
        assert market_client.is_paper_trading

    def test_lifespan_closes_http_session(self, app):
        closed = []
        with TestClient(app):
            app.state.http_session.close = lambda: closed.append(True)

        assert closed == [True]
