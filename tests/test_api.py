import unittest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from fakes import FakeProvider, history_rows
from pricesim.config import Settings
from pricesim.engine import Engine
from pricesim.history.backends import MemoryStore
from pricesim.history.store import HistoryStore
from pricesim.main import create_app
from pricesim.sim.rng import SystemRandomSource

TOKEN = "s3cret"


def make_settings(**overrides) -> Settings:
    values = dict(
        app_env="test",
        log_level="WARNING",
        provider="OFFLINE",
        data_file="unused.json",
        admin_token=TOKEN,
        quote_base_url="http://quotes.invalid",
        quote_timeout_seconds=1.0,
        poll_enabled=False,
        poll_interval_seconds=300.0,
        poll_symbols=[],
        use_random_prices=False,
        random_base_vol=0.02,
        random_jump_prob=0.08,
        random_jump_scale=0.06,
        random_seed=None,
    )
    values.update(overrides)
    return Settings(**values)


def dense_history():
    rows = []
    for day, prices in (
        ("2024-03-04", [10, 12, 9, 11, 10.5]),
        ("2024-03-05", [10.5, 10.7, 10.2, 10.6]),
        ("2024-03-06", [10.6, 10.9, 10.4, 10.8]),
    ):
        rows += history_rows(day, prices)
    return {"priceHistory": {"XYZ": rows}}


class TestApi(unittest.TestCase):
    def setUp(self):
        self.provider = FakeProvider({"XYZ": 11.0, "AAPL": 231.0})
        self.engine = Engine(
            HistoryStore(MemoryStore(dense_history())),
            self.provider,
            SystemRandomSource(42),
        )
        self.client = TestClient(create_app(self.engine, make_settings()))
        self.auth = {"Authorization": f"Bearer {TOKEN}"}

    def test_health(self):
        body = self.client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["provider_loaded"], "FakeProvider")
        self.assertFalse(body["poller_running"])

    def test_quote_records_and_returns_history(self):
        resp = self.client.get("/api/quote/aapl")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["symbol"], "AAPL")
        self.assertEqual(body["currentPrice"], 231.0)
        self.assertEqual([p["price"] for p in body["history"]], [231.0])

    def test_quote_history_is_last_20(self):
        for _ in range(25):
            self.client.get("/api/quote/AAPL")
        self.assertEqual(len(self.client.get("/api/quote/AAPL").json()["history"]), 20)

    def test_candles_from_recorded_days(self):
        body = self.client.get("/api/candles/xyz?days=2").json()

        self.assertEqual(body["symbol"], "XYZ")
        self.assertEqual([c["time"] for c in body["candles"]], ["2024-03-05", "2024-03-06"])
        last = body["candles"][-1]
        self.assertEqual((last["open"], last["high"], last["low"], last["close"]), (10.6, 10.9, 10.4, 10.8))

    def test_candles_for_unknown_symbol_records_a_price(self):
        body = self.client.get("/api/candles/NEW").json()
        # only today's point exists, and today is excluded
        self.assertEqual(body["candles"], [])
        self.assertEqual(len(self.client.get("/api/chart/NEW").json()["chartData"]), 2)

    def test_chart_real_mode_returns_recent_points(self):
        body = self.client.get("/api/chart/XYZ?points=3").json()
        self.assertEqual(len(body["chartData"]), 3)
        self.assertEqual(body["chartData"][-1]["price"], 11.0)

    def test_simulate_fills_requested_day(self):
        body = self.client.get("/api/simulate/XYZ/2024-03-08").json()

        days = [c["time"] for c in body["candles"]]
        self.assertEqual(days, ["2024-03-04", "2024-03-05", "2024-03-06", "2024-03-08"])
        filled = body["candles"][-1]
        self.assertGreater(filled["high"], max(filled["open"], filled["close"]))

    def test_simulate_rejects_bad_date(self):
        self.assertEqual(self.client.get("/api/simulate/XYZ/not-a-date").status_code, 422)

    def test_intraday_between_closes(self):
        body = self.client.get("/api/intraday/XYZ/2024-03-05?points=7").json()

        self.assertEqual(body["prevClose"]["date"], "2024-03-04")
        self.assertEqual(body["nextClose"]["date"], "2024-03-06")
        self.assertEqual(len(body["points"]), 7)
        self.assertTrue(body["points"][0]["time"].startswith("2024-03-05T09:30:00"))
        self.assertTrue(body["points"][-1]["time"].startswith("2024-03-05T15:30:00"))

    def test_closes(self):
        body = self.client.get("/api/closes/XYZ").json()
        self.assertEqual(body["previous"]["date"], "2024-03-06")
        self.assertEqual(body["previous"]["close"], 10.8)
        # nothing after today: falls back to the latest day
        self.assertEqual(body["next"]["date"], "2024-03-06")

    def test_admin_requires_token(self):
        self.assertEqual(self.client.get("/api/admin/random-prices").status_code, 401)
        bad = {"Authorization": "Bearer nope"}
        self.assertEqual(self.client.get("/api/admin/random-prices", headers=bad).status_code, 401)

        ok = self.client.get("/api/admin/random-prices", headers=self.auth)
        self.assertEqual(ok.json(), {"useRandomPrices": False})

    def test_admin_closed_without_configured_token(self):
        client = TestClient(create_app(self.engine, make_settings(admin_token=None)))
        self.assertEqual(client.get("/api/admin/random-prices", headers=self.auth).status_code, 401)

    def test_admin_rejects_non_boolean(self):
        resp = self.client.post("/api/admin/random-prices", json={"enabled": "yes"}, headers=self.auth)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "enabled must be boolean"})
        missing = self.client.post("/api/admin/random-prices", json={}, headers=self.auth)
        self.assertEqual(missing.status_code, 400)
        self.assertFalse(self.engine.get_random_mode())

    def test_random_mode_switches_read_shapes(self):
        resp = self.client.post("/api/admin/random-prices", json={"enabled": True}, headers=self.auth)
        self.assertEqual(resp.json(), {"useRandomPrices": True})

        candles = self.client.get("/api/candles/XYZ?days=5").json()["candles"]
        self.assertEqual(len(candles), 5)
        yesterday = datetime.now(timezone.utc).date() - timedelta(days=1)
        self.assertEqual(candles[-1]["time"], yesterday.isoformat())
        for c in candles:
            self.assertGreaterEqual(c["volume"], 50_000)

        chart = self.client.get("/api/chart/XYZ?days=4").json()["chartData"]
        self.assertEqual(len(chart), 4)

        simulated = self.client.get("/api/simulate/XYZ/2024-03-08?days=3").json()["candles"]
        self.assertEqual([c["time"] for c in simulated], ["2024-03-06", "2024-03-07", "2024-03-08"])

        quote = self.client.get("/api/quote/XYZ").json()
        self.assertEqual(self.provider.calls, [])
        # random walk steps at most 1% from the last recorded 10.8
        self.assertLessEqual(abs(quote["currentPrice"] - 10.8), 0.108 + 1e-9)


class TestEngineLifecycle(unittest.IsolatedAsyncioTestCase):
    async def test_stop_closes_provider(self):
        provider = FakeProvider()
        engine = Engine(HistoryStore(MemoryStore()), provider, SystemRandomSource(1))
        await engine.stop()
        self.assertTrue(provider.closed)
