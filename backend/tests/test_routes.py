import importlib
import json
import os
import unittest

import backend.config as config_module
from raffle import derive_random_words

PLAYERS = ["0x" + c * 40 for c in "abc"]


class RaffleRoutesTests(unittest.TestCase):
    def setUp(self) -> None:
        os.environ["DATABASE_URL"] = "sqlite:///:memory:"
        os.environ["ADMIN_API_KEY"] = "test-admin"
        os.environ["FUNDS_BACKEND"] = "memory"
        os.environ["RAFFLE_ENTRY_FEE"] = "1"
        os.environ["RAFFLE_INTERVAL_SECONDS"] = "0"
        os.environ["RAFFLE_MIN_PARTICIPANTS"] = "3"
        config_module.load_settings.cache_clear()

        import backend.db as db_module
        import backend.models as models_module
        import backend.services.history as history_module
        import backend.services.raffle_service as service_module
        import backend.routes.raffle as raffle_route_module
        import backend.routes.admin as admin_route_module
        import backend.routes.config as config_route_module
        import backend.routes.health as health_route_module
        import backend.app as app_module

        importlib.reload(config_module)
        importlib.reload(db_module)
        importlib.reload(models_module)
        importlib.reload(history_module)
        self.service_module = importlib.reload(service_module)
        importlib.reload(raffle_route_module)
        importlib.reload(admin_route_module)
        importlib.reload(config_route_module)
        importlib.reload(health_route_module)
        app_module = importlib.reload(app_module)

        self.app = app_module.create_app()
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        config_module.load_settings.cache_clear()
        self.service_module.get_raffle_service.cache_clear()

    def _headers(self):
        return {"X-Admin-Token": "test-admin"}

    def _post(self, path, payload=None, admin=False):
        return self.client.post(
            path,
            data=json.dumps(payload or {}),
            content_type="application/json",
            headers=self._headers() if admin else None,
        )

    def _enter_all(self):
        for player in PLAYERS:
            resp = self._post("/raffle/enter", {"participant": player, "amount": 1})
            self.assertEqual(resp.status_code, 201)

    def test_full_round(self):
        self._enter_all()

        status = self.client.get("/raffle").get_json()
        self.assertEqual(status["state"], "OPEN")
        self.assertEqual(status["number_of_players"], 3)
        self.assertEqual(status["pooled_balance"], "3")

        eligibility = self.client.get("/raffle/eligibility").get_json()
        self.assertTrue(eligibility["eligible"])

        upkeep = self._post("/admin/api/upkeep", admin=True)
        self.assertEqual(upkeep.status_code, 200)
        request_id = upkeep.get_json()["request_id"]
        self.assertEqual(request_id, 1)

        blocked = self._post("/raffle/enter", {"participant": PLAYERS[0], "amount": 1})
        self.assertEqual(blocked.status_code, 409)

        pending = self.client.get("/admin/api/requests/pending", headers=self._headers()).get_json()
        self.assertEqual([p["request_id"] for p in pending], [request_id])

        fulfilled = self._post(
            f"/admin/api/requests/{request_id}/fulfill", {"random_words": [7]}, admin=True
        )
        self.assertEqual(fulfilled.status_code, 200)
        result = fulfilled.get_json()
        self.assertEqual(result["winner"], PLAYERS[1])
        self.assertEqual(result["winner_index"], 1)
        self.assertEqual(result["prize"], "3")
        self.assertEqual(result["state"], "OPEN")

        status = self.client.get("/raffle").get_json()
        self.assertEqual(status["number_of_players"], 0)
        self.assertEqual(status["recent_winner"], PLAYERS[1])
        self.assertEqual(status["round_number"], 2)
        self.assertEqual(self.client.get("/raffle/players/0").status_code, 404)

        rounds = self.client.get("/admin/api/rounds", headers=self._headers()).get_json()
        self.assertEqual(len(rounds), 1)
        self.assertEqual(rounds[0]["winner"], PLAYERS[1])
        self.assertEqual(rounds[0]["random_word"], "7")
        self.assertTrue(rounds[0]["paid"])

        events = self.client.get("/admin/api/events", headers=self._headers()).get_json()
        names = [event["name"] for event in reversed(events)]
        self.assertEqual(
            names, ["Entered", "Entered", "Entered", "RandomnessRequested", "WinnerSelected"]
        )

    def test_seeded_fulfillment_is_recorded(self):
        self._enter_all()
        request_id = self._post("/admin/api/upkeep", admin=True).get_json()["request_id"]
        seed = "0x" + "42" * 32

        resp = self._post(
            f"/admin/api/requests/{request_id}/fulfill", {"seed": seed, "beacon_round": 99}, admin=True
        )

        self.assertEqual(resp.status_code, 200)
        word = derive_random_words(seed, request_id, 1)[0]
        self.assertEqual(resp.get_json()["winner"], PLAYERS[word % 3])
        record = self.client.get("/admin/api/rounds", headers=self._headers()).get_json()[0]
        self.assertEqual(record["seed"], seed)
        self.assertEqual(record["beacon_round"], 99)
        self.assertEqual(record["random_word"], str(word))

    def test_words_must_match_seed(self):
        self._enter_all()
        request_id = self._post("/admin/api/upkeep", admin=True).get_json()["request_id"]

        resp = self._post(
            f"/admin/api/requests/{request_id}/fulfill",
            {"seed": "0x" + "42" * 32, "random_words": [1]},
            admin=True,
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.client.get("/raffle").get_json()["state"], "CALCULATING")

    def test_enter_validation(self):
        low = self._post("/raffle/enter", {"participant": PLAYERS[0], "amount": 0})
        self.assertEqual(low.status_code, 400)
        self.assertEqual(low.get_json()["entry_fee"], "1")

        invalid = self._post("/raffle/enter", {"amount": 1})
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.get_json()["error"], "invalid request")

    def test_participant_lookup(self):
        self._post("/raffle/enter", {"participant": PLAYERS[0], "amount": 2})

        found = self.client.get(f"/raffle/participants/{PLAYERS[0]}").get_json()
        missing = self.client.get(f"/raffle/participants/{PLAYERS[1]}").get_json()

        self.assertEqual(found["index"], 0)
        self.assertEqual(found["contribution"], "2")
        self.assertEqual(missing["index"], -1)
        self.assertEqual(self.client.get("/raffle/players/0").get_json()["participant"], PLAYERS[0])

    def test_exit_refund_and_lock(self):
        self._post("/raffle/enter", {"participant": PLAYERS[0], "amount": 1})

        refunded = self._post("/raffle/exit", {"participant": PLAYERS[0]})
        self.assertEqual(refunded.status_code, 200)
        self.assertEqual(refunded.get_json()["refunded"], "1")
        self.assertEqual(self.client.get("/raffle").get_json()["number_of_players"], 0)

        self._enter_all()
        locked = self._post("/raffle/exit", {"participant": PLAYERS[0]})
        self.assertEqual(locked.status_code, 400)
        self.assertIn("reason", locked.get_json())

    def test_upkeep_not_needed(self):
        self._post("/raffle/enter", {"participant": PLAYERS[0], "amount": 1})

        resp = self._post("/admin/api/upkeep", admin=True)

        self.assertEqual(resp.status_code, 400)
        payload = resp.get_json()
        self.assertEqual(payload["participant_count"], 1)
        self.assertEqual(payload["balance"], "1")
        self.assertEqual(payload["state"], "OPEN")

    def test_admin_requires_token(self):
        resp = self.client.post("/admin/api/upkeep")
        self.assertEqual(resp.status_code, 401)

    def test_fulfill_unknown_request(self):
        resp = self._post("/admin/api/requests/5/fulfill", {"random_words": [1]}, admin=True)
        self.assertEqual(resp.status_code, 404)

    def test_failed_payout_and_retry(self):
        self._enter_all()
        request_id = self._post("/admin/api/upkeep", admin=True).get_json()["request_id"]
        funds = self.service_module.get_raffle_service().raffle.funds
        funds.rejecting.add(PLAYERS[0])

        failed = self._post(f"/admin/api/requests/{request_id}/fulfill", {"random_words": [3]}, admin=True)
        self.assertEqual(failed.status_code, 502)
        self.assertTrue(failed.get_json()["manual_intervention"])
        self.assertEqual(self.client.get("/raffle").get_json()["state"], "OPEN")

        owed = self.client.get("/admin/api/payouts/failed", headers=self._headers()).get_json()
        self.assertEqual(owed, [{"recipient": PLAYERS[0], "amount": "3", "round_number": 1}])
        record = self.client.get("/admin/api/rounds", headers=self._headers()).get_json()[0]
        self.assertFalse(record["paid"])

        funds.rejecting.clear()
        retried = self._post("/admin/api/payouts/retry", {"recipient": PLAYERS[0]}, admin=True)
        self.assertEqual(retried.status_code, 200)
        self.assertEqual(funds.received, {PLAYERS[0]: 3})
        record = self.client.get("/admin/api/rounds", headers=self._headers()).get_json()[0]
        self.assertTrue(record["paid"])

        again = self._post("/admin/api/payouts/retry", {"recipient": PLAYERS[0]}, admin=True)
        self.assertEqual(again.status_code, 404)

    def test_config_and_health(self):
        config = self.client.get("/config").get_json()
        self.assertEqual(config["entry_fee"], "1")
        self.assertEqual(config["min_participants"], 3)
        self.assertEqual(config["num_words"], 1)
        self.assertEqual(config["funds_backend"], "memory")

        health = self.client.get("/health")
        self.assertEqual(health.status_code, 200)
        self.assertTrue(health.get_json()["ok"])


if __name__ == "__main__":
    unittest.main()
