"""
Tests for health and operational endpoints.
"""

import logging

from imgopt.core.fingerprint import fingerprint
from imgopt.core.ops_log import OpsLog, OpsLogHandler


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_detailed_health_online(self, client):
        data = client.get("/health/detailed").json()
        assert data["status"] == "online"
        assert data["services"]["cache"]["status"] == "online"
        assert data["services"]["source"]["status"] == "online"

    def test_detailed_health_degraded_without_sources(self, client, source_dir, optimizer):
        optimizer.source_dir = source_dir / "missing"
        data = client.get("/health/detailed").json()
        assert data["status"] == "degraded"
        assert data["services"]["source"]["status"] == "offline"


class TestOps:
    def test_cache_counters(self, client):
        client.get("/optimize/photo.jpg")
        client.get("/optimize/photo.jpg")
        client.get("/optimize/photo.jpg", params={"format": "gif"})
        data = client.get("/ops/cache").json()
        assert data["counters"]["misses"] == 1
        assert data["counters"]["hits"] == 1
        assert data["counters"]["transforms"] == 1
        assert data["counters"]["failures"] == 1
        assert data["in_flight"] == 0
        assert data["disk"]["entries"] == 1

    def test_logs_capture_cache_warnings(self, client, store):
        client.post("/ops/logs/clear")
        client.get("/optimize/photo.jpg", params={"format": "png"})
        (store.root / fingerprint("photo.jpg", 800, 600, 80, "png")).write_bytes(b"junk")
        client.get("/optimize/photo.jpg", params={"format": "png"})

        data = client.get("/ops/logs", params={"scope": "errors"}).json()
        assert any("unreadable cache entry" in item["message"] for item in data["items"])

    def test_logs_clear(self, client):
        client.get("/optimize/photo.jpg", params={"format": "bmp"})
        assert client.post("/ops/logs/clear").json() == {"cleared": True}
        items = client.get("/ops/logs").json()["items"]
        assert not [item for item in items if item["logger"].startswith("imgopt")]

    def test_log_entries_carry_cache_context(self, client, store):
        client.post("/ops/logs/clear")
        key = fingerprint("photo.jpg", 800, 600, 80, "webp")
        client.get("/optimize/photo.jpg", params={"format": "webp"})
        client.get("/optimize/logo.png", params={"format": "png"})

        items = client.get("/ops/logs", params={"cache_key": key}).json()["items"]
        assert items
        assert all(item["cache_key"] == key for item in items)
        assert items[-1]["image_format"] == "webp"
        assert items[-1]["source_name"] == "photo.jpg"


class TestOpsLog:
    def test_ring_is_bounded_and_pages_by_id(self):
        log = OpsLog(maxlen=3)
        for n in range(5):
            log.append("INFO", "imgopt.test", f"line {n}", 0.0)
        items, last_id = log.entries()
        assert [item["message"] for item in items] == ["line 2", "line 3", "line 4"]
        assert last_id == 5
        newer, _ = log.entries(since_id=4)
        assert [item["id"] for item in newer] == [5]

    def test_errors_only_and_key_filter(self):
        log = OpsLog()
        log.append("INFO", "imgopt.test", "cached", 0.0, cache_key="a.png")
        log.append("WARNING", "imgopt.test", "corrupt", 0.0, cache_key="a.png")
        log.append("ERROR", "imgopt.test", "write failed", 0.0, cache_key="b.png")
        errors, _ = log.entries(errors_only=True)
        assert [item["message"] for item in errors] == ["corrupt", "write failed"]
        keyed, _ = log.entries(cache_key="a.png")
        assert [item["message"] for item in keyed] == ["cached", "corrupt"]

    def test_handler_reads_extra_fields(self):
        log = OpsLog()
        logger = logging.getLogger("imgopt.tests.ops_log")
        logger.setLevel(logging.INFO)
        handler = OpsLogHandler(log)
        logger.addHandler(handler)
        try:
            logger.warning("bad entry %s", "k.webp", extra={"cache_key": "k.webp", "image_format": "webp"})
        finally:
            logger.removeHandler(handler)
        (entry,), _ = log.entries()
        assert entry["message"] == "bad entry k.webp"
        assert entry["cache_key"] == "k.webp"
        assert entry["image_format"] == "webp"
        assert entry["source_name"] is None
