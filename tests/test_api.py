"""
Tests for the control API routes.
"""

import time

import pytest
from fastapi.testclient import TestClient

from models.config import PipelineConfig
from models.frame import FrameData
from pipeline.session import JuggleSession
from storage.count_sink import CountFileSink
from web.app import create_app


@pytest.fixture
def session(tmp_path):
    return JuggleSession(PipelineConfig(), sink=CountFileSink(str(tmp_path / "count.txt")))


@pytest.fixture
def client(session):
    return TestClient(create_app(session))


def feed(session, frame):
    session.process_frame(FrameData.from_numpy(frame, timestamp=time.time()))


class TestStatus:
    def test_initial_status(self, client):
        resp = client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 0
        assert data["mode"] == "single"
        assert data["target_color"] == "#ff0000"
        assert data["tracks"] == []

    def test_status_after_catch(self, client, session, make_ball_frame):
        feed(session, make_ball_frame([(80, 40)]))
        feed(session, make_ball_frame([(80, 80)]))
        data = client.get("/api/status").json()
        assert data["count"] == 1
        assert data["status"] == "Catch detected! Count: 1"
        assert data["tracks"][0]["id"] == 0
        assert data["line_y"] == 60.0


class TestConfigRoutes:
    def test_get_config(self, client):
        data = client.get("/api/config").json()["config"]
        assert data["color_tolerance_percent"] == 30.0
        assert data["mode"] == "single"

    def test_patch_clamps(self, client, session):
        resp = client.patch("/api/config", json={"color_tolerance_percent": 150, "catch_multiplier": 2})
        assert resp.status_code == 200
        assert resp.json()["applied"] == {"color_tolerance_percent": 100.0, "catch_multiplier": 2}
        assert session.config.color_tolerance_percent == 100.0

    def test_patch_rejects_bad_choice(self, client, session):
        resp = client.patch("/api/config", json={"line_height_percent": 70, "cooldown_scope": "global"})
        assert resp.status_code == 400
        assert session.config.line_height_percent == 50.0

    def test_patch_rejects_wrong_type(self, client):
        resp = client.patch("/api/config", json={"hue_weight": "heavy"})
        assert resp.status_code == 400

    def test_patch_target_color(self, client, session):
        resp = client.patch("/api/config", json={"target_color": "#00ff00"})
        assert resp.status_code == 200
        assert resp.json()["config"]["target_color"] == "#00ff00"

    def test_patch_bad_color_changes_nothing(self, client, session):
        resp = client.patch("/api/config", json={"min_blob_size": 50, "target_color": "green"})
        assert resp.status_code == 400
        assert session.config.min_blob_size == 10
        assert session.config.target_color.to_hex() == "#ff0000"


class TestModeRoute:
    def test_switch_mode(self, client):
        resp = client.post("/api/mode", json={"mode": "multi"})
        assert resp.status_code == 200
        assert resp.json()["mode"] == "multi"
        assert resp.json()["status"] == "Multi-ball tracking enabled"

    def test_unknown_mode(self, client):
        resp = client.post("/api/mode", json={"mode": "triple"})
        assert resp.status_code == 400
        assert "mode must be one of" in resp.json()["detail"]


class TestCalibrateRoute:
    def test_calibrate_from_color(self, client):
        resp = client.post("/api/calibrate", json={"color": "rgb(1, 2, 3)"})
        assert resp.status_code == 200
        assert resp.json()["target_color"] == "#010203"

    def test_calibrate_malformed_color(self, client):
        resp = client.post("/api/calibrate", json={"color": "rgb(1, 2)"})
        assert resp.status_code == 400

    def test_calibrate_from_pixel_needs_frame(self, client):
        resp = client.post("/api/calibrate", json={"x": 5, "y": 5})
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Start camera first to calibrate color"

    def test_calibrate_from_pixel(self, client, session, make_blank_frame):
        frame = make_blank_frame()
        frame[5, 6] = (0, 128, 255)  # orange in BGR
        feed(session, frame)
        resp = client.post("/api/calibrate", json={"x": 6, "y": 5})
        assert resp.status_code == 200
        assert resp.json()["target_color"] == "#ff8000"

    def test_calibrate_needs_input(self, client):
        assert client.post("/api/calibrate", json={}).status_code == 400


class TestResetAndHealth:
    def test_reset(self, client, session, make_ball_frame):
        feed(session, make_ball_frame([(80, 40)]))
        feed(session, make_ball_frame([(80, 80)]))
        resp = client.post("/api/reset")
        assert resp.status_code == 200
        assert resp.json()["count"] == 0
        assert session.sink.read() == 0

    def test_health(self, client, session, tmp_path):
        data = client.get("/api/health").json()
        assert data["frames_processed"] == 0
        assert data["last_frame_age_s"] is None
        assert data["count_file_path"] == str(tmp_path / "count.txt")
        assert data["uptime_seconds"] >= 0


class TestSnapshot:
    def test_no_frame_yet(self, client):
        assert client.get("/api/snapshot.jpg").status_code == 503

    def test_jpeg_after_frame(self, client, session, make_ball_frame):
        feed(session, make_ball_frame([(80, 40)]))
        resp = client.get("/api/snapshot.jpg")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/jpeg"
        assert resp.content[:2] == b"\xff\xd8"
