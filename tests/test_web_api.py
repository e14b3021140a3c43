from __future__ import annotations

import io

import numpy as np
import soundfile as sf
from fastapi.testclient import TestClient

from yin_tuner.web.schemas import TuningUpdateEvent
from yin_tuner.web.server import app


def _chunk(freq: float, start: int, n: int = 1024, sr: int = 44100) -> bytes:
    t = (start + np.arange(n)) / sr
    return (0.2 * np.sin(2 * np.pi * freq * t)).astype(np.float32).tobytes()


def test_health_endpoint() -> None:
    client = TestClient(app)
    resp = client.get("/api/health")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "ok"
    assert "activeSessions" in payload


def test_realtime_websocket_flow() -> None:
    client = TestClient(app)

    with client.websocket_connect("/ws/tuner") as ws:
        first = ws.receive_json()
        assert first["type"] == "status"

        ws.send_json(
            {
                "type": "init",
                "sampleRate": 44100,
                "referencePitch": 440.0,
                "noteOffsets": {"A": 0.0},
                "sensitivity": 0.5,
            }
        )
        assert ws.receive_json()["type"] == "status"

        # Eight 1024-sample chunks complete two 4096-sample windows.
        for i in range(8):
            ws.send_bytes(_chunk(440.0, i * 1024))

        updates = [TuningUpdateEvent.model_validate(ws.receive_json()) for _ in range(2)]
        assert all(u.valid for u in updates)
        assert updates[-1].note == "A"
        assert updates[-1].octave == 4
        assert abs(updates[-1].hz - 440.0) < 1.0
        assert updates[-1].t > updates[0].t


def test_config_messages_and_errors() -> None:
    client = TestClient(app)

    with client.websocket_connect("/ws/tuner") as ws:
        ws.receive_json()

        ws.send_text("not json")
        assert ws.receive_json()["code"] == "invalid_json"

        ws.send_json({"type": "set_sensitivity", "value": 4.0})
        reply = ws.receive_json()
        assert reply["type"] == "status"
        assert "1.00" in reply["message"]

        ws.send_json({"type": "set_calibration", "referencePitch": 600.0})
        assert ws.receive_json()["code"] == "invalid_message"

        ws.send_json({"type": "init", "sampleRate": 44100, "windowSize": 4095})
        assert ws.receive_json()["code"] == "invalid_config"

        ws.send_json({"type": "set_calibration", "referencePitch": 442.0, "noteOffsets": {"Bb": 3.0}})
        assert ws.receive_json()["type"] == "status"

        ws.send_bytes(b"\x00\x01\x02")
        assert ws.receive_json()["code"] == "invalid_audio"

        ws.send_json({"type": "reset"})
        assert ws.receive_json()["message"] == "Tuner reset."

        ws.send_json({"type": "bogus"})
        assert ws.receive_json()["code"] == "unknown_message"


def test_analyze_upload() -> None:
    client = TestClient(app)
    sr = 22050
    t = np.arange(sr) / sr
    audio = (0.3 * np.sin(2 * np.pi * 196.0 * t)).astype(np.float32)
    buf = io.BytesIO()
    sf.write(buf, audio, sr, format="WAV", subtype="PCM_16")

    resp = client.post(
        "/api/analyze",
        files={"audio": ("g3.wav", buf.getvalue(), "audio/wav")},
        data={"reference_pitch": "440", "window_size": "2048"},
    )

    assert resp.status_code == 200
    report = resp.json()
    assert report["sampleRate"] == sr
    assert len(report["windows"]) == sr // 2048
    assert report["note"] == "G3"
    assert abs(report["medianHz"] - 196.0) < 1.0


def test_analyze_rejects_garbage() -> None:
    client = TestClient(app)
    resp = client.post("/api/analyze", files={"audio": ("x.wav", b"definitely not audio", "audio/wav")})
    assert resp.status_code == 400


def test_analyze_rejects_oversized_window() -> None:
    client = TestClient(app)
    sr = 8000
    audio = (0.3 * np.sin(2 * np.pi * 220.0 * np.arange(sr) / sr)).astype(np.float32)
    buf = io.BytesIO()
    sf.write(buf, audio, sr, format="WAV", subtype="PCM_16")

    resp = client.post(
        "/api/analyze",
        files={"audio": ("a3.wav", buf.getvalue(), "audio/wav")},
        data={"window_size": "120000"},
    )
    assert resp.status_code == 422


def test_nan_audio_keeps_level_finite() -> None:
    client = TestClient(app)

    with client.websocket_connect("/ws/tuner") as ws:
        ws.receive_json()
        ws.send_json({"type": "init", "sampleRate": 44100})
        ws.receive_json()

        ws.send_bytes(np.full(1024, np.nan, dtype=np.float32).tobytes())
        for i in range(4):
            ws.send_bytes(_chunk(440.0, i * 1024))

        update = TuningUpdateEvent.model_validate(ws.receive_json())
        assert np.isfinite(update.level)
