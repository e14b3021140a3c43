from __future__ import annotations

import io
import json
import logging
import time

import numpy as np
import soundfile as sf
import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from yin_tuner import __version__
from yin_tuner.engine import TunerConfig, TunerConfigError, analyze_signal
from yin_tuner.logging_config import setup_logging
from yin_tuner.notes import Calibration, nearest_pitch
from yin_tuner.web.schemas import (
    MAX_WINDOW_SIZE,
    MIN_WINDOW_SIZE,
    AnalysisReport,
    AnalyzedWindow,
    InitMessage,
    ResetMessage,
    SetCalibrationMessage,
    SetSensitivityMessage,
    TransportPingMessage,
)
from yin_tuner.web.session import SessionManager, TunerSession

logger = logging.getLogger(__name__)

app = FastAPI(title="YIN Tuner", version=__version__)
sessions = SessionManager()


@app.get("/api/health")
async def health() -> dict[str, object]:
    return {
        "status": "ok",
        "version": __version__,
        "activeSessions": sessions.active_count,
    }


@app.post("/api/analyze")
async def analyze(
    audio: UploadFile = File(...),
    reference_pitch: float = Form(440.0),
    sensitivity: float = Form(0.5),
    window_size: int = Form(4096, ge=MIN_WINDOW_SIZE, le=MAX_WINDOW_SIZE),
) -> dict[str, object]:
    payload = await audio.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Audio file is empty")

    try:
        waveform, sample_rate = _decode_audio(payload)
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(status_code=400, detail=f"Unable to decode audio: {exc}") from exc

    try:
        config = TunerConfig(sample_rate=sample_rate, window_size=window_size)
        calibration = Calibration(reference_pitch_hz=reference_pitch)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    states = analyze_signal(waveform, config, calibration=calibration, sensitivity=sensitivity)
    windows = [
        AnalyzedWindow(
            t=t,
            hz=state.frequency_hz,
            note=state.pitch.display_name if state.is_valid else None,
            cents=state.raw_cents if state.is_valid else None,
            confidence=state.confidence,
            amplitude=state.amplitude,
            valid=state.is_valid,
        )
        for t, state in states
    ]
    voiced = [w.hz for w in windows if w.valid]
    report = AnalysisReport(
        sample_rate=sample_rate,
        window_size=config.window_size,
        duration=waveform.size / float(sample_rate),
        windows=windows,
    )
    if voiced:
        median_hz = float(np.median(np.array(voiced, dtype=np.float64)))
        pitch, cents = nearest_pitch(median_hz, calibration.reference_pitch_hz)
        report.median_hz = median_hz
        report.note = pitch.display_name
        report.cents = cents
    logger.info("Analyzed %s: %d windows, %d voiced", audio.filename, len(windows), len(voiced))
    return report.model_dump(by_alias=True)


@app.websocket("/ws/tuner")
async def tuner_ws(websocket: WebSocket) -> None:
    await websocket.accept()
    session = sessions.create()
    await websocket.send_json({"type": "status", "message": "Connected."})

    try:
        while True:
            message = await websocket.receive()
            if message.get("type") == "websocket.disconnect":
                break
            text = message.get("text")
            binary = message.get("bytes")

            if text is not None:
                for event in _handle_text_message(session, text):
                    await websocket.send_json(event)
            elif binary is not None:
                for event in _handle_audio(session, binary):
                    await websocket.send_json(event)
    except WebSocketDisconnect:
        pass
    finally:
        sessions.remove(session.session_id)


def _handle_audio(session: TunerSession, payload: bytes) -> list[dict[str, object]]:
    try:
        return session.process_audio_bytes(payload)
    except ValueError as exc:
        return [{"type": "error", "code": "invalid_audio", "message": str(exc)}]


def _handle_text_message(session: TunerSession, text: str) -> list[dict[str, object]]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return [{"type": "error", "code": "invalid_json", "message": "Invalid JSON payload"}]

    if not isinstance(payload, dict):
        return [{"type": "error", "code": "invalid_payload", "message": "Expected JSON object"}]

    msg_type = payload.get("type")
    try:
        if msg_type == "init":
            msg = InitMessage.model_validate(payload)
            session.init(
                sample_rate=msg.sample_rate,
                window_size=msg.window_size,
                reference_pitch=msg.reference_pitch,
                note_offsets=msg.note_offsets,
                sensitivity=msg.sensitivity,
            )
            return [{"type": "status", "message": "Session initialized."}]

        if msg_type == "set_calibration":
            msg = SetCalibrationMessage.model_validate(payload)
            session.set_calibration(reference_pitch=msg.reference_pitch, note_offsets=msg.note_offsets)
            return [{"type": "status", "message": "Calibration updated."}]

        if msg_type == "set_sensitivity":
            msg = SetSensitivityMessage.model_validate(payload)
            value = session.set_sensitivity(msg.value)
            return [{"type": "status", "message": f"Sensitivity set to {value:.2f}."}]

        if msg_type == "reset":
            ResetMessage.model_validate(payload)
            session.reset()
            return [{"type": "status", "message": "Tuner reset."}]

        if msg_type == "transport_ping":
            msg = TransportPingMessage.model_validate(payload)
            return [
                {
                    "type": "transport_pong",
                    "clientTs": msg.client_ts,
                    "serverTs": time.time(),
                }
            ]

    except ValidationError as exc:
        return [{"type": "error", "code": "invalid_message", "message": str(exc)}]
    except (TunerConfigError, ValueError) as exc:
        return [{"type": "error", "code": "invalid_config", "message": str(exc)}]

    return [{"type": "error", "code": "unknown_message", "message": f"Unknown type: {msg_type}"}]


def _decode_audio(payload: bytes) -> tuple[np.ndarray, int]:
    data, sample_rate = sf.read(io.BytesIO(payload), dtype="float32", always_2d=False)
    audio = np.asarray(data, dtype=np.float32)
    if audio.ndim == 2:
        audio = np.mean(audio, axis=1, dtype=np.float32)
    if audio.size == 0:
        raise ValueError("decoded audio is empty")
    return audio, int(sample_rate)


def main() -> None:
    setup_logging()
    uvicorn.run(
        "yin_tuner.web.server:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )


if __name__ == "__main__":
    main()
