"""Microphone capture feeding a tuner engine from the PortAudio callback thread."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
import sounddevice as sd

logger = logging.getLogger(__name__)

SampleSink = Callable[[np.ndarray], object]


@dataclass(frozen=True)
class InputDevice:
    index: int
    name: str
    channels: int
    default_sample_rate: float


@dataclass(frozen=True)
class CaptureConfig:
    sample_rate: int = 44100
    block_size: int = 1024
    device: int | str | None = None
    channels: int = 1
    latency: str | float = "low"


def input_devices() -> list[InputDevice]:
    """Every device PortAudio reports with at least one input channel."""
    found = []
    for index, info in enumerate(sd.query_devices()):
        if info["max_input_channels"] > 0:
            found.append(
                InputDevice(
                    index=index,
                    name=str(info["name"]),
                    channels=int(info["max_input_channels"]),
                    default_sample_rate=float(info["default_samplerate"]),
                )
            )
    return found


def find_input_device(name: str) -> InputDevice:
    needle = name.lower()
    for device in input_devices():
        if needle in device.name.lower():
            return device
    raise ValueError(f"no input device matching {name!r}")


def downmix(block: np.ndarray) -> np.ndarray:
    """(frames, channels) callback block -> contiguous mono float32 copy."""
    data = np.asarray(block, dtype=np.float32)
    if data.ndim == 1:
        return data.copy()
    if data.shape[1] == 1:
        return data[:, 0].copy()
    return data.mean(axis=1, dtype=np.float32)


class MicrophoneCapture:
    """
    Opens one PortAudio input stream and pushes each mono block into ``sink``.

    The sink runs on the audio callback thread, which is where the tuner
    pipeline is meant to run. Blocks flagged with an over/underflow status are
    dropped, so the sink never sees a block with a gap inside it.
    """

    def __init__(self, sink: SampleSink, config: CaptureConfig | None = None) -> None:
        self._sink = sink
        self._cfg = config or CaptureConfig()
        self._stream: sd.InputStream | None = None
        self._delivered = 0
        self._dropped = 0

    @property
    def config(self) -> CaptureConfig:
        return self._cfg

    @property
    def is_running(self) -> bool:
        return self._stream is not None

    @property
    def blocks_delivered(self) -> int:
        return self._delivered

    @property
    def dropped_blocks(self) -> int:
        return self._dropped

    def _callback(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        if status:
            self._dropped += 1
            logger.debug("Input status %s; %d-frame block dropped", status, frames)
            return
        self._sink(downmix(indata))
        self._delivered += 1

    def start(self) -> None:
        if self._stream is not None:
            return
        cfg = self._cfg
        # Fails here, not in the callback, when the device cannot do this rate.
        sd.check_input_settings(device=cfg.device, samplerate=cfg.sample_rate, channels=cfg.channels)
        self._stream = sd.InputStream(
            samplerate=cfg.sample_rate,
            blocksize=cfg.block_size,
            device=cfg.device,
            channels=cfg.channels,
            dtype="float32",
            latency=cfg.latency,
            callback=self._callback,
        )
        self._stream.start()
        logger.info(
            "Capturing from %s at %d Hz in %d-frame blocks",
            "default input" if cfg.device is None else cfg.device,
            cfg.sample_rate,
            cfg.block_size,
        )

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
            logger.info("Capture stopped: %d blocks delivered, %d dropped", self._delivered, self._dropped)

    def __enter__(self) -> MicrophoneCapture:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
