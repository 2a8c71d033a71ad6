"""
Tests for AudioPlayer with sounddevice and soundfile mocked out.
"""

import sys
import threading
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from exam_announcer.voice.playback import AudioPlayer


def _audio_modules(samples=None, sample_rate: int = 24000):
    mock_sd = MagicMock()
    mock_sf = MagicMock()
    if samples is None:
        samples = np.ones(2400, dtype="float32")
    mock_sf.read.return_value = (samples, sample_rate)
    return mock_sd, mock_sf


class TestAudioPlayer:
    def test_unavailable_raises(self) -> None:
        with patch("exam_announcer.voice.playback._check_audio_available", return_value=False):
            player = AudioPlayer()
            assert player.is_available() is False
            with pytest.raises(RuntimeError, match="unavailable"):
                player.play(b"data")

    def test_play_scales_volume_and_rate(self) -> None:
        mock_sd, mock_sf = _audio_modules()
        done = threading.Event()

        with patch("exam_announcer.voice.playback._check_audio_available", return_value=True), \
                patch.dict(sys.modules, {"sounddevice": mock_sd, "soundfile": mock_sf}):
            player = AudioPlayer()
            player.play(b"RIFF", volume=0.5, rate=1.25, on_ended=done.set)
            assert done.wait(2.0)

        samples, rate = mock_sd.play.call_args.args
        assert rate == 30000
        assert float(samples[0]) == pytest.approx(0.5)
        mock_sd.wait.assert_called_once()

    def test_decode_failure_raises(self) -> None:
        mock_sd, mock_sf = _audio_modules()
        mock_sf.read.side_effect = ValueError("not audio")

        with patch("exam_announcer.voice.playback._check_audio_available", return_value=True), \
                patch.dict(sys.modules, {"sounddevice": mock_sd, "soundfile": mock_sf}):
            with pytest.raises(RuntimeError, match="decode"):
                AudioPlayer().play(b"garbage")
        mock_sd.play.assert_not_called()

    def test_on_ended_fires_when_wait_fails(self) -> None:
        mock_sd, mock_sf = _audio_modules()
        mock_sd.wait.side_effect = RuntimeError("device lost")
        done = threading.Event()

        with patch("exam_announcer.voice.playback._check_audio_available", return_value=True), \
                patch.dict(sys.modules, {"sounddevice": mock_sd, "soundfile": mock_sf}):
            AudioPlayer().play(b"RIFF", on_ended=done.set)
            assert done.wait(2.0)

    def test_stop(self) -> None:
        mock_sd, mock_sf = _audio_modules()
        with patch("exam_announcer.voice.playback._check_audio_available", return_value=True), \
                patch.dict(sys.modules, {"sounddevice": mock_sd, "soundfile": mock_sf}):
            player = AudioPlayer()
            assert player.is_available()
            player.stop()
        mock_sd.stop.assert_called_once()

    def test_stop_when_unavailable_is_noop(self) -> None:
        with patch("exam_announcer.voice.playback._check_audio_available", return_value=False):
            player = AudioPlayer()
            player.is_available()
            player.stop()
