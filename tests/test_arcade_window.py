from __future__ import annotations

import numpy as np
import pygame
import pytest

import arcade_window
from arcade_window import ArcadeWindow, PresentationError, buffer_to_rgb
from paddle_ball import FOREGROUND, Key


@pytest.fixture
def window():
    with ArcadeWindow(64, 48, "test") as win:
        yield win


def test_window_starts_open_with_no_keys_held(window: ArcadeWindow) -> None:
    assert window.is_open()
    for key in Key:
        assert not window.is_key_down(key)


def test_quit_event_closes_window(window: ArcadeWindow) -> None:
    pygame.event.post(pygame.event.Event(pygame.QUIT))
    assert not window.is_open()
    assert not window.is_open()


def test_present_shows_buffer(window: ArcadeWindow) -> None:
    buffer = np.zeros(64 * 48, dtype=np.uint32)
    buffer.reshape(48, 64)[10, 20] = FOREGROUND

    window.present(buffer, 64, 48)

    assert tuple(window.screen.get_at((20, 10)))[:3] == (255, 255, 255)
    assert tuple(window.screen.get_at((0, 0)))[:3] == (0, 0, 0)


def test_present_rejects_wrong_dimensions(window: ArcadeWindow) -> None:
    with pytest.raises(PresentationError):
        window.present(np.zeros(32 * 48, dtype=np.uint32), 32, 48)


def test_present_rejects_short_buffer(window: ArcadeWindow) -> None:
    with pytest.raises(PresentationError):
        window.present(np.zeros(10, dtype=np.uint32), 64, 48)


def test_present_failure_is_reported(window: ArcadeWindow, monkeypatch) -> None:
    def broken_flip():
        raise pygame.error("display lost")

    monkeypatch.setattr(pygame.display, "flip", broken_flip)
    with pytest.raises(PresentationError, match="Error presenting frame"):
        window.present(np.zeros(64 * 48, dtype=np.uint32), 64, 48)


def test_window_creation_failure_is_reported(monkeypatch) -> None:
    def broken_set_mode(*args, **kwargs):
        raise pygame.error("no video device")

    monkeypatch.setattr(pygame.display, "set_mode", broken_set_mode)
    with pytest.raises(PresentationError, match="no video device"):
        ArcadeWindow(64, 48)


def test_buffer_to_rgb_unpacks_channels() -> None:
    buffer = np.zeros(4 * 3, dtype=np.uint32)
    buffer[1 * 4 + 2] = 0xFF102030

    rgb = buffer_to_rgb(buffer, 4, 3)

    assert rgb.shape == (4, 3, 3)
    assert tuple(rgb[2, 1]) == (0x10, 0x20, 0x30)
    assert rgb.sum() == 0x10 + 0x20 + 0x30


class EscapeWindow:
    """Stands in for the pygame window with Escape held down."""

    def __init__(self) -> None:
        self.frames = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        pass

    def is_key_down(self, key: Key) -> bool:
        return key is Key.ESCAPE

    def is_open(self) -> bool:
        return True

    def present(self, buffer, width, height) -> None:
        self.frames += 1


def test_main_prints_final_result(monkeypatch, capsys) -> None:
    monkeypatch.setattr(arcade_window, "ArcadeWindow", EscapeWindow)
    monkeypatch.setattr(pygame.time, "wait", lambda ms: None)

    arcade_window.main()

    out = capsys.readouterr().out
    assert out == "Game Over! Lives remaining: 3\nFinal Score: 0\n"


def test_main_exits_when_window_cannot_open(monkeypatch, capsys) -> None:
    def no_window():
        raise PresentationError("Error creating window: no video device")

    monkeypatch.setattr(arcade_window, "ArcadeWindow", no_window)

    with pytest.raises(SystemExit) as excinfo:
        arcade_window.main()

    assert excinfo.value.code == 1
    assert capsys.readouterr().out == ""


class BrokenWindow(EscapeWindow):
    def is_key_down(self, key: Key) -> bool:
        return False

    def present(self, buffer, width, height) -> None:
        raise PresentationError("Error presenting frame: display lost")


def test_main_exits_when_presenting_fails(monkeypatch, capsys) -> None:
    monkeypatch.setattr(arcade_window, "ArcadeWindow", BrokenWindow)

    with pytest.raises(SystemExit) as excinfo:
        arcade_window.main()

    assert excinfo.value.code == 1
    assert capsys.readouterr().out == ""


def test_main_paces_frames_with_pygame(monkeypatch, capsys) -> None:
    waits = []
    monkeypatch.setattr(arcade_window, "ArcadeWindow", EscapeWindow)
    monkeypatch.setattr(pygame.time, "wait", waits.append)

    arcade_window.main()

    assert waits == [16]


def test_wait_frame_converts_to_milliseconds(monkeypatch) -> None:
    waits = []
    monkeypatch.setattr(pygame.time, "wait", waits.append)

    arcade_window.wait_frame(0.016)
    arcade_window.wait_frame(0.5)

    assert waits == [16, 500]
