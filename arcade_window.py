"""pygame window that hosts the paddle-ball game.

The simulation in ``paddle_ball`` never touches pygame.  This module provides
the other half: a window that reports held keys, notices when it has been
closed, and shows the flat pixel buffers the renderer produces.  It also holds
the program entry point, which runs one game and prints the final result.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict

import numpy as np
import pygame

import paddle_ball
from paddle_ball import Key

logger = logging.getLogger(__name__)

# pygame key constants for each key the game reads.
KEY_CODES: Dict[Key, int] = {
    Key.ESCAPE: pygame.K_ESCAPE,
    Key.LEFT: pygame.K_LEFT,
    Key.RIGHT: pygame.K_RIGHT,
}


class PresentationError(RuntimeError):
    """The window could not be opened or could not show a frame."""


def buffer_to_rgb(buffer: np.ndarray, width: int, height: int) -> np.ndarray:
    """Unpack 0xAARRGGBB pixels into a ``(width, height, 3)`` array for surfarray."""

    pixels = buffer.reshape(height, width).T
    rgb = np.empty((width, height, 3), dtype=np.uint8)
    rgb[..., 0] = (pixels >> 16) & 0xFF
    rgb[..., 1] = (pixels >> 8) & 0xFF
    rgb[..., 2] = pixels & 0xFF
    return rgb


def wait_frame(seconds: float) -> None:
    """Sleep between frames on pygame's own timer."""

    pygame.time.wait(round(seconds * 1000))


class ArcadeWindow:
    """A fixed-size pygame window implementing the game's display interface."""

    def __init__(self, width: int = paddle_ball.WIDTH, height: int = paddle_ball.HEIGHT,
                 title: str = paddle_ball.TITLE) -> None:
        self.width = width
        self.height = height
        self._open = True
        try:
            pygame.init()
            pygame.display.set_caption(title)
            self.screen = pygame.display.set_mode((width, height))
        except pygame.error as exc:
            pygame.quit()
            raise PresentationError(f"Error creating window: {exc}") from exc

    def __enter__(self) -> "ArcadeWindow":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def is_key_down(self, key: Key) -> bool:
        return bool(pygame.key.get_pressed()[KEY_CODES[key]])

    def is_open(self) -> bool:
        """Drain pending events and report whether the window is still open."""

        if self._open:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    logger.info("Window closed")
                    self._open = False
        return self._open

    def present(self, buffer: np.ndarray, width: int, height: int) -> None:
        if (width, height) != (self.width, self.height):
            raise PresentationError(
                f"Frame is {width}x{height} but the window is {self.width}x{self.height}"
            )
        if buffer.size != width * height:
            raise PresentationError(
                f"Buffer holds {buffer.size} pixels, expected {width * height}"
            )
        try:
            pygame.surfarray.blit_array(self.screen, buffer_to_rgb(buffer, width, height))
            pygame.display.flip()
        except pygame.error as exc:
            raise PresentationError(f"Error presenting frame: {exc}") from exc

    def close(self) -> None:
        self._open = False
        pygame.quit()


# --------------------------------------------------------------------------------------
# Application entry point
# --------------------------------------------------------------------------------------
def main() -> None:
    """Open the window, play one game and print how it ended."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        with ArcadeWindow() as window:
            state = paddle_ball.run_game(window, sleep=wait_frame)
    except PresentationError as exc:
        logger.critical("%s", exc)
        sys.exit(1)

    print(f"Game Over! Lives remaining: {state.lives}")
    print(f"Final Score: {state.score}")


if __name__ == "__main__":
    main()
