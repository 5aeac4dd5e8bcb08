"""Paddle-and-ball arcade simulation.

The module contains everything the game needs apart from a window: the bodies,
the lives/pause state machine, time-scaled physics, and a rasteriser that
writes the current frame into a flat pixel buffer.  The window itself is
supplied by a collaborator (see ``arcade_window``) that only has to answer
key-state queries and present finished buffers, so the whole simulation can
be driven from tests with fake clocks and fake displays.

Each frame follows a fixed order: sample input, update the simulation, render,
present, then sleep for a fixed interval.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union

import numpy as np

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------------------
# Configuration constants
# --------------------------------------------------------------------------------------
# Viewport geometry: one pixel per logical unit.
WIDTH, HEIGHT = 800, 600
TITLE = "Game Window"

# Frame pacing.  The sleep is unconditional, so the real frame rate is at most
# ~60 FPS and drifts under load.
FRAME_SLEEP = 0.016
PAUSE_DURATION = 2.0

# Ball and paddle tuning.
BALL_SIZE = 15.0
BALL_START = (20.0, 20.0)
SERVE_VELOCITY = (300.0, 300.0)
PADDLE_W, PADDLE_H = 100.0, 20.0
PADDLE_BOTTOM_GAP = 40.0
PADDLE_SPEED = 400.0

STARTING_LIVES = 3

# Pixel colours, 0xAARRGGBB.
BACKGROUND = 0x00000000
FOREGROUND = 0xFFFFFFFF


@dataclass(frozen=True)
class Settings:
    """Viewport dimensions a game is played in."""

    width: int = WIDTH
    height: int = HEIGHT


# --------------------------------------------------------------------------------------
# Bodies and phases
# --------------------------------------------------------------------------------------
@dataclass
class Body:
    """An axis-aligned rectangle with a top-left position and a velocity."""

    x: float
    y: float
    width: float
    height: float
    vel_x: float = 0.0
    vel_y: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def centre_in(self, settings: Settings) -> None:
        """Move the body to the middle of the viewport."""

        self.x = settings.width / 2 - self.width / 2
        self.y = settings.height / 2 - self.height / 2


@dataclass(frozen=True)
class Running:
    pass


@dataclass(frozen=True)
class Paused:
    since: float


@dataclass(frozen=True)
class ResetPending:
    pass


@dataclass(frozen=True)
class GameOver:
    pass


Phase = Union[Running, Paused, ResetPending, GameOver]


# --------------------------------------------------------------------------------------
# Collaborator interfaces
# --------------------------------------------------------------------------------------
class Key(enum.Enum):
    ESCAPE = "escape"
    LEFT = "left"
    RIGHT = "right"


class InputCommand(enum.Enum):
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    NEUTRAL = "neutral"
    EXIT_REQUESTED = "exit_requested"


class Keyboard(Protocol):
    def is_key_down(self, key: Key) -> bool:
        ...


class Display(Keyboard, Protocol):
    """What the loop needs from a window: key state, liveness and presentation."""

    def is_open(self) -> bool:
        ...

    def present(self, buffer: np.ndarray, width: int, height: int) -> None:
        ...


class Clock(Protocol):
    def now(self) -> float:
        ...


class MonotonicClock:
    """Wall-clock time source in seconds."""

    def now(self) -> float:
        return time.perf_counter()


# --------------------------------------------------------------------------------------
# Game state
# --------------------------------------------------------------------------------------
def make_ball() -> Body:
    return Body(BALL_START[0], BALL_START[1], BALL_SIZE, BALL_SIZE, *SERVE_VELOCITY)


def make_paddle(settings: Settings) -> Body:
    return Body(
        settings.width / 2 - PADDLE_W / 2,
        settings.height - PADDLE_BOTTOM_GAP,
        PADDLE_W,
        PADDLE_H,
    )


@dataclass
class GameState:
    """Everything the simulation mutates from one frame to the next.

    ``phase`` replaces the usual ``paused``/``pause_start``/``reset_pending``
    trio, so a pause timestamp can never exist without a pause.  The derived
    properties are kept for callers that only want the flags.
    """

    ball: Body
    paddle: Body
    last_frame_time: float
    settings: Settings = field(default_factory=Settings)
    lives: int = STARTING_LIVES
    score: int = 0
    running: bool = True
    phase: Phase = field(default_factory=Running)

    @classmethod
    def new(cls, clock: Clock, settings: Optional[Settings] = None) -> "GameState":
        settings = settings or Settings()
        return cls(
            ball=make_ball(),
            paddle=make_paddle(settings),
            last_frame_time=clock.now(),
            settings=settings,
        )

    @property
    def paused(self) -> bool:
        return isinstance(self.phase, Paused)

    @property
    def pause_start(self) -> Optional[float]:
        return self.phase.since if isinstance(self.phase, Paused) else None

    @property
    def reset_pending(self) -> bool:
        return isinstance(self.phase, ResetPending)


# --------------------------------------------------------------------------------------
# Input
# --------------------------------------------------------------------------------------
def sample_input(keyboard: Keyboard) -> InputCommand:
    """Translate held keys into a command.  Escape always wins."""

    if keyboard.is_key_down(Key.ESCAPE):
        return InputCommand.EXIT_REQUESTED
    if keyboard.is_key_down(Key.LEFT):
        return InputCommand.MOVE_LEFT
    if keyboard.is_key_down(Key.RIGHT):
        return InputCommand.MOVE_RIGHT
    return InputCommand.NEUTRAL


def apply_input(state: GameState, command: InputCommand) -> None:
    """Apply a sampled command to the state.

    Exit is honoured in every phase.  While paused the paddle velocity is left
    exactly as it was; it is not forced to zero.
    """

    if command is InputCommand.EXIT_REQUESTED:
        if state.running:
            logger.info("Exit requested")
        state.running = False
        return

    if state.paused:
        return

    if command is InputCommand.MOVE_LEFT:
        state.paddle.vel_x = -PADDLE_SPEED
    elif command is InputCommand.MOVE_RIGHT:
        state.paddle.vel_x = PADDLE_SPEED
    else:
        state.paddle.vel_x = 0.0


# --------------------------------------------------------------------------------------
# Simulation
# --------------------------------------------------------------------------------------
def serve_ball(state: GameState) -> None:
    """Centre the ball and give it the serve velocity."""

    state.ball.centre_in(state.settings)
    state.ball.vel_x, state.ball.vel_y = SERVE_VELOCITY


def update(state: GameState, clock: Clock) -> None:
    """Advance the simulation by the real time elapsed since the last frame."""

    # Game over is terminal.  An Escape frame still runs to completion so the
    # reported lives and score include it.
    if isinstance(state.phase, GameOver):
        return

    if isinstance(state.phase, Paused):
        if clock.now() - state.phase.since < PAUSE_DURATION:
            return
        state.phase = ResetPending()
        serve_ball(state)
        logger.info("Serving ball, %d lives left", state.lives)
        return

    if isinstance(state.phase, ResetPending):
        # Drop the time spent paused so the first frame after it does not
        # integrate over several seconds.
        state.phase = Running()
        state.last_frame_time = clock.now()
        return

    now = clock.now()
    dt = now - state.last_frame_time
    state.last_frame_time = now

    step_physics(state, dt, now)


def step_physics(state: GameState, dt: float, now: float) -> None:
    """Integrate, resolve collisions and check for a lost ball."""

    ball, paddle = state.ball, state.paddle
    width, height = state.settings.width, state.settings.height

    # Move both bodies by velocity times elapsed seconds.  The paddle only
    # travels horizontally, so its y never changes.
    ball.x += ball.vel_x * dt
    ball.y += ball.vel_y * dt
    paddle.x += paddle.vel_x * dt

    # Walls.  No positional correction: an overlapping ball is carried back
    # out by the flipped velocity.
    if ball.x <= 0 or ball.right >= width:
        ball.vel_x = -ball.vel_x
    if ball.y <= 0:
        ball.vel_y = -ball.vel_y

    # Paddle.  The ball's bottom has reached the paddle's top and the two
    # horizontal spans overlap, edges included.  Every frame of overlap
    # bounces and scores again.
    if ball.bottom >= paddle.y and ball.right >= paddle.x and ball.x <= paddle.right:
        ball.vel_y = -ball.vel_y
        state.score += 1
        logger.debug("Paddle hit, score %d", state.score)

    # Keep the paddle fully inside the viewport.
    paddle.x = max(0.0, min(paddle.x, width - paddle.width))

    # Past the bottom edge: the ball is lost.  There is no bottom wall bounce.
    if ball.bottom > height:
        lose_life(state, now)


def lose_life(state: GameState, now: float) -> None:
    state.lives -= 1
    if state.lives > 0:
        state.ball.centre_in(state.settings)
        state.ball.vel_x = state.ball.vel_y = 0.0
        state.phase = Paused(since=now)
        logger.info("Ball lost, %d lives left", state.lives)
    else:
        state.phase = GameOver()
        state.running = False
        logger.info("Game over, final score %d", state.score)


# --------------------------------------------------------------------------------------
# Rendering
# --------------------------------------------------------------------------------------
def new_buffer(settings: Settings) -> np.ndarray:
    return np.zeros(settings.width * settings.height, dtype=np.uint32)


def fill_rect(pixels: np.ndarray, body: Body, colour: int) -> None:
    """Fill ``body``'s truncated bounds, skipping whatever falls off-screen."""

    rows, cols = pixels.shape
    # Truncate the float position and extent to whole pixels.
    top, left = int(body.y), int(body.x)
    bottom, right = top + int(body.height), left + int(body.width)
    # Clip each axis separately so nothing wraps onto a neighbouring row.
    top, left = max(top, 0), max(left, 0)
    bottom, right = min(bottom, rows), min(right, cols)
    # A body entirely off-screen leaves an empty range.
    if top < bottom and left < right:
        pixels[top:bottom, left:right] = colour


def render(state: GameState, buffer: Optional[np.ndarray] = None) -> np.ndarray:
    """Rasterise the ball and paddle into a flat row-major buffer.

    A buffer may be passed in to be reused between frames; otherwise a new one
    is allocated.  Either way the returned buffer is fully redrawn.
    """

    settings = state.settings
    if buffer is None:
        buffer = new_buffer(settings)

    buffer.fill(BACKGROUND)
    pixels = buffer.reshape(settings.height, settings.width)
    fill_rect(pixels, state.ball, FOREGROUND)
    fill_rect(pixels, state.paddle, FOREGROUND)
    return buffer


# --------------------------------------------------------------------------------------
# Loop driver
# --------------------------------------------------------------------------------------
def run_game(
    display: Display,
    clock: Optional[Clock] = None,
    state: Optional[GameState] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> GameState:
    """Play until the game ends, Escape is pressed or the window closes.

    Returns the final state so the caller can report lives and score.
    """

    clock = clock or MonotonicClock()
    state = state or GameState.new(clock)
    settings = state.settings
    buffer = new_buffer(settings)

    while state.running and display.is_open():
        apply_input(state, sample_input(display))
        update(state, clock)
        render(state, buffer)
        display.present(buffer, settings.width, settings.height)
        sleep(FRAME_SLEEP)

    return state
