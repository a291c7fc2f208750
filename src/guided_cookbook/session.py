from __future__ import annotations
import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional, Protocol
from guided_cookbook.catalog import find_recipe
from guided_cookbook.models import CookSession, Recipe

logger = logging.getLogger(__name__)


class InvalidRecipeError(Exception):
    pass


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class TickSource(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


Observer = Callable[["CookSessionMachine"], None]
TickSourceFactory = Callable[["CookSessionMachine"], TickSource]


class CookSessionMachine:
    """Timer state machine for the one recipe being cooked.

    ``tick`` is a plain state transition driven by measured elapsed seconds, so
    tests can call it directly. ``sync`` measures the elapsed time itself and
    is what a periodic tick source calls. All mutations take the same lock;
    observers are notified after the lock is released.
    """

    def __init__(
        self,
        tick_source_factory: TickSourceFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._tick_source_factory = tick_source_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._recipe: Optional[Recipe] = None
        self._session: Optional[CookSession] = None
        self._completed = False
        self._tick_source: Optional[TickSource] = None
        self._observers: list[Observer] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            if self._session is None:
                return SessionState.IDLE
            if self._completed:
                return SessionState.COMPLETED
            return SessionState.RUNNING if self._session.is_running else SessionState.PAUSED

    @property
    def session(self) -> Optional[CookSession]:
        with self._lock:
            return self._session.model_copy() if self._session else None

    @property
    def recipe(self) -> Optional[Recipe]:
        return self._recipe

    @property
    def has_tick_source(self) -> bool:
        return self._tick_source is not None

    def start(self, recipe: Recipe) -> None:
        if not recipe.steps:
            raise InvalidRecipeError(f"Recipe '{recipe.title}' has no steps to cook.")
        if any(step.duration_minutes <= 0 for step in recipe.steps):
            raise InvalidRecipeError(f"Recipe '{recipe.title}' has a step without a positive duration.")

        # the previous session's ticks must never reach the new one
        self._stop_tick_source()
        with self._lock:
            self._recipe = recipe
            self._completed = False
            self._session = CookSession(
                recipe_id=recipe.id,
                current_step_index=0,
                remaining_seconds=recipe.steps[0].duration_seconds,
                is_running=False,
                last_tick_timestamp=self._clock(),
            )
            source = self._tick_source_factory(self) if self._tick_source_factory else None
            self._tick_source = source
        logger.info("Started cooking session for '%s' (%d steps)", recipe.title, len(recipe.steps))
        if source is not None:
            source.start()
        self._notify()

    def start_by_id(self, recipe_id: str, recipes: list[Recipe]) -> None:
        self.start(find_recipe(recipes, recipe_id))

    def toggle_run(self) -> None:
        with self._lock:
            if self._session is None or self._completed:
                return
            session = self._session
            session.is_running = not session.is_running
            if session.is_running:
                session.last_tick_timestamp = self._clock()
            logger.debug("Session %s", "resumed" if session.is_running else "paused")
        self._notify()

    def tick(self, elapsed_seconds: int) -> None:
        if elapsed_seconds < 0:
            raise ValueError(f"elapsed_seconds must be >= 0, got {elapsed_seconds}")
        with self._lock:
            changed = self._tick(elapsed_seconds)
        self._after_transition(changed)

    def sync(self, now: float | None = None) -> None:
        """Feed the whole seconds elapsed since the last tick into ``tick``.

        Fractions of a second carry over to the next call. While paused the
        anchor just follows the clock so paused time is never counted.
        """
        now = self._clock() if now is None else now
        with self._lock:
            session = self._session
            if session is None or self._completed:
                return
            if not session.is_running:
                session.last_tick_timestamp = now
                return
            elapsed = int(now - session.last_tick_timestamp)
            if elapsed < 1:
                return
            session.last_tick_timestamp += elapsed
            changed = self._tick(elapsed)
        self._after_transition(changed)

    def skip_to_next_step(self) -> None:
        with self._lock:
            session = self._session
            if session is None or self._completed:
                return
            if session.current_step_index + 1 < len(self._recipe.steps):
                if not session.is_running:
                    session.last_tick_timestamp = self._clock()
                self._enter_step(session.current_step_index + 1)
                session.is_running = True
            else:
                self._complete()
        self._after_transition(True)

    def reset(self) -> None:
        with self._lock:
            had_session = self._session is not None
            self._session = None
            self._recipe = None
            self._completed = False
        self._stop_tick_source()
        if had_session:
            logger.info("Cooking session stopped")
            self._notify()

    stop = reset

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _tick(self, elapsed_seconds: int) -> bool:
        session = self._session
        if session is None or self._completed or not session.is_running or elapsed_seconds == 0:
            return False
        remaining = session.remaining_seconds - elapsed_seconds
        if remaining > 0:
            session.remaining_seconds = remaining
        elif session.current_step_index + 1 < len(self._recipe.steps):
            # overshoot past the boundary is dropped, not carried into the next step
            self._enter_step(session.current_step_index + 1)
        else:
            self._complete()
        return True

    def _enter_step(self, index: int) -> None:
        self._session.current_step_index = index
        self._session.remaining_seconds = self._recipe.steps[index].duration_seconds
        logger.debug("Advanced to step %d of %d", index + 1, len(self._recipe.steps))

    def _complete(self) -> None:
        self._completed = True
        self._session.is_running = False
        self._session.remaining_seconds = 0
        logger.info("Finished cooking '%s'", self._recipe.title)

    def _after_transition(self, changed: bool) -> None:
        if self.state in (SessionState.IDLE, SessionState.COMPLETED):
            self._stop_tick_source()
        if changed:
            self._notify()

    def _stop_tick_source(self) -> None:
        with self._lock:
            source, self._tick_source = self._tick_source, None
        if source is not None:
            source.stop()

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer(self)
            except Exception:
                logger.exception("Session observer %r failed", observer)
