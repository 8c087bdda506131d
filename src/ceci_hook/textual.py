"""Textual integration for ceci-hook. Opt-in, requires textual.

Runners created here are meant to be driven from widget lifecycle hooks
(on_mount, watch_* methods). They skip while the app is not running or
while its widget tree is being replaced, marshal calls from worker threads
through call_from_thread, and swallow NoMatches from widget queries.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from ceci_hook.effect import Effect, Mount

logger = logging.getLogger("ceci_hook.textual")

# Pause depth per id(app); an id is present only while some pause() is open.
_pause_depth: dict[int, int] = {}


@contextmanager
def pause(app):
    """Suspend guarded runners for app during widget replacement.

    Nested pauses of the same app resume only when the outermost exits.
    """
    key = id(app)
    _pause_depth[key] = _pause_depth.get(key, 0) + 1
    try:
        yield
    finally:
        depth = _pause_depth.pop(key) - 1
        if depth:
            _pause_depth[key] = depth


def is_safe(app) -> bool:
    """Can guarded runners for app touch its widget tree right now?"""
    return app.is_running and id(app) not in _pause_depth


class GuardedEffect:
    """Effect runner bound to a Textual app."""

    __slots__ = ("_app", "_effect", "_main")

    def __init__(self, app, mount: Mount, *, threadsafe: bool = False) -> None:
        self._app = app
        self._effect = Effect(mount, threadsafe=threadsafe)
        self._main = threading.get_ident()

    def __call__(self, *deps: object) -> None:
        if not is_safe(self._app):
            logger.debug("Skipping %r: app not safe", self._effect)
            return
        if threading.get_ident() != self._main:
            self._app.call_from_thread(self._safe, *deps)
        else:
            self._safe(*deps)

    def _safe(self, *deps: object) -> None:
        try:
            self._effect(*deps)
        except NoMatches:
            logger.debug("Swallowed NoMatches in %r", self._effect)

    def __repr__(self) -> str:
        return f"Guarded{self._effect!r}"


def create_effect(app, mount: Mount, *, threadsafe: bool = False) -> GuardedEffect:
    """create_effect() that safely bridges to Textual widgets.

    Usage:
        class Clock(Static):
            def on_mount(self):
                self._tick = stx.create_effect(self.app, self._start_timer)

            def watch_interval(self, interval):
                self._tick(interval)

            def _start_timer(self, interval):
                timer = self.set_interval(interval, self.refresh)
                return timer.stop
    """
    return GuardedEffect(app, mount, threadsafe=threadsafe)
