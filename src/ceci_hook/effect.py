"""Effects: a mount action that re-runs only when its dependencies change.

create_effect(mount) returns a runner. Every call to the runner passes the
current dependency values positionally. When they differ from the previous
run, the cleanup returned by the last mount is invoked, then mount runs again
with the new values:

    def subscribe(channel):
        handle = bus.subscribe(channel)
        return handle.close

    run = create_effect(subscribe)
    run("news")    # subscribe("news")
    run("news")    # no-op, nothing changed
    run("sports")  # handle.close(), then subscribe("sports")

Nothing is torn down automatically. To release the last mount, call the
runner once more with sentinel dependencies.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("ceci_hook.effect")

Cleanup = Callable[[], object]
Mount = Callable[..., Optional[Cleanup]]

_SCALARS = (int, float, complex, str, bytes, bool, type(None))

# Marks a runner that has no recorded dependencies yet.
_UNSET = object()


def _noop() -> None:
    pass


def same(a: object, b: object) -> bool:
    """Strict equality for dependency values.

    Identity for everything, plus value equality when both sides are the
    same immutable scalar type. Lists, dicts and other objects are compared
    by reference only, never structurally.
    """
    if a is b:
        return True
    return type(a) is type(b) and type(a) in _SCALARS and a == b


def _deps_equal(a: tuple, b: tuple) -> bool:
    if len(a) != len(b):
        return False
    return all(same(x, y) for x, y in zip(a, b))


class Effect:
    """Runs mount when the dependencies passed to it change.

    Instances are created with create_effect() and used by calling them.
    """

    __slots__ = ("_mount", "_cleanup", "_last_deps", "_lock", "_running")

    def __init__(self, mount: Mount, *, threadsafe: bool = False) -> None:
        self._mount = mount
        self._cleanup: Cleanup = _noop
        self._last_deps: tuple | object = _UNSET
        self._lock = threading.RLock() if threadsafe else None
        self._running = False

    def __call__(self, *deps: object) -> None:
        if self._lock is None:
            self._run(deps)
            return
        with self._lock:
            self._run(deps)

    def _run(self, deps: tuple) -> None:
        # A nested run would mount without its cleanup ever being tracked.
        if self._running:
            raise RuntimeError(f"{self!r} called from its own mount or cleanup")

        if self._last_deps is not _UNSET and _deps_equal(deps, self._last_deps):
            logger.debug("Skipping %s: dependencies unchanged", self._name)
            return

        logger.debug("Running %s with %d dependencies", self._name, len(deps))

        # Consume the stale cleanup first. If it or mount raises, the runner
        # is left unset and the next call mounts again.
        cleanup = self._cleanup
        self._cleanup = _noop
        self._last_deps = _UNSET
        self._running = True
        try:
            cleanup()
            result = self._mount(*deps)
        finally:
            self._running = False

        self._cleanup = result if callable(result) else _noop
        self._last_deps = deps

    @property
    def _name(self) -> str:
        return getattr(self._mount, "__name__", repr(self._mount))

    def __repr__(self) -> str:
        state = "pending" if self._last_deps is _UNSET else "mounted"
        return f"Effect({self._name}, {state})"


def create_effect(mount: Mount, *, threadsafe: bool = False) -> Effect:
    """Wrap mount in a runner that re-runs it only when its inputs change.

    Every positional argument passed to the runner is a dependency; anything
    else mount needs must come from its closure. mount may return a
    zero-argument cleanup, which is called right before the next mount.
    Any other return value is ignored.

    Pass threadsafe=True when the runner may be called from several threads.
    Calling the runner from inside its own mount or cleanup raises
    RuntimeError.

    Usage:
        log = []

        @create_effect
        def track(user):
            log.append(("mount", user))
            return lambda: log.append(("unmount", user))

        track("ada")
        track("ada")
        # log == [("mount", "ada")]

        track("bob")
        # log == [("mount", "ada"), ("unmount", "ada"), ("mount", "bob")]
    """
    return Effect(mount, threadsafe=threadsafe)
