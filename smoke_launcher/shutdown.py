"""Process-wide registry of hooks to run when the host interpreter exits.

Each launched application registers a hook that kills it if it is still
running when the test runner goes away, so crashed runs do not leave GUI
processes behind. The registry fires at most once.
"""

from __future__ import annotations

import atexit
import itertools
import logging
import threading
import typing as t

from .errors import ShutdownInProgressError

logger = logging.getLogger(__name__)

ShutdownHook = t.Callable[[], None]


class ShutdownHooks:
    """Thread-safe, single-fire collection of shutdown callbacks."""

    def __init__(self) -> None:
        self._hooks: dict[int, ShutdownHook] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()
        self._fired = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._hooks)

    @property
    def fired(self) -> bool:
        """Return ``True`` once :meth:`fire` has run."""
        return self._fired

    def register(self, hook: ShutdownHook) -> int:
        """Add *hook* and return a token for :meth:`unregister`."""
        with self._lock:
            if self._fired:
                msg = "Cannot register a shutdown hook while shutting down"
                raise ShutdownInProgressError(msg)
            token = next(self._tokens)
            self._hooks[token] = hook
            return token

    def unregister(self, token: int) -> None:
        """Remove the hook registered under *token*; unknown tokens are ignored."""
        with self._lock:
            self._hooks.pop(token, None)

    def fire(self) -> None:
        """Run every registered hook once, in registration order.

        Hook failures are logged so the remaining hooks still run.
        """
        with self._lock:
            if self._fired:
                return
            self._fired = True
            hooks = list(self._hooks.values())
            self._hooks.clear()

        for hook in hooks:
            try:
                hook()
            except Exception:  # noqa: BLE001 - keep running remaining hooks
                logger.exception("Shutdown hook %r failed", hook)


_registry = ShutdownHooks()
_install_lock = threading.Lock()
_installed = False


def _ensure_installed() -> None:
    global _installed
    with _install_lock:
        if not _installed:
            atexit.register(_fire_registry)
            _installed = True


def _fire_registry() -> None:
    _registry.fire()


def get_registry() -> ShutdownHooks:
    """Return the process-wide :class:`ShutdownHooks` instance."""
    return _registry


def register_shutdown_hook(hook: ShutdownHook) -> int:
    """Register *hook* to run when the interpreter exits."""
    _ensure_installed()
    return _registry.register(hook)


def unregister_shutdown_hook(token: int) -> None:
    """Drop the hook registered under *token*."""
    _registry.unregister(token)


__all__ = [
    "ShutdownHook",
    "ShutdownHooks",
    "get_registry",
    "register_shutdown_hook",
    "unregister_shutdown_hook",
]
