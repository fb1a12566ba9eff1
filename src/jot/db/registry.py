"""
Backend registry.

Maps a plugin kind (``notes``, ``calendar``, ``keep``, ``notion``) to a
factory. ``notes`` is registered by default; remote kinds need an
authenticated client, so callers register them with the client bound in.
Third-party packages can also register factories through entry points
(group: ``jot.backends``) in their own ``pyproject.toml``:

    [project.entry-points."jot.backends"]
    todoist = "my_package.backend:make_todoist_backend"
"""

from __future__ import annotations

from collections.abc import Callable
from importlib.metadata import entry_points
from typing import Any

from loguru import logger

from jot.core.exceptions import ConfigurationError

from .backend import Backend

NOTES = "notes"
CALENDAR = "calendar"
KEEP = "keep"
NOTION = "notion"

BackendFactory = Callable[..., Backend]


class BackendRegistry:
    """Discover and build backends by kind."""

    def __init__(self):
        self._factories: dict[str, BackendFactory] = {}

    def discover(self) -> dict[str, BackendFactory]:
        """Scan entry points and return {kind: factory}."""
        for ep in entry_points(group="jot.backends"):
            try:
                self._factories[ep.name] = ep.load()
                logger.debug(f"Discovered backend: {ep.name}")
            except Exception as e:
                logger.warning(f"Failed to load backend '{ep.name}': {e}")
        return dict(self._factories)

    def register(self, kind: str, factory: BackendFactory) -> None:
        self._factories[kind] = factory

    def get(self, kind: str) -> BackendFactory | None:
        return self._factories.get(kind)

    def list_names(self) -> list[str]:
        return list(self._factories.keys())

    def create(self, kind: str, **settings: Any) -> Backend:
        """Build a backend of ``kind`` with the given settings."""
        factory = self._factories.get(kind)
        if factory is None:
            raise ConfigurationError(f"No backend registered as '{kind}'. Available: {self.list_names()}")
        return factory(**settings)

    def create_from_config(self, kind: str, config, **extra: Any) -> Backend:
        """Build ``kind`` with settings taken from a :class:`~jot.core.config.Config`."""
        settings = settings_from_config(kind, config)
        settings.update(extra)
        return self.create(kind, **settings)


def settings_from_config(kind: str, config) -> dict[str, Any]:
    """Constructor arguments for ``kind`` drawn from validated configuration."""
    validated = config.validated()
    if kind == NOTES:
        return {
            "directory": str(validated.notes.directory),
            "watch": validated.notes.watch,
            "author": validated.notes.author,
        }
    remote = getattr(validated.backends, kind, None)
    if remote is None:
        return {}
    if isinstance(remote, dict):
        return {"refresh_interval": config.refresh_interval(kind)}
    return {"refresh_interval": remote.refresh_interval}


def _notes_factory(directory: str, watch: bool = True, **kwargs: Any) -> Backend:
    from jot.notes.store import FilesystemStore

    return FilesystemStore(directory, watch=watch, **kwargs)


def default_registry() -> BackendRegistry:
    """A registry with the built-in filesystem ``notes`` backend."""
    registry = BackendRegistry()
    registry.register(NOTES, _notes_factory)
    return registry
