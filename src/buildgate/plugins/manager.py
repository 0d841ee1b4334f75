"""Plugin discovery, loading, and hook dispatch.

Plugins are installed packages that advertise themselves in the
``buildgate.plugins`` entry-point group. A typical plugin posts stage
results to a chat channel or records build timings.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import pluggy

from buildgate.plugins.hookspecs import BuildgateHookSpec

PROJECT_NAME = "buildgate"
ENTRY_POINT_GROUP = "buildgate.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Thin wrapper over :class:`pluggy.PluginManager` for pipeline events."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(BuildgateHookSpec)
        self._loaded = False

    def discover_and_load(self, *, disabled: list[str] | None = None) -> list[str]:
        """Load every installed plugin except the entry-point names in *disabled*.

        Returns the names of the registered plugins.
        """
        for name in disabled or []:
            self._pm.set_blocked(name)
        count = self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        logger.debug("Loaded %d entry-point plugin(s) from %s", count, ENTRY_POINT_GROUP)
        self._instantiate_classes()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        resolved = name or type(plugin).__name__
        self._pm.register(plugin, name=resolved)
        logger.debug("Registered plugin: %s", resolved)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or type(p).__name__ for p in self._pm.get_plugins()]

    def dispatch(self, hook_name: str, **kwargs: Any) -> None:
        """Call *hook_name* on every plugin.

        Raises whatever a plugin raised; services downgrade it to a warning.
        """
        getattr(self._pm.hook, hook_name)(**kwargs)

    def _instantiate_classes(self) -> None:
        """Swap plugin classes registered by entry points for instances.

        A class registered as-is would be called with ``self`` unbound.
        A class whose constructor fails is dropped with a warning.
        """
        for plugin in [p for p in self._pm.get_plugins() if inspect.isclass(p)]:
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning("Could not instantiate plugin %s", name, exc_info=True)
                continue
            self._pm.register(instance, name=name)
