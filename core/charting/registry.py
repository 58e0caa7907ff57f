"""Chart plugin registry.

The registry is the lookup surface for chart plugins: the configuration
templates, preview generator, and JSON views resolve chart types through it
instead of importing plugin modules directly.
"""

from __future__ import annotations

from collections.abc import Iterable

from .schema import ChartPluginConfig


class ChartPluginRegistry:
    """Lookup helpers for validated chart plugin configurations."""

    def __init__(self, plugins: Iterable[ChartPluginConfig]) -> None:
        """Initialize a registry from a collection of plugins."""

        self._plugins: dict[str, ChartPluginConfig] = {}
        for plugin in plugins:
            if plugin.name in self._plugins:
                raise ValueError(f"Duplicate chart plugin name: {plugin.name!r}")
            self._plugins[plugin.name] = plugin

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def get(self, name: str) -> ChartPluginConfig | None:
        """Return a plugin by name, or None when missing."""

        return self._plugins.get(name)

    def require(self, name: str) -> ChartPluginConfig:
        """Return a plugin by name.

        Raises:
            LookupError: When no plugin is registered under `name`.
        """

        plugin = self._plugins.get(name)
        if plugin is None:
            raise LookupError(f"Unknown chart plugin: {name!r}")
        return plugin

    def find(self, chart_type: str, library: str) -> ChartPluginConfig | None:
        """Return the plugin drawing `chart_type` with `library`, if any."""

        for plugin in self._plugins.values():
            if plugin.chart_type == chart_type and plugin.library == library:
                return plugin
        return None

    def list(self, *, library: str | None = None, category: str | None = None) -> tuple[ChartPluginConfig, ...]:
        """Return plugins ordered by library then display name, optionally filtered."""

        plugins = [
            plugin
            for plugin in self._plugins.values()
            if (library is None or plugin.library == library) and (category is None or plugin.category == category)
        ]
        return tuple(sorted(plugins, key=lambda p: (p.library, p.display_name.lower(), p.name)))

    def libraries(self) -> tuple[str, ...]:
        """Return the libraries that have at least one plugin, sorted."""

        return tuple(sorted({plugin.library for plugin in self._plugins.values()}))
