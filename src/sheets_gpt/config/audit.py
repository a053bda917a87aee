"""Configuration audit and source tracking.

This module provides the SourceMap system for tracking which settings layer
supplied each configuration value.
"""

from .types import ConfigOrigin, SourceMap


class SourceTracker:
    """Tracks the origin of configuration values during resolution.

    This class builds up a SourceMap as configuration is resolved from the
    call, document, installation and default layers.
    """

    def __init__(self) -> None:
        """Initialize an empty source tracker."""
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        """Record the origin of a configuration field.

        Args:
            field: The configuration field name
            origin: Which layer supplied the value
        """
        self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        """Get the current source map.

        Returns:
            A copy of the field-to-origin mapping.
        """
        return dict(self._origins)


def generate_telemetry_summary(source_map: SourceMap) -> dict[str, int]:
    """Generate a summary of how many fields each layer supplied.

    Args:
        source_map: The source map to summarize

    Returns:
        Dictionary with counts per origin (e.g., {"call": 1, "default": 7})
    """
    counts: dict[str, int] = {}

    for origin in source_map.values():
        counts[origin] = counts.get(origin, 0) + 1

    return counts
