# errors.py
from __future__ import annotations


class WorldSimError(Exception):
    """Base class for every error raised by the projection/trends/economics core."""


class InvalidScenario(WorldSimError, ValueError):
    """A region lacks the baseline fields the requested domain needs."""

    def __init__(self, region_id: str, missing: list[str], domain: str):
        self.region_id = region_id
        self.missing = list(missing)
        self.domain = domain
        super().__init__(
            f"Region {region_id!r} has no baseline {', '.join(self.missing)} "
            f"required for a {domain} projection"
        )


class InvalidRange(WorldSimError, ValueError):
    """Date range or percentage parameter outside what the engine can project."""


class UnknownSimulationType(WorldSimError, ValueError):
    def __init__(self, simulation_type: object):
        self.simulation_type = simulation_type
        super().__init__(f"Unknown simulation type: {simulation_type!r}")


class UnknownCropType(WorldSimError, ValueError):
    def __init__(self, crop: object):
        self.crop = crop
        super().__init__(f"Unknown crop type: {crop!r}")


class UnknownRegion(WorldSimError, KeyError):
    def __init__(self, region: str):
        self.region = region
        super().__init__(f"Region {region!r} is not in the economics reference table")

    def __str__(self) -> str:
        # KeyError repr()s its argument; keep the plain message
        return self.args[0]


class ConfigError(WorldSimError, ValueError):
    """Malformed economics override file."""
