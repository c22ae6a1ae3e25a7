"""Host-dispatched extraction adapters."""

from .base import ParseContext, SiteAdapter
from .generic import GenericAdapter, parse_generic
from .greenhouse import GreenhouseAdapter
from .lever import LeverAdapter
from .lifeatspotify import LifeAtSpotifyAdapter
from .revolut import RevolutAdapter
from .team_vk import TeamVkAdapter

GENERIC = GenericAdapter()

# Checked in order; the first match wins
SITE_ADAPTERS: tuple[SiteAdapter, ...] = (
    LifeAtSpotifyAdapter(),
    TeamVkAdapter(),
    RevolutAdapter(),
    LeverAdapter(),
    GreenhouseAdapter(),
)


def get_adapter(hostname: str) -> SiteAdapter:
    """Pick the extraction strategy for a hostname; Generic when nothing matches."""
    for adapter in SITE_ADAPTERS:
        if adapter.matches_host(hostname):
            return adapter
    return GENERIC


__all__ = [
    "GENERIC",
    "SITE_ADAPTERS",
    "GenericAdapter",
    "GreenhouseAdapter",
    "LeverAdapter",
    "LifeAtSpotifyAdapter",
    "ParseContext",
    "RevolutAdapter",
    "SiteAdapter",
    "TeamVkAdapter",
    "get_adapter",
    "parse_generic",
]
