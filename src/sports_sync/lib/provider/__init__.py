"""Provider library: pluggable sports reference-data sourcing.

Public API:
    - CountryDTO, LeagueDTO, TeamDTO, SeasonDTO, FixtureDTO, BookmakerDTO, OddsDTO
    - BaseSportsProvider: Abstract provider interface
    - ProviderError: Provider-level error
    - get_provider: Provider factory/registry
"""

from typing import Any

from loguru import logger

from sports_sync.lib.provider.base import (
    BaseSportsProvider,
    BookmakerDTO,
    CountryDTO,
    ExternalId,
    FixtureDTO,
    LeagueDTO,
    OddsDTO,
    ProviderError,
    SeasonDTO,
    TeamDTO,
)
from sports_sync.lib.provider.sportmonks import SportMonksProvider

_PROVIDERS: dict[str, type[BaseSportsProvider]] = {}


def get_provider(name: str, **kwargs: Any) -> BaseSportsProvider:
    """Get a sports-data provider instance by name.

    Args:
        name: Provider name (e.g., "sportmonks").
        **kwargs: Additional arguments forwarded to the provider constructor.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _PROVIDERS.get(name)
    if cls is None:
        msg = f"Unknown sports-data provider: {name!r}. Available: {list(_PROVIDERS.keys())}"
        raise ValueError(msg)
    return cls(**kwargs)


def register_provider(name: str, cls: type[BaseSportsProvider]) -> None:
    """Register a provider class in the global registry."""
    if name in _PROVIDERS:
        logger.warning(f"Overwriting existing sports-data provider {name!r}")
    _PROVIDERS[name] = cls


register_provider("sportmonks", SportMonksProvider)

__all__ = [
    "BaseSportsProvider",
    "BookmakerDTO",
    "CountryDTO",
    "ExternalId",
    "FixtureDTO",
    "LeagueDTO",
    "OddsDTO",
    "ProviderError",
    "SeasonDTO",
    "SportMonksProvider",
    "TeamDTO",
    "get_provider",
    "register_provider",
]
