"""Per-entity-kind comparators used by the sync center."""

from sports_sync.lib.reconciler.engine import Comparator
from sports_sync.lib.reconciler.normalize import normalize_code, normalize_result, normalize_text, normalize_value

COUNTRY = Comparator(
    fields={
        "name": normalize_text,
        "iso2": normalize_code,
        "iso3": normalize_code,
        "image_path": normalize_text,
    },
)

LEAGUE = Comparator(
    fields={"name": normalize_text, "type": normalize_text, "image_path": normalize_text},
)

TEAM = Comparator(
    fields={"name": normalize_text, "type": normalize_text, "image_path": normalize_text},
)

SEASON = Comparator(
    fields={"name": normalize_text, "start_date": normalize_value, "end_date": normalize_value},
)

FIXTURE = Comparator(
    fields={"name": normalize_text, "state": normalize_text, "result": normalize_result},
    sort_key="start_ts",
)

BOOKMAKER = Comparator(fields={"name": normalize_text})

ODDS = Comparator(
    fields={"value": normalize_text, "label": normalize_text, "winning": normalize_value},
    sort_key="starting_at_ts",
)

COMPARATORS: dict[str, Comparator] = {
    "country": COUNTRY,
    "league": LEAGUE,
    "team": TEAM,
    "season": SEASON,
    "fixture": FIXTURE,
    "bookmaker": BOOKMAKER,
    "odds": ODDS,
}


def get_comparator(kind: str) -> Comparator:
    """Comparator for an entity kind.

    Raises:
        ValueError: If the kind is unknown.
    """
    try:
        return COMPARATORS[kind]
    except KeyError:
        msg = f"Unknown entity kind: {kind!r}. Available: {sorted(COMPARATORS)}"
        raise ValueError(msg) from None
