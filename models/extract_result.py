from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping


def _freeze_items(items: Iterable[Mapping[str, Any]] | None) -> tuple[Mapping[str, Any], ...]:
    return tuple(MappingProxyType(dict(item)) for item in items or ())


@dataclass(frozen=True)
class ExtractResult:
    """
    Structured data extracted from one web page.

    POI and non-POI items are kept as the JSON objects the extraction backend
    returned, stored as read-only mappings; the cache only counts them.
    """

    web_page_id: str
    pois: tuple[Mapping[str, Any], ...] = ()
    non_pois: tuple[Mapping[str, Any], ...] = ()
    message: str | None = None
    web_page_title: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "pois", _freeze_items(self.pois))
        object.__setattr__(self, "non_pois", _freeze_items(self.non_pois))

    def __hash__(self) -> int:
        return hash((self.web_page_id, self.message, self.web_page_title, self.poi_count, self.non_poi_count))

    @property
    def poi_count(self) -> int:
        return len(self.pois)

    @property
    def non_poi_count(self) -> int:
        return len(self.non_pois)
