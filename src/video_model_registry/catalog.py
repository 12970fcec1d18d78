"""Static model catalog and the model list view-model."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .logging import LogEvent, log_info, log_warning
from .pricing import to_money


@dataclass(frozen=True)
class ModelEntry:
    """A model as listed in the catalog.

    Attributes:
        id: Stable catalog id
        title: Display title
        model_name: Name used by the option and pricing configuration
        description: Short description
        image_name: Thumbnail asset name
        cost: Flat base cost in dollars
        type: Catalog type label
        capabilities: Capability labels
    """

    id: str
    title: str
    model_name: str
    description: str = ""
    image_name: Optional[str] = None
    cost: Decimal = Decimal("0")
    type: str = "AI Video Model"
    capabilities: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelEntry":
        model_name = str(data.get("model_name") or data["title"])
        cost = data.get("cost")
        return cls(
            id=str(data.get("id") or model_name),
            title=str(data.get("title") or model_name),
            model_name=model_name,
            description=str(data.get("description") or ""),
            image_name=data.get("image_name"),
            cost=to_money(cost) if cost is not None else Decimal("0"),
            type=str(data.get("type") or "AI Video Model"),
            capabilities=tuple(str(c) for c in data.get("capabilities") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "model_name": self.model_name,
            "description": self.description,
            "image_name": self.image_name,
            "cost": str(self.cost),
            "type": self.type,
            "capabilities": list(self.capabilities),
        }


class ModelCatalog:
    """Ordered, immutable list of catalog entries."""

    def __init__(self, entries: Sequence[ModelEntry] = ()):
        self._entries: Tuple[ModelEntry, ...] = tuple(entries)
        self._by_name: Dict[str, ModelEntry] = {}
        for entry in self._entries:
            self._by_name.setdefault(entry.model_name, entry)

    @classmethod
    def from_list(cls, items: Sequence[Any]) -> "ModelCatalog":
        """Build the catalog from the ``catalog`` list of ``models.yml``.

        Malformed entries are logged and skipped.
        """
        entries: List[ModelEntry] = []
        for position, item in enumerate(items):
            try:
                if not isinstance(item, Mapping):
                    raise ValueError("catalog entry must be a mapping")
                entries.append(ModelEntry.from_dict(item))
            except (ValueError, KeyError, TypeError) as e:
                log_warning(
                    LogEvent.MODEL_REGISTRY,
                    "Invalid catalog entry ignored",
                    position=position,
                    error=str(e),
                )
        log_info(LogEvent.MODEL_REGISTRY, "Catalog loaded", entries=len(entries))
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._by_name

    def entries(self) -> List[ModelEntry]:
        return list(self._entries)

    def get(self, model_name: str) -> Optional[ModelEntry]:
        """Return the entry for ``model_name``, or None."""
        return self._by_name.get(model_name)


class CatalogFilter(Enum):
    """Capability filter for the model list, in picker order."""

    ALL = None
    TEXT_TO_VIDEO = "Text to Video"
    IMAGE_TO_VIDEO = "Image to Video"
    VIDEO_TO_VIDEO = "Video to Video"
    AUDIO = "Audio"

    def matches(self, entry: ModelEntry) -> bool:
        return self.value is None or self.value in entry.capabilities


class SortOrder(int, Enum):
    """Price sort for the model list."""

    DEFAULT = 0
    PRICE_ASC = 1
    PRICE_DESC = 2

    def next(self) -> "SortOrder":
        return SortOrder((self.value + 1) % len(SortOrder))


class ModelListView:
    """Filter, sort and search state for a model list."""

    def __init__(self, catalog: ModelCatalog, filter: CatalogFilter = CatalogFilter.ALL):
        self.catalog = catalog
        self.filter = filter
        self.sort_order = SortOrder.DEFAULT
        self.search_text = ""

    @property
    def filter_index(self) -> int:
        """Position of the current filter in picker order."""
        return list(CatalogFilter).index(self.filter)

    @filter_index.setter
    def filter_index(self, index: int) -> None:
        filters = list(CatalogFilter)
        self.filter = filters[index] if 0 <= index < len(filters) else CatalogFilter.ALL

    @property
    def has_active_filters(self) -> bool:
        return self.filter is not CatalogFilter.ALL or self.sort_order is not SortOrder.DEFAULT or bool(self.search_text)

    def clear_filters(self) -> None:
        self.filter = CatalogFilter.ALL
        self.sort_order = SortOrder.DEFAULT
        self.search_text = ""

    def cycle_sort(self) -> SortOrder:
        """Advance to the next sort order and return it."""
        self.sort_order = self.sort_order.next()
        return self.sort_order

    def search(self, text: str) -> List[ModelEntry]:
        """Set the search text and return the visible entries."""
        self.search_text = text.strip()
        return self.visible()

    def _matches_search(self, entry: ModelEntry) -> bool:
        if not self.search_text:
            return True
        needle = self.search_text.lower()
        return any(needle in field.lower() for field in (entry.title, entry.model_name, entry.description))

    def visible(self) -> List[ModelEntry]:
        """Entries after filter and search, then sorted by cost."""
        entries = [e for e in self.catalog.entries() if self.filter.matches(e) and self._matches_search(e)]
        if self.sort_order is SortOrder.PRICE_ASC:
            entries.sort(key=lambda e: e.cost)
        elif self.sort_order is SortOrder.PRICE_DESC:
            entries.sort(key=lambda e: e.cost, reverse=True)
        return entries
