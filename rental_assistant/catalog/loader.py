"""
Property catalog loading.

Reads the bundled JSON dataset and normalizes each listing into an
immutable PropertyRecord.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "properties.json"

MAX_DESCRIPTION_LENGTH = 300


class CatalogError(ValueError):
    """Raised when the property catalog cannot be loaded."""


@dataclass(frozen=True)
class PropertyRecord:
    """A single rental listing, read-only after load."""
    id: Any
    index: int
    title: str
    description: str
    price: float
    city: str
    country: str
    address: str
    bedrooms: int = 0
    bathrooms: int = 0
    parking: int = 0
    has_image: bool = False

    @property
    def location(self) -> str:
        return f"{self.city}, {self.country}"

    @property
    def price_display(self) -> str:
        return f"${_format_price(self.price)}/night"

    @property
    def facilities_text(self) -> str:
        return (
            f"{self.bedrooms} bedrooms, {self.bathrooms} bathrooms, "
            f"{self.parking} parking spaces"
        )

    @property
    def summary(self) -> str:
        return f"{self.title} in {self.location} - {self.price_display}"

    @property
    def is_complete(self) -> bool:
        """True when no field fell back to a placeholder during load."""
        return (
            self.title != "Untitled Property"
            and bool(self.description)
            and self.price > 0
            and self.city != "Unknown"
            and self.country != "Unknown"
        )


@dataclass(frozen=True)
class CatalogStats:
    """Aggregate figures shown in the welcome banner and health check."""
    total_properties: int
    min_price: float
    max_price: float
    avg_price: int
    countries: List[str]
    data_source: str


@dataclass(frozen=True)
class Catalog:
    """Ordered, immutable collection of property records."""
    properties: Tuple[PropertyRecord, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.properties)

    def __iter__(self) -> Iterator[PropertyRecord]:
        return iter(self.properties)

    def countries(self) -> List[str]:
        """Distinct countries in catalog order."""
        seen: List[str] = []
        for record in self.properties:
            if record.country not in seen:
                seen.append(record.country)
        return seen

    def cities(self) -> List[str]:
        seen: List[str] = []
        for record in self.properties:
            if record.city not in seen:
                seen.append(record.city)
        return seen

    def stats(self) -> Optional[CatalogStats]:
        if not self.properties:
            return None

        prices = [p.price for p in self.properties if p.price > 0] or [0]
        return CatalogStats(
            total_properties=len(self.properties),
            min_price=min(prices),
            max_price=max(prices),
            avg_price=round(sum(prices) / len(prices)),
            countries=self.countries(),
            data_source=self.metadata.get("source", "Local JSON file"),
        )


def load_catalog(path: Union[str, Path, None] = None) -> Catalog:
    """Load and normalize the property catalog.

    Args:
        path: JSON file to read (defaults to the bundled dataset)

    Returns:
        Catalog with every listing in file order

    Raises:
        CatalogError: If the file is missing, malformed or holds no properties
    """
    data_path = Path(path) if path else DEFAULT_DATA_PATH
    if not data_path.exists():
        raise CatalogError(f"Properties JSON file not found: {data_path}")

    with open(data_path, 'r', encoding='utf-8') as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Invalid JSON in {data_path}: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("properties"), list):
        raise CatalogError("Invalid JSON structure: properties array not found")
    if not raw["properties"]:
        raise CatalogError(f"No properties found in {data_path}")

    properties = tuple(
        normalize_property(item, index)
        for index, item in enumerate(raw["properties"], start=1)
    )
    metadata = raw.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}

    logger.debug("Loaded %d properties from %s", len(properties), data_path)
    return Catalog(properties=properties, metadata=metadata, source=str(data_path))


def normalize_property(raw: Dict[str, Any], index: int) -> PropertyRecord:
    """Convert one raw JSON listing into a PropertyRecord.

    Missing text fields get placeholder values; facility counts are
    coerced to non-negative integers, accepting ``parkings`` as an
    alias of ``parking``.
    """
    if not isinstance(raw, dict):
        raise CatalogError(f"Property {index} must be an object")

    facilities = raw.get("facilities") or {}
    if not isinstance(facilities, dict):
        facilities = {}

    parking = facilities.get("parkings")
    if not parking:
        parking = facilities.get("parking")

    price = _coerce_price(raw.get("price"))
    if price < 0:
        raise CatalogError(f"Property {index} has a negative price: {price}")

    return PropertyRecord(
        id=raw.get("id", index),
        index=index,
        title=raw.get("title") or "Untitled Property",
        description=(raw.get("description") or "")[:MAX_DESCRIPTION_LENGTH],
        price=price,
        city=raw.get("city") or "Unknown",
        country=raw.get("country") or "Unknown",
        address=raw.get("address") or "Address not provided",
        bedrooms=_coerce_count(facilities.get("bedrooms")),
        bathrooms=_coerce_count(facilities.get("bathrooms")),
        parking=_coerce_count(parking),
        has_image=bool(raw.get("image")),
    )


def _coerce_count(value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def _coerce_price(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    try:
        return float(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def _format_price(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"
