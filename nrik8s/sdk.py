"""In-memory model of integration entities, metric sets and inventory."""

from __future__ import annotations

import math
import numbers
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SourceType(Enum):
    """How a metric value is interpreted."""

    GAUGE = "gauge"
    RATE = "rate"
    DELTA = "delta"
    ATTRIBUTE = "attribute"


class MetricError(ValueError):
    """A metric value could not be stored in a metric set."""


class EntityError(ValueError):
    """An entity could not be defined."""


@dataclass(frozen=True)
class Attribute:
    """A key/value pair attached to every metric set of an entity."""

    key: str
    value: str


def _to_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise MetricError(f"metric {name!r} cannot be a boolean")
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise MetricError(f"metric {name!r} value {value!r} is not numeric") from None
        if math.isnan(number):
            raise MetricError(f"metric {name!r} value {value!r} is not numeric")
        return number
    raise MetricError(f"metric {name!r} value of type {type(value).__name__} is not numeric")


class MetricSet:
    """A sample of metrics for one event type."""

    def __init__(
        self,
        event_type: str,
        attributes: tuple[Attribute, ...] | list[Attribute] = (),
        *,
        store: dict[str, tuple[float, float]] | None = None,
        store_prefix: str = "",
    ) -> None:
        self.metrics: dict[str, Any] = {"event_type": event_type}
        for attribute in attributes:
            self.metrics[attribute.key] = attribute.value
        self._store = store if store is not None else {}
        self._prefix = store_prefix

    def set_metric(self, name: str, value: Any, source_type: SourceType) -> None:
        """Store a metric, validating it against its source type."""
        if source_type is SourceType.ATTRIBUTE:
            if not isinstance(value, str):
                raise MetricError(
                    f"attribute {name!r} must be a string, got {type(value).__name__}"
                )
            self.metrics[name] = value
            return

        number = _to_float(name, value)
        if source_type in (SourceType.RATE, SourceType.DELTA):
            number = self._elapsed_difference(name, number, source_type)
        self.metrics[name] = number

    def _elapsed_difference(self, name: str, value: float, source_type: SourceType) -> float:
        key = f"{self._prefix}{name}"
        now = time.monotonic()
        previous = self._store.get(key)
        self._store[key] = (value, now)
        if previous is None:
            return 0.0
        previous_value, previous_time = previous
        difference = value - previous_value
        if difference < 0:
            return 0.0
        if source_type is SourceType.RATE:
            elapsed = now - previous_time
            return difference / elapsed if elapsed > 0 else 0.0
        return difference


@dataclass
class Inventory:
    """Inventory items indexed by key and field."""

    items: dict[str, dict[str, Any]] = field(default_factory=dict)

    def set_item(self, key: str, field: str, value: Any) -> None:
        """Set one field of an inventory item."""
        self.items.setdefault(key, {})[field] = value


@dataclass(frozen=True)
class EntityMetadata:
    """Identity of an entity."""

    name: str
    namespace: str

    @property
    def key(self) -> str:
        return f"{self.namespace}:{self.name}"


class Entity:
    """A monitored object holding metric sets and inventory."""

    def __init__(
        self, metadata: EntityMetadata, store: dict[str, tuple[float, float]] | None = None
    ) -> None:
        self.metadata = metadata
        self.metrics: list[MetricSet] = []
        self.inventory = Inventory()
        self.attributes: list[Attribute] = []
        self._store = store if store is not None else {}

    def new_metric_set(self, event_type: str) -> MetricSet:
        """Create a metric set carrying the entity's attributes."""
        metric_set = MetricSet(
            event_type,
            self.attributes,
            store=self._store,
            store_prefix=f"{self.metadata.key}:{event_type}:",
        )
        self.metrics.append(metric_set)
        return metric_set

    def add_attributes(self, *attributes: Attribute) -> None:
        """Attach attributes to metric sets created from now on."""
        self.attributes.extend(attributes)


class Integration:
    """A collection of entities reported under one integration name."""

    def __init__(self, name: str, version: str) -> None:
        self.name = name
        self.version = version
        self.entities: list[Entity] = []
        self._store: dict[str, tuple[float, float]] = {}

    def entity(self, name: str, namespace: str) -> Entity:
        """Return the entity with this name and namespace, creating it when new."""
        if not name or not namespace:
            raise EntityError("entity name and type are required when defining one")
        metadata = EntityMetadata(name, namespace)
        for existing in self.entities:
            if existing.metadata == metadata:
                return existing
        created = Entity(metadata, self._store)
        self.entities.append(created)
        return created

    def clear(self) -> None:
        """Drop all entities."""
        self.entities.clear()