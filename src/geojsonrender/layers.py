"""Feature and layer containers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterable

from .geometry import BBox, Geometry


@dataclass(slots=True)
class Feature:
    """A geometry (possibly absent) plus free-form properties.

    Transforms only ever rewrite `geometry`; `properties` and `id` are carried
    through untouched.
    """

    geometry: Geometry | None
    properties: dict[str, Any] = field(default_factory=dict)
    id: str | int | None = None
    bbox: BBox | None = None

    def with_geometry(self, geometry: Geometry | None) -> Feature:
        """Return a sibling feature sharing this feature's id and properties."""
        return Feature(geometry=geometry, properties=self.properties, id=self.id)

    def clone(self) -> Feature:
        return Feature(
            geometry=self.geometry,
            properties=copy.deepcopy(self.properties),
            id=self.id,
            bbox=self.bbox,
        )


@dataclass(slots=True)
class Layer:
    """Ordered features plus layer-level properties, drawn first-in first-out."""

    features: list[Feature] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)
    name: str | None = None
    bbox: BBox | None = None

    @classmethod
    def from_features(
        cls,
        features: Iterable[Feature],
        properties: dict[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> Layer:
        return cls(features=list(features), properties=dict(properties or {}), name=name)

    def __len__(self) -> int:
        return len(self.features)

    def clone(self) -> Layer:
        """Structural deep copy; geometries are immutable and shared."""
        return Layer(
            features=[feature.clone() for feature in self.features],
            properties=copy.deepcopy(self.properties),
            name=self.name,
            bbox=self.bbox,
        )

    def with_features(self, features: Iterable[Feature]) -> Layer:
        """Return a new layer with replaced features and this layer's metadata.

        The cached bbox is dropped because the new features were usually
        produced by a transform.
        """
        return Layer(features=list(features), properties=self.properties, name=self.name)


def clone_layers(layers: Iterable[Layer]) -> list[Layer]:
    return [layer.clone() for layer in layers]
