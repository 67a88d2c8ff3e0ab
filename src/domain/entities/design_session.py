from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from src.domain.entities.image_asset import ImageAsset


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class DesignSession:
    id: str
    name: str
    created_at: datetime
    thumbnail: str  # data URL of a downscaled base image
    base_image: ImageAsset
    # Always describes base_image, never a generated version
    original_dimensions: Dimensions
    generations: tuple[ImageAsset, ...] = field(default_factory=tuple)

    @property
    def timestamp(self) -> int:
        """Creation time in milliseconds since the epoch."""
        return int(self.created_at.timestamp() * 1000)

    def with_generations(self, generations: tuple[ImageAsset, ...]) -> DesignSession:
        return replace(self, generations=tuple(generations))

    def with_base(
        self, base_image: ImageAsset, dimensions: Dimensions, thumbnail: str
    ) -> DesignSession:
        # Earlier generations were produced against the old base geometry
        return replace(
            self,
            base_image=base_image,
            original_dimensions=dimensions,
            thumbnail=thumbnail,
            generations=(),
        )
