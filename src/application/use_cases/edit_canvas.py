from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from src.domain.entities.design_session import Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.services.geometry_service import FillStyle, GeometryService, Margins

CanvasMode = Literal["trim", "expand"]


@dataclass(frozen=True)
class CanvasEditResult:
    image: ImageAsset
    dimensions: Dimensions
    thumbnail: str


@dataclass
class EditCanvasUseCase:
    """Trim or expand the working image to produce a new base image."""

    geometry: GeometryService

    def execute(
        self,
        image: ImageAsset,
        mode: CanvasMode,
        margins: Margins,
        fill: FillStyle = "blur",
    ) -> CanvasEditResult:
        if mode == "trim":
            edited = self.geometry.trim(image, margins)
        elif mode == "expand":
            edited = self.geometry.expand(image, margins, fill)
        else:
            raise ValueError(f"Unsupported canvas mode: {mode}")
        return CanvasEditResult(
            image=edited,
            dimensions=self.geometry.read_dimensions(edited),
            thumbnail=self.geometry.make_thumbnail(edited),
        )
