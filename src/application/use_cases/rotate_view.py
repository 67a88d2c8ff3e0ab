from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.design_session import Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.services.geometry_service import TARGET_SIZE, GeometryService
from src.domain.services.prompt_composer import EditRequestComposer
from src.infrastructure.genai.gemini_client import GeminiImageClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotateResult:
    final_image: ImageAsset


@dataclass
class RotateViewUseCase:
    """Re-render the current design from a camera rotated 45 degrees left or right."""

    generator: GeminiImageClient
    geometry: GeometryService
    composer: EditRequestComposer
    target_size: int = TARGET_SIZE

    def execute(self, image: ImageAsset, dimensions: Dimensions, direction: str) -> RotateResult:
        request = self.composer.build_rotation(
            self.geometry.normalize(image, self.target_size), direction
        )
        logger.info(f"Generating rotated view to the {direction}")
        generated = self.generator.generate(request)
        final = self.geometry.restore(
            generated, dimensions.width, dimensions.height, self.target_size
        )
        return RotateResult(final_image=final)
