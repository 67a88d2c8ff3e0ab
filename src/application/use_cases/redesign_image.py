from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.design_session import Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.services.geometry_service import TARGET_SIZE, GeometryService
from src.domain.services.prompt_composer import EditRequestComposer, RedesignInputs
from src.infrastructure.genai.gemini_client import GeminiImageClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedesignResult:
    final_image: ImageAsset
    debug_image: ImageAsset  # the padded square actually sent to the model
    prompt: str


@dataclass
class RedesignImageUseCase:
    generator: GeminiImageClient
    geometry: GeometryService
    composer: EditRequestComposer
    target_size: int = TARGET_SIZE

    def execute(
        self,
        image: ImageAsset,
        dimensions: Dimensions,
        prompt: str,
        product: ImageAsset | None = None,
        background: ImageAsset | None = None,
        is_sketched: bool = False,
    ) -> RedesignResult:
        """
        Redesign the working image according to a free-text prompt.

        WORKFLOW:
        1. Letterbox the working image (and any product/background image) into
           a square of `target_size`
        2. Compose the instruction text and part sequence
        3. Submit to the image model
        4. Crop the square answer back to the original base image's aspect ratio

        `dimensions` must be those of the session's base image: the working
        image may be a square-derived generation that lost the true ratio.

        Raises:
            ValueError: If the prompt is empty
            DecodeError, RenderError: If an image cannot be processed
            NoImageReturnedError: If the model answers without an image
        """
        if not prompt or not prompt.strip():
            raise ValueError("A design prompt is required")

        logger.info("Starting redesign")
        padded = self.geometry.normalize(image, self.target_size)
        inputs = RedesignInputs(
            image=padded,
            prompt=prompt,
            product=self.geometry.normalize(product, self.target_size) if product else None,
            background=(
                self.geometry.normalize(background, self.target_size) if background else None
            ),
            is_sketched=is_sketched,
        )
        request = self.composer.build_redesign(inputs)
        generated = self.generator.generate(request)

        logger.info("Cropping generated image to original aspect ratio")
        final = self.geometry.restore(
            generated, dimensions.width, dimensions.height, self.target_size
        )
        return RedesignResult(final_image=final, debug_image=padded, prompt=request.prompt)
