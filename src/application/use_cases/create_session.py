from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from src.domain.entities.design_session import DesignSession
from src.domain.entities.image_asset import ImageAsset
from src.domain.services.geometry_service import GeometryService


@dataclass
class CreateSessionUseCase:
    geometry: GeometryService

    def execute(self, image: ImageAsset, existing_count: int) -> DesignSession:
        """
        Build a new session around an uploaded base image.

        The original dimensions are captured here, once, and never recomputed
        from padded or generated versions.

        Raises:
            DimensionReadError: If the image's native size cannot be read
        """
        dimensions = self.geometry.read_dimensions(image)
        return DesignSession(
            id=uuid.uuid4().hex,
            name=f"Design {existing_count + 1}",
            created_at=datetime.now(UTC),
            thumbnail=self.geometry.make_thumbnail(image),
            base_image=image,
            original_dimensions=dimensions,
            generations=(),
        )
