import io
from unittest.mock import Mock

import pytest
from PIL import Image

from src.application.use_cases.create_session import CreateSessionUseCase
from src.application.use_cases.edit_canvas import EditCanvasUseCase
from src.application.use_cases.redesign_image import RedesignImageUseCase
from src.application.use_cases.rotate_view import RotateViewUseCase
from src.domain.entities.design_session import Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import DimensionReadError, NoImageReturnedError
from src.domain.services.geometry_service import GeometryService, Margins
from src.domain.services.prompt_composer import EditRequestComposer

SIZE = 64


def size_of(asset: ImageAsset) -> tuple[int, int]:
    with Image.open(io.BytesIO(asset.data)) as img:
        return img.size


@pytest.fixture()
def generator(make_asset):
    gen = Mock()
    gen.generate.return_value = make_asset(SIZE, SIZE, color=(10, 200, 10))
    return gen


@pytest.fixture()
def redesign(generator):
    return RedesignImageUseCase(generator, GeometryService(), EditRequestComposer(), SIZE)


def test_redesign_returns_original_dimensions(redesign, generator, make_asset):
    result = redesign.execute(make_asset(40, 20), Dimensions(40, 20), "add a pool")

    assert size_of(result.final_image) == (40, 20)
    assert size_of(result.debug_image) == (SIZE, SIZE)
    assert "add a pool" in result.prompt
    request = generator.generate.call_args.args[0]
    assert len(request.image_parts) == 1
    assert request.image_parts[0].data == result.debug_image.data


def test_redesign_uses_base_dimensions_not_working_image(redesign, make_asset):
    # the working image is a generation that already went through a square round-trip
    result = redesign.execute(make_asset(30, 30), Dimensions(90, 30), "x")
    assert size_of(result.final_image) == (90, 30)


def test_redesign_normalizes_attachments(redesign, generator, make_asset):
    redesign.execute(
        make_asset(40, 20),
        Dimensions(40, 20),
        "place the chair",
        product=make_asset(10, 30),
        background=make_asset(50, 10),
        is_sketched=True,
    )
    request = generator.generate.call_args.args[0]
    assert len(request.image_parts) == 3
    for part in request.image_parts:
        assert part.mime_type == "image/jpeg"
        with Image.open(io.BytesIO(part.data)) as img:
            assert img.size == (SIZE, SIZE)
    assert "Sketch-Based Editing ONLY" in request.prompt
    assert "Background Image (third image provided)" in request.prompt


def test_redesign_requires_prompt(redesign, generator, make_asset):
    with pytest.raises(ValueError):
        redesign.execute(make_asset(), Dimensions(40, 20), "   ")
    generator.generate.assert_not_called()


def test_redesign_propagates_missing_image(redesign, generator, make_asset):
    generator.generate.side_effect = NoImageReturnedError("no image")
    with pytest.raises(NoImageReturnedError):
        redesign.execute(make_asset(), Dimensions(40, 20), "x")


def test_rotate_view(generator, make_asset):
    use_case = RotateViewUseCase(generator, GeometryService(), EditRequestComposer(), SIZE)
    result = use_case.execute(make_asset(20, 40), Dimensions(20, 40), "right")
    assert size_of(result.final_image) == (20, 40)
    request = generator.generate.call_args.args[0]
    assert "45 degrees to the right" in request.prompt


def test_rotate_rejects_direction_before_calling_model(generator, make_asset):
    use_case = RotateViewUseCase(generator, GeometryService(), EditRequestComposer(), SIZE)
    with pytest.raises(ValueError):
        use_case.execute(make_asset(), Dimensions(40, 20), "down")
    generator.generate.assert_not_called()


def test_create_session(make_asset):
    image = make_asset(600, 300)
    session = CreateSessionUseCase(GeometryService()).execute(image, existing_count=2)
    assert session.name == "Design 3"
    assert session.original_dimensions == Dimensions(600, 300)
    assert session.generations == ()
    assert session.base_image is image
    assert session.thumbnail.startswith("data:image/jpeg;base64,")
    assert session.created_at.tzinfo is not None


def test_create_session_rejects_unreadable_image():
    with pytest.raises(DimensionReadError):
        CreateSessionUseCase(GeometryService()).execute(ImageAsset(data=b"nope"), existing_count=0)


def test_edit_canvas_trim_and_expand(make_asset):
    use_case = EditCanvasUseCase(GeometryService())
    trimmed = use_case.execute(make_asset(100, 50), "trim", Margins(left=10, right=10))
    assert trimmed.dimensions == Dimensions(80, 50)
    expanded = use_case.execute(make_asset(100, 50), "expand", Margins(top=50), "white")
    assert expanded.dimensions == Dimensions(100, 75)
    assert expanded.thumbnail.startswith("data:image/jpeg")


def test_edit_canvas_rejects_unknown_mode(make_asset):
    with pytest.raises(ValueError):
        EditCanvasUseCase(GeometryService()).execute(make_asset(), "rotate", Margins())
