import pytest

from src.domain.entities.image_asset import ImageAsset
from src.domain.services.prompt_composer import (
    EditRequestComposer,
    ImagePart,
    RedesignInputs,
    TextPart,
    ordinal,
)

MAIN = ImageAsset(data=b"main", mime_type="image/jpeg")
PRODUCT = ImageAsset(data=b"product", mime_type="image/png")
BACKGROUND = ImageAsset(data=b"background", mime_type="image/jpeg")


@pytest.fixture()
def composer():
    return EditRequestComposer()


def test_plain_redesign_has_one_image_then_text(composer):
    request = composer.build_redesign(RedesignInputs(image=MAIN, prompt="add a porch"))
    assert len(request.parts) == 2
    assert isinstance(request.parts[0], ImagePart)
    assert isinstance(request.parts[-1], TextPart)
    assert request.parts[0].data == b"main"
    text = request.prompt
    assert 'Apply the following changes to the image: "add a porch"' in text
    assert "Sketch-Based Editing" not in text
    assert "Product Placement" not in text
    assert "Background Replacement" not in text
    assert text.rstrip().endswith("No text, logos, or other artifacts.")


def test_sketched_request_adds_sketch_block_only(composer):
    request = composer.build_redesign(
        RedesignInputs(image=MAIN, prompt="add a flowerbed", is_sketched=True)
    )
    assert len(request.image_parts) == 1
    assert "Sketch-Based Editing ONLY" in request.prompt
    assert "Product Placement" not in request.prompt


def test_product_and_background_ordering(composer):
    request = composer.build_redesign(
        RedesignInputs(image=MAIN, prompt="modernize", product=PRODUCT, background=BACKGROUND)
    )
    assert [p.data for p in request.image_parts] == [b"main", b"product", b"background"]
    assert isinstance(request.parts[-1], TextPart)
    text = request.prompt
    assert "provided a second image containing a specific element" in text
    assert "Background Image (third image provided)" in text
    assert text.index("Role and Goal") < text.index("Product Placement")
    assert text.index("Product Placement") < text.index("Background Replacement")
    assert text.index("Background Replacement") < text.index("Final Output Requirements")


def test_background_only_is_second_image(composer):
    request = composer.build_redesign(
        RedesignInputs(image=MAIN, prompt="beach house", background=BACKGROUND)
    )
    assert [p.data for p in request.image_parts] == [b"main", b"background"]
    assert "Background Image (second image provided)" in request.prompt
    assert 'The user\'s text prompt ("beach house")' in request.prompt


def test_all_blocks_in_order(composer):
    inputs = RedesignInputs(
        image=MAIN, prompt="x", product=PRODUCT, background=BACKGROUND, is_sketched=True
    )
    request = composer.build_redesign(inputs)
    names = [r.name for r in composer.applicable_rules(inputs)]
    assert names == ["base", "sketch", "product", "background", "final_output"]
    text = request.prompt
    assert text.index("Sketch-Based Editing") < text.index("Product Placement")


def test_prompt_with_braces_is_inserted_verbatim(composer):
    request = composer.build_redesign(RedesignInputs(image=MAIN, prompt="paint {door} red"))
    assert '"paint {door} red"' in request.prompt


@pytest.mark.parametrize("direction", ["left", "right"])
def test_rotation_request(composer, direction):
    request = composer.build_rotation(MAIN, direction)
    assert len(request.parts) == 2
    assert request.parts[0].data == b"main"
    assert f"precisely 45 degrees to the {direction}" in request.prompt
    assert "45-degree rotation" in request.prompt


def test_rotation_rejects_unknown_direction(composer):
    with pytest.raises(ValueError):
        composer.build_rotation(MAIN, "up")


def test_ordinal_words():
    assert ordinal(1) == "first"
    assert ordinal(3) == "third"
    assert ordinal(9) == "#9"
