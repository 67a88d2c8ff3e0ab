"""Instruction text and part sequences for generative edit requests.

Both request kinds send image parts first and a single text part last. The
redesign text is assembled from an ordered rule list: each rule pairs a
predicate over the request inputs with an instruction template, and rules are
applied top to bottom. Templates may reference the user prompt and the
ordinal position ("second", "third") of the image they talk about.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from src.domain.entities.image_asset import ImageAsset

RotationDirection = Literal["left", "right"]

_ORDINALS = ("first", "second", "third", "fourth", "fifth")


@dataclass(frozen=True)
class ImagePart:
    mime_type: str
    data: bytes

    @classmethod
    def from_asset(cls, asset: ImageAsset) -> ImagePart:
        return cls(mime_type=asset.mime_type, data=asset.data)


@dataclass(frozen=True)
class TextPart:
    text: str


RequestPart = ImagePart | TextPart


@dataclass(frozen=True)
class EditRequest:
    parts: tuple[RequestPart, ...]

    @property
    def prompt(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def image_parts(self) -> tuple[ImagePart, ...]:
        return tuple(p for p in self.parts if isinstance(p, ImagePart))


@dataclass(frozen=True)
class RedesignInputs:
    image: ImageAsset
    prompt: str
    product: ImageAsset | None = None
    background: ImageAsset | None = None
    is_sketched: bool = False


@dataclass(frozen=True)
class InstructionRule:
    name: str
    applies: Callable[[RedesignInputs], bool]
    template: str
    # Which optional input contributes an image part alongside this block
    attachment: Callable[[RedesignInputs], ImageAsset | None] | None = None


BASE_INSTRUCTION = """**Role and Goal:**
You are an expert AI photo-editor specializing in realistic architectural and landscape modifications. Your task is to edit the provided image based on the user's instructions.

**Primary Directive: EDIT, DO NOT REPLACE.**
This is your most important instruction. You must treat this as an image editing task, not an image generation task.
-   **Preserve the Original:** Maintain the original image's composition, camera angle, lighting, and core structures.
-   **Do Not Alter:** Do not change the fundamental shape of the house, roofline, window placements, door placements, or any other element not explicitly mentioned in the user's request.
-   **Ignore Padding:** The base image may have black padding around it; this padding should be ignored and is not part of the scene to be edited.

**User's Edit Instructions:**
Apply the following changes to the image: "{prompt}"
"""

SKETCH_INSTRUCTION = """
**Critical Instruction: Sketch-Based Editing ONLY.**
The user has provided a sketch on top of the image. This sketch indicates the *only* areas you are allowed to modify.
-   You MUST confine ALL edits *exclusively* to the areas indicated by the sketch.
-   Do NOT alter any other part of the image. The rest of the image must remain identical to the original.
-   The user's text prompt should be interpreted as instructions for *what* to do within the sketched areas. For example, if the prompt says "add a flowerbed" and the user has drawn a circle on the lawn, you must create the flowerbed only inside that circle.
-   Integrate these sketched elements realistically into the scene, matching the existing style and lighting.
"""

PRODUCT_INSTRUCTION = """
**Product Placement Instructions:**
The user has provided a {ordinal} image containing a specific element to add.
-   You MUST photorealistically integrate this exact element into the main scene.
-   Ensure the added element's scale, lighting, and perspective are seamlessly blended into the scene to look natural.
"""

BACKGROUND_INSTRUCTION = """
**Critical Task: Background Replacement**
The user has provided a new background image. Your primary task is to perform a professional-grade photo composition.

**Image Roles:**
-   **Main Image (first image):** Contains the primary subject (e.g., a house, a person, an object).
-   **Background Image ({ordinal} image provided):** This is the new environment.

**Step-by-Step Composition Directive:**
1.  **Isolate the Subject:** Accurately identify and isolate the main subject from the first image. Ignore its original background.
2.  **Analyze the New Environment:** Scrutinize the provided background image. Pay close attention to:
    -   **Lighting Source & Direction:** Where is the sun or primary light? What direction are the shadows falling?
    -   **Color Temperature:** Is the light warm (golden hour) or cool (overcast day)?
    -   **Atmosphere:** Is it sunny, foggy, nighttime?
3.  **Integrate and Harmonize:**
    -   Place the isolated subject realistically into the new background.
    -   **Crucially, you MUST re-light the subject.** Adjust its highlights, shadows, and color grading to perfectly match the lighting conditions of the new background. The subject must look like it truly belongs in the new scene, not like it was cut and pasted.
    -   Ensure shadows cast *by* the subject onto the new background are consistent with the environment's light source.
4.  **Scale and Perspective:** Adjust the subject's size and perspective to be believable within the new scene.
5.  **Final Blend:** Seamlessly blend the edges of the subject into the background to create a photorealistic final image. The user's text prompt ("{prompt}") should guide any additional stylistic modifications *after* the composition is complete.
"""

FINAL_OUTPUT_INSTRUCTION = """
**Final Output Requirements:**
-   The output must be a single, high-quality, photorealistic image that is an edited version of the original.
-   It should ONLY contain the modified image. No text, logos, or other artifacts.
"""

ROTATION_INSTRUCTION = """**Role and Goal:** You are an expert AI architectural visualizer. Your function is to generate a photorealistic rendering of a building from a different camera angle, maintaining absolute fidelity to the design shown in the input image.

**Core Task: Incremental Camera Rotation**
The input image is a single viewpoint of a building. Your task is to generate a new photorealistic image showing the *exact same building and its surroundings*, but with the camera viewpoint rotated **precisely {degrees} degrees to the {direction}** from the current view.

**Critical Directives for Continuity and Accuracy:**
-   **Treat Input as Ground Truth:** The provided image is the current state. Your output must be a direct continuation of this view. If the input image is already a rotated view, your task is to rotate it *further*.
-   **Unalterable Architecture:** The building's design, style, materials, textures, and colors are immutable. You MUST NOT alter any existing architectural elements (walls, rooflines, windows, doors, etc.).
-   **Realistic Extrapolation:** The primary challenge is to realistically render the parts of the building and environment that become visible after the {degrees}-degree rotation. These newly visible sections MUST be a logical and consistent extension of the visible architecture. For example, a brick wall must continue as a brick wall. A window pattern should continue logically.
-   **Consistent Environment:** Maintain the identical lighting conditions (time of day, shadow direction), weather, and landscaping style from the input image. The world around the building does not change, only the camera's position.
-   **Ignore Padding:** The input image may have black padding. This is an artifact and must be completely ignored. It is not part of the scene.

**Final Output Requirements:**
-   The output MUST be a single, high-quality, photorealistic image of the building from the new {degrees}-degree viewpoint.
-   The image should be clean, without any text, watermarks, or other artifacts.
-   Ensure the perspective shift is accurate and feels like a real camera movement.
"""

ROTATION_DEGREES = 45

REDESIGN_RULES: tuple[InstructionRule, ...] = (
    InstructionRule("base", lambda i: True, BASE_INSTRUCTION),
    InstructionRule("sketch", lambda i: i.is_sketched, SKETCH_INSTRUCTION),
    InstructionRule(
        "product",
        lambda i: i.product is not None,
        PRODUCT_INSTRUCTION,
        attachment=lambda i: i.product,
    ),
    InstructionRule(
        "background",
        lambda i: i.background is not None,
        BACKGROUND_INSTRUCTION,
        attachment=lambda i: i.background,
    ),
    InstructionRule("final_output", lambda i: True, FINAL_OUTPUT_INSTRUCTION),
)


def ordinal(position: int) -> str:
    """1-based position as an English ordinal word."""
    if 1 <= position <= len(_ORDINALS):
        return _ORDINALS[position - 1]
    return f"#{position}"


class EditRequestComposer:
    def __init__(self, rules: tuple[InstructionRule, ...] = REDESIGN_RULES) -> None:
        self.rules = rules

    def applicable_rules(self, inputs: RedesignInputs) -> list[InstructionRule]:
        return [rule for rule in self.rules if rule.applies(inputs)]

    def build_redesign(self, inputs: RedesignInputs) -> EditRequest:
        images: list[ImagePart] = [ImagePart.from_asset(inputs.image)]
        text = ""
        for rule in self.applicable_rules(inputs):
            attached = rule.attachment(inputs) if rule.attachment else None
            if attached is not None:
                images.append(ImagePart.from_asset(attached))
            text += rule.template.format(prompt=inputs.prompt, ordinal=ordinal(len(images)))
        return EditRequest(parts=(*images, TextPart(text)))

    def build_rotation(self, image: ImageAsset, direction: str) -> EditRequest:
        if direction not in ("left", "right"):
            raise ValueError("direction must be 'left' or 'right'")
        text = ROTATION_INSTRUCTION.format(direction=direction, degrees=ROTATION_DEGREES)
        return EditRequest(parts=(ImagePart.from_asset(image), TextPart(text)))
