from __future__ import annotations

from dataclasses import dataclass, field, replace

from src.domain.entities.image_asset import ImageAsset


@dataclass(frozen=True)
class HistoryState:
    """Undo/redo state of the active session.

    `cursor` ranges over [-1, len(generations) - 1]; -1 shows the base image.
    `overlay` is the transient sketch layered ahead of the cursor image.
    """

    generations: tuple[ImageAsset, ...] = field(default_factory=tuple)
    cursor: int = -1
    overlay: ImageAsset | None = None

    @classmethod
    def for_session(cls, generations: tuple[ImageAsset, ...]) -> HistoryState:
        generations = tuple(generations)
        return cls(generations=generations, cursor=len(generations) - 1)


# --------- events ---------
@dataclass(frozen=True)
class AppendEdit:
    image: ImageAsset


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


@dataclass(frozen=True)
class RevertToOriginal:
    pass


@dataclass(frozen=True)
class ReplaceBase:
    pass


@dataclass(frozen=True)
class SetOverlay:
    image: ImageAsset


@dataclass(frozen=True)
class ClearOverlay:
    pass


HistoryEvent = AppendEdit | Undo | Redo | RevertToOriginal | ReplaceBase | SetOverlay | ClearOverlay


# --------- transitions ---------
def append_edit(state: HistoryState, image: ImageAsset) -> HistoryState:
    # A new edit drops everything after the cursor
    generations = (*state.generations[: state.cursor + 1], image)
    return HistoryState(generations=generations, cursor=len(generations) - 1, overlay=None)


def undo(state: HistoryState) -> HistoryState:
    if state.cursor < 0:
        return state
    return replace(state, cursor=state.cursor - 1)


def redo(state: HistoryState) -> HistoryState:
    if state.cursor >= len(state.generations) - 1:
        return state
    return replace(state, cursor=state.cursor + 1)


def revert_to_original(state: HistoryState) -> HistoryState:
    return HistoryState()


def replace_base(state: HistoryState) -> HistoryState:
    # Generations were produced against the old base geometry
    return HistoryState()


def set_overlay(state: HistoryState, image: ImageAsset) -> HistoryState:
    return replace(state, overlay=image)


def clear_overlay(state: HistoryState) -> HistoryState:
    if state.overlay is None:
        return state
    return replace(state, overlay=None)


def apply(state: HistoryState, event: HistoryEvent) -> HistoryState:
    if isinstance(event, AppendEdit):
        return append_edit(state, event.image)
    if isinstance(event, Undo):
        return undo(state)
    if isinstance(event, Redo):
        return redo(state)
    if isinstance(event, RevertToOriginal):
        return revert_to_original(state)
    if isinstance(event, ReplaceBase):
        return replace_base(state)
    if isinstance(event, SetOverlay):
        return set_overlay(state, event.image)
    if isinstance(event, ClearOverlay):
        return clear_overlay(state)
    raise ValueError(f"Unsupported history event: {event!r}")


# --------- selectors ---------
def can_undo(state: HistoryState) -> bool:
    return state.cursor >= 0


def can_redo(state: HistoryState) -> bool:
    return state.cursor < len(state.generations) - 1


def current_generation(state: HistoryState) -> ImageAsset | None:
    if state.cursor < 0:
        return None
    return state.generations[state.cursor]


def working_image(state: HistoryState, base: ImageAsset | None) -> ImageAsset | None:
    """Image the next edit starts from: overlay, then history at cursor, then base."""
    if state.overlay is not None:
        return state.overlay
    generation = current_generation(state)
    if generation is not None:
        return generation
    return base
