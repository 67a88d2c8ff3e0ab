from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from src.application.use_cases.create_session import CreateSessionUseCase
from src.application.use_cases.edit_canvas import CanvasMode, EditCanvasUseCase
from src.application.use_cases.redesign_image import RedesignImageUseCase, RedesignResult
from src.application.use_cases.rotate_view import RotateResult, RotateViewUseCase
from src.domain.entities.design_session import DesignSession, Dimensions
from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import (
    EditInProgressError,
    NoActiveSessionError,
    SessionNotFoundError,
    StoreUnavailableError,
)
from src.domain.services import history_state as hs
from src.domain.services.geometry_service import FillStyle, GeometryService, Margins
from src.infrastructure.database.repositories.session_repository import SessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebugInfo:
    image: ImageAsset
    prompt: str


@dataclass(frozen=True)
class WorkspaceView:
    sessions: tuple[DesignSession, ...]
    active_session_id: str | None
    cursor: int
    generation_count: int
    can_undo: bool
    can_redo: bool
    has_sketch: bool
    has_product: bool
    has_background: bool
    has_debug: bool


class DesignWorkspace:
    """In-memory source of truth for the session list and the active session.

    Persistence is a side effect of confirmed transitions: after create,
    append edit, revert, base replacement and delete, the whole session list
    is written through the repository. Undo/redo and attachment changes are
    not persisted. Store write failures are logged; the in-memory state
    stands.
    """

    def __init__(
        self,
        repository: SessionRepository,
        create_session_uc: CreateSessionUseCase,
        redesign_uc: RedesignImageUseCase,
        rotate_uc: RotateViewUseCase,
        canvas_uc: EditCanvasUseCase,
        geometry: GeometryService | None = None,
    ) -> None:
        self.repository = repository
        self.create_session_uc = create_session_uc
        self.redesign_uc = redesign_uc
        self.rotate_uc = rotate_uc
        self.canvas_uc = canvas_uc
        self.geometry = geometry or GeometryService()

        self.sessions: list[DesignSession] = []
        self.active_session_id: str | None = None
        self.history = hs.HistoryState()
        self.product: ImageAsset | None = None
        self.background: ImageAsset | None = None
        self.debug: DebugInfo | None = None

        self._state_lock = threading.RLock()
        self._edit_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._loaded = False

    # --------- sessions ---------
    def load(self) -> list[DesignSession]:
        """Open the store, load every session and activate the newest.

        Raises:
            StoreUnavailableError: If the store cannot be opened.
        """
        self.repository.open()
        loaded = self.repository.load_all()
        with self._state_lock:
            self.sessions = list(loaded)
            self._clear_working_state()
            self.active_session_id = None
            if self.sessions:
                self._activate(self.sessions[0])
            self._loaded = True
        logger.info(f"Loaded {len(loaded)} design session(s)")
        return loaded

    def create_session(self, image: ImageAsset) -> DesignSession:
        with self._state_lock:
            session = self.create_session_uc.execute(image, existing_count=len(self.sessions))
            self.sessions.insert(0, session)
            self._activate(session)
        logger.info(f"Created session {session.id} ({session.name})")
        self._persist()
        return session

    def select_session(self, session_id: str) -> DesignSession:
        with self._state_lock:
            session = self._find(session_id)
            self._activate(session)
            return session

    def delete_session(self, session_id: str) -> None:
        with self._state_lock:
            self._find(session_id)
            self.sessions = [s for s in self.sessions if s.id != session_id]
            if self.active_session_id == session_id:
                if self.sessions:
                    self._activate(self.sessions[0])
                else:
                    self.new_project()
        logger.info(f"Deleted session {session_id}")
        self._persist()

    def new_project(self) -> None:
        with self._state_lock:
            self._clear_working_state()
            self.active_session_id = None

    @property
    def active_session(self) -> DesignSession | None:
        with self._state_lock:
            if self.active_session_id is None:
                return None
            return next((s for s in self.sessions if s.id == self.active_session_id), None)

    # --------- generative edits ---------
    def redesign(self, prompt: str) -> RedesignResult:
        with self._exclusive_edit():
            with self._state_lock:
                session = self._require_active()
                image = self.working_image()
                product, background = self.product, self.background
                is_sketched = self.history.overlay is not None

            result = self.redesign_uc.execute(
                image,
                session.original_dimensions,
                prompt,
                product=product,
                background=background,
                is_sketched=is_sketched,
            )

            with self._state_lock:
                if self._append_generation(session.id, result.final_image):
                    self.product = None
                    self.background = None
                    self.debug = DebugInfo(image=result.debug_image, prompt=result.prompt)
        self._persist()
        return result

    def rotate(self, direction: str) -> RotateResult:
        with self._exclusive_edit():
            with self._state_lock:
                session = self._require_active()
                image = self.working_image()

            result = self.rotate_uc.execute(image, session.original_dimensions, direction)

            with self._state_lock:
                self._append_generation(session.id, result.final_image)
        self._persist()
        return result

    # --------- history ---------
    def undo(self) -> hs.HistoryState:
        with self._state_lock:
            self.history = hs.undo(self.history)
            return self.history

    def redo(self) -> hs.HistoryState:
        with self._state_lock:
            self.history = hs.redo(self.history)
            return self.history

    def revert_to_original(self) -> None:
        with self._exclusive_edit(), self._state_lock:
            session = self._require_active()
            self.history = hs.revert_to_original(self.history)
            self._update(session.with_generations(()))
        self._persist()

    def replace_base(self, image: ImageAsset) -> DesignSession:
        dimensions = self.geometry.read_dimensions(image)
        thumbnail = self.geometry.make_thumbnail(image)
        with self._exclusive_edit():
            return self._replace_base(image, dimensions, thumbnail)

    def _replace_base(
        self, image: ImageAsset, dimensions: Dimensions, thumbnail: str
    ) -> DesignSession:
        """Swap the active base image. The caller holds the edit lock."""
        with self._state_lock:
            session = self._require_active().with_base(image, dimensions, thumbnail)
            self._update(session)
            self.history = hs.replace_base(self.history)
        logger.info(
            f"Replaced base image of {session.id} ({dimensions.width}x{dimensions.height})"
        )
        self._persist()
        return session

    def edit_canvas(
        self, mode: CanvasMode, margins: Margins, fill: FillStyle = "blur"
    ) -> DesignSession:
        with self._exclusive_edit():
            with self._state_lock:
                self._require_active()
                image = self.working_image()
            edited = self.canvas_uc.execute(image, mode, margins, fill)
            return self._replace_base(edited.image, edited.dimensions, edited.thumbnail)

    # --------- attachments ---------
    def set_sketch(self, image: ImageAsset) -> None:
        with self._state_lock:
            self._require_active()
            self.history = hs.set_overlay(self.history, image)

    def remove_sketch(self) -> None:
        with self._state_lock:
            self.history = hs.clear_overlay(self.history)

    def set_product(self, image: ImageAsset) -> None:
        with self._state_lock:
            self._require_active()
            self.product = image

    def remove_product(self) -> None:
        with self._state_lock:
            self.product = None

    def set_background(self, image: ImageAsset) -> None:
        with self._state_lock:
            self._require_active()
            self.background = image

    def remove_background(self) -> None:
        with self._state_lock:
            self.background = None

    # --------- selectors ---------
    def working_image(self) -> ImageAsset | None:
        """Overlay, then the generation at the cursor, then the base image."""
        with self._state_lock:
            session = self.active_session
            return hs.working_image(self.history, session.base_image if session else None)

    def view(self) -> WorkspaceView:
        with self._state_lock:
            return WorkspaceView(
                sessions=tuple(self.sessions),
                active_session_id=self.active_session_id,
                cursor=self.history.cursor,
                generation_count=len(self.history.generations),
                can_undo=hs.can_undo(self.history),
                can_redo=hs.can_redo(self.history),
                has_sketch=self.history.overlay is not None,
                has_product=self.product is not None,
                has_background=self.background is not None,
                has_debug=self.debug is not None,
            )

    # --------- helpers ---------
    def _find(self, session_id: str) -> DesignSession:
        for session in self.sessions:
            if session.id == session_id:
                return session
        raise SessionNotFoundError(f"Session {session_id} not found")

    def _require_active(self) -> DesignSession:
        session = self.active_session
        if session is None:
            raise NoActiveSessionError("Please upload an image of your property first.")
        return session

    def _activate(self, session: DesignSession) -> None:
        self._clear_working_state()
        self.active_session_id = session.id
        self.history = hs.HistoryState.for_session(session.generations)

    def _clear_working_state(self) -> None:
        self.history = hs.HistoryState()
        self.product = None
        self.background = None
        self.debug = None

    def _update(self, session: DesignSession) -> None:
        self.sessions = [session if s.id == session.id else s for s in self.sessions]

    def _append_generation(self, session_id: str, image: ImageAsset) -> bool:
        """Apply the append-edit transition to the session that started the edit."""
        try:
            session = self._find(session_id)
        except SessionNotFoundError:
            logger.warning(f"Session {session_id} was deleted during generation, result dropped")
            return False
        if self.active_session_id == session_id:
            self.history = hs.append_edit(self.history, image)
            generations = self.history.generations
        else:
            generations = (*session.generations, image)
        self._update(session.with_generations(generations))
        return self.active_session_id == session_id

    @contextmanager
    def _exclusive_edit(self) -> Iterator[None]:
        if not self._edit_lock.acquire(blocking=False):
            raise EditInProgressError("An edit is already in progress. Please wait for it to finish.")
        try:
            yield
        finally:
            self._edit_lock.release()

    def _persist(self) -> None:
        with self._write_lock:
            if not self._loaded and not self._merge_stored():
                return
            with self._state_lock:
                snapshot = list(self.sessions)
            try:
                self.repository.replace_all(snapshot)
            except (RuntimeError, StoreUnavailableError):
                logger.exception("Failed to save sessions")

    def _merge_stored(self) -> bool:
        """Read the store that failed to load and keep its sessions behind the new ones.

        Returns False, leaving the store untouched, while it is still unreachable.
        """
        try:
            self.repository.open()
            stored = self.repository.load_all()
        except StoreUnavailableError as exc:
            logger.error(f"Session store still unavailable, changes kept in memory only: {exc}")
            return False
        with self._state_lock:
            known = {s.id for s in self.sessions}
            self.sessions = self.sessions + [s for s in stored if s.id not in known]
            self._loaded = True
        logger.info(f"Merged {len(stored)} stored design session(s) after reconnecting")
        return True
