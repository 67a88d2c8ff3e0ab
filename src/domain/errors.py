from __future__ import annotations


class DesignError(Exception):
    """Base class for failures surfaced to the user as a single message."""


class DecodeError(DesignError):
    """Image bytes could not be decoded."""


class RenderError(DesignError):
    """An output surface could not be allocated or encoded."""


class DimensionReadError(DesignError):
    """The native size of an uploaded image could not be determined."""


class NoImageReturnedError(DesignError):
    """The model call succeeded but carried no inline image."""


class GenerationTimeoutError(DesignError, TimeoutError):
    """The model call did not complete within the configured timeout."""


class StoreUnavailableError(DesignError):
    """The durable session store could not be opened."""


class NoActiveSessionError(DesignError):
    pass


class SessionNotFoundError(DesignError):
    pass


class EditInProgressError(DesignError):
    """Another generative edit is still running for this workspace."""
