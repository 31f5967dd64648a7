from __future__ import annotations


class CreatorCoreError(RuntimeError):
    """Base class for errors raised by the scoring core."""


class NotFoundError(CreatorCoreError):
    """Campaign, run or creator is absent or outside the caller's org."""


class RunAlreadyActiveError(CreatorCoreError):
    """A classification run is already in progress."""


class InvalidInputError(CreatorCoreError, ValueError):
    """Malformed filters, budget or other request options."""


class DeadlineExceededError(CreatorCoreError):
    """An external resolver call or a generation pass ran past its deadline."""


class InternalError(CreatorCoreError):
    """Persistence failure; details are logged, not surfaced."""


class ResolverError(CreatorCoreError):
    """The external genre resolver failed to produce an answer."""
