"""Errors raised by counter stores."""
from __future__ import annotations


class StoreUnavailableError(RuntimeError):
    """The counter store could not be reached or did not confirm the operation.

    Callers must never assume an increment succeeded when this is raised; the
    failure policy of the counter class decides what happens next.
    """
