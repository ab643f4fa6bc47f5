# Overview: Apply-local-then-write-remote helper shared by every AppStore mutation.

"""
Optimistic write policy.

1. The local change is applied first, unconditionally.
2. The remote write is attempted once.
3. A RowStoreError from the remote write is logged and swallowed; the local
   change stays in place even though the store may not have it.

There is no retry and no rollback. Callers learn the outcome from the
returned flag if they care; the HTTP layer does not.
"""

from __future__ import annotations

import logging
from typing import Callable

from .row_store import RowStoreError


logger = logging.getLogger(__name__)


def optimistic_write(
    apply_local: Callable[[], None] | None,
    remote_write: Callable[[], None],
    description: str,
) -> bool:
    """
    Run one optimistic mutation.

    Returns True when the remote write succeeded, False when it failed and
    local state was left diverged from the store.
    """
    if apply_local is not None:
        apply_local()
    try:
        remote_write()
    except RowStoreError:
        logger.exception("Error %s", description)
        return False
    return True
