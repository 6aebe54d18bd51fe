"""
Session-boundary flush.

When the page is hidden or unloaded on a data-entry screen, unsaved
changes are written immediately instead of waiting out the debounce
window. Ordinary navigation elsewhere never forces a network write.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ..config import DEFAULT_FLUSH_CONTEXTS
from ..exceptions import RemoteError
from .scheduler import BackupScheduler

logger = logging.getLogger(__name__)

VISIBILITY_HIDDEN = "hidden"


class SessionBoundaryFlush:
    """Page-leave hooks that flush dirty state on allow-listed contexts."""

    def __init__(
        self,
        scheduler: BackupScheduler,
        flush_contexts: Iterable[str] = DEFAULT_FLUSH_CONTEXTS,
    ):
        self.scheduler = scheduler
        self.flush_contexts = frozenset(flush_contexts)

    def should_flush(self, context: str | None) -> bool:
        if not context or context not in self.flush_contexts:
            return False
        return not self.scheduler.paused and self.scheduler.dirty

    async def on_page_hide(self, context: str | None) -> Any:
        """Handle a page-hide/unload event raised on ``context``.

        Returns:
            The backup result, or None when no flush happened or it failed
        """
        if not self.should_flush(context):
            return None

        logger.debug(f"Flushing unsaved changes on leaving {context}")
        try:
            return await self.scheduler.request_backup(immediate=True)
        except RemoteError as e:
            logger.warning(f"Page-leave flush failed on {context}: {e.message}")
            return None
        except Exception:
            logger.exception(f"Page-leave flush raised unexpectedly on {context}")
            return None

    async def on_visibility_change(self, context: str | None, visibility: str) -> Any:
        """Handle a visibility change; only ``hidden`` can trigger a flush."""
        if visibility != VISIBILITY_HIDDEN:
            return None
        return await self.on_page_hide(context)
