"""
Post-commit hooks (cache invalidation, notifications).
Run after the transaction commits; a failing hook is logged and never
affects the committed result or the other hooks.
"""
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

SALE_COMPLETED = "sale.completed"
STOCK_RECEIVED = "stock.received"
STOCK_ADJUSTED = "stock.adjusted"

Hook = Callable[[str, Dict[str, Any]], None]


class PostCommitHooks:
    """Registry of best-effort listeners keyed by event name."""

    def __init__(self):
        self._hooks: Dict[str, List[Hook]] = {}

    def register(self, event: str, hook: Hook) -> None:
        self._hooks.setdefault(event, []).append(hook)

    def clear(self) -> None:
        self._hooks.clear()

    def fire(self, event: str, payload: Dict[str, Any]) -> int:
        """Call every hook for event. Returns how many failed."""
        failures = 0
        for hook in self._hooks.get(event, []):
            try:
                hook(event, payload)
            except Exception as e:
                failures += 1
                logger.warning("Post-commit hook %s for %s failed (non-fatal): %s", getattr(hook, "__name__", hook), event, e)
        return failures


hooks = PostCommitHooks()
