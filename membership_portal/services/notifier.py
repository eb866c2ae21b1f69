from dataclasses import dataclass
from typing import List, Optional
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)

SAVED_LOCALLY = "Changes saved locally"
RESTORED_SESSION = "Restored previous session"
NO_SESSION = "No previous session to restore"
WORKING_OFFLINE = "Auto-save failed. Working offline - changes will be saved locally."

INFO_DISMISS_SECONDS = 3.0
ERROR_DISMISS_SECONDS = 5.0


@dataclass
class Notice:
    message: str
    level: str = "info"  # "info" | "error"
    dismiss_after: float = INFO_DISMISS_SECONDS


class StatusIndicator:
    """
    Non-blocking, auto-dismissing notice surface. Keeps the notice currently
    on screen plus a history of everything shown.
    """

    def __init__(self, scheduler):
        self._scheduler = scheduler
        self.current: Optional[Notice] = None
        self.history: List[Notice] = []
        self._dismiss_handle = None

    def info(self, message: str) -> Notice:
        return self.show(Notice(message, "info", INFO_DISMISS_SECONDS))

    def error(self, message: str) -> Notice:
        return self.show(Notice(message, "error", ERROR_DISMISS_SECONDS))

    def show(self, notice: Notice) -> Notice:
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
        self.current = notice
        self.history.append(notice)
        if notice.level == "error":
            logger.warning(f"Notice: {notice.message}")
        else:
            logger.info(f"Notice: {notice.message}")
        self._dismiss_handle = self._scheduler.call_later(notice.dismiss_after, self._dismiss, notice)
        return notice

    def _dismiss(self, notice: Notice):
        # A newer notice may already have replaced this one
        if self.current is notice:
            self.current = None
            self._dismiss_handle = None

    @property
    def messages(self) -> List[str]:
        return [n.message for n in self.history]
