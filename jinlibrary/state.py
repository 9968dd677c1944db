from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ViewStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    CONTENT = "content"
    ERROR = "error"


@dataclass(frozen=True)
class ViewState:
    """What a screen should show: nothing yet, a spinner, its content, or an error message."""

    status: ViewStatus
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "ViewState":
        return cls(ViewStatus.IDLE)

    @classmethod
    def loading(cls) -> "ViewState":
        return cls(ViewStatus.LOADING)

    @classmethod
    def content(cls) -> "ViewState":
        return cls(ViewStatus.CONTENT)

    @classmethod
    def error(cls, message: str) -> "ViewState":
        return cls(ViewStatus.ERROR, message)

    @property
    def is_loading(self) -> bool:
        return self.status is ViewStatus.LOADING

    @property
    def is_error(self) -> bool:
        return self.status is ViewStatus.ERROR
