import logging
from typing import List, Optional

from jinlibrary.errors import ApiError
from jinlibrary.models import BookCopy, BookDetail
from jinlibrary.services.library_api import LibraryAPI
from jinlibrary.session import SessionController
from jinlibrary.state import ViewState
from jinlibrary.workflow import LoanOutcome, LoanState, LoanWorkflow

logger = logging.getLogger(__name__)

DETAIL_LOAD_FAILED_MESSAGE = "Could not load the book details. Please try again later."


class BookDetailPage:
    """One book's detail screen, with its borrow confirmation flow."""

    def __init__(self, api: LibraryAPI, session: SessionController, book_id: int) -> None:
        self.api = api
        self.book_id = book_id
        self.detail: Optional[BookDetail] = None
        self.view_state: ViewState = ViewState.idle()
        self.workflow = LoanWorkflow(api, session)

    async def load(self) -> bool:
        self.view_state = ViewState.loading()
        try:
            self.detail = await self.api.fetch_book_details(self.book_id)
        except ApiError as e:
            logger.warning(f"Loading book #{self.book_id} failed: {e!r}")
            self.view_state = ViewState.error(DETAIL_LOAD_FAILED_MESSAGE)
            return False
        self.view_state = ViewState.content()
        return True

    @property
    def borrowable_copies(self) -> List[BookCopy]:
        return self.detail.borrowable_copies if self.detail else []

    def request_borrow(self) -> Optional[LoanState]:
        return self.workflow.request_borrow(self.book_id)

    def cancel_borrow(self) -> bool:
        return self.workflow.cancel()

    async def confirm_borrow(self) -> Optional[LoanOutcome]:
        outcome = await self.workflow.confirm()
        if outcome is not None and outcome.book_detail is not None:
            self.detail = outcome.book_detail
            self.view_state = ViewState.content()
        return outcome
