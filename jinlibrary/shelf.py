"""The signed-in user's personal page: profile and loan lists, plus returning books."""

import logging
from enum import Enum
from typing import List, Optional

from jinlibrary.errors import ApiError
from jinlibrary.models import Loan
from jinlibrary.services.library_api import LibraryAPI
from jinlibrary.session import SessionController
from jinlibrary.state import ViewState
from jinlibrary.workflow import LoanOutcome, LoanState, LoanWorkflow

logger = logging.getLogger(__name__)

NO_USER_MESSAGE = "Could not determine the current user. Please log in again."
LOANS_LOAD_FAILED_MESSAGE = "Could not load your loans. Please try again later."


class ShelfSection(Enum):
    PROFILE = "profile"
    CURRENT = "current"
    HISTORY = "history"
    OVERDUE = "overdue"


class LoanShelf:
    def __init__(self, api: LibraryAPI, session: SessionController,
                 section: ShelfSection = ShelfSection.CURRENT) -> None:
        self.api = api
        self.session = session
        self.section = section
        self.loans: List[Loan] = []
        self.view_state: ViewState = ViewState.idle()
        self.workflow = LoanWorkflow(api, session)

    async def select(self, section: ShelfSection) -> bool:
        """Switch sections; the list is only reloaded when the section actually changes."""
        if section is self.section:
            return False
        self.section = section
        return await self.load()

    async def load(self) -> bool:
        user = self.session.user
        if user is None:
            self.view_state = ViewState.error(NO_USER_MESSAGE)
            return False

        self.view_state = ViewState.loading()
        try:
            if self.section is ShelfSection.PROFILE:
                # The profile comes from the session itself
                self.loans = []
            elif self.section is ShelfSection.CURRENT:
                self.loans = await self.api.fetch_current_loans(user.id)
            elif self.section is ShelfSection.HISTORY:
                self.loans = await self.api.fetch_loan_history(user.id)
            else:
                self.loans = await self.api.fetch_overdue_loans(user.id)
        except ApiError as e:
            logger.warning(f"Loading {self.section.value} loans failed: {e!r}")
            self.view_state = ViewState.error(LOANS_LOAD_FAILED_MESSAGE)
            return False

        self.view_state = ViewState.content()
        return True

    def request_return(self, loan_id: int) -> Optional[LoanState]:
        return self.workflow.request_return(loan_id)

    def cancel_return(self) -> bool:
        return self.workflow.cancel()

    async def confirm_return(self) -> Optional[LoanOutcome]:
        outcome = await self.workflow.confirm()
        if outcome is None or not outcome.succeeded:
            return outcome

        if self.section is ShelfSection.CURRENT and outcome.loans is not None:
            self.loans = outcome.loans
            self.view_state = ViewState.content()
        elif self.section is not ShelfSection.CURRENT:
            await self.load()
        return outcome
