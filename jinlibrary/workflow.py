"""Two-phase borrow/return transactions.

A loan action is first *requested* (which only asks the user to confirm),
then *confirmed* (which calls the backend), then reconciled by re-fetching
the server's view of the affected book or loan list. The stages form a small
state machine driven by the pure ``next_state`` function::

    IDLE -> PENDING_CONFIRMATION -> EXECUTING -> SUCCESS | FAILURE

Only one action can be pending or executing per workflow; requests made in
the meantime are ignored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from jinlibrary.errors import ApiError
from jinlibrary.models import BookDetail, BorrowRequest, BorrowResponse, Loan, ReturnRequest, ReturnResponse
from jinlibrary.services.library_api import LibraryAPI
from jinlibrary.session import SessionController

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = "Please log in before borrowing or returning books."
MISSING_USER_MESSAGE = "Could not determine the current user. Please log in again."
REQUEST_FAILED_MESSAGE = "The request could not be completed. Please try again later."
UNKNOWN_REJECTION_MESSAGE = "The library declined the request for an unknown reason."


class LoanState(Enum):
    IDLE = "idle"
    PENDING_CONFIRMATION = "pending_confirmation"
    EXECUTING = "executing"
    SUCCESS = "success"
    FAILURE = "failure"


class LoanEvent(Enum):
    REQUEST = "request"
    DENY = "deny"
    CANCEL = "cancel"
    CONFIRM = "confirm"
    SUCCEED = "succeed"
    FAIL = "fail"
    ACKNOWLEDGE = "acknowledge"


_SETTLED = (LoanState.IDLE, LoanState.SUCCESS, LoanState.FAILURE)

_TRANSITIONS = {
    **{(state, LoanEvent.REQUEST): LoanState.PENDING_CONFIRMATION for state in _SETTLED},
    **{(state, LoanEvent.DENY): LoanState.FAILURE for state in _SETTLED},
    (LoanState.PENDING_CONFIRMATION, LoanEvent.CANCEL): LoanState.IDLE,
    (LoanState.PENDING_CONFIRMATION, LoanEvent.CONFIRM): LoanState.EXECUTING,
    (LoanState.PENDING_CONFIRMATION, LoanEvent.DENY): LoanState.FAILURE,
    (LoanState.EXECUTING, LoanEvent.SUCCEED): LoanState.SUCCESS,
    (LoanState.EXECUTING, LoanEvent.FAIL): LoanState.FAILURE,
    (LoanState.SUCCESS, LoanEvent.ACKNOWLEDGE): LoanState.IDLE,
    (LoanState.FAILURE, LoanEvent.ACKNOWLEDGE): LoanState.IDLE,
}


def next_state(state: LoanState, event: LoanEvent) -> Optional[LoanState]:
    """Return the state ``event`` leads to from ``state``, or None if it is not allowed."""
    return _TRANSITIONS.get((state, event))


class LoanActionKind(Enum):
    BORROW = "borrow"
    RETURN = "return"


@dataclass(frozen=True)
class LoanAction:
    kind: LoanActionKind
    # book id for a borrow, loan id for a return
    target_id: int

    @property
    def prompt(self) -> str:
        if self.kind is LoanActionKind.BORROW:
            return f"Borrow book #{self.target_id}?"
        return f"Return loan #{self.target_id}?"


class OutcomeKind(Enum):
    SUCCESS = "success"
    REJECTED = "rejected"
    REQUEST_FAILED = "request_failed"
    AUTH_REQUIRED = "auth_required"


@dataclass(frozen=True)
class LoanOutcome:
    """How a loan action ended.

    ``REJECTED`` is a well-formed ``success: false`` answer from the backend;
    ``REQUEST_FAILED`` is a transport or decoding failure, kept in ``error``.
    After a success, ``book_detail`` (borrow) or ``loans`` (return) hold the
    re-fetched server state, unless that re-fetch failed (``refresh_error``).
    """

    kind: OutcomeKind
    action: LoanAction
    message: str
    response: Union[BorrowResponse, ReturnResponse, None] = None
    error: Optional[ApiError] = None
    book_detail: Optional[BookDetail] = None
    loans: Optional[List[Loan]] = None
    refresh_error: Optional[ApiError] = None

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


class LoanWorkflow:
    def __init__(self, api: LibraryAPI, session: SessionController) -> None:
        self.api = api
        self.session = session
        self.state = LoanState.IDLE
        self.pending: Optional[LoanAction] = None
        self.outcome: Optional[LoanOutcome] = None

    @property
    def is_busy(self) -> bool:
        return self.state in (LoanState.PENDING_CONFIRMATION, LoanState.EXECUTING)

    @property
    def confirmation_prompt(self) -> Optional[str]:
        if self.state is LoanState.PENDING_CONFIRMATION and self.pending is not None:
            return self.pending.prompt
        return None

    def request_borrow(self, book_id: int) -> Optional[LoanState]:
        return self._request(LoanAction(LoanActionKind.BORROW, book_id))

    def request_return(self, loan_id: int) -> Optional[LoanState]:
        return self._request(LoanAction(LoanActionKind.RETURN, loan_id))

    def cancel(self) -> bool:
        if not self._transition(LoanEvent.CANCEL):
            return False
        logger.debug(f"Cancelled {self.pending}")
        self.pending = None
        return True

    def acknowledge(self) -> bool:
        """Dismiss a finished transaction's result and return to IDLE."""
        if not self._transition(LoanEvent.ACKNOWLEDGE):
            return False
        self.pending = None
        self.outcome = None
        return True

    async def confirm(self) -> Optional[LoanOutcome]:
        """Execute the pending action and reconcile with the server.

        Returns the outcome, or None if nothing was awaiting confirmation.
        """
        action = self.pending
        if self.state is not LoanState.PENDING_CONFIRMATION or action is None:
            logger.info(f"confirm() ignored in state {self.state.value}")
            return None

        user = self.session.user
        if user is None:
            self._transition(LoanEvent.DENY)
            self.outcome = LoanOutcome(OutcomeKind.AUTH_REQUIRED, action, MISSING_USER_MESSAGE)
            return self.outcome

        self._transition(LoanEvent.CONFIRM)
        if action.kind is LoanActionKind.BORROW:
            outcome = await self._borrow(action, user.id)
        else:
            outcome = await self._return(action, user.id)

        self._transition(LoanEvent.SUCCEED if outcome.succeeded else LoanEvent.FAIL)
        self.outcome = outcome
        return outcome

    def _request(self, action: LoanAction) -> Optional[LoanState]:
        if self.is_busy:
            logger.info(f"Ignoring {action.kind.value} request for #{action.target_id}: "
                        f"{self.pending} is still {self.state.value}")
            return None

        if self.session.user is None:
            self._transition(LoanEvent.DENY)
            self.pending = None
            self.outcome = LoanOutcome(OutcomeKind.AUTH_REQUIRED, action, LOGIN_REQUIRED_MESSAGE)
            return self.state

        self._transition(LoanEvent.REQUEST)
        self.pending = action
        self.outcome = None
        return self.state

    async def _borrow(self, action: LoanAction, user_id: int) -> LoanOutcome:
        try:
            response = await self.api.borrow_book(BorrowRequest(book_id=action.target_id, user_id=user_id))
        except ApiError as e:
            logger.warning(f"Borrowing book #{action.target_id} failed: {e!r}")
            return LoanOutcome(OutcomeKind.REQUEST_FAILED, action, REQUEST_FAILED_MESSAGE, error=e)

        if not response.success:
            logger.info(f"Borrowing book #{action.target_id} was declined: {response.message}")
            return LoanOutcome(OutcomeKind.REJECTED, action, response.message or UNKNOWN_REJECTION_MESSAGE,
                               response=response)

        detail, refresh_error = None, None
        try:
            detail = await self.api.fetch_book_details(action.target_id)
        except ApiError as e:
            logger.warning(f"Book #{action.target_id} was borrowed but could not be reloaded: {e!r}")
            refresh_error = e

        title = detail.title if detail is not None else f"book #{action.target_id}"
        code = response.borrowed_book_unique_code or "N/A"
        return LoanOutcome(
            OutcomeKind.SUCCESS,
            action,
            f"You borrowed \"{title}\". Copy code: {code}",
            response=response,
            book_detail=detail,
            refresh_error=refresh_error,
        )

    async def _return(self, action: LoanAction, user_id: int) -> LoanOutcome:
        try:
            response = await self.api.return_book(ReturnRequest(loan_id=action.target_id, user_id=user_id))
        except ApiError as e:
            logger.warning(f"Returning loan #{action.target_id} failed: {e!r}")
            return LoanOutcome(OutcomeKind.REQUEST_FAILED, action, REQUEST_FAILED_MESSAGE, error=e)

        if not response.success:
            logger.info(f"Returning loan #{action.target_id} was declined: {response.message}")
            return LoanOutcome(OutcomeKind.REJECTED, action, response.message or UNKNOWN_REJECTION_MESSAGE,
                               response=response)

        loans, refresh_error = None, None
        try:
            loans = await self.api.fetch_current_loans(user_id)
        except ApiError as e:
            logger.warning(f"Loan #{action.target_id} was returned but current loans could not be reloaded: {e!r}")
            refresh_error = e

        return LoanOutcome(
            OutcomeKind.SUCCESS,
            action,
            "The book was returned successfully.",
            response=response,
            loans=loans,
            refresh_error=refresh_error,
        )

    def _transition(self, event: LoanEvent) -> bool:
        target = next_state(self.state, event)
        if target is None:
            return False
        logger.debug(f"Loan workflow {self.state.value} --{event.value}--> {target.value}")
        self.state = target
        return True
