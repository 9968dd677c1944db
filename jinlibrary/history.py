"""Everything a user has ever borrowed: current loans merged with loan history."""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from jinlibrary.errors import ApiError, describe_error
from jinlibrary.models import Book, Loan
from jinlibrary.services.library_api import LibraryAPI

logger = logging.getLogger(__name__)


def merge_loans(*groups: Iterable[Loan]) -> List[Loan]:
    """Union of loan lists keyed by loan id, newest loan first.

    When a loan id shows up more than once the first one seen is kept.
    """
    by_id: Dict[int, Loan] = {}
    for group in groups:
        for loan in group:
            by_id.setdefault(loan.loan_id, loan)
    return sorted(by_id.values(), key=lambda loan: loan.loan_date, reverse=True)


class LoanHistoryAggregator:
    def __init__(self, api: LibraryAPI) -> None:
        self.api = api
        self.loans: List[Loan] = []
        self.books: List[Book] = []
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.last_error: Optional[ApiError] = None

    async def load_all(self, user_id: int) -> bool:
        """Fetch current loans, loan history and the catalog together; all or nothing."""
        self.is_loading = True
        self.error_message = None
        self.last_error = None
        try:
            current, history, books = await asyncio.gather(
                self.api.fetch_current_loans(user_id),
                self.api.fetch_loan_history(user_id),
                self.api.fetch_books(),
            )
        except ApiError as e:
            logger.warning(f"Loading the loan history of user {user_id} failed: {e!r}")
            self.error_message = describe_error(e)
            self.last_error = e
            return False
        finally:
            self.is_loading = False

        self.books = books
        self.loans = merge_loans(current, history)
        logger.info(f"User {user_id} has {len(self.loans)} loans on record")
        return True

    def book_for(self, loan: Loan) -> Optional[Book]:
        """Best-effort catalog match for a loan, by title."""
        for book in self.books:
            if book.title == loan.title:
                return book
        return None
