"""State behind the home screen: categories plus the (optionally filtered) book list."""

import asyncio
import logging
from typing import List, Optional

from jinlibrary.errors import ApiError, describe_error
from jinlibrary.models import Book, Category
from jinlibrary.services.library_api import LibraryAPI
from jinlibrary.state import ViewState

logger = logging.getLogger(__name__)


def _normalize_search_term(search_term: Optional[str]) -> Optional[str]:
    if search_term is None or not search_term.strip():
        return None
    return search_term


class CatalogCoordinator:
    def __init__(self, api: LibraryAPI) -> None:
        self.api = api
        self.categories: List[Category] = []
        self.books: List[Book] = []
        self.view_state: ViewState = ViewState.idle()
        self.selected_category_id: Optional[int] = None
        self.search_term: str = ""
        self.last_refine_error: Optional[ApiError] = None
        self._refine_generation = 0

    async def initial_load(self) -> bool:
        """Fetch categories and the unfiltered catalog together.

        Both lists are applied in one step once both calls finished; if either
        call fails the screen shows an error and keeps whatever it had before.
        """
        self.view_state = ViewState.loading()
        try:
            categories, books = await asyncio.gather(
                self.api.fetch_categories(),
                self.api.fetch_books(),
            )
        except ApiError as e:
            logger.warning(f"Initial catalog load failed: {e!r}")
            self.view_state = ViewState.error(describe_error(e))
            return False

        self.categories = categories
        self.books = books
        self.view_state = ViewState.content()
        logger.info(f"Catalog loaded: {len(categories)} categories, {len(books)} books")
        return True

    async def refine_books(self, category_id: Optional[int] = None, search_term: Optional[str] = None) -> bool:
        """Re-fetch only the book list with filters, leaving the view state alone.

        A failure is logged and kept in ``last_refine_error``; the books on
        screen are not erased. If a newer refinement was issued while this one
        was in flight, this result is dropped.
        """
        self._refine_generation += 1
        generation = self._refine_generation
        try:
            books = await self.api.fetch_books(category_id, _normalize_search_term(search_term))
        except ApiError as e:
            logger.warning(f"Refining books failed (category={category_id}, search={search_term!r}): {e!r}")
            if generation == self._refine_generation:
                self.last_refine_error = e
            return False

        if generation != self._refine_generation:
            logger.debug("Dropping a superseded book refinement")
            return False
        self.books = books
        self.last_refine_error = None
        return True

    async def select_category(self, category_id: Optional[int]) -> bool:
        """Filter by category (None means all books), keeping the current search term."""
        self.selected_category_id = category_id
        return await self.refine_books(category_id, self.search_term)

    async def search(self, search_term: str) -> bool:
        self.search_term = search_term or ""
        return await self.refine_books(self.selected_category_id, self.search_term)

    def category_title(self, category_id: Optional[int]) -> Optional[str]:
        for category in self.categories:
            if category.id == category_id:
                return category.title
        return None
