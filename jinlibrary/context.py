from typing import Optional

import httpx

from jinlibrary.book_detail import BookDetailPage
from jinlibrary.catalog import CatalogCoordinator
from jinlibrary.history import LoanHistoryAggregator
from jinlibrary.services.credential_store import CredentialStore
from jinlibrary.services.http_client import LibraryHTTPClient
from jinlibrary.services.library_api import LibraryAPI
from jinlibrary.session import SessionController
from jinlibrary.shelf import LoanShelf, ShelfSection


class LibraryContext:
    """Wires one credential store, gateway and session for the running process.

    Screens are created through the factory methods so each receives the same
    session handle instead of reaching for global state.
    """

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials = credentials or CredentialStore()
        self.http = LibraryHTTPClient(self.credentials, base_url=base_url, transport=transport)
        self.api = LibraryAPI(self.http)
        self.session = SessionController(self.api, self.credentials)
        self.session.bootstrap()

    def catalog(self) -> CatalogCoordinator:
        return CatalogCoordinator(self.api)

    def book_detail(self, book_id: int) -> BookDetailPage:
        return BookDetailPage(self.api, self.session, book_id)

    def shelf(self, section: ShelfSection = ShelfSection.CURRENT) -> LoanShelf:
        return LoanShelf(self.api, self.session, section)

    def history(self) -> LoanHistoryAggregator:
        return LoanHistoryAggregator(self.api)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
