import asyncio
import logging
from typing import Optional

import typer

from jinlibrary.config import settings
from jinlibrary.context import LibraryContext
from jinlibrary.errors import ApiError, ServerFailure, describe_error
from jinlibrary.models import UserProfile
from jinlibrary.shelf import ShelfSection
from jinlibrary.ui_helpers import (
    print_book_detail,
    print_books,
    print_categories,
    print_loans,
    print_profile,
    set_output_mode,
)
from jinlibrary.validators import RegistrationForm
from jinlibrary.workflow import LoanState

logger = logging.getLogger(__name__)

app = typer.Typer(help=f"{settings.app_name} CLI")

INCORRECT_LOGIN_MESSAGE = "Incorrect account or password. Please try again."
PROFILE_UNAVAILABLE_MESSAGE = "Logged in, but your profile could not be loaded."


def _context() -> LibraryContext:
    return LibraryContext()


def _fail(message: str) -> None:
    print(f"Error: {message}")
    raise typer.Exit(code=1)


def _login_failure_message(error: ApiError) -> str:
    if isinstance(error, ServerFailure) and error.status_code in (400, 401, 403):
        return INCORRECT_LOGIN_MESSAGE
    return f"Login failed: {describe_error(error)}"


async def _sign_in(ctx: LibraryContext, account: str, password: str,
                   require_profile: bool = True) -> Optional[UserProfile]:
    """Log in and wait for the profile; loan actions need the full user.

    A rejected login always ends the command. A missing profile ends it only
    when ``require_profile`` is set; otherwise None is returned and the new
    token stays stored.
    """
    try:
        await ctx.session.login(account, password)
    except ApiError as e:
        logger.info(f"Login failed: {e!r}")
        _fail(_login_failure_message(e))

    user = await ctx.session.wait_for_profile()
    if user is None:
        try:
            user = await ctx.session.refresh_profile()
        except ApiError as e:
            logger.warning(f"Profile still unavailable after login: {e!r}")
            if require_profile:
                _fail(f"{PROFILE_UNAVAILABLE_MESSAGE} {describe_error(e)}")
    if user is None and require_profile:
        _fail(PROFILE_UNAVAILABLE_MESSAGE)
    return user


async def _confirm(prompt: str) -> bool:
    # the prompt blocks on stdin, so keep it off the event loop
    return await asyncio.to_thread(typer.confirm, prompt)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level)
    if output:
        set_output_mode(output)


@app.command("categories")
def cli_categories():
    """List book categories."""
    async def run():
        async with _context() as ctx:
            catalog = ctx.catalog()
            await catalog.initial_load()
            return catalog

    catalog = asyncio.run(run())
    if catalog.view_state.is_error:
        _fail(catalog.view_state.message)
    print_categories(catalog.categories)


@app.command("books")
def cli_books(
    category: Optional[int] = typer.Option(None, "--category", "-c", help="Category id to filter by"),
    search: str = typer.Option("", "--search", "-s", help="Search term"),
):
    """List books, optionally filtered by category and search term."""
    async def run():
        async with _context() as ctx:
            catalog = ctx.catalog()
            if not await catalog.initial_load():
                return catalog
            if category is not None or search.strip():
                await catalog.refine_books(category, search)
            return catalog

    catalog = asyncio.run(run())
    if catalog.view_state.is_error:
        _fail(catalog.view_state.message)
    if catalog.last_refine_error is not None:
        _fail(describe_error(catalog.last_refine_error))
    print_books(catalog.books)


@app.command("book")
def cli_book(book_id: int):
    """Show one book with its copies."""
    async def run():
        async with _context() as ctx:
            page = ctx.book_detail(book_id)
            await page.load()
            return page

    page = asyncio.run(run())
    if page.view_state.is_error:
        _fail(page.view_state.message)
    print_book_detail(page.detail)


@app.command("register")
def cli_register(
    account: str = typer.Option(..., prompt=True),
    name: str = typer.Option(..., prompt=True),
    email: str = typer.Option(..., prompt=True),
    phone: str = typer.Option("", help="Optional phone number"),
    address: str = typer.Option("", help="Optional address"),
):
    """Create a library account."""
    password = typer.prompt("Password", hide_input=True)
    confirm_password = typer.prompt("Confirm password", hide_input=True)
    form = RegistrationForm(account=account, password=password, confirm_password=confirm_password,
                            name=name, email=email, phone=phone, address=address)
    problems = form.errors()
    if problems:
        _fail(" ".join(problems))

    async def run():
        async with _context() as ctx:
            return await ctx.session.register(form.to_request())

    try:
        response = asyncio.run(run())
    except ApiError as e:
        _fail(f"Registration failed: {describe_error(e)}")
    if not response.success:
        _fail(response.message or "Registration failed. Please try again later.")
    print(response.message or "Registration successful.")


@app.command("login")
def cli_login(
    account: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Log in and keep the credential for later sessions."""
    async def run():
        async with _context() as ctx:
            return await _sign_in(ctx, account, password, require_profile=False)

    user = asyncio.run(run())
    if user is None:
        print(f"{PROFILE_UNAVAILABLE_MESSAGE} Try again later.")
        return
    print(f"Logged in as {user.name}.")
    print_profile(user)


@app.command("logout")
def cli_logout():
    """Forget the stored credential."""
    async def run():
        async with _context() as ctx:
            await ctx.session.logout()

    asyncio.run(run())
    print("Logged out.")


@app.command("loans")
def cli_loans(
    section: ShelfSection = typer.Option(ShelfSection.CURRENT, "--section", case_sensitive=False),
    account: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Show your current, past or overdue loans."""
    async def run():
        async with _context() as ctx:
            user = await _sign_in(ctx, account, password)
            shelf = ctx.shelf(section)
            await shelf.load()
            return user, shelf

    user, shelf = asyncio.run(run())
    if shelf.view_state.is_error:
        _fail(shelf.view_state.message)
    if section is ShelfSection.PROFILE:
        print_profile(user)
    else:
        print_loans(shelf.loans, title=f"{section.value.title()} loans")


@app.command("history")
def cli_history(
    account: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Show every book you have borrowed, newest first."""
    async def run():
        async with _context() as ctx:
            user = await _sign_in(ctx, account, password)
            history = ctx.history()
            await history.load_all(user.id)
            return history

    history = asyncio.run(run())
    if history.error_message:
        _fail(history.error_message)
    print_loans(history.loans, title="All loans")


@app.command("borrow")
def cli_borrow(
    book_id: int,
    account: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Borrow a copy of a book after confirming."""
    async def run():
        async with _context() as ctx:
            await _sign_in(ctx, account, password)
            page = ctx.book_detail(book_id)
            await page.load()
            if page.request_borrow() is not LoanState.PENDING_CONFIRMATION:
                return page.workflow.outcome
            if not (yes or await _confirm(page.workflow.confirmation_prompt)):
                page.cancel_borrow()
                return None
            return await page.confirm_borrow()

    outcome = asyncio.run(run())
    if outcome is None:
        print("Cancelled.")
        return
    if not outcome.succeeded:
        _fail(outcome.message)
    print(outcome.message)


@app.command("return")
def cli_return(
    loan_id: int,
    account: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Return a borrowed book after confirming."""
    async def run():
        async with _context() as ctx:
            await _sign_in(ctx, account, password)
            shelf = ctx.shelf(ShelfSection.CURRENT)
            if shelf.request_return(loan_id) is not LoanState.PENDING_CONFIRMATION:
                return shelf.workflow.outcome, shelf
            if not (yes or await _confirm(shelf.workflow.confirmation_prompt)):
                shelf.cancel_return()
                return None, shelf
            return await shelf.confirm_return(), shelf

    outcome, shelf = asyncio.run(run())
    if outcome is None:
        print("Cancelled.")
        return
    if not outcome.succeeded:
        _fail(outcome.message)
    print(outcome.message)
    print_loans(shelf.loans, title="Current loans")


@app.command("version")
def cli_version():
    """Show the client version."""
    print(f"{settings.app_name} {settings.app_version}")


def main():
    app()


if __name__ == "__main__":
    main()
