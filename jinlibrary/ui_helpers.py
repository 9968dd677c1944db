import json
import os
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from jinlibrary.models import Book, BookDetail, Category, Loan, UserProfile, format_library_datetime

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIBRARY_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def _date(value) -> str:
    return format_library_datetime(value) if value is not None else ""


def print_categories(categories: List[Category]) -> None:
    mode = get_output_mode()
    if not categories:
        print("No categories.")
        return

    if mode == "json":
        _print_json([{"id": c.id, "title": c.title} for c in categories])
    elif mode == "rich":
        table = Table(title="Categories", header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title")
        for c in categories:
            table.add_row(str(c.id), c.title)
        _console.print(table)
    else:
        for c in categories:
            print(f"{c.id} - {c.title}")


def print_books(books: List[Book]) -> None:
    """Print the book list in the current output mode.
    - plain: '<id> - <title> by <author> [available/total]' lines, or 'No books found.'
    - json: array of id, title, author, category, available/total copies
    - rich: table
    """
    mode = get_output_mode()
    if not books:
        print("No books found.")
        return

    if mode == "json":
        _print_json([
            {
                "id": b.id,
                "title": b.title,
                "author": b.author,
                "category": b.category,
                "availableCopies": b.available_copies,
                "totalCopies": b.total_copies,
            }
            for b in books
        ])
    elif mode == "rich":
        table = Table(title="Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title")
        table.add_column("Author")
        table.add_column("Category")
        table.add_column("Available", justify="right")
        for b in books:
            style = "green" if b.has_available_copies else "red"
            table.add_row(str(b.id), b.title, b.author, b.category,
                          f"[{style}]{b.available_copies} / {b.total_copies}[/]")
        _console.print(table)
    else:
        for b in books:
            print(f"{b.id} - {b.title} by {b.author} [{b.available_copies}/{b.total_copies}]")


def print_book_detail(detail: BookDetail) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(detail.model_dump_json(by_alias=True))
        return

    lines = [
        f"Title: {detail.title}",
        f"Author: {detail.author}",
        f"Category: {detail.category}",
        f"Publisher: {detail.publisher} ({detail.publish_year})",
        f"ISBN: {detail.isbn or 'N/A'}",
        f"Available: {detail.available_copies} / {detail.total_copies}",
    ]
    if detail.description:
        lines.append(f"Description: {detail.description}")
    copies = [f"  {copy.unique_code} - {copy.status_description}" for copy in detail.book_copies]

    if mode == "rich":
        body = "\n".join(lines + (["Copies:"] + copies if copies else []))
        _console.print(Panel.fit(body, title=f"Book #{detail.id}", border_style="blue"))
    else:
        print("Book Found")
        for line in lines:
            print(line)
        if copies:
            print("Copies:")
            for line in copies:
                print(line)


def print_loans(loans: List[Loan], title: str = "Loans") -> None:
    mode = get_output_mode()
    if not loans:
        print("No loans.")
        return

    if mode == "json":
        _print_json([loan.model_dump(mode="json", by_alias=True) for loan in loans])
    elif mode == "rich":
        table = Table(title=title, header_style="bold cyan")
        table.add_column("Loan", style="magenta", no_wrap=True)
        table.add_column("Title")
        table.add_column("Copy")
        table.add_column("Borrowed")
        table.add_column("Returned")
        for loan in loans:
            table.add_row(str(loan.loan_id), loan.title, loan.unique_code,
                          _date(loan.loan_date), _date(loan.return_date) or "-")
        _console.print(table)
    else:
        for loan in loans:
            returned = f", returned {_date(loan.return_date)}" if loan.is_returned else ""
            print(f"{loan.loan_id} - {loan.title} ({loan.unique_code}) borrowed {_date(loan.loan_date)}{returned}")


def print_profile(user: UserProfile) -> None:
    mode = get_output_mode()
    fields: Dict[str, Optional[str]] = {
        "Name": user.name,
        "Card": user.card_id,
        "Account": user.account,
        "Email": user.email,
        "Phone": user.phone,
        "Address": user.address,
    }
    if mode == "json":
        print(user.model_dump_json(by_alias=True))
    elif mode == "rich":
        content = "\n".join(f"[bold]{k}:[/] {v or '-'}" for k, v in fields.items())
        _console.print(Panel.fit(content, title="Profile", border_style="blue"))
    else:
        for k, v in fields.items():
            print(f"{k}: {v or '-'}")
