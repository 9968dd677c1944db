"""JinLibrary - Client Core Package

This package contains the client-side modules of the lending app:
- Configuration (config.py)
- Wire models and the date codec (models.py)
- Error taxonomy (errors.py)
- Session lifecycle (session.py)
- Catalog, book detail, loan shelf and history screens' state
- Borrow/return confirmation workflow (workflow.py)
- Terminal front-end (cli.py)
"""

__version__ = "1.0.0"
