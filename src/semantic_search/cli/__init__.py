"""
CLI module - unified command-line interface.

Provides entry points for:
- Running the HTTP server
- Preparing the database
- Ingesting, backfilling and searching from the shell
"""

from semantic_search.cli.commands import (
    main,
    run_serve_cli,
    run_init_db_cli,
    run_rebuild_index_cli,
    run_embed_pending_cli,
    run_ingest_cli,
    run_search_cli,
)

__all__ = [
    "main",
    "run_serve_cli",
    "run_init_db_cli",
    "run_rebuild_index_cli",
    "run_embed_pending_cli",
    "run_ingest_cli",
    "run_search_cli",
]
