"""
CLI commands - entry points for operating the search service.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Build and start the service container
4. Do the work, print results
5. Return exit code

CLI commands are thin wrappers; the work lives in the engines.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from semantic_search.config import ServiceConfig, get_config, load_env
from semantic_search.core.errors import SemanticSearchError
from semantic_search.engine.container import ServiceContainer, build_container


def _setup_logging() -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_env() -> ServiceConfig:
    """Load environment variables from .env and build the config."""
    load_env()
    return get_config()


def _start(config: ServiceConfig) -> ServiceContainer:
    container = build_container(config)
    container.startup()
    return container


def run_serve_cli(argv: list[str] | None = None) -> int:
    """CLI entry point for the HTTP server."""
    from semantic_search.api.app import main as serve

    parser = argparse.ArgumentParser(description="Run the search HTTP server")
    parser.parse_args(argv)

    _load_env()
    serve()
    return 0


def run_init_db_cli(argv: list[str] | None = None) -> int:
    """CLI entry point for creating the documents table."""
    parser = argparse.ArgumentParser(description="Create the documents table")
    parser.parse_args(argv)

    config = _load_env()
    container = build_container(config)
    container.store.open()
    try:
        if hasattr(container.store, "create_schema"):
            container.store.create_schema()
    finally:
        container.store.close()

    print(f"Schema ready for table '{config.database.table_name}'")
    return 0


def run_rebuild_index_cli(argv: list[str] | None = None) -> int:
    """CLI entry point for rebuilding the index and reporting corpus counts."""
    parser = argparse.ArgumentParser(description="Rebuild the similarity index from the store")
    parser.parse_args(argv)

    container = _start(_load_env())
    try:
        count = container.index.rebuild(container.store)
        pending = len(container.store.list_pending())
    finally:
        container.shutdown()

    print(f"Indexed documents: {count}")
    print(f"Pending documents: {pending}")
    return 0


def run_embed_pending_cli(argv: list[str] | None = None) -> int:
    """CLI entry point for embedding documents stored without an embedding."""
    parser = argparse.ArgumentParser(description="Embed pending documents")
    parser.add_argument("--batch-size", type=int, default=32, help="Texts per provider call")
    args = parser.parse_args(argv)

    container = _start(_load_env())
    try:
        count = container.ingestion.embed_pending(batch_size=args.batch_size)
    finally:
        container.shutdown()

    print(f"Embedded {count} pending document(s)")
    return 0


def run_ingest_cli(argv: list[str] | None = None) -> int:
    """CLI entry point for ingesting one document."""
    parser = argparse.ArgumentParser(description="Ingest a document")
    parser.add_argument("title", help="Document title")
    parser.add_argument("content", help="Document content")
    args = parser.parse_args(argv)

    container = _start(_load_env())
    try:
        document = container.ingestion.ingest(args.title, args.content)
    finally:
        container.shutdown()

    print(f"Ingested document {document.id}: {document.title}")
    return 0


def run_search_cli(argv: list[str] | None = None) -> int:
    """CLI entry point for running a search."""
    parser = argparse.ArgumentParser(description="Search documents")
    parser.add_argument("query", help="Query text")
    parser.add_argument("-k", type=int, default=None, help="Max results")
    args = parser.parse_args(argv)

    config = _load_env()
    container = _start(config)
    try:
        results = container.query_engine.search(args.query, k=args.k or config.search.default_k)
        for rank, result in enumerate(results, start=1):
            score = container.index.display_score(result.score)
            print(f"  {rank:>2}. [{score:.4f}] #{result.document.id} {result.document.title}")
    finally:
        container.shutdown()

    if not results:
        print("No results")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="semantic-search",
        description="Similarity search over text embeddings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  serve          Run the HTTP server
  init-db        Create the documents table
  rebuild-index  Load the index from the store and report counts
  embed-pending  Embed documents stored without an embedding
  ingest         Ingest one document
  search         Run a query

Examples:
  semantic-search ingest "Cats" "Cats are small mammals"
  semantic-search search "feline pets" -k 5
        """,
    )
    commands = {
        "serve": run_serve_cli,
        "init-db": run_init_db_cli,
        "rebuild-index": run_rebuild_index_cli,
        "embed-pending": run_embed_pending_cli,
        "ingest": run_ingest_cli,
        "search": run_search_cli,
    }
    parser.add_argument("command", choices=list(commands), help="Command to run")

    # Parse just the command first
    args, remaining = parser.parse_known_args(argv)

    _setup_logging()

    try:
        return commands[args.command](remaining)
    except SemanticSearchError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        if e.details:
            print(f"       {e.details}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
