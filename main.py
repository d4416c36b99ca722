"""
SIFAZ Manual Assistant - Entry Point

Commands:
    uv run main.py api               # Start the API server
    uv run main.py ingest            # Build (or attach to) the vector index
    uv run main.py ask "question"    # Stream an answer in the terminal
"""

import argparse
import asyncio
import sys

from manual_rag.errors import IndexUnavailable
from manual_rag.logging_config import logger


def run_api_command(args):
    """Start the API server."""
    from manual_rag.api import start_server

    start_server(port=args.port)


def run_ingest_command(args):
    """Build or attach the index."""
    from manual_rag.rag.pipeline import RAGPipeline

    pipeline = RAGPipeline()
    try:
        store = asyncio.run(pipeline.initialize())
    except IndexUnavailable as e:
        logger.error(f"❌ Indexing failed: {e}")
        return 1

    logger.info(f"✅ Index '{store.collection_name}' ready with {store.count()} passages.")
    return 0


async def _ask(pipeline, question: str) -> int:
    messages, documents = await pipeline.prepare(question, [])

    for event in pipeline.stream(messages, documents):
        if event.error:
            print()
            logger.error(f"❌ {event.error}")
            return 1
        if not event.done:
            print(event.content, end="", flush=True)
            continue

        print("\n")
        for source in event.sources:
            print(f"  [p. {source.page_number}] {source.content}")

    return 0


def run_ask_command(args):
    """Answer one question from the terminal."""
    from manual_rag.rag.pipeline import RAGPipeline

    try:
        return asyncio.run(_ask(RAGPipeline(), args.question))
    except IndexUnavailable as e:
        logger.error(f"❌ Index unavailable: {e}")
        return 1


def main():
    parser = argparse.ArgumentParser(
        description="SIFAZ Manual Assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    api_parser = subparsers.add_parser("api", help="Start the API server")
    api_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the API server on (default: 3001)",
    )

    subparsers.add_parser("ingest", help="Build or attach the vector index")

    ask_parser = subparsers.add_parser("ask", help="Ask a question about the manual")
    ask_parser.add_argument("question", help="The question to answer")

    args = parser.parse_args()

    if args.command == "api":
        run_api_command(args)
    elif args.command == "ingest":
        sys.exit(run_ingest_command(args))
    elif args.command == "ask":
        sys.exit(run_ask_command(args))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
