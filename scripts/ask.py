#!/usr/bin/env python
"""Index documents and ask a question against them.

Usage:
    python scripts/ask.py notes/ -q "What is the project about?"
    python scripts/ask.py a.md b.txt -q "..." --top-k 3
    python scripts/ask.py notes/ -q "..." --generate    # answer with Ollama
    python scripts/ask.py notes/ -q "..." --ollama-embeddings
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime
from typing import List

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ragcore import config
from ragcore.engine import OllamaGenerator, RagEngine
from ragcore.errors import EmptyQuery, RagError
from ragcore.llm_client import OllamaClient
from ragcore.log import configure_logging
from ragcore.rag.embedder import OllamaEmbedder
from ragcore.rag.ingest import IngestResult
import structlog

logger = structlog.get_logger()

SUPPORTED_SUFFIXES = {".txt", ".md"}


class ProgressReporter:
    """Prints one line per indexed file and a summary."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.started = None

    def start(self, total: int):
        self.started = datetime.now()
        print(f"\nIndexing {total} document(s)\n")

    def update(self, current: int, total: int, name: str):
        end = "\n" if self.verbose else ""
        print(f"\r  {current:>4}/{total:<4} {name[:50]:<50}", end=end, flush=True)

    def finish(self, results, stats: dict):
        elapsed = (datetime.now() - self.started).total_seconds()
        failed = [r for r in results if not r.ok]

        print(
            f"\n\n  indexed={len(results) - len(failed)} failed={len(failed)} "
            f"chunks={stats['chunks_created']} "
            f"embeddings={stats['embeddings_generated']} "
            f"elapsed={elapsed:.1f}s\n"
        )
        for result in failed:
            print(f"  ! {result.document_id}: {result.error}")


def discover_files(paths: List[Path]) -> List[Path]:
    """Expand directories into the supported files they contain."""
    files = []
    for path in paths:
        if path.is_dir():
            files.extend(
                sorted(p for p in path.rglob("*") if p.suffix.lower() in SUPPORTED_SUFFIXES)
            )
        elif path.exists():
            files.append(path)
        else:
            raise FileNotFoundError(f"Path not found: {path}")
    return files


async def main():
    """Main entry point for the ask script."""
    parser = argparse.ArgumentParser(
        description="Index documents and retrieve context for a question",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("paths", type=Path, nargs="+", help="Files or directories to index")
    parser.add_argument("--query", "-q", required=True, help="Question to ask")
    parser.add_argument("--top-k", type=int, default=None, help=f"Results to retrieve (default: {config.RETRIEVAL_TOP_K})")
    parser.add_argument("--chunk-size", type=int, default=None, help=f"Chunk size (default: {config.CHUNK_SIZE})")
    parser.add_argument("--chunk-overlap", type=int, default=None, help=f"Chunk overlap (default: {config.CHUNK_OVERLAP})")
    parser.add_argument("--generate", action="store_true", help="Generate an answer with Ollama")
    parser.add_argument("--ollama-embeddings", action="store_true", help="Embed with Ollama instead of the placeholder embedder")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show verbose progress output")

    args = parser.parse_args()

    configure_logging("DEBUG" if args.verbose else "WARNING")
    progress = ProgressReporter(verbose=args.verbose)

    try:
        client = OllamaClient()
        embedder = OllamaEmbedder(client) if args.ollama_embeddings else None

        engine = RagEngine(
            embedder=embedder,
            chunk_size=args.chunk_size,
            chunk_overlap=args.chunk_overlap,
            top_k=args.top_k,
        )

        files = discover_files(args.paths)
        progress.start(len(files))

        results = []
        for idx, path in enumerate(files, 1):
            progress.update(idx, len(files), path.name)
            try:
                results.append(
                    await engine.ingest_bytes(str(path), path.read_bytes(), path.suffix)
                )
            except RagError as e:
                results.append(IngestResult(document_id=str(path), status="failed", error=str(e)))

        progress.finish(results, engine.pipeline.stats)

        if args.generate:
            answer = await engine.answer(args.query, OllamaGenerator(client))
            print(answer.text)
        else:
            context = await engine.build_context(args.query)
            print(context or "(no relevant context found)")

    except KeyboardInterrupt:
        print("\n\nCancelled by user.\n")
        sys.exit(1)

    except (FileNotFoundError, EmptyQuery) as e:
        print(f"\nError: {e}\n")
        sys.exit(1)

    except Exception as e:
        print(f"\nError: {e}\n")
        logger.error("ask_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
