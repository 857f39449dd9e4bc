"""Context assembly for the downstream generator."""
from typing import List, Optional, Sequence
import structlog

from ragcore import config
from ragcore.rag.document import RetrievalResult

logger = structlog.get_logger()

PREAMBLE = "Based on the following information:"
INSTRUCTION = "Please answer the following question using the information above:"


class ContextAssembler:
    """Formats ranked retrieval results and the query into one prompt string.

    The assembler does no ranking of its own; results are labelled in the
    order they are given.
    """

    def __init__(self, max_chars: Optional[int] = None):
        """Initialize the assembler.

        Args:
            max_chars: Character budget for the source section
                (default from config; 0 or None means unbounded)
        """
        if max_chars is None:
            max_chars = config.MAX_CONTEXT_CHARS
        self.max_chars = max_chars or None

    def assemble(self, results: Sequence[RetrievalResult], query: str) -> str:
        """Build the generation context.

        Args:
            results: Ranked retrieval results, best first
            query: Original user query

        Returns:
            Context string, or "" when there is nothing to augment with
        """
        if not results:
            return ""

        sources = self._format_sources(results)
        context = f"{PREAMBLE}\n\n" + "".join(sources) + f"{INSTRUCTION} {query}"

        logger.debug(
            "context_assembled",
            num_sources=len(sources),
            total_chars=len(context),
        )

        return context

    def _format_sources(self, results: Sequence[RetrievalResult]) -> List[str]:
        parts: List[str] = []
        total_chars = 0

        for rank, result in enumerate(results, 1):
            label = f"[Source {rank}]: "
            content = result.content.strip()
            part = f"{label}{content}\n\n"

            if self.max_chars is not None and total_chars + len(part) > self.max_chars:
                # Fit a truncated version if there is meaningful room;
                # the top-ranked source is always kept, label intact
                remaining = self.max_chars - total_chars
                if remaining > 200 or not parts:
                    room = max(remaining - len(label), 0)
                    parts.append(f"{label}{content[:room].rstrip()}...\n\n")
                break

            parts.append(part)
            total_chars += len(part)

        return parts
