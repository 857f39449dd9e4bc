"""Unit tests for ContextAssembler."""
import pytest

from ragcore.rag.context import INSTRUCTION, PREAMBLE, ContextAssembler
from ragcore.rag.document import RetrievalResult


@pytest.fixture
def make_result(make_chunk):
    def _make(content: str, score: float = 0.5, chunk_index: int = 0):
        return RetrievalResult(chunk=make_chunk(chunk_index=chunk_index, content=content), score=score)

    return _make


@pytest.mark.unit
class TestAssemble:
    """Test suite for ContextAssembler.assemble."""

    def test_no_results_gives_empty_context(self):
        assert ContextAssembler().assemble([], "anything?") == ""

    def test_layout(self, make_result):
        results = [make_result("First chunk.", 0.9), make_result("  Second chunk.\n", 0.4, 1)]

        context = ContextAssembler().assemble(results, "What is it?")

        assert context == (
            f"{PREAMBLE}\n\n"
            "[Source 1]: First chunk.\n\n"
            "[Source 2]: Second chunk.\n\n"
            f"{INSTRUCTION} What is it?"
        )

    def test_labels_follow_given_order(self, make_result):
        # Scores are ignored; the caller's order wins
        results = [make_result("low", 0.1), make_result("high", 0.9, 1)]

        context = ContextAssembler().assemble(results, "q")

        assert context.index("[Source 1]: low") < context.index("[Source 2]: high")

    def test_query_appears_last(self, make_result):
        context = ContextAssembler().assemble([make_result("text")], "final question")
        assert context.endswith("final question")

    def test_zero_budget_means_unbounded(self, make_result):
        assembler = ContextAssembler(max_chars=0)
        assert assembler.max_chars is None

        context = assembler.assemble([make_result("x" * 5000)], "q")
        assert "x" * 5000 in context


@pytest.mark.unit
class TestBudget:
    """Character budget for the source section."""

    def test_top_source_is_truncated_not_dropped(self, make_result):
        context = ContextAssembler(max_chars=100).assemble([make_result("A" * 150)], "q")

        assert "[Source 1]: " + "A" * 88 + "...\n\n" in context
        assert "A" * 89 not in context

    @pytest.mark.parametrize("max_chars", [1, 5, 12])
    def test_tiny_budget_keeps_label_whole(self, make_result, max_chars):
        context = ContextAssembler(max_chars=max_chars).assemble([make_result("content")], "q")

        assert "[Source 1]: ...\n\n" in context
        assert context.endswith("q")

    def test_lower_sources_dropped_when_little_room(self, make_result):
        results = [make_result("alpha"), make_result("B" * 300, chunk_index=1)]

        context = ContextAssembler(max_chars=100).assemble(results, "q")

        assert "[Source 1]: alpha" in context
        assert "[Source 2]" not in context

    def test_lower_source_truncated_when_room_remains(self, make_result):
        results = [
            make_result("alpha"),
            make_result("C" * 1500, chunk_index=1),
            make_result("gamma", chunk_index=2),
        ]

        context = ContextAssembler(max_chars=1000).assemble(results, "q")

        assert "[Source 2]: C" in context
        assert "C" * 1500 not in context
        assert "...\n\n" in context
        assert "[Source 3]" not in context
