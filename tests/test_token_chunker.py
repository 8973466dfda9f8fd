"""Tests for token-aligned micro-chunking."""

from docsync.chunkers import TokenChunker, chunk_by_tokens
from docsync.chunkers.token_chunker import build_line_starts, line_number


def _code(lines: int) -> str:
    return "\n".join(f"value_{i} = compute(value_{i - 1}, {i})" for i in range(1, lines + 1))


class TestLineMapping:
    """Test line start computation and lookup."""

    def test_line_starts(self):
        assert build_line_starts("ab\ncd\n\nef") == [0, 3, 6, 7]

    def test_line_starts_single_line(self):
        assert build_line_starts("no newline") == [0]

    def test_line_number_lookup(self):
        starts = build_line_starts("ab\ncd\n\nef")
        assert line_number(starts, 0) == 1
        assert line_number(starts, 2) == 1  # the newline belongs to line 1
        assert line_number(starts, 3) == 2
        assert line_number(starts, 6) == 3
        assert line_number(starts, 8) == 4


class TestChunkByTokens:
    """Test chunk_by_tokens()."""

    def test_empty_text(self, tokenizer):
        assert chunk_by_tokens("", tokenizer=tokenizer) == []

    def test_whitespace_text(self, tokenizer):
        assert chunk_by_tokens("  \n ", tokenizer=tokenizer) == []

    def test_invalid_window_or_stride(self, tokenizer):
        assert chunk_by_tokens("some text", window_tokens=0, tokenizer=tokenizer) == []
        assert chunk_by_tokens("some text", stride_tokens=0, tokenizer=tokenizer) == []

    def test_token_count_never_exceeds_window(self, tokenizer):
        chunks = chunk_by_tokens(_code(30), window_tokens=16, stride_tokens=8, tokenizer=tokenizer)
        assert chunks
        assert all(0 < c.token_count <= 16 for c in chunks)

    def test_indices_and_offsets(self, tokenizer):
        """Windows start every stride tokens and indices increase by one."""
        chunks = chunk_by_tokens(_code(10), window_tokens=12, stride_tokens=5, tokenizer=tokenizer)
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert [c.token_offset for c in chunks] == [5 * i for i in range(len(chunks))]

    def test_last_window_reaches_end(self, tokenizer):
        """The final chunk ends on the last token and nothing follows it."""
        text = _code(7)
        total = len(tokenizer.encode(text))
        chunks = chunk_by_tokens(text, window_tokens=16, stride_tokens=8, tokenizer=tokenizer)
        last = chunks[-1]
        assert last.token_offset + last.token_count == total
        assert all(c.token_offset + c.token_count < total for c in chunks[:-1])
        assert text.endswith(last.text)

    def test_text_decodes_from_window(self, tokenizer):
        text = "alpha beta gamma delta epsilon zeta eta theta"
        chunks = chunk_by_tokens(text, window_tokens=4, stride_tokens=2, tokenizer=tokenizer)
        assert chunks[0].text == "alpha beta "
        assert chunks[1].text == "beta gamma "

    def test_start_lines_non_decreasing(self, tokenizer):
        chunks = chunk_by_tokens(_code(40), window_tokens=16, stride_tokens=8, tokenizer=tokenizer)
        starts = [c.start_line for c in chunks]
        assert starts == sorted(starts)
        assert starts[0] == 1
        assert all(c.start_line <= c.end_line for c in chunks)

    def test_line_mapping(self, tokenizer):
        """Line numbers match the lines the chunk text came from."""
        text = "first line here\nsecond line here\nthird line here"
        chunks = chunk_by_tokens(text, window_tokens=6, stride_tokens=6, tokenizer=tokenizer)
        # tokens: first, ' ', line, ' ', here, '\n' | second, ...
        assert chunks[0].text == "first line here\n"
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 1)
        assert chunks[1].text == "second line here\n"
        assert (chunks[1].start_line, chunks[1].end_line) == (2, 2)
        assert (chunks[2].start_line, chunks[2].end_line) == (3, 3)

    def test_window_spanning_lines(self, tokenizer):
        text = "one\ntwo\nthree\nfour"
        chunks = chunk_by_tokens(text, window_tokens=5, stride_tokens=5, tokenizer=tokenizer)
        assert chunks[0].text == "one\ntwo\nthree"
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 3)

    def test_single_short_text(self, tokenizer):
        chunks = chunk_by_tokens("tiny", tokenizer=tokenizer)
        assert len(chunks) == 1
        assert chunks[0].token_count == 1
        assert chunks[0].start_line == chunks[0].end_line == 1


class TestTokenChunker:
    """Test the ChunkingStrategy wrapper."""

    def test_uses_configured_window(self, tokenizer):
        chunker = TokenChunker(window_tokens=4, stride_tokens=2, tokenizer=tokenizer)
        text = _code(5)
        assert chunker.chunk(text) == chunk_by_tokens(text, 4, 2, tokenizer=tokenizer)
