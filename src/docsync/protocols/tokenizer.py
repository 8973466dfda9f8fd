"""Protocol for reversible tokenizers."""

from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class Tokenizer(Protocol):
    """A tokenizer whose decode() inverts encode().

    Token-aligned chunking maps token offsets back to character offsets,
    so decode(encode(text)) must equal text.
    """

    def encode(self, text: str) -> list[int]:
        ...

    def decode(self, tokens: Sequence[int]) -> str:
        ...

    def token_offsets(self, tokens: Sequence[int]) -> list[int]:
        """Return the character offset at which each token starts."""
        ...
