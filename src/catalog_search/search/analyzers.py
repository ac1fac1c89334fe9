"""Text analysis for product fields and queries.

Products are short documents (a name, a paragraph of description, a handful of
tags), so analysis is plain: lowercase, split on anything that is not a word
character, keep duplicates and order. No stemming and no stopwords; "pro" and
"max" matter in product names.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
import re


@dataclass(frozen=True, slots=True)
class Token:
    """A term with its ordinal and its ``[start_char, end_char)`` span in the source text."""

    text: str
    position: int
    start_char: int
    end_char: int


TokenStream = Iterable[Token]
Tokenizer = Callable[[str], Iterator[Token]]
TokenFilter = Callable[[TokenStream], Iterator[Token]]


class RegexTokenizer:
    """Emit one token per regex match; by default runs of word characters.

    Punctuation, hyphens and slashes separate tokens, so "USB-C" yields
    "USB" and "C" while "usb_c" stays whole.
    """

    def __init__(self, pattern: str = r"\w+", flags: int = re.UNICODE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            start, end = match.span()
            yield Token(match.group(), position, start, end)


class LowercaseFilter:
    def __call__(self, tokens: TokenStream) -> Iterator[Token]:
        for token in tokens:
            lowered = token.text.lower()
            yield token if lowered == token.text else replace(token, text=lowered)


class AnalyzerPipeline:
    """A tokenizer followed by token filters applied in order.

    Filters may drop tokens; positions of the survivors are renumbered from 0.
    """

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = tuple(filters or ())

    def __call__(self, text: str) -> list[Token]:
        if not text:
            return []
        stream: TokenStream = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        kept = (token for token in stream if token.text)
        return [
            token if token.position == index else replace(token, position=index)
            for index, token in enumerate(kept)
        ]


class ProductAnalyzer(AnalyzerPipeline):
    """Word tokenizer plus lowercasing, used for every indexed field and query."""

    def __init__(self) -> None:
        super().__init__(RegexTokenizer(), [LowercaseFilter()])


class MinLengthFilter:
    """Drop tokens shorter than ``min_length`` characters."""

    def __init__(self, min_length: int = 2) -> None:
        self.min_length = min_length

    def __call__(self, tokens: TokenStream) -> Iterator[Token]:
        return (token for token in tokens if len(token.text) >= self.min_length)


class HighlightAnalyzer(AnalyzerPipeline):
    """Whitespace-separated, lowercased query terms of two or more characters.

    Punctuation stays inside the term, so "usb-c" highlights as one span.
    """

    def __init__(self) -> None:
        super().__init__(RegexTokenizer(r"\S+"), [LowercaseFilter(), MinLengthFilter(2)])


_ANALYZERS: dict[str, type[AnalyzerPipeline]] = {
    "product": ProductAnalyzer,
    "highlight": HighlightAnalyzer,
}


def get_analyzer(name: str | None = None) -> AnalyzerPipeline:
    """Instantiate a registered analyzer by case-insensitive name; ``None`` means "product"."""
    key = (name or "product").lower()
    try:
        factory = _ANALYZERS[key]
    except KeyError:
        raise ValueError(f"Unknown analyzer {name!r}; expected one of {sorted(_ANALYZERS)}") from None
    return factory()


_product_analyzer = get_analyzer("product")


def tokenize(text: str | None) -> list[str]:
    """Lowercased word tokens of ``text`` in order, duplicates included.

    >>> tokenize("iPhone 15 Pro-Max!")
    ['iphone', '15', 'pro', 'max']
    """
    if not text:
        return []
    return [token.text for token in _product_analyzer(text)]
