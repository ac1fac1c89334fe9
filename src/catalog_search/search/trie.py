"""Prefix trie for catalog autocomplete.

Every node along an inserted word caches up to ``node_capacity`` suggestion
strings for its prefix (shortest first), so a lookup costs O(len(prefix)) and
never walks the subtree. The price is memory: each word is stored once per
character. That is fine for catalogs of hundreds to a few thousand products
and does not scale much past that.

Nodes live in a flat arena (``list[_TrieNode]``) and reference their children
by integer index instead of holding object references to each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field


_ROOT = 0


@dataclass(slots=True)
class _TrieNode:
    children: dict[str, int] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)
    is_word: bool = False


class PrefixTrie:
    """Character trie with eager per-prefix suggestion lists."""

    def __init__(self, node_capacity: int = 10) -> None:
        if node_capacity < 1:
            raise ValueError("node_capacity must be at least 1")
        self.node_capacity = node_capacity
        self._nodes: list[_TrieNode] = [_TrieNode()]
        self._word_count = 0

    def __len__(self) -> int:
        return self._word_count

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def insert(self, word: str) -> None:
        """Insert ``word`` and cache it as a suggestion on every prefix node."""
        if not word or not word.strip():
            return

        folded = word.lower()
        index = _ROOT
        for char in folded:
            node = self._nodes[index]
            child = node.children.get(char)
            if child is None:
                child = len(self._nodes)
                self._nodes.append(_TrieNode())
                node.children[char] = child
            index = child
            self._offer(self._nodes[index], word)

        terminal = self._nodes[index]
        if not terminal.is_word:
            terminal.is_word = True
            self._word_count += 1

    def _offer(self, node: _TrieNode, word: str) -> None:
        folded = word.lower()
        if any(existing.lower() == folded for existing in node.suggestions):
            return
        node.suggestions.append(word)
        node.suggestions.sort(key=len)
        del node.suggestions[self.node_capacity :]

    def _find(self, prefix: str) -> _TrieNode | None:
        index = _ROOT
        for char in prefix.lower():
            child = self._nodes[index].children.get(char)
            if child is None:
                return None
            index = child
        return self._nodes[index]

    def get_suggestions(self, prefix: str, max_suggestions: int = 10) -> list[str]:
        """Return up to ``max_suggestions`` cached completions for ``prefix``."""
        if not prefix or max_suggestions <= 0:
            return []
        node = self._find(prefix)
        if node is None:
            return []
        return node.suggestions[:max_suggestions]

    def contains(self, word: str) -> bool:
        """Return True when ``word`` was inserted as a complete entry."""
        if not word:
            return False
        node = self._find(word)
        return node is not None and node.is_word

    def clear(self) -> None:
        self._nodes = [_TrieNode()]
        self._word_count = 0
