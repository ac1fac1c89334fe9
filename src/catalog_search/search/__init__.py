"""
Search indexing and ranking package.

This package provides a pure-Python product search stack:
- analyzers: Tokenizer pipeline (lowercase, split on non-word characters)
- fuzzy: Levenshtein distance and length-proportional fuzzy thresholds
- trie: Prefix trie with cached per-prefix suggestions
- stats: BM25 scoring statistics
- bm25_index: Single-field inverted index with Okapi BM25
- multi_field_index: Weighted merge of five field indexes
- highlight: Match spans and markup
- filters / facets / history: Post-filtering, facet counts, query analytics
"""
