"""
Utilities package for Momentum.

- md: Markdown text helpers (titles, word counts, tags, hashes)
"""
