"""
Boolean search module: query parsing, AST optimization and set-based evaluation
over an inverted index.
"""
