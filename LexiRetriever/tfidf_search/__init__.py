"""
TF-IDF weighting of term sources and cosine-similarity ranking of documents
against free-text queries.
"""
