"""
LexiRetriever: boolean and TF-IDF vector space retrieval over tokenized documents.
"""
