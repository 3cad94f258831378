"""
Preprocessing module for text processing in information retrieval tasks.
Includes tokenization, lowercase conversion, stop word filtering and lemma grouping.
"""
