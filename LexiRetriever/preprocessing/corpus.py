"""
Readers turning on-disk or in-memory text into TermSource objects.
"""
import glob
import logging
import os
from typing import Dict, List

from ..errors import SourceNotFound
from .document import TermSource, artifact_file_name, document_name_from_file, document_sort_key
from .preprocess import PreprocessingPipeline, tokenize_text

logger = logging.getLogger(__name__)

TOKENS_SUFFIX = "_tokens"


def load_token_directory(directory: str, suffix: str = TOKENS_SUFFIX) -> List[TermSource]:
    """
    Read per-document token files (one token per line) from a directory.

    Args:
        directory: Directory holding ``<name><suffix>.txt`` files
        suffix: File name suffix, "4_tokens.txt" becomes document "4.txt"

    Returns:
        TermSource list sorted by document name
    """
    if not os.path.isdir(directory):
        raise SourceNotFound(directory)

    files = sorted(glob.glob(os.path.join(directory, f"*{suffix}.txt")), key=document_sort_key)
    sources = []

    for path in files:
        with open(path, "r", encoding="utf-8") as f:
            terms = [line.strip() for line in f if line.strip()]
        sources.append(TermSource(document_name_from_file(path, suffix), terms))

    logger.info("Read %d token files from %s", len(sources), directory)
    return sources


def tokenize_documents(texts: Dict[str, str], pipeline: PreprocessingPipeline,
                       tokenizer=None) -> List[TermSource]:
    """
    Tokenize raw document texts into term sources.

    Args:
        texts: Mapping document name -> plain text
        pipeline: Preprocessing pipeline applied to every document

    Returns:
        TermSource list sorted by document name
    """
    return [TermSource(name, tokenize_text(texts[name], pipeline, tokenizer))
            for name in sorted(texts, key=document_sort_key)]


def save_token_directory(directory: str, sources: List[TermSource], suffix: str = TOKENS_SUFFIX,
                         unique: bool = True) -> None:
    """Write each source as a ``<name><suffix>.txt`` file, one token per line."""
    os.makedirs(directory, exist_ok=True)
    for source in sources:
        terms = sorted(source.term_set()) if unique else source.terms
        with open(os.path.join(directory, artifact_file_name(source.name, suffix)), "w", encoding="utf-8") as f:
            for term in terms:
                f.write(term + "\n")
