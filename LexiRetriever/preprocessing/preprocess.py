from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from .tokenizer import Token, TokenType, RegexMatchTokenizer
import json
import logging
import os

logger = logging.getLogger(__name__)

STOP_WORDS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")


class TokenPreprocessor(ABC):
    @abstractmethod
    def preprocess(self, token: Token, document: str) -> Token:
        raise NotImplementedError()

    def preprocess_all(self, tokens: list[Token], document: str) -> list[Token]:
        return [self.preprocess(token, document) for token in tokens]


class LowercasePreprocessor(TokenPreprocessor):
    def preprocess(self, token: Token, document: str) -> Token:
        token.processed_form = token.processed_form.lower()
        return token


class StopWordsPreprocessor(TokenPreprocessor):
    """Preprocessor for removing stop words."""

    def __init__(self, language="en", stop_words_dir=STOP_WORDS_DIR):
        """
        Initialize preprocessor for removing stop words.

        Args:
            language: Language code of the stop word list (file stopwords-<language>.json)
            stop_words_dir: Directory containing stop words files
        """
        self.stop_words = set()

        path = os.path.join(stop_words_dir, f"stopwords-{language}.json")
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                self.stop_words = {word.lower() for word in json.load(f)}
        else:
            logger.warning("Stop words file %s not found, stop word removal disabled", path)

    def preprocess(self, token: Token, document: str) -> Token:
        """
        If token is a stop word, replace its processed_form with empty string.
        """
        if token.token_type == TokenType.WORD and token.processed_form.lower() in self.stop_words:
            token.processed_form = ""
        return token


class NonsenseTokenPreprocessor(TokenPreprocessor):
    """Preprocessor for removing punctuation, digit runs and too short words."""

    def __init__(self, min_word_length=2, remove_types=None):
        """
        Args:
            min_word_length: Minimum word length (shorter will be removed)
            remove_types: List of token types to remove
        """
        self.min_word_length = min_word_length
        self.remove_types = remove_types or [
            TokenType.PUNCT,
            TokenType.NUMBER
        ]

    def preprocess(self, token: Token, document: str) -> Token:
        if token.token_type in self.remove_types:
            token.processed_form = ""
            return token

        if token.token_type == TokenType.WORD and len(token.processed_form) < self.min_word_length:
            token.processed_form = ""

        return token


class PreprocessingPipeline:
    """Pipeline of token preprocessors."""

    def __init__(self, preprocessors, name="Default Pipeline"):
        self.preprocessors = preprocessors
        self.name = name

    def preprocess(self, tokens: list[Token], document: str) -> list[Token]:
        """
        Apply all preprocessors to the tokens in order.

        Args:
            tokens: List of tokens to preprocess
            document: Original document text

        Returns:
            List of preprocessed tokens
        """
        for preprocessor in self.preprocessors:
            preprocessor.preprocess_all(tokens, document)

        return tokens

    def __repr__(self):
        steps = ", ".join(type(p).__name__ for p in self.preprocessors)
        return f"PreprocessingPipeline({self.name}: {steps})"


def create_preprocessing_pipeline(config: Dict, min_word_length: Optional[int] = None,
                                  name: str = "IndexingPipeline") -> PreprocessingPipeline:
    """
    Create preprocessing pipeline based on configuration.

    Args:
        config: Configuration dictionary (see LexiRetriever.config)
        min_word_length: Overrides preprocessing.nonsense_tokens.min_word_length
        name: Pipeline name, used in logs

    Returns:
        PreprocessingPipeline object
    """
    preprocessors = []
    preproc_config = config.get("preprocessing", {})
    nonsense_config = preproc_config.get("nonsense_tokens", {})
    stop_words_config = preproc_config.get("stop_words", {})

    for step in config.get("pipeline_order", []):
        if step == "lowercase" and preproc_config.get("lowercase", True):
            preprocessors.append(LowercasePreprocessor())

        elif step == "stop_words" and stop_words_config.get("use", True):
            preprocessors.append(StopWordsPreprocessor(language=stop_words_config.get("language", "en")))

        elif step == "nonsense_tokens" and (nonsense_config.get("remove", True) or min_word_length is not None):
            length = min_word_length if min_word_length is not None else nonsense_config.get("min_word_length", 2)
            preprocessors.append(NonsenseTokenPreprocessor(min_word_length=length))

    if not preprocessors:
        preprocessors = [LowercasePreprocessor()]

    return PreprocessingPipeline(preprocessors, name=name)


def tokenize_text(text: str, pipeline: PreprocessingPipeline, tokenizer=None) -> List[str]:
    """
    Tokenize and preprocess text.

    Returns:
        Processed WORD tokens in document order, empty forms dropped
    """
    if not text:
        return []

    tokenizer = tokenizer or RegexMatchTokenizer()
    tokens = tokenizer.tokenize(text)
    pipeline.preprocess(tokens, text)

    return [token.processed_form for token in tokens
            if token.token_type == TokenType.WORD and token.processed_form]
