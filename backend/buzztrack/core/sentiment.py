"""
Mention sentiment scoring.

Two providers are available. The lexicon provider counts weighted positive
and negative words and needs no extra dependencies. The FinBERT provider
runs the ``yiyanghkust/finbert-tone`` model through transformers/torch and is
loaded lazily on first use.
"""
from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import List, Optional, Tuple

from buzztrack.models import SentimentResult
from buzztrack.utils import clamp

logger = logging.getLogger(__name__)

PROVIDER_LEXICON = "lexicon"
PROVIDER_FINBERT = "finbert"
PROVIDERS = (PROVIDER_LEXICON, PROVIDER_FINBERT)

DEFAULT_POSITIVE_THRESHOLD = 0.2
DEFAULT_NEGATIVE_THRESHOLD = -0.2
CONTEXT_WINDOW = 3
CONTEXT_WEIGHT = 0.6
BRAND_PHRASE_WEIGHT = 2

POSITIVE_WORDS = frozenset({
    "love", "great", "amazing", "awesome", "excellent", "fantastic", "perfect",
    "good", "nice", "cool", "wow", "best", "brilliant", "outstanding", "superb",
    "impressive", "incredible", "wonderful", "fabulous", "marvelous", "stellar",
    "phenomenal", "exceptional", "recommend", "happy", "pleased", "satisfied",
    "thrilled", "ecstatic", "flawless", "masterpiece", "gamechanger",
})

NEGATIVE_WORDS = frozenset({
    "hate", "terrible", "awful", "horrible", "bad", "worst", "disappointing",
    "disappointed", "sucks", "trash", "garbage", "waste", "useless", "poor",
    "annoying", "frustrating", "ridiculous", "stupid", "dumb", "broken",
    "failed", "failure", "horrendous", "atrocious", "unacceptable",
    "scam", "fraud", "avoid", "warning", "complaint", "issue", "problem",
})

BRAND_POSITIVE_PHRASES = ("{brand} delivers", "{brand} creates", "{brand} innovates")
BRAND_NEGATIVE_PHRASES = ("{brand} failed", "{brand} sucks", "{brand} scam", "{brand} broken", "{brand} terrible")

_WORD = re.compile(r"[a-z']+")


def _count_polarity(text: str, brand: Optional[str] = None) -> Tuple[int, int]:
    words = _WORD.findall(text.lower())
    positive = sum(1 for word in words if word in POSITIVE_WORDS)
    negative = sum(1 for word in words if word in NEGATIVE_WORDS)

    if brand:
        lowered = text.lower()
        brand = brand.lower()
        positive += BRAND_PHRASE_WEIGHT * sum(
            lowered.count(phrase.format(brand=brand)) for phrase in BRAND_POSITIVE_PHRASES
        )
        negative += BRAND_PHRASE_WEIGHT * sum(
            lowered.count(phrase.format(brand=brand)) for phrase in BRAND_NEGATIVE_PHRASES
        )
    return positive, negative


def lexicon_score(text: str, brand: Optional[str] = None) -> float:
    """
    Score text with the word lists.

    Returns:
        (positive - negative) / (positive + negative) in [-1, 1], 0.0 when no
        sentiment word is present
    """
    positive, negative = _count_polarity(text, brand)
    total = positive + negative
    if total == 0:
        return 0.0
    return clamp((positive - negative) / total)


def brand_context(text: str, brand: str, window: int = CONTEXT_WINDOW) -> Optional[str]:
    """Return the words around the first token containing the brand, if any."""
    words = text.split()
    brand = brand.lower()
    for index, word in enumerate(words):
        if brand in word.lower():
            return " ".join(words[max(0, index - window): index + window + 1])
    return None


def label_for_score(
    score: float,
    positive_threshold: float = DEFAULT_POSITIVE_THRESHOLD,
    negative_threshold: float = DEFAULT_NEGATIVE_THRESHOLD,
) -> str:
    if score >= positive_threshold:
        return "positive"
    if score <= negative_threshold:
        return "negative"
    return "neutral"


@lru_cache(maxsize=1)
def _load_sentiment_model() -> Tuple:
    """
    Load the FinBERT sentiment model.

    Returns:
        Tuple of (tokenizer, model)

    Raises:
        RuntimeError: If required dependencies are not installed
    """
    try:
        from transformers import AutoTokenizer, AutoModelForSequenceClassification
        import torch  # noqa: F401
    except ImportError as e:
        raise RuntimeError(
            "Sentiment model dependencies are missing. Install transformers and torch.\n"
            "Try: pip install 'buzztrack[ml]' or "
            "pip install transformers && pip install --index-url https://download.pytorch.org/whl/cpu torch"
        ) from e

    model_name = "yiyanghkust/finbert-tone"
    tokenizer = AutoTokenizer.from_pretrained(model_name)
    model = AutoModelForSequenceClassification.from_pretrained(model_name)
    model.eval()

    return tokenizer, model


def finbert_scores(texts: List[str]) -> List[float]:
    """
    Score a batch of texts with FinBERT.

    Args:
        texts: Texts to analyze

    Returns:
        One score per text, p_positive - p_negative clipped to [-1, 1]
    """
    if not texts:
        return []

    tokenizer, model = _load_sentiment_model()
    import torch

    scores: List[float] = []
    with torch.no_grad():
        for i in range(0, len(texts), 16):
            batch = texts[i : i + 16]
            encoded = tokenizer(
                batch,
                padding=True,
                truncation=True,
                max_length=256,
                return_tensors="pt",
            )
            probabilities = torch.softmax(model(**encoded).logits, dim=-1).cpu().numpy()
            # FinBERT label order: [neutral, positive, negative]
            for prob in probabilities:
                scores.append(clamp(float(prob[1]) - float(prob[2])))
    return scores


class SentimentScorer:
    """Scores mention text with the configured provider.

    A FinBERT scorer whose dependencies or model files are unavailable logs the
    failure once and keeps working on the lexicon provider.
    """

    def __init__(
        self,
        provider: str = PROVIDER_LEXICON,
        positive_threshold: float = DEFAULT_POSITIVE_THRESHOLD,
        negative_threshold: float = DEFAULT_NEGATIVE_THRESHOLD,
    ):
        provider = (provider or PROVIDER_LEXICON).lower()
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown sentiment provider: {provider!r}")
        self.provider = provider
        self.positive_threshold = positive_threshold
        self.negative_threshold = negative_threshold

    def _raw_score(self, text: str, brand: Optional[str]) -> float:
        if self.provider == PROVIDER_FINBERT:
            try:
                return finbert_scores([text])[0]
            except (RuntimeError, OSError):
                logger.exception("FinBERT unavailable, falling back to lexicon sentiment")
                self.provider = PROVIDER_LEXICON
        return lexicon_score(text, brand)

    def warm_up(self) -> None:
        """Load the FinBERT model ahead of the first score; blocking, run it in an executor."""
        if self.provider != PROVIDER_FINBERT:
            return
        try:
            _load_sentiment_model()
        except (RuntimeError, OSError) as e:
            logger.warning("Model warm-up failed, using lexicon sentiment: %s", e)
            self.provider = PROVIDER_LEXICON

    def score(self, text: Optional[str], brand: Optional[str] = None) -> SentimentResult:
        """
        Score a text, weighting the words around the brand name when present.

        Args:
            text: Mention text
            brand: Brand name used to locate the context window

        Returns:
            SentimentResult with label and score in [-1, 1]
        """
        if not text or not isinstance(text, str):
            return SentimentResult(label="neutral", score=0.0)

        score = self._raw_score(text, brand)
        context = brand_context(text, brand) if brand else None
        if context:
            context_score = self._raw_score(context, brand)
            score = CONTEXT_WEIGHT * context_score + (1 - CONTEXT_WEIGHT) * score

        score = round(clamp(score), 3)
        return SentimentResult(
            label=label_for_score(score, self.positive_threshold, self.negative_threshold),
            score=score,
        )


_default_scorer = SentimentScorer()


def score_sentiment(text: Optional[str], brand_context: Optional[str] = None) -> SentimentResult:
    """Score text with the default lexicon scorer."""
    return _default_scorer.score(text, brand_context)


__all__ = [
    "NEGATIVE_WORDS",
    "POSITIVE_WORDS",
    "PROVIDERS",
    "SentimentScorer",
    "brand_context",
    "finbert_scores",
    "label_for_score",
    "lexicon_score",
    "score_sentiment",
]
