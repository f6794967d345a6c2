"""Google Cloud Natural Language REST client.

Each method is one independent analysis capability used by ItemAnalyzer:

    score_sentiment  -> documents:analyzeSentiment
    detect_question  -> documents:analyzeSyntax
    extract_trends   -> documents:analyzeEntities

Documents are always sent as PLAIN_TEXT. Errors are not handled here;
ItemAnalyzer decides which failures drop a comment and which degrade.
"""

import logging
from typing import Any

import aiohttp

from clients.http import request_json
from models.analysis import QuestionCheck, SentimentScore, Trend

logger = logging.getLogger(__name__)

LANGUAGE_API_URL = "https://language.googleapis.com/v1"


class LanguageClient:
    """Sentiment, syntax and entity analysis over the Natural Language API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        base_url: str = LANGUAGE_API_URL,
        timeout: float = 30.0,
    ):
        self.session = session
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _call(self, method: str, text: str) -> dict[str, Any]:
        payload = {
            "document": {"type": "PLAIN_TEXT", "content": text},
            "encodingType": "UTF8",
        }
        return await request_json(
            self.session,
            "POST",
            f"{self.base_url}/documents:{method}",
            params={"key": self.api_key},
            payload=payload,
            timeout=self.timeout,
        )

    async def score_sentiment(self, text: str) -> SentimentScore:
        """Score document sentiment in [-1, 1]."""
        data = await self._call("analyzeSentiment", text)
        sentiment = data.get("documentSentiment") or {}
        return SentimentScore(
            score=sentiment.get("score", 0.0),
            magnitude=sentiment.get("magnitude", 0.0),
        )

    async def detect_question(self, text: str) -> QuestionCheck:
        """Report whether the syntax tokens include a literal '?' token.

        This is a token heuristic, not question detection: a question
        without a question mark is not flagged.
        """
        data = await self._call("analyzeSyntax", text)
        tokens = data.get("tokens") or []
        has_question = any(
            (token.get("text") or {}).get("content") == "?" for token in tokens
        )
        return QuestionCheck(has_question_token=has_question)

    async def extract_trends(self, text: str) -> list[Trend]:
        """Extract entities mentioned in the text."""
        data = await self._call("analyzeEntities", text)
        trends = [
            Trend(
                name=entity["name"],
                category=entity.get("type", "UNKNOWN"),
                salience=entity.get("salience", 0.0),
            )
            for entity in data.get("entities") or []
            if entity.get("name")
        ]
        logger.debug("Entities extracted | count=%d", len(trends))
        return trends
