from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .events import ProgressEvents
from .models import ProgressEvent, Sentence, WordBlock

logger = logging.getLogger(__name__)

SENTENCE_SPLIT_RE = re.compile(r"[^.。!?\n]*[.。!?\n]|[^.。!?\n]+$")

ERROR_TRANSLATION = "Translation unavailable due to error."


class AnalysisError(Exception):
    """Raised when an analysis job cannot run at all."""


@dataclass
class AnalysisRequest:
    id: str
    text: str
    language: str
    api_key: str
    api_url: str
    model_name: str
    concurrency: int = 1
    old_sentences: List[Sentence] = field(default_factory=list)


class AnalysisService:
    """
    Abstract analysis service. Implementations turn raw text into annotated
    sentences and may publish progress for `request.id` while working.
    """

    async def analyze(self, request: AnalysisRequest) -> List[Sentence]:
        raise NotImplementedError


def split_sentences(text: str) -> List[str]:
    """
    Split after every terminator (., 。, !, ?) or newline, keeping the
    terminator with its sentence. Pieces are trimmed and empty ones dropped.
    """
    pieces = (match.group(0).strip() for match in SENTENCE_SPLIT_RE.finditer(text))
    return [p for p in pieces if p]


_BASE_RULES = """
You are a precise JSON generator.
STRICT RULES:
1. Your output MUST be a single, valid JSON object.
2. Do NOT use Markdown code blocks (```json ... ```) in your final output.
3. Use ONLY standard ASCII punctuation.
4. Do NOT include any text outside the JSON object.
"""

_KOREAN_RULES = """
Task: Analyze the Korean sentence below.
1.  TRANSLATION: Provide a natural English translation of the entire sentence.
2.  TOKENIZATION: Split into morphemes.
    - CRITICAL: Do NOT decompose Hangul characters (Jamo).
    - CRITICAL: Do NOT discard punctuation. Output punctuation as separate blocks with pos 'punctuation'.
3.  POS Tagging (Strictly use these tags only):
    - noun, pronoun, verb, adjective, adverb, particle, ending, punctuation, unknown.
4.  DEFINITION: Provide a concise English definition for each block.
5.  CHINESE ROOT: For Sino-Korean words, providing 'chinese_root' is MANDATORY.
"""

_KOREAN_EXAMPLE = """
Example Output:
{
    "translation": "I go to school.",
    "blocks": [
        { "text": "학교", "pos": "noun", "definition": "school", "chinese_root": "学校", "grammar_note": null },
        { "text": "에", "pos": "particle", "definition": "to (indicates direction)", "chinese_root": null, "grammar_note": "Location marker" },
        { "text": "갑니다", "pos": "verb", "definition": "go", "chinese_root": null, "grammar_note": "Formal, present tense" },
        { "text": ".", "pos": "punctuation", "definition": ".", "chinese_root": null, "grammar_note": null }
    ]
}
"""

_RUSSIAN_RULES = """
You are an expert Russian linguist who ALWAYS follows JSON formatting rules.

Task: Analyze the Russian sentence below.

CRITICAL, NON-NEGOTIABLE RULES:
1.  **GRAMMAR NOTE (MANDATORY!)**: For EVERY word block, you MUST provide a detailed 'grammar_note'. Do not skip it or leave it null (except for punctuation).
    -   For **Nouns, Pronouns, Adjectives**: MUST specify `Case`, `Number`, `Gender`.
    -   For **Verbs**: MUST specify its `Lemma` (infinitive form), `Aspect` (Perfective/Imperfective), `Tense`, `Person`, and `Number`.
2.  **LEMMATIZATION**: Identify the base/dictionary form (lemma) of each word. The definition should be for the lemma.
3.  **TRANSLATION**: Provide a natural English translation of the entire sentence.
4.  **TOKENIZATION**: Split into words and punctuation. Punctuation marks are separate blocks.
5.  **POS TAGGING**: Use standard tags (e.g., noun, verb, adj, adv, pron, prep, conj, particle, punctuation).
"""

_RUSSIAN_EXAMPLE = """
Example Output (Follow this structure EXACTLY):
{
    "translation": "I am reading an interesting book.",
    "blocks": [
        { "text": "Я", "pos": "pron", "definition": "I", "grammar_note": "Case: Nominative, Person: 1st, Number: Singular" },
        { "text": "читаю", "pos": "verb", "definition": "read", "grammar_note": "Lemma: читать, Aspect: Imperfective, Tense: Present, Person: 1st, Number: Singular" },
        { "text": "интересную", "pos": "adj", "definition": "interesting", "grammar_note": "Lemma: интересный, Case: Accusative, Number: Singular, Gender: Feminine" },
        { "text": "книгу", "pos": "noun", "definition": "book", "grammar_note": "Lemma: книга, Case: Accusative, Number: Singular, Gender: Feminine, Animacy: Inanimate" },
        { "text": ".", "pos": "punctuation", "definition": ".", "grammar_note": null }
    ]
}
"""


def build_prompt(language: str, sentence: str) -> str:
    # Everything that is not Korean gets the Russian rule set.
    if language == "KR":
        rules, example = _KOREAN_RULES, _KOREAN_EXAMPLE
    else:
        rules, example = _RUSSIAN_RULES, _RUSSIAN_EXAMPLE
    return f'{_BASE_RULES}\n{rules}\n{example}\nSentence: "{sentence}"\nOutput:'


def parse_model_content(content: str) -> Tuple[List[WordBlock], str]:
    """
    Parse the assistant message into (blocks, translation). Tolerates a
    Markdown code fence around the JSON object.
    """
    cleaned = content.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    try:
        data = json.loads(cleaned)
    except ValueError as exc:
        raise AnalysisError(f"Invalid JSON Structure: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("blocks"), list):
        raise AnalysisError("Invalid JSON Structure: expected an object with a 'blocks' list")
    blocks = [WordBlock.from_dict(b) for b in data["blocks"] if isinstance(b, dict)]
    return blocks, str(data.get("translation") or "")


class LlmAnalysisService(AnalysisService):
    """
    Annotates text sentence by sentence through an OpenAI-compatible
    chat-completions endpoint.

    Sentences already present in `old_sentences` (matched on their original
    text) are reused without a request. Up to `concurrency` requests run at
    once. A sentence whose request fails is kept with a single error block so
    the rest of the article still comes back.
    """

    def __init__(
        self,
        events: ProgressEvents,
        timeout_s: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.events = events
        self.timeout_s = timeout_s
        self._client = client

    async def analyze(self, request: AnalysisRequest) -> List[Sentence]:
        if not request.api_key:
            raise AnalysisError("API Key is missing")

        old_map: Dict[str, Sentence] = {s.original: s for s in request.old_sentences}
        raw_sentences = split_sentences(request.text)
        total = len(raw_sentences)
        logger.info(
            "Analyzing article %s: %d sentence(s), %d cached, concurrency=%d",
            request.id,
            total,
            sum(1 for raw in raw_sentences if raw in old_map),
            request.concurrency,
        )
        if not raw_sentences:
            return []

        semaphore = asyncio.Semaphore(max(1, request.concurrency))
        completed = 0

        async def run_one(client: httpx.AsyncClient, index: int, raw: str) -> Sentence:
            nonlocal completed
            cached = old_map.get(raw)
            if cached is not None:
                blocks, translation, audio_path = cached.blocks, cached.translation, cached.audio_path
            else:
                async with semaphore:
                    blocks, translation = await self._annotate(client, request, raw)
                audio_path = None
            completed += 1
            self.events.publish(
                ProgressEvent(
                    id=request.id,
                    current=completed,
                    total=total,
                    percent=int(completed / total * 100),
                )
            )
            return Sentence(
                id=f"{request.id}_{index}",
                original=raw,
                blocks=blocks,
                translation=translation,
                audio_path=audio_path,
            )

        if self._client is not None:
            return list(await asyncio.gather(*(run_one(self._client, i, raw) for i, raw in enumerate(raw_sentences))))
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            return list(await asyncio.gather(*(run_one(client, i, raw) for i, raw in enumerate(raw_sentences))))

    async def _annotate(
        self, client: httpx.AsyncClient, request: AnalysisRequest, sentence: str
    ) -> Tuple[List[WordBlock], str]:
        try:
            content = await self._chat(client, request, build_prompt(request.language, sentence))
            return parse_model_content(content)
        except AnalysisError as exc:
            logger.warning("Sentence annotation failed for article %s: %s", request.id, exc)
            error_block = WordBlock(text=sentence, pos="error", definition=f"Error: {exc}")
            return [error_block], ERROR_TRANSLATION

    async def _chat(self, client: httpx.AsyncClient, request: AnalysisRequest, prompt: str) -> str:
        body: Dict[str, Any] = {
            "model": request.model_name,
            "messages": [
                {"role": "system", "content": "You are a helpful assistant that outputs only JSON."},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.1,
            "stream": False,
            "max_tokens": 8196,
            "enable_thinking": False,
        }
        try:
            response = await client.post(
                request.api_url,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {request.api_key}",
                },
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AnalysisError(f"Network Error: {exc}") from exc

        if response.status_code >= 400:
            raise AnalysisError(f"API Error Code: {response.status_code}, Body: {response.text}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AnalysisError(f"JSON Parse Error: {exc}. Raw text: {response.text}") from exc
        if not isinstance(content, str) or not content:
            raise AnalysisError("API returned an empty or invalid content field.")
        return content
