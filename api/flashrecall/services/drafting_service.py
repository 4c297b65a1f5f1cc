"""
Drafting service: turns source text into flashcard drafts with Gemini.
"""
import requests
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from flashrecall.core.config import settings
from flashrecall.core.exceptions import DraftingError

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You create study flashcards. Each flashcard has a short question or term on the "
    "front and a concise, self-contained answer on the back. Only use facts stated in "
    "the provided text. Respond with JSON only, in the form "
    '{"flashcards": [{"front": "...", "back": "..."}]}.'
)


@dataclass
class FlashcardDraft:
    """Proposed flashcard, not yet saved."""
    front: str
    back: str


def build_prompt(source_text: str, max_cards: int) -> str:
    """Prompt asking for at most ``max_cards`` flashcards about ``source_text``."""
    return (
        f"Create at most {max_cards} flashcards from the following text.\n\n"
        f"Text:\n{source_text}"
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    text = text.strip()
    if text.startswith('```'):
        lines = text.split('\n')
        text = '\n'.join(lines[1:])
        if text.rstrip().endswith('```'):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_drafts(text: str, max_cards: int) -> List[FlashcardDraft]:
    """
    Parse the model's JSON answer into drafts.

    Entries with an empty front or back are dropped; at most ``max_cards`` are kept.

    Raises:
        DraftingError: If the text is not the expected JSON shape
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM JSON response: {e}")
        logger.error(f"Response text: {text[:500]}")
        raise DraftingError(f"AI service returned invalid JSON: {str(e)}")

    items = data.get('flashcards') if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise DraftingError("AI service response missing 'flashcards' list")

    drafts = []
    for item in items:
        if not isinstance(item, dict):
            continue
        front = str(item.get('front') or '').strip()
        back = str(item.get('back') or '').strip()
        if front and back:
            drafts.append(FlashcardDraft(front=front, back=back))
    return drafts[:max_cards]


class GeminiDraftingClient:
    """Drafting client backed by the Google Generative AI (Gemini) REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        self.api_key = api_key if api_key is not None else settings.google_gemini_api_key
        self.model_name = model_name or settings.gemini_model_name
        self.timeout = timeout or settings.gemini_timeout_seconds
        self.base_url = f"https://generativelanguage.googleapis.com/v1beta/models/{self.model_name}:generateContent"

        if not self.api_key:
            logger.warning("Google Gemini API key not configured. Flashcard generation will fail.")

    def generate(self, source_text: str, max_cards: int) -> List[FlashcardDraft]:
        """
        Draft up to ``max_cards`` flashcards from ``source_text``.

        Args:
            source_text: Text to study
            max_cards: Upper bound on the number of drafts

        Returns:
            List of FlashcardDraft (may be shorter than max_cards)

        Raises:
            DraftingError: If the API call fails or the response is unusable
        """
        if not self.api_key:
            raise DraftingError("Google Gemini API key not configured")

        payload = {
            "contents": [{
                "parts": [{
                    "text": build_prompt(source_text, max_cards)
                }]
            }],
            "systemInstruction": {
                "parts": [{
                    "text": SYSTEM_INSTRUCTION
                }]
            },
            "generationConfig": {
                "temperature": 0.4,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 4096,
                "responseMimeType": "application/json",
            }
        }

        try:
            response = requests.post(
                f"{self.base_url}?key={self.api_key}",
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            error_msg = f"Gemini API request failed: {str(e)}"
            if getattr(e, 'response', None) is not None:
                error_msg += f" - Status: {e.response.status_code}"
            logger.error(error_msg)
            raise DraftingError("AI service request failed") from e
        except ValueError as e:
            logger.error(f"Gemini API returned a non-JSON body: {e}")
            raise DraftingError("AI service returned an invalid response") from e

        candidates = data.get('candidates') or []
        if not candidates:
            raise DraftingError("AI service response missing candidates")
        parts = candidates[0].get('content', {}).get('parts') or []
        if not parts:
            raise DraftingError("AI service response missing content or parts")
        text = parts[0].get('text', '').strip()
        if not text:
            raise DraftingError("AI service returned empty response")

        drafts = parse_drafts(text, max_cards)
        logger.info(f"Gemini drafted {len(drafts)} flashcards (model {self.model_name})")
        return drafts


def get_drafting_client() -> GeminiDraftingClient:
    """Dependency returning the configured drafting client."""
    return GeminiDraftingClient()
