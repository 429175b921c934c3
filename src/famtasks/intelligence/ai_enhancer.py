"""AI Task Enhancement

Optional LLM layer on top of the rule-based parser. It asks a local
Ollama-compatible server for inferred facts (members, location, time, date,
category, driving), appends them to the sentence as plain clauses, and parses
the enriched sentence again so highlighting and tags stay rule-derived.

Any failure (server down, no model, bad JSON, schema mismatch, timeout)
degrades to the plain rule-based result.
"""

import asyncio
import json
import re
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.config_manager import FamilyMember, KnownPlace, LLMConfig
from ..core.error_handler import ErrorHandler, ErrorSeverity, LLMError
from ..core.logging_manager import LoggingManager
from ..processors.task_parser import TaskParser
from ..processors.task_types import ClockTime, Language, ParsedTask


JSON_OBJECT = re.compile(r'\{[\s\S]*\}')
CATEGORY_MARKER = re.compile(r'^@category:(?P<name>[^:\s]+):(?P<icon>\S+)\s*')

CATEGORY_HINTS = [
    "health", "work", "personal", "family", "education", "social", "finance", "home",
    "travel", "fitness", "food", "shopping", "appointment", "childcare", "errand", "transport",
]


class AIParseResult(BaseModel):
    """Schema of the JSON object the model must return."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    involved_members: List[str] = Field(default_factory=list, alias="involvedMembers")
    location: Optional[str] = None
    specific_date: Optional[str] = Field(default=None, alias="specificDate")
    specific_time: Optional[Dict[str, int]] = Field(default=None, alias="specificTime")
    time_bucket: Optional[str] = Field(default=None, alias="timeBucket")
    priority: Optional[str] = None
    recurring: Optional[Union[str, List[int]]] = None
    category: Optional[str] = None
    category_icon: Optional[str] = Field(default=None, alias="categoryIcon")
    requires_driving: bool = Field(default=False, alias="requiresDriving")
    driving_duration: Optional[int] = Field(default=None, alias="drivingDuration", ge=0)
    reasoning: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


def split_category_marker(text: str) -> Tuple[Optional[str], Optional[str], str]:
    """Split a leading ``@category:<name>:<emoji>`` marker off a task text.

    Returns:
        Tuple of (category name, category emoji, remaining text); the first two
        are None when the text carries no marker
    """
    match = CATEGORY_MARKER.match(text or "")
    if not match:
        return None, None, text
    return match.group('name'), match.group('icon'), text[match.end():]


class AITaskEnhancer:
    """Enriches rule-based parses with facts inferred by a local LLM."""

    def __init__(self, parser: TaskParser, llm_config: Optional[LLMConfig] = None,
                 error_handler: Optional[ErrorHandler] = None):
        """Initialize enhancer.

        Args:
            parser: Rule-based parser used for the base and enriched parses
            llm_config: LLM server settings; defaults to the parser's configuration
            error_handler: Handler that logs fallbacks; a private one is created if omitted
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.parser = parser
        self.config = llm_config or parser.config.llm
        self.error_handler = error_handler or ErrorHandler()
        self.family_members: Sequence[FamilyMember] = parser.config.family_members
        self.known_places: Sequence[KnownPlace] = parser.config.known_places

    def get_available_models(self) -> List[str]:
        """List model names installed on the server.

        Raises:
            LLMError: If the server cannot be reached or answers badly
        """
        try:
            response = requests.get(f"{self.config.base_url}/api/tags", timeout=self.config.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise LLMError(f"Failed to list models: {e}", ErrorSeverity.MEDIUM) from e

        models = data.get("models", []) if isinstance(data, dict) else None
        if not isinstance(models, list) or not all(isinstance(model, dict) for model in models):
            raise LLMError("Malformed model list envelope", ErrorSeverity.MEDIUM)

        return [model["name"] for model in models if isinstance(model.get("name"), str) and model["name"]]

    def select_model(self, models: Sequence[str]) -> str:
        """Pick the first preferred model that is installed, else the first installed one.

        Raises:
            LLMError: If no model is available
        """
        for preferred in self.config.preferred_models:
            if preferred in models:
                return preferred
        if not models:
            raise LLMError("No LLM models available", ErrorSeverity.MEDIUM)
        return models[0]

    def build_system_prompt(self) -> str:
        members = "\n".join(
            f"- {m.name} ({m.name_localized}): {'child' if m.is_child else 'adult'}"
            f"{', needs supervision' if m.needs_supervision else ''}"
            for m in self.family_members
        )
        places = "\n".join(
            f"- {p.name_localized} ({p.name}): {p.driving_time_from_home} min drive"
            f"{', requires driving' if p.requires_driving else ''}"
            for p in self.known_places
        )

        return (
            "You are a task parsing assistant for a family calendar. Parse Hebrew and "
            "English task descriptions into structured data.\n\n"
            f"# Family members\n{members}\n\n"
            f"# Known locations\n{places}\n\n"
            "# Rules\n"
            "- A supervised child going to a location that requires driving means driving is required.\n"
            "- Use the known locations' driving times for drivingDuration.\n"
            "- Multiple weekdays are returned as an array of day indexes, Sunday = 0.\n"
            f"- Pick a category such as {', '.join(CATEGORY_HINTS)}, or suggest a new one with an emoji.\n\n"
            "Return ONLY a JSON object with these optional fields:\n"
            '{"involvedMembers": ["Name"], "location": "place name", "specificDate": "YYYY-MM-DD", '
            '"specificTime": {"hour": 16, "minute": 0}, '
            '"timeBucket": "today|tomorrow|this-week|next-week|unlabeled", "priority": "P1|P2|P3", '
            '"recurring": "daily|weekly|monthly|none" or [1, 4], "category": "name", '
            '"categoryIcon": "emoji", "requiresDriving": true, "drivingDuration": 15, '
            '"reasoning": "short explanation", "confidence": 0.9}'
        )

    def build_user_prompt(self, text: str, recent_tasks: Optional[Sequence[str]] = None,
                          categories: Optional[Sequence[str]] = None) -> str:
        prompt = f'Parse this task: "{text}"'
        if recent_tasks:
            recent = list(recent_tasks)[:self.config.recent_task_limit]
            if recent:
                prompt += "\n\nRecent tasks for context:\n" + "\n".join(recent)
        if categories:
            prompt += "\n\nExisting categories:\n" + ", ".join(categories)
        return prompt

    def request_completion(self, model: str, system_prompt: str, user_prompt: str) -> str:
        """Send one non-streaming chat request and return the reply text.

        Raises:
            LLMError: On transport errors or a malformed reply envelope
        """
        try:
            response = requests.post(
                f"{self.config.base_url}/api/chat",
                json={
                    "model": model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "options": {"temperature": self.config.temperature},
                    "stream": False,
                },
                timeout=self.config.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise LLMError(f"LLM request timed out after {self.config.timeout}s", ErrorSeverity.MEDIUM) from e
        except (requests.RequestException, ValueError) as e:
            raise LLMError(f"LLM request failed: {e}", ErrorSeverity.HIGH) from e

        if not isinstance(data, dict):
            raise LLMError("Malformed chat reply envelope")
        if data.get("error"):
            raise LLMError(f"LLM returned an error: {data['error']}")

        message = data.get("message")
        if not isinstance(message, dict):
            raise LLMError("Malformed chat reply envelope")
        content = message.get("content")
        if not isinstance(content, str):
            raise LLMError("LLM reply has no message content")
        return content

    def extract_result(self, content: str) -> AIParseResult:
        """Pull the first JSON object out of a reply and validate it.

        Raises:
            LLMError: If no valid JSON object is found
        """
        match = JSON_OBJECT.search(content)
        if not match:
            raise LLMError("No JSON found in AI response")

        try:
            return AIParseResult.model_validate(json.loads(match.group(0)))
        except json.JSONDecodeError as e:
            raise LLMError(f"AI response is not valid JSON: {e}") from e
        except ValidationError as e:
            raise LLMError(f"AI response does not match the expected schema: {e}") from e

    def build_enhanced_text(self, text: str, base: ParsedTask, result: AIParseResult) -> str:
        """Append inferred clauses the rule-based parse missed.

        Clauses are phrased so the rule-based patterns recognize them, e.g.
        "(גן, עם אלון, בשעה 16:00)". A category marker is prepended when the
        model suggested a category with an icon.
        """
        hebrew = base.language == Language.HEBREW
        added: List[str] = []

        if result.location and not base.location:
            added.append(self._place_keyword(result.location, hebrew))

        new_members = [name for name in result.involved_members
                       if name not in base.involved_members and name != base.owner]
        if new_members:
            names = ", ".join(self._member_name(name, hebrew) for name in new_members)
            added.append(f"עם {names}" if hebrew else f"with {names}")

        if result.specific_time and not base.specific_time:
            try:
                clock = ClockTime.coerce(result.specific_time)
                added.append(f"בשעה {clock.display}" if hebrew else f"at {clock.display}")
            except ValueError as e:
                self.logger.debug(f"Ignoring inferred time {result.specific_time}: {e}")

        if result.specific_date and not base.specific_date:
            added.append(result.specific_date)

        if result.requires_driving and result.driving_duration and not base.driving_duration:
            added.append(f"🚗 {result.driving_duration} דקות נסיעה" if hebrew
                         else f"🚗 {result.driving_duration} min drive")

        enhanced = text
        if added:
            enhanced = f"{text} ({', '.join(added)})"
            self.logger.info(f"Added inferred info: {', '.join(added)}")

        if result.category and result.category_icon:
            enhanced = f"@category:{result.category}:{result.category_icon} {enhanced}"

        return enhanced

    def _member_name(self, name: str, hebrew: bool) -> str:
        for member in self.family_members:
            if member.name.lower() == name.lower() or member.name_localized == name:
                return member.name_localized if hebrew and member.name_localized else member.name
        return name

    def _place_keyword(self, name: str, hebrew: bool) -> str:
        for place in self.known_places:
            names = [place.name.lower(), place.name_localized] + [k.lower() for k in place.keywords_en]
            if name.lower() in names or name in place.keywords_he:
                keywords = place.keywords_he if hebrew else place.keywords_en
                return keywords[0] if keywords else place.name
        return name

    def enhance(self, text: str, recent_tasks: Optional[Sequence[str]] = None,
                categories: Optional[Sequence[str]] = None) -> ParsedTask:
        """Parse with AI enrichment, falling back to the rule-based parse.

        Args:
            text: Raw task sentence
            recent_tasks: Recent task texts given to the model as context
            categories: Existing category names the model may reuse

        Returns:
            Enriched parse with AI metadata, or the plain rule-based parse
        """
        if not self.config.enabled:
            self.logger.debug("AI enhancement disabled, using rule-based parser")
            return self.parser.parse(text)

        try:
            model = self.select_model(self.get_available_models())
            self.logger.info(f"Using model: {model}")

            started = time.time()
            content = self.request_completion(
                model, self.build_system_prompt(), self.build_user_prompt(text, recent_tasks, categories)
            )
            latency_ms = int((time.time() - started) * 1000)

            result = self.extract_result(content)
            self.logger.debug(f"AI result: {result.model_dump(exclude_none=True)}")

            base = self.parser.parse(text)
            enhanced = self.parser.parse(self.build_enhanced_text(text, base, result))
            enhanced.metadata = self._metadata(model, latency_ms, result)
            return enhanced

        except LLMError as e:
            self.error_handler.handle_error(e, "AI enhancement failed, falling back to rule-based parser")
            return self.parser.parse(text)

    async def enhance_async(self, text: str, recent_tasks: Optional[Sequence[str]] = None,
                            categories: Optional[Sequence[str]] = None) -> ParsedTask:
        """Run ``enhance`` off the event loop under the configured timeout."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self.enhance, text, recent_tasks, categories),
                timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            error = LLMError(f"AI enhancement timed out after {self.config.timeout}s")
            self.error_handler.handle_error(error, "AI enhancement failed, falling back to rule-based parser")
            return self.parser.parse(text)

    def _metadata(self, model: str, latency_ms: int, result: AIParseResult) -> Dict[str, Any]:
        return {
            "used_ai": True,
            "ai_model": model,
            "ai_latency_ms": latency_ms,
            "ai_confidence": result.confidence,
            "ai_reasoning": result.reasoning,
            "category": result.category,
            "category_icon": result.category_icon,
        }
