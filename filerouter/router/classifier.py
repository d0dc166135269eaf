"""Content classifier contract and the adapter that contains its failures.

The classifier is the only signal that does network I/O and the only one
allowed to fail for external reasons. ``ClassifierAdapter`` enforces a
timeout, validates the proposed folder against the template, and turns
every failure into "no candidate" so routing always completes.
"""

import asyncio
import math
from abc import ABC, abstractmethod
from typing import Any, Optional

import json_repair
from loguru import logger

from filerouter.errors import ClassifierUnavailableError, InvalidCandidatePathError
from filerouter.providers.base import LLMProvider

from .models import FileDescriptor, FolderTemplate, RoutingCandidate, RoutingMethod, as_leaf_path, format_leaf_path

CLASSIFICATION_PROMPT = """You are an expert Italian structural engineer filing project documents.

ANALYZE THIS FILE:
- Filename: {file_name}
- Extension: {extension}
- MIME Type: {mime_type}
- Size: {size} bytes
{preview}
PROJECT TEMPLATE: {template_id} ({template_name})

AVAILABLE FOLDERS (CHOOSE ONLY FROM THIS EXACT LIST):
{folders}

FOLDER STRUCTURE:
{structure}

INSTRUCTIONS:
1. Identify the engineering document type from name, extension and content
2. Select EXACTLY ONE folder path from the available list
3. Never invent folder names and never use folders from other templates
4. Suggest up to 3 alternative folder paths from the available list

Respond ONLY with a JSON object:
{{
    "suggestedPath": "FOLDER/FROM/LIST",
    "confidence": 0.0-1.0,
    "reasoning": "One sentence explaining the placement",
    "alternatives": ["OTHER/FOLDER"]
}}
"""

TEXTUAL_TYPES = ("text/", "application/pdf", "application/json", "application/xml")


def check_confidence(value: Any) -> float:
    """
    Validate a classifier confidence.

    Raises:
        ClassifierUnavailableError: not a number, NaN/infinite, or outside [0, 1]
    """
    if isinstance(value, bool):
        raise ClassifierUnavailableError(f"Invalid confidence: {value!r}")
    try:
        confidence = float(value)
    except (TypeError, ValueError) as e:
        raise ClassifierUnavailableError(f"Invalid confidence: {value!r}") from e
    if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
        raise ClassifierUnavailableError(f"Confidence out of range: {value!r}")
    return confidence


class ContentClassifier(ABC):
    """
    Contract for an external content classifier.

    Implementations return a candidate folder with a confidence in [0, 1]
    and raise ``ClassifierUnavailableError`` on any failure. They do not
    need to validate the folder; the adapter does.
    """

    @abstractmethod
    async def classify(self, file: FileDescriptor, template: FolderTemplate) -> RoutingCandidate:
        pass


class LLMContentClassifier(ContentClassifier):
    """Asks an LLM to pick a folder from the template."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        secondary_model: str | None = None,
        max_preview_chars: int = 500,
        max_preview_bytes: int = 10_000,
    ):
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.secondary_model = secondary_model
        self.max_preview_chars = max_preview_chars
        self.max_preview_bytes = max_preview_bytes

    async def classify(self, file: FileDescriptor, template: FolderTemplate) -> RoutingCandidate:
        """
        Classify a file using LLM assistance.

        Args:
            file: The file to place
            template: Folder tree the answer must come from

        Returns:
            RoutingCandidate with method AI (folder not yet validated)

        Raises:
            ClassifierUnavailableError: transport error or malformed answer
        """
        messages = [
            {"role": "system", "content": "You are a document filing classifier. Respond ONLY with valid JSON."},
            {"role": "user", "content": self.build_prompt(file, template)},
        ]

        try:
            content = await self._call_llm(messages, self.model)
            return self._parse_response(content)
        except ClassifierUnavailableError as e:
            if not self.secondary_model:
                raise
            logger.warning(f"Classifier model {self.model} failed ({e}), retrying with {self.secondary_model}")
            content = await self._call_llm(messages, self.secondary_model)
            return self._parse_response(content)

    async def test_connection(self) -> bool:
        """Check that the configured model answers at all."""
        try:
            await self._call_llm([{"role": "user", "content": "Reply with OK"}], self.model)
        except ClassifierUnavailableError as e:
            logger.error(f"Classifier connection test failed: {e}")
            return False
        logger.info(f"Classifier connection test succeeded ({self.model})")
        return True

    def build_prompt(self, file: FileDescriptor, template: FolderTemplate) -> str:
        preview = self._preview(file)
        return CLASSIFICATION_PROMPT.format(
            file_name=file.name,
            extension=file.extension or "(none)",
            mime_type=file.guessed_type,
            size=file.size,
            preview=f"- Content preview: {preview}\n" if preview else "",
            template_id=template.template_id,
            template_name=template.name,
            folders="\n".join(f"- {format_leaf_path(p)}" for p in template.iter_paths()),
            structure=template.render(),
        )

    def _preview(self, file: FileDescriptor) -> str:
        """First characters of small textual files; empty otherwise."""
        if not file.content or file.size >= self.max_preview_bytes:
            return ""
        if not file.guessed_type.startswith(TEXTUAL_TYPES):
            return ""
        text = file.content[: self.max_preview_chars * 4].decode("utf-8", errors="replace")
        return " ".join(text.split())[: self.max_preview_chars]

    async def _call_llm(self, messages: list[dict[str, Any]], model: str) -> str:
        response = await self.provider.chat(messages=messages, model=model, max_tokens=800, temperature=0.1)
        if response.is_error:
            raise ClassifierUnavailableError(response.content or "LLM call failed")
        if not response.content:
            raise ClassifierUnavailableError("Empty response from classifier")
        return response.content

    def _parse_response(self, content: str) -> RoutingCandidate:
        """Parse the JSON answer, tolerating markdown fences and minor syntax slips."""
        content = content.strip()
        if "```json" in content:
            content = content.split("```json")[1].split("```")[0].strip()
        elif "```" in content:
            content = content.split("```")[1].split("```")[0].strip()

        try:
            result = json_repair.loads(content)
        except Exception as e:
            raise ClassifierUnavailableError(f"Unparseable classifier response: {e}") from e
        if not isinstance(result, dict):
            raise ClassifierUnavailableError("Classifier response is not a JSON object")

        raw_path = result.get("suggestedPath") or result.get("leafPath")
        if not raw_path or not isinstance(raw_path, (str, list)):
            raise ClassifierUnavailableError("Classifier response has no suggestedPath")

        confidence = check_confidence(result.get("confidence", 0.0))

        alternatives = [
            as_leaf_path(alt) for alt in result.get("alternatives") or []
            if isinstance(alt, (str, list))
        ]

        return RoutingCandidate(
            leaf_path=as_leaf_path(raw_path),
            confidence=confidence,
            method=RoutingMethod.AI,
            reasoning=str(result.get("reasoning") or "AI analysis"),
            alternatives=[a for a in alternatives if a],
        )


class ClassifierAdapter:
    """Runs a ContentClassifier with a timeout and validates its answer."""

    def __init__(self, classifier: ContentClassifier, timeout_ms: int = 15000):
        self.classifier = classifier
        self.timeout_ms = timeout_ms

    async def classify(
        self,
        file: FileDescriptor,
        template: FolderTemplate,
        timeout_ms: Optional[int] = None,
    ) -> Optional[RoutingCandidate]:
        """
        Ask the classifier for a candidate.

        Returns:
            A candidate whose folder exists in ``template``, or None when the
            classifier failed, timed out, or proposed an unknown folder.
        """
        try:
            candidate = await self._classify(file, template, timeout_ms)
        except (ClassifierUnavailableError, InvalidCandidatePathError) as e:
            logger.warning(f"No AI candidate for {file.name}: {e}")
            return None

        logger.debug(
            f"AI candidate for {file.name}: {format_leaf_path(candidate.leaf_path)} "
            f"({candidate.confidence:.2f})"
        )
        return candidate

    async def _classify(
        self,
        file: FileDescriptor,
        template: FolderTemplate,
        timeout_ms: Optional[int],
    ) -> RoutingCandidate:
        timeout = (timeout_ms if timeout_ms is not None else self.timeout_ms) / 1000.0
        try:
            candidate = await asyncio.wait_for(self.classifier.classify(file, template), timeout=timeout)
        except asyncio.TimeoutError:
            raise ClassifierUnavailableError(f"Classifier timed out after {timeout:.1f}s") from None
        except ClassifierUnavailableError:
            raise
        except Exception as e:
            # Untrusted external signal: any other failure counts as unavailability
            raise ClassifierUnavailableError(f"Classifier failed: {e}") from e

        if not isinstance(candidate, RoutingCandidate):
            raise ClassifierUnavailableError(f"Classifier returned {type(candidate).__name__}")
        candidate.confidence = check_confidence(candidate.confidence)
        if not template.contains(candidate.leaf_path):
            raise InvalidCandidatePathError(candidate.leaf_path, template.template_id, source="classifier")

        candidate.method = RoutingMethod.AI
        candidate.alternatives = [
            alt for alt in candidate.alternatives
            if alt != candidate.leaf_path and template.contains(alt)
        ]
        return candidate
