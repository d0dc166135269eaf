"""Confidence arbiter: fuses learned, rule and AI signals into one decision."""

from typing import Any, Optional, Sequence

from loguru import logger

from filerouter.errors import InvalidCandidatePathError
from filerouter.utils.ids import new_record_id

from .classifier import ClassifierAdapter
from .learned import LearnedPatternStore
from .models import (
    METHOD_PRECEDENCE,
    FileDescriptor,
    FolderTemplate,
    RoutingCandidate,
    RoutingMethod,
    RoutingRecord,
    RoutingResult,
    format_leaf_path,
    to_confidence_percent,
)
from .records import RoutingRecordLog
from .registry import ProjectRegistry
from .rules import RuleMatcher
from .signature import Signature, normalize
from .templates import TemplateResolver


class FileRouter:
    """
    Suggests a folder for a file and learns from the answers.

    Signal order:
    1. Learned patterns - a hit above ``short_circuit_threshold`` is accepted
       immediately, nothing else is consulted
    2. Static rules
    3. Content classifier - only when nothing so far reached
       ``sufficient_confidence`` (this is the only await point)

    The highest-confidence candidate wins; exact ties go to
    learned > rule > ai. With no usable candidate the file goes to the
    template's fallback folder. Every ``route`` call appends exactly one
    routing record, and only once the decision is complete.
    """

    def __init__(
        self,
        patterns: LearnedPatternStore,
        records: RoutingRecordLog,
        resolver: Optional[TemplateResolver] = None,
        rules: Optional[RuleMatcher] = None,
        classifier: Optional[ClassifierAdapter] = None,
        registry: Optional[ProjectRegistry] = None,
        short_circuit_threshold: float = 0.9,
        sufficient_confidence: float = 0.75,
        min_confidence: float = 0.2,
        fallback_confidence: float = 0.1,
    ):
        if fallback_confidence > min_confidence:
            raise ValueError("fallback_confidence must not exceed min_confidence")
        self.patterns = patterns
        self.records = records
        self.resolver = resolver or TemplateResolver()
        self.rules = rules or RuleMatcher()
        self.classifier = classifier
        self.registry = registry
        self.short_circuit_threshold = short_circuit_threshold
        self.sufficient_confidence = sufficient_confidence
        self.min_confidence = min_confidence
        self.fallback_confidence = fallback_confidence

    async def route(
        self,
        file: FileDescriptor,
        template_id: str,
        project_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> RoutingResult:
        """
        Suggest a folder for ``file`` inside template ``template_id``.

        Args:
            file: The file to place
            template_id: Folder template of the destination project
            project_id: Optional project, recorded for auditing
            timeout_ms: Classifier timeout for this call (adapter default if None)

        Returns:
            RoutingResult with the chosen folder, a 0-100 confidence, the
            method that produced it and the id of the new routing record

        Raises:
            UnknownTemplateError: ``template_id`` is not configured
            StoreUnavailableError: the pattern store or log cannot be reached
        """
        template = self.resolver.resolve(template_id)
        signature = normalize(file.name)
        logger.debug(f"Routing {file.name!r} as {signature.key!r} in {template_id}")

        chosen = await self._decide(file, template, signature, timeout_ms)

        record = RoutingRecord(
            id=new_record_id(),
            file_name=file.name,
            template_id=template.template_id,
            project_id=project_id,
            file_type=file.guessed_type,
            suggested_path=chosen.leaf_path,
            confidence=to_confidence_percent(chosen.confidence),
            method=chosen.method,
            signature=signature.key,
        )
        self.records.append(record)

        logger.info(
            f"Routed {file.name} -> {format_leaf_path(chosen.leaf_path)} "
            f"[{chosen.method.value} {record.confidence}%]"
        )
        return RoutingResult(
            leaf_path=chosen.leaf_path,
            confidence=record.confidence,
            method=chosen.method,
            record_id=record.id,
            reasoning=chosen.reasoning,
            alternatives=list(chosen.alternatives),
        )

    async def route_project(
        self,
        file: FileDescriptor,
        project_id: str,
        timeout_ms: Optional[int] = None,
    ) -> RoutingResult:
        """Route using the template the project registry assigns to ``project_id``."""
        if self.registry is None:
            raise RuntimeError("No project registry configured")
        template_id = self.registry.get_template_id(project_id)
        return await self.route(file, template_id, project_id=project_id, timeout_ms=timeout_ms)

    def report_actual(self, record_id: str, actual_path: Sequence[str]) -> RoutingRecord:
        """Feedback hook: the folder a human accepted or chose instead."""
        return self.records.report_actual(record_id, actual_path)

    def list_by_project(self, project_id: Optional[str]) -> list[RoutingRecord]:
        return self.records.list_by_project(project_id)

    def stats(self) -> dict[str, Any]:
        """Routing statistics for status displays."""
        return {
            "learned_patterns": self.patterns.count(),
            "ai_enabled": self.classifier is not None,
            "total_routings": self.records.count(),
            "templates": self.resolver.template_ids,
        }

    async def _decide(
        self,
        file: FileDescriptor,
        template: FolderTemplate,
        signature: Signature,
        timeout_ms: Optional[int],
    ) -> RoutingCandidate:
        candidates: list[RoutingCandidate] = []

        learned = self._learned_candidate(signature, template)
        if learned is not None:
            if learned.confidence > self.short_circuit_threshold:
                logger.debug(f"Learned pattern short-circuit for {signature.key!r}")
                return learned
            candidates.append(learned)

        rule = self._rule_candidate(signature, template)
        if rule is not None:
            candidates.append(rule)

        best_sync = max((c.confidence for c in candidates), default=0.0)
        if self.classifier is not None and best_sync < self.sufficient_confidence:
            ai = await self.classifier.classify(file, template, timeout_ms=timeout_ms)
            if ai is not None:
                candidates.append(ai)

        return self._arbitrate(candidates, template)

    def _learned_candidate(self, signature: Signature, template: FolderTemplate) -> Optional[RoutingCandidate]:
        candidate = self.patterns.candidate(signature.key)
        if candidate is not None and not template.contains(candidate.leaf_path):
            # Learned under another template
            error = InvalidCandidatePathError(candidate.leaf_path, template.template_id, source="learned pattern")
            logger.debug(f"Discarding learned candidate: {error}")
            return None
        return candidate

    def _rule_candidate(self, signature: Signature, template: FolderTemplate) -> Optional[RoutingCandidate]:
        try:
            return self.rules.match(signature, template)
        except InvalidCandidatePathError as e:
            logger.warning(f"Discarding rule candidate: {e}")
            return None

    def _arbitrate(self, candidates: list[RoutingCandidate], template: FolderTemplate) -> RoutingCandidate:
        usable = [c for c in candidates if c.confidence >= self.min_confidence]
        if not usable:
            return RoutingCandidate(
                leaf_path=template.fallback,
                confidence=self.fallback_confidence,
                method=RoutingMethod.FALLBACK,
                reasoning="No signal produced a usable suggestion",
            )
        return min(usable, key=lambda c: (-round(c.confidence, 6), METHOD_PRECEDENCE[c.method]))
