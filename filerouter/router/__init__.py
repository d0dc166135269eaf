"""
File routing package.

Suggests a destination folder for a file from three signals:
1. Learned patterns (confirmed placements, fast path)
2. Static keyword / extension rules
3. External content classifier (fallback for uncertain cases)

Every decision is logged, and confirmed placements feed back into the
learned patterns.
"""

from .arbiter import FileRouter
from .classifier import ClassifierAdapter, ContentClassifier, LLMContentClassifier
from .learned import LearnedPatternStore
from .models import (
    FileDescriptor,
    FolderTemplate,
    LearnedPattern,
    RoutingCandidate,
    RoutingMethod,
    RoutingRecord,
    RoutingResult,
)
from .records import RoutingRecordLog
from .registry import ProjectRegistry, StaticProjectRegistry
from .rules import Rule, RuleMatcher
from .signature import Signature, normalize
from .templates import TemplateResolver, resolve_template

__all__ = [
    "FileRouter",
    "ClassifierAdapter",
    "ContentClassifier",
    "LLMContentClassifier",
    "LearnedPatternStore",
    "RoutingRecordLog",
    "RuleMatcher",
    "Rule",
    "TemplateResolver",
    "resolve_template",
    "normalize",
    "Signature",
    "ProjectRegistry",
    "StaticProjectRegistry",
    "FileDescriptor",
    "FolderTemplate",
    "LearnedPattern",
    "RoutingCandidate",
    "RoutingMethod",
    "RoutingRecord",
    "RoutingResult",
]
