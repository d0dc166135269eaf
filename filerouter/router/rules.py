"""Static keyword / extension-class rules.

Rules are evaluated strictly in table order and the first one that holds
wins. Matches are never rescored by specificity; misfiring rules are
corrected over time by learned patterns and the content classifier.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from loguru import logger

from filerouter.errors import InvalidCandidatePathError

from .models import FolderTemplate, LeafPath, RoutingCandidate, RoutingMethod, as_leaf_path
from .signature import Signature

KEYWORD_CONFIDENCE = 0.8
DEFAULT_CONFIDENCE = 0.6


@dataclass(frozen=True)
class Rule:
    """
    One (predicate, target folder, base confidence) entry.

    The predicate holds when the signature's extension class is one of
    ``extension_classes`` (any class when empty) and, if ``keywords`` is
    non-empty, at least one keyword occurs in the normalized name.
    ``templates`` restricts the rule to some template ids (all when empty).
    """

    name: str
    target: LeafPath
    confidence: float
    keywords: tuple[str, ...] = ()
    extension_classes: frozenset[str] = frozenset()
    templates: frozenset[str] = frozenset()

    def applies_to(self, template_id: str) -> bool:
        return not self.templates or template_id in self.templates

    def matched_keyword(self, signature: Signature) -> Optional[str]:
        """Return the keyword that fired, "" for keyword-less rules, None if no match."""
        if self.extension_classes and signature.extension_class not in self.extension_classes:
            return None
        if not self.keywords:
            return ""
        for keyword in self.keywords:
            if keyword in signature.text:
                return keyword
        return None

    def matches(self, signature: Signature) -> bool:
        return self.matched_keyword(signature) is not None


def rule(
    name: str,
    target: str,
    keywords: Sequence[str] = (),
    classes: Iterable[str] = (),
    templates: Iterable[str] = (),
    confidence: Optional[float] = None,
) -> Rule:
    """Shorthand constructor used by the rule tables."""
    if confidence is None:
        confidence = KEYWORD_CONFIDENCE if keywords else DEFAULT_CONFIDENCE
    return Rule(
        name=name,
        target=as_leaf_path(target),
        confidence=confidence,
        keywords=tuple(k.lower() for k in keywords),
        extension_classes=frozenset(classes),
        templates=frozenset(templates),
    )


_LUNGO = ("LUNGO",)
_BREVE = ("BREVE",)

DEFAULT_RULES: tuple[Rule, ...] = (
    # LUNGO - drawings
    rule("lungo-arc-plans", "3_PROGETTO/ARC", ["pianta", "piante", "planimetria", "plan"], ["drawing"], _LUNGO),
    rule("lungo-arc-elevations", "3_PROGETTO/ARC", ["prospetto", "prospetti"], ["drawing"], _LUNGO),
    rule("lungo-arc-sections", "3_PROGETTO/ARC", ["sezione", "sezioni"], ["drawing"], _LUNGO),
    rule("lungo-str-drawings", "3_PROGETTO/STR", ["struttur", "trave", "pilastro", "carpenteria"], ["drawing"], _LUNGO),
    rule("lungo-im-drawings", "3_PROGETTO/IM", ["impianto", "idraulico", "termico"], ["drawing"], _LUNGO),
    rule("lungo-ie-drawings", "3_PROGETTO/IE", ["elettric", "illuminazione"], ["drawing"], _LUNGO),
    rule("lungo-drawing-default", "3_PROGETTO", classes=["drawing"], templates=_LUNGO),
    # LUNGO - documents
    rule("lungo-rel", "3_PROGETTO/REL", ["relazione", "relaz", "tecnica"], ["document"], _LUNGO),
    rule("lungo-calc", "3_PROGETTO", ["calcolo", "calcoli"], ["document"], _LUNGO),
    rule("lungo-cme-docs", "3_PROGETTO/CME", ["computo", "metrico", "capitolato"], ["document"], _LUNGO),
    rule("lungo-verbali", "6_VERBALI_NOTIF_COMUNICAZIONI/VERBALI", ["verbale", "riunione"], ["document", "email"], _LUNGO),
    rule("lungo-comunicazioni", "6_VERBALI_NOTIF_COMUNICAZIONI/COMUNICAZIONI", ["corrispondenza", "lettera"], ["document", "email"], _LUNGO),
    rule("lungo-incarico", "10_INCARICO", ["contratto", "incarico"], ["document", "signed"], _LUNGO),
    rule("lungo-sic", "3_PROGETTO/SIC", ["sicurezza", "psc"], ["document"], _LUNGO),
    rule("lungo-consegna", "1_CONSEGNA", ["consegna", "richiesta"], ["document"], _LUNGO),
    rule("lungo-ricevuto", "4_MATERIALE_RICEVUTO", ["materiale", "ricevuto"], ["document"], _LUNGO),
    rule("lungo-parcella-docs", "9_PARCELLA", ["parcella", "fattura", "preventivo"], ["document"], _LUNGO),
    rule("lungo-document-default", "3_PROGETTO", classes=["document"], templates=_LUNGO),
    # LUNGO - photos
    rule("lungo-photos", "7_SOPRALLUOGHI", ["sopralluogo", "foto", "cantiere", "rilievo", "survey"], ["image"], _LUNGO),
    rule("lungo-image-default", "7_SOPRALLUOGHI", classes=["image"], templates=_LUNGO),
    # LUNGO - spreadsheets
    rule("lungo-cme-sheets", "3_PROGETTO/CME", ["computo", "metrico", "cme"], ["spreadsheet"], _LUNGO),
    rule("lungo-parcella-sheets", "9_PARCELLA", ["parcella", "fattura", "preventivo"], ["spreadsheet"], _LUNGO),
    rule("lungo-spreadsheet-default", "3_PROGETTO/CME", classes=["spreadsheet"], templates=_LUNGO),
    # BREVE
    rule("breve-elaborazioni", "ELABORAZIONI", ["relazione", "calcolo", "progetto"], ["document", "drawing"], _BREVE),
    rule("breve-consegna", "CONSEGNA", ["consegna", "richiesta"], ["document", "drawing"], _BREVE),
    rule("breve-document-default", "ELABORAZIONI", classes=["document", "drawing"], templates=_BREVE),
    rule("breve-photos", "SOPRALLUOGHI", ["sopralluogo", "foto"], ["image"], _BREVE),
    rule("breve-image-default", "SOPRALLUOGHI", classes=["image"], templates=_BREVE),
    rule("breve-spreadsheet-default", "ELABORAZIONI", classes=["spreadsheet"], templates=_BREVE),
)


class RuleMatcher:
    """Evaluates an ordered rule table against a signature."""

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self.rules: tuple[Rule, ...] = tuple(DEFAULT_RULES if rules is None else rules)

    def match(self, signature: Signature, template: FolderTemplate) -> Optional[RoutingCandidate]:
        """
        Return the candidate of the first applicable rule that holds.

        Args:
            signature: Normalized file name
            template: Template the file is being routed into

        Returns:
            RoutingCandidate with method RULE, or None when no rule holds

        Raises:
            InvalidCandidatePathError: the winning rule targets a folder the
                template does not have
        """
        for r in self.rules:
            if not r.applies_to(template.template_id):
                continue
            keyword = r.matched_keyword(signature)
            if keyword is None:
                continue

            if not template.contains(r.target):
                raise InvalidCandidatePathError(r.target, template.template_id, source=f"rule {r.name}")

            if keyword:
                reasoning = f'{signature.extension_class} file with keyword "{keyword}" (rule {r.name})'
            else:
                reasoning = f"Default folder for {signature.extension_class} files (rule {r.name})"

            logger.debug(f"Rule {r.name} matched {signature.key!r} -> {'/'.join(r.target)}")
            return RoutingCandidate(
                leaf_path=r.target,
                confidence=r.confidence,
                method=RoutingMethod.RULE,
                reasoning=reasoning,
            )

        return None
