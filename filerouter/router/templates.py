"""Folder templates a project can be filed under.

Templates are built once at import time from static structures and never
mutated afterwards, so resolving them is safe from any thread or task.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from filerouter.errors import UnknownTemplateError

from .models import FolderNode, FolderTemplate

FALLBACK_FOLDER = "00_DA_CLASSIFICARE"

# Complex projects
LUNGO_STRUCTURE: dict = {
    "1_CONSEGNA": {},
    "2_PERMIT": {},
    "3_PROGETTO": {
        "ARC": {},
        "CME": {},
        "CRONO_CAPITOLATI_MANUT": {},
        "IE": {},
        "IM": {},
        "IS": {},
        "REL": {},
        "SIC": {},
        "STR": {},
        "X_RIF": {},
    },
    "4_MATERIALE_RICEVUTO": {},
    "5_CANTIERE": {
        "0_PSC_FE": {},
        "IMPRESA": {
            "CONTRATTO": {},
            "CONTROLLI": {},
            "DOCUMENTI": {},
        },
    },
    "6_VERBALI_NOTIF_COMUNICAZIONI": {
        "COMUNICAZIONI": {},
        "NP": {},
        "ODS": {},
        "VERBALI": {},
    },
    "7_SOPRALLUOGHI": {},
    "8_VARIANTI": {},
    "9_PARCELLA": {},
    "10_INCARICO": {},
}

LUNGO_DESCRIPTIONS = {
    FALLBACK_FOLDER: "File in attesa di classificazione",
    "1_CONSEGNA": "Documenti cliente e brief progetto",
    "2_PERMIT": "Permessi e autorizzazioni",
    "3_PROGETTO": "Elaborati tecnici principali",
    "3_PROGETTO/ARC": "Architettonici (piante, prospetti, sezioni)",
    "3_PROGETTO/CME": "Computi metrici estimativi",
    "3_PROGETTO/CRONO_CAPITOLATI_MANUT": "Cronoprogramma, capitolati e piani di manutenzione",
    "3_PROGETTO/IE": "Impianti elettrici",
    "3_PROGETTO/IM": "Impianti meccanici",
    "3_PROGETTO/IS": "Impianti speciali",
    "3_PROGETTO/REL": "Relazioni tecniche",
    "3_PROGETTO/SIC": "Sicurezza cantiere",
    "3_PROGETTO/STR": "Strutturali (calcoli, carpenteria)",
    "3_PROGETTO/X_RIF": "Riferimenti e standard",
    "4_MATERIALE_RICEVUTO": "Documenti ricevuti da terzi",
    "5_CANTIERE": "Documentazione cantiere",
    "5_CANTIERE/0_PSC_FE": "Piano sicurezza cantiere",
    "5_CANTIERE/IMPRESA": "Documentazione impresa",
    "5_CANTIERE/IMPRESA/CONTRATTO": "Contratti",
    "5_CANTIERE/IMPRESA/CONTROLLI": "Controlli qualita",
    "5_CANTIERE/IMPRESA/DOCUMENTI": "Altri documenti impresa",
    "6_VERBALI_NOTIF_COMUNICAZIONI": "Comunicazioni ufficiali",
    "6_VERBALI_NOTIF_COMUNICAZIONI/COMUNICAZIONI": "Comunicazioni generali",
    "6_VERBALI_NOTIF_COMUNICAZIONI/NP": "Note e promemoria",
    "6_VERBALI_NOTIF_COMUNICAZIONI/ODS": "Ordini di servizio",
    "6_VERBALI_NOTIF_COMUNICAZIONI/VERBALI": "Verbali riunioni",
    "7_SOPRALLUOGHI": "Report sopralluoghi",
    "8_VARIANTI": "Varianti progettuali",
    "9_PARCELLA": "Fatturazione e parcelle",
    "10_INCARICO": "Documenti incarico",
}

# Simple projects
BREVE_STRUCTURE: dict = {
    "CONSEGNA": {},
    "ELABORAZIONI": {},
    "MATERIALE_RICEVUTO": {},
    "SOPRALLUOGHI": {},
}

BREVE_DESCRIPTIONS = {
    FALLBACK_FOLDER: "File in attesa di classificazione",
    "CONSEGNA": "Documenti cliente e brief",
    "ELABORAZIONI": "Elaborati tecnici",
    "MATERIALE_RICEVUTO": "Documenti terzi",
    "SOPRALLUOGHI": "Report sopralluoghi",
}


def build_template(
    template_id: str,
    name: str,
    structure: Mapping,
    descriptions: Optional[Mapping[str, str]] = None,
    fallback_folder: str = FALLBACK_FOLDER,
) -> FolderTemplate:
    """
    Build an immutable template from a nested {label: {...}} mapping.

    The fallback bucket is added as the first top-level folder when the
    structure does not already contain it.
    """
    def _nodes(level: Mapping) -> tuple[FolderNode, ...]:
        return tuple(FolderNode(str(label), _nodes(children or {})) for label, children in level.items())

    folders = _nodes(structure)
    if fallback_folder not in structure:
        folders = (FolderNode(fallback_folder),) + folders

    return FolderTemplate(
        template_id=template_id,
        name=name,
        folders=folders,
        fallback=(fallback_folder,),
        descriptions=dict(descriptions or {}),
    )


DEFAULT_TEMPLATES: Mapping[str, FolderTemplate] = MappingProxyType({
    "LUNGO": build_template("LUNGO", "LUNGO - Progetti complessi", LUNGO_STRUCTURE, LUNGO_DESCRIPTIONS),
    "BREVE": build_template("BREVE", "BREVE - Progetti semplici", BREVE_STRUCTURE, BREVE_DESCRIPTIONS),
})


class TemplateResolver:
    """Looks up the statically configured folder templates by id."""

    def __init__(self, templates: Optional[Iterable[FolderTemplate]] = None):
        if templates is None:
            self._templates = dict(DEFAULT_TEMPLATES)
        else:
            self._templates = {t.template_id: t for t in templates}

    @property
    def template_ids(self) -> list[str]:
        return list(self._templates)

    def resolve(self, template_id: str) -> FolderTemplate:
        """
        Return the folder tree for a template id.

        Raises:
            UnknownTemplateError: if the id is not configured
        """
        try:
            return self._templates[template_id]
        except KeyError:
            raise UnknownTemplateError(template_id) from None


_default_resolver = TemplateResolver()


def resolve_template(template_id: str) -> FolderTemplate:
    """Resolve one of the built-in templates."""
    return _default_resolver.resolve(template_id)
