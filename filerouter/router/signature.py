"""Reduce file names to comparison-ready learning keys.

Two names a human would call "the same document, another revision" must
end up with the same key, e.g.::

    "Fattura_2024-03-15_n12.pdf"  -> "document:fattura"
    "fattura 07.2023 (copia).PDF" -> "document:fattura"
"""

import re
import unicodedata
from dataclasses import dataclass

EXTENSION_CLASSES: dict[str, frozenset[str]] = {
    "document": frozenset({"pdf", "doc", "docx", "odt", "rtf", "txt", "md", "pages"}),
    "spreadsheet": frozenset({"xls", "xlsx", "xlsm", "ods", "csv", "numbers"}),
    "drawing": frozenset({"dwg", "dxf", "skp", "dwf", "ifc", "rvt", "pln"}),
    "image": frozenset({"jpg", "jpeg", "png", "tif", "tiff", "bmp", "gif", "heic", "webp"}),
    "presentation": frozenset({"ppt", "pptx", "odp", "key"}),
    "email": frozenset({"eml", "msg"}),
    "archive": frozenset({"zip", "rar", "7z", "tar", "gz"}),
    "signed": frozenset({"p7m"}),
}

_CLASS_BY_EXTENSION = {ext: cls for cls, exts in EXTENSION_CLASSES.items() for ext in exts}

NO_EXTENSION_CLASS = "none"

# Date-like runs are removed before tokenizing so their separators don't split them
_DATE_PATTERNS = [
    re.compile(r"\d{4}[-_./]\d{1,2}[-_./]\d{1,2}"),   # 2024-03-15
    re.compile(r"\d{1,2}[-_./]\d{1,2}[-_./]\d{2,4}"),  # 15.03.2024, 15-03-24
    re.compile(r"\d{4}[-_./]\d{1,2}(?!\d)"),           # 2024-03
    re.compile(r"(?<!\d)\d{1,2}[-_./]\d{4}"),          # 03.2024
]

_MONTHS = frozenset({
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno", "luglio",
    "agosto", "settembre", "ottobre", "novembre", "dicembre",
    "gen", "feb", "mar", "apr", "mag", "giu", "lug", "ago", "set", "ott", "nov", "dic",
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
    "jan", "jun", "jul", "aug", "sep", "oct", "dec",
})

# Revision / copy markers that don't change what kind of document it is
_REVISION_TOKEN = re.compile(r"^(?:v|ver|rev|r|n|nr)\d+$")
_NOISE_WORDS = frozenset({
    "copy", "copia", "final", "finale", "def", "definitivo", "draft", "bozza",
    "rev", "ver", "v", "nr",
})

_SEPARATORS = re.compile(r"[^a-z0-9]+")
_ALPHA_RUNS = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class Signature:
    """Normalized form of a file name."""

    text: str
    extension: str
    extension_class: str

    @property
    def key(self) -> str:
        """The learning key: extension class plus normalized words."""
        return f"{self.extension_class}:{self.text}"

    @property
    def words(self) -> tuple[str, ...]:
        return tuple(self.text.split())

    def __str__(self) -> str:
        return self.key


def extension_class(extension: str) -> str:
    """Group an extension into its class ("xlsx" -> "spreadsheet")."""
    ext = extension.lower().lstrip(".")
    if not ext:
        return NO_EXTENSION_CLASS
    return _CLASS_BY_EXTENSION.get(ext, ext)


def split_extension(file_name: str) -> tuple[str, str]:
    """Split "name.ext" into ("name", "ext"). Dotfiles have no extension."""
    name = file_name.strip()
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem or not ext.isalnum():
        return name, ""
    return stem, ext.lower()


def _fold(text: str) -> str:
    """Lower-case and strip accents ("Contabilità" -> "contabilita")."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize(file_name: str) -> Signature:
    """
    Reduce a raw file name to its canonical matching key.

    Lower-cases the name, moves the extension into an extension class,
    drops date-like, purely numeric and revision tokens, and collapses
    separators to single spaces.
    """
    stem, ext = split_extension(file_name)
    stem = _fold(stem)

    for pattern in _DATE_PATTERNS:
        stem = pattern.sub(" ", stem)

    words: list[str] = []
    for token in _SEPARATORS.split(stem):
        if not token or _REVISION_TOKEN.match(token):
            continue
        # "fattura123" -> "fattura"; pure numbers vanish entirely
        for word in _ALPHA_RUNS.findall(token):
            if len(word) < 2 or word in _NOISE_WORDS or word in _MONTHS:
                continue
            words.append(word)

    return Signature(
        text=" ".join(words),
        extension=ext,
        extension_class=extension_class(ext),
    )
