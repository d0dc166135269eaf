"""Tests for file name normalization."""

import pytest

from filerouter.router.signature import extension_class, normalize, split_extension


class TestNormalize:
    """Test normalize()."""

    @pytest.mark.parametrize("name", [
        "Fattura_2024-03-15_n12.pdf",
        "fattura 07.2023 (copia).PDF",
        "FATTURA-15.03.2024.pdf",
        "Fattura_v2_definitivo.pdf",
        "fattura123.pdf",
    ])
    def test_revisions_share_signature(self, name):
        """Dated, numbered and copied variants normalize to one key."""
        assert normalize(name).key == "document:fattura"

    def test_extension_classes_grouped(self):
        assert normalize("Computo_metrico.xlsx").key == normalize("computo metrico.ods").key
        assert normalize("Computo_metrico.xlsx").key == "spreadsheet:computo metrico"

    def test_different_classes_differ(self):
        assert normalize("Pianta.dwg").key != normalize("Pianta.pdf").key

    def test_drops_month_names(self):
        assert normalize("Verbale riunione 12 marzo 2024.docx").text == "verbale riunione"

    def test_folds_accents(self):
        assert normalize("Contabilità.pdf").text == "contabilita"

    def test_separators_collapsed(self):
        signature = normalize("Tavola__ARC---piante  rev3.dwg")
        assert signature.text == "tavola arc piante"
        assert signature.words == ("tavola", "arc", "piante")
        assert signature.extension == "dwg"
        assert signature.extension_class == "drawing"

    def test_no_extension(self):
        signature = normalize("LEGGIMI")
        assert signature.key == "none:leggimi"

    def test_is_pure(self):
        assert normalize("Relazione tecnica.pdf") == normalize("Relazione tecnica.pdf")

    def test_str_is_key(self):
        assert str(normalize("Foto sopralluogo.jpg")) == "image:foto sopralluogo"


class TestExtensions:
    """Test extension helpers."""

    def test_extension_class(self):
        assert extension_class("XLSX") == "spreadsheet"
        assert extension_class(".dwg") == "drawing"
        assert extension_class("p7m") == "signed"
        assert extension_class("") == "none"
        assert extension_class("abc") == "abc"

    def test_split_extension(self):
        assert split_extension("Relazione.PDF") == ("Relazione", "pdf")
        assert split_extension(".bashrc") == (".bashrc", "")
        assert split_extension("note") == ("note", "")
        assert split_extension("a.b c") == ("a.b c", "")
