"""
Tests for the SPED record parser.
"""

import pytest

from spedtax.core.exceptions import UnknownVariantError
from spedtax.parsers.layouts import LayoutRegistry
from spedtax.parsers.models import FileVariant, ParseResult, Record
from spedtax.parsers.record_parser import SpedParser, tokenize_line


HEADER = "|0000|LAYOUT014|0|01012023|31012023|NOME EMPRESA TESTE|12345678000199|MG|12345|IE ISENTO|IM ISENTO|0|1|"
C100 = "|C100|1|0|PART001|55|00|001|123|CHAVE|01012023|01012023|1000,00|"
E110 = "|E110|1000,00|200,00|0|0|"


class TestHeaderExtraction:
    """Company data from the 0000 record."""

    def test_header_fields(self, parser):
        """Name, tax id and period come from the header layout offsets."""
        result = parser.parse(HEADER, FileVariant.FISCAL)

        assert result.success is True
        assert result.company.name == "NOME EMPRESA TESTE"
        assert result.company.tax_id == "12345678000199"
        assert result.company.period_start == "01012023"
        assert result.company.period_end == "31012023"
        assert result.company.state == "MG"
        assert result.company.layout_version == "LAYOUT014"

    def test_first_header_wins(self, parser):
        """A second 0000 record never overwrites the company data."""
        second = HEADER.replace("NOME EMPRESA TESTE", "OUTRA EMPRESA")
        result = parser.parse("\n".join([HEADER, second]), FileVariant.FISCAL)

        assert result.company.name == "NOME EMPRESA TESTE"
        assert len(result.get("0000")) == 2
        assert any("header records" in w for w in result.warnings)

    def test_missing_header_gives_empty_company(self, parser):
        result = parser.parse(C100, FileVariant.FISCAL)

        assert result.success is True
        assert result.company.is_empty
        assert any("0000" in w for w in result.warnings)

    def test_contributions_header_and_regime(self, contributions_result):
        company = contributions_result.company
        assert company.name == "EMPRESA CONTRIB LTDA"
        assert company.tax_id == "12345678000199"
        assert company.period_start == "01012023"
        assert company.state == "SP"
        assert company.tax_regime == "Não-cumulativo"

    def test_ecf_header_and_regime(self, ecf_result):
        company = ecf_result.company
        assert company.name == "EMPRESA ECF LTDA"
        assert company.period_end == "31122023"
        assert company.tax_regime == "Lucro Real"

    def test_header_without_layout(self):
        """An empty registry degrades to a warning, not an error."""
        parser = SpedParser(registry=LayoutRegistry())
        result = parser.parse(HEADER, FileVariant.FISCAL)

        assert result.success is True
        assert result.company.name == ""
        assert any("Unsupported layout" in w for w in result.warnings)

    def test_injected_empty_registry_is_kept(self):
        registry = LayoutRegistry()
        parser = SpedParser(registry=registry)

        assert parser.registry is registry
        assert len(parser.registry) == 0


class TestGroupingAndCounts:
    """Records grouped by type with per-type statistics."""

    def test_counts_by_type(self, parser):
        content = "\n".join([
            HEADER,
            "|0200|ITEM001|Produto Teste 1|||UN|",
            "|0200|ITEM002|Produto Teste 2|||UN|",
            C100,
        ])
        result = parser.parse(content, FileVariant.FISCAL)

        assert len(result.get("0000")) == 1
        assert len(result.get("0200")) == 2
        assert len(result.get("C100")) == 1
        assert result.statistics.counts_by_type["0200"] == 2
        assert result.statistics.distinct_types == 3
        assert result.statistics.valid_records == 4

    def test_file_order_is_preserved(self, parser):
        content = "\n".join([
            "|0200|ITEM001|A|",
            "|C100|1|",
            "|0200|ITEM002|B|",
            "|0200|ITEM003|C|",
        ])
        result = parser.parse(content, FileVariant.FISCAL)

        assert [r.field(0) for r in result.get("0200")] == ["ITEM001", "ITEM002", "ITEM003"]
        assert result.record_types == ["0200", "C100"]

    def test_absent_type(self, fiscal_result):
        assert fiscal_result.get("J150") == ()
        assert fiscal_result.has("J150") is False
        assert fiscal_result.has("E110") is True


class TestErrorTolerance:
    """Malformed lines are counted and skipped."""

    def test_blank_and_garbage_lines(self, parser):
        """V valid lines + blank + garbage: processed V+2, errors 1."""
        content = "\n".join([HEADER, "", "INVALID LINE", C100, E110])
        result = parser.parse(content, FileVariant.FISCAL)

        assert result.statistics.lines_processed == 5
        assert result.statistics.lines_with_errors == 1
        assert result.statistics.valid_records == 3
        assert result.success is True
        assert result.has_partial_data_loss is True

    @pytest.mark.parametrize("line", [
        "C100|1|2|",       # no leading delimiter
        "|C100|1|2",       # no trailing delimiter
        "||",              # too few parts
        "||1|2|",          # empty record type
    ])
    def test_unframed_lines_rejected(self, parser, line):
        result = parser.parse("\n".join([HEADER, line]), FileVariant.FISCAL)

        assert result.statistics.lines_with_errors == 1
        assert result.statistics.valid_records == 1

    def test_trailing_newline_is_not_a_line(self, parser):
        result = parser.parse(HEADER + "\n" + C100 + "\n", FileVariant.FISCAL)
        assert result.statistics.lines_processed == 2

    def test_crlf_line_endings(self, parser):
        result = parser.parse(HEADER + "\r\n" + E110 + "\r\n", FileVariant.FISCAL)

        assert result.statistics.lines_processed == 2
        assert result.statistics.lines_with_errors == 0
        assert result.get("E110")[0].fields == ("1000,00", "200,00", "0", "0")

    def test_surrounding_whitespace_trimmed(self, parser):
        result = parser.parse("   " + E110 + "  ", FileVariant.FISCAL)
        assert result.get("E110")[0].field(0) == "1000,00"

    def test_only_garbage_is_failure(self, parser):
        result = parser.parse("garbage\nmore garbage", FileVariant.FISCAL)

        assert result.success is False
        assert result.statistics.lines_with_errors == 2
        assert result.errors

    @pytest.mark.parametrize("content", [None, "", "   \n  \n"])
    def test_empty_content_is_failure(self, parser, content):
        result = parser.parse(content, FileVariant.FISCAL)

        assert result.success is False
        assert result.errors == ("Empty content",)
        assert result.statistics.lines_processed == 0


class TestFieldFidelity:
    """Fields are captured verbatim, empty positions included."""

    def test_empty_trailing_fields_preserved(self, parser):
        expected = [
            "1", "ITEM001", "Descricao Detalhada do Item", "10", "UN", "50.00", "0", "010",
            "12345", "5.00", "0", "5.00", "0.00", "0.00", "0", "0", "0", "0", "",
        ]
        line = "|C170|" + "|".join(expected) + "|"
        result = parser.parse(line, FileVariant.FISCAL)

        record = result.get("C170")[0]
        assert list(record.fields) == expected

    def test_empty_inner_fields_preserved(self):
        record = tokenize_line("|0200|ITEM001|||UN|")
        assert record == Record("0200", ("ITEM001", "", "", "UN"))

    def test_record_without_fields(self):
        record = tokenize_line("|9999|")
        assert record.record_type == "9999"
        assert record.fields == ()

    def test_field_out_of_range_default(self):
        record = Record("E110", ("1000,00",))
        assert record.field(5) == ""
        assert record.field(5, "0") == "0"
        assert record.field(-1) == ""


class TestVariantResolution:
    """Variant given explicitly or detected from content."""

    def test_detects_variant_when_missing(self, parser, contributions_content):
        result = parser.parse(contributions_content)
        assert result.variant == FileVariant.CONTRIBUTIONS

    def test_detects_from_file_name(self, parser):
        result = parser.parse(HEADER, source_file="/tmp/ecf_2023.txt")
        assert result.variant == FileVariant.ECF

    def test_contributions_file_name_beats_shared_records(self, parser):
        content = "\n".join(
            ["|0000|006|0|||01012023|31012023|EMPRESA CONTRIB LTDA|12345678000199|SP|",
             "|0001|0|", "|0110|1|1|1||"]
            + ["|0150|PART|NOME|01058||||||"] * 40
            + ["|0200|ITEM|DESC|||UN|"] * 40
            + ["|C100|0|1|FORN|55|00|", "|M200|120,00|"]
        )

        result = parser.parse(content, source_file="efd_contribuicoes_012023.txt")

        assert result.variant == FileVariant.CONTRIBUTIONS
        assert result.company.name == "EMPRESA CONTRIB LTDA"
        assert result.company.tax_id == "12345678000199"
        assert result.company.period_start == "01012023"

    def test_alias_accepted(self, parser):
        result = parser.parse(HEADER, "fiscal")
        assert result.variant == FileVariant.FISCAL

    def test_unknown_variant_raises(self, parser):
        with pytest.raises(UnknownVariantError):
            parser.parse(HEADER, "ecd")


class TestFileInput:
    """Reading from disk and bytes."""

    def test_parse_file(self, parser, sped_files):
        result = parser.parse_file(sped_files[FileVariant.FISCAL], FileVariant.FISCAL)

        assert result.success is True
        assert result.source_file == str(sped_files[FileVariant.FISCAL])
        assert result.statistics.valid_records == 7

    def test_parse_file_detects_variant(self, parser, sped_files):
        result = parser.parse_file(sped_files[FileVariant.ECF])
        assert result.variant == FileVariant.ECF

    def test_missing_file_does_not_raise(self, parser, tmp_path):
        result = parser.parse_file(tmp_path / "missing.txt", FileVariant.FISCAL)

        assert result.success is False
        assert "File not found" in result.errors[0]

    def test_latin1_bytes(self, parser):
        content = HEADER.replace("NOME EMPRESA TESTE", "AÇÚCAR E CAFÉ LTDA")
        result = parser.parse_bytes(content.encode("latin-1"), FileVariant.FISCAL)

        assert result.company.name == "AÇÚCAR E CAFÉ LTDA"

    def test_utf8_bom(self, parser):
        result = parser.parse_bytes(("\ufeff" + HEADER).encode("utf-8"), FileVariant.FISCAL)

        assert result.statistics.lines_with_errors == 0
        assert result.company.name == "NOME EMPRESA TESTE"


class TestParseResultHelpers:
    """ParseResult construction and views."""

    def test_from_fields(self):
        result = ParseResult.from_fields("ecf", {
            "J150": [["01012023", "31122023", "3.01.01.01", "RECEITA BRUTA", "100,00", "C"]],
        })

        assert result.success is True
        assert result.variant == FileVariant.ECF
        assert result.statistics.valid_records == 1
        assert result.get("J150")[0].field(3) == "RECEITA BRUTA"

    def test_from_fields_empty(self):
        result = ParseResult.from_fields(FileVariant.FISCAL, {})
        assert result.success is False

    def test_records_frame(self, fiscal_result):
        frame = fiscal_result.records_frame("0200")

        assert len(frame) == 2
        assert frame.iloc[0]["field_0"] == "ITEM001"
        assert frame.iloc[1]["field_1"] == "Produto Teste 2"

    def test_records_frame_pads_short_records(self):
        result = ParseResult.from_fields(FileVariant.FISCAL, {"0200": [["A"], ["B", "C"]]})
        frame = result.records_frame("0200")

        assert list(frame.columns) == ["field_0", "field_1"]
        assert frame.iloc[0]["field_1"] == ""

    def test_records_frame_absent_type(self, fiscal_result):
        assert fiscal_result.records_frame("J150").empty

    def test_result_is_immutable(self, fiscal_result):
        with pytest.raises((AttributeError, TypeError)):
            fiscal_result.records["C100"] = ()
