"""
Tests for the consolidation report export.
"""

import pytest
from openpyxl import load_workbook

from spedtax.extractors.consolidation import ConsolidationOrchestrator
from spedtax.extractors.financial import ExtractionOptions
from spedtax.parsers.models import FileVariant
from spedtax.reports.consolidation_report import STATISTICS_COLUMNS, ConsolidationReport
from spedtax.services.import_session import ImportSession


@pytest.fixture
def report():
    return ConsolidationReport()


@pytest.fixture
def dataset(all_results):
    return ConsolidationOrchestrator().consolidate(all_results)


class TestStatisticsFrame:
    """Parse statistics as a DataFrame."""

    def test_one_row_per_file(self, report, all_results):
        frame = report.statistics_frame(all_results)

        assert list(frame.columns) == STATISTICS_COLUMNS
        assert len(frame) == 3
        fiscal = frame[frame["variant"] == "sped-fiscal"].iloc[0]
        assert fiscal["valid_records"] == 7
        assert fiscal["distinct_types"] == 5
        assert fiscal["lines_with_errors"] == 0

    def test_import_result(self, report, sped_files):
        result = ImportSession().parse_files(sped_files)

        frame = report.statistics_frame(result)

        assert set(frame["variant"]) == {"sped-fiscal", "sped-contribuicoes", "sped-ecf"}
        assert frame["success"].all()

    def test_empty(self, report):
        frame = report.statistics_frame({})
        assert frame.empty
        assert list(frame.columns) == STATISTICS_COLUMNS


class TestWriteXlsx:
    """Excel workbook export."""

    def test_sheets(self, report, dataset, all_results, tmp_path):
        path = report.write_xlsx(dataset, tmp_path / "out" / "consolidado.xlsx", parse_results=all_results)

        assert path.exists()
        wb = load_workbook(path)
        assert wb.sheetnames == ["Resumo", "Tributos", "Qualidade", "Arquivos"]

    def test_without_parse_results(self, report, dataset, tmp_path):
        path = report.write_xlsx(dataset, tmp_path / "consolidado.xlsx")

        wb = load_workbook(path)
        assert "Arquivos" not in wb.sheetnames

    def test_summary_content(self, report, dataset, tmp_path):
        path = report.write_xlsx(dataset, tmp_path / "consolidado.xlsx")
        ws = load_workbook(path)["Resumo"]

        values = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=2).value
                  for r in range(1, ws.max_row + 1)}
        assert values["Razão social"] == "NOME EMPRESA TESTE"
        assert values["Receita líquida"] == pytest.approx(9000.0)
        assert values["Custos"] == pytest.approx(6000.0)

    def test_taxes_content(self, report, dataset, tmp_path):
        path = report.write_xlsx(dataset, tmp_path / "consolidado.xlsx")
        ws = load_workbook(path)["Tributos"]

        rows = {ws.cell(row=r, column=1).value: r for r in range(1, ws.max_row + 1)}
        icms = rows["ICMS"]
        assert ws.cell(row=icms, column=2).value == pytest.approx(1000.0)
        assert ws.cell(row=icms, column=3).value == pytest.approx(200.0)
        assert ws.cell(row=icms, column=4).value == pytest.approx(800.0)
        assert ws.cell(row=rows["TOTAL"], column=5).value == pytest.approx(12.88)
        assert 2033 in rows

    def test_transition_omitted_when_disabled(self, report, all_results, tmp_path):
        dataset = ConsolidationOrchestrator().consolidate(
            all_results, ExtractionOptions(apply_transition=False)
        )
        path = report.write_xlsx(dataset, tmp_path / "consolidado.xlsx")
        ws = load_workbook(path)["Tributos"]

        labels = [ws.cell(row=r, column=1).value for r in range(1, ws.max_row + 1)]
        assert "TRANSIÇÃO (LC 214/2025)" not in labels

    def test_quality_sheet(self, report, dataset, tmp_path):
        path = report.write_xlsx(dataset, tmp_path / "consolidado.xlsx")
        ws = load_workbook(path)["Qualidade"]

        assert ws.cell(row=1, column=1).value == "Qualidade dos dados: Alto (84/100)"

    def test_files_sheet(self, report, dataset, all_results, tmp_path):
        path = report.write_xlsx(dataset, tmp_path / "consolidado.xlsx", parse_results=all_results)
        ws = load_workbook(path)["Arquivos"]

        assert [c.value for c in ws[1]] == STATISTICS_COLUMNS
        assert ws.cell(row=2, column=1).value == FileVariant.FISCAL.value
