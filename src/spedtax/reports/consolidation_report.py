"""Consolidation report export.

Writes a ConsolidatedDataset to an Excel workbook with one sheet per view
(summary, taxes, data quality, imported files) and exposes parse statistics
as a pandas DataFrame.
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional, Union

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from spedtax.extractors.consolidation import ConsolidatedDataset
from spedtax.extractors.models import TAX_NAMES
from spedtax.parsers.models import ParseResult
from spedtax.services.import_session import ImportResult

logger = logging.getLogger(__name__)

STATISTICS_COLUMNS = [
    "variant", "source_file", "success", "lines_processed",
    "lines_with_errors", "valid_records", "distinct_types",
]

ParseResultsArg = Union[ImportResult, Mapping[object, ParseResult]]


def _as_number(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


class ConsolidationReport:
    """
    Excel/DataFrame export of consolidated SPED data.

    Usage:
        report = ConsolidationReport()
        report.write_xlsx(dataset, Path("consolidado.xlsx"), parse_results=import_result)
    """

    TITLE = "Consolidação SPED"

    def __init__(self):
        self.header_font = Font(bold=True, size=14)
        self.subheader_font = Font(bold=True, size=11)
        self.header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        self.header_font_white = Font(bold=True, color="FFFFFF")
        self.border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )
        self.money_format = '#,##0.00'
        self.percent_format = '0.00'

    def statistics_frame(self, results: ParseResultsArg) -> pd.DataFrame:
        """
        Parse statistics, one row per file.

        Args:
            results: ImportResult or mapping variant -> ParseResult
        """
        if isinstance(results, ImportResult):
            results = results.parse_results

        rows = []
        for parse_result in results.values():
            stats = parse_result.statistics
            rows.append({
                "variant": parse_result.variant.value,
                "source_file": parse_result.source_file,
                "success": parse_result.success,
                "lines_processed": stats.lines_processed,
                "lines_with_errors": stats.lines_with_errors,
                "valid_records": stats.valid_records,
                "distinct_types": stats.distinct_types,
            })
        return pd.DataFrame(rows, columns=STATISTICS_COLUMNS)

    def write_xlsx(
        self,
        dataset: ConsolidatedDataset,
        output_path: Path,
        parse_results: Optional[ParseResultsArg] = None
    ) -> Path:
        """
        Export the consolidated dataset to Excel.

        Args:
            dataset: ConsolidatedDataset from the orchestrator
            output_path: Output file path (.xlsx)
            parse_results: Optional parse results for the "Arquivos" sheet

        Returns:
            Path to generated Excel file
        """
        wb = Workbook()

        self._create_summary_sheet(wb, dataset)
        self._create_taxes_sheet(wb, dataset)
        self._create_quality_sheet(wb, dataset)
        if parse_results is not None:
            self._create_files_sheet(wb, self.statistics_frame(parse_results))

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(f"Consolidation report written to {output_path}")
        return output_path

    def _write_headers(self, ws, row: int, headers) -> None:
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.header_font_white
            cell.fill = self.header_fill
            cell.border = self.border
            cell.alignment = Alignment(horizontal="center")

    def _write_row(self, ws, row: int, values, number_format: Optional[str] = None) -> None:
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=_as_number(value))
            cell.border = self.border
            if col > 1 and number_format and isinstance(cell.value, (int, float)):
                cell.number_format = number_format

    def _create_summary_sheet(self, wb: Workbook, dataset: ConsolidatedDataset) -> None:
        ws = wb.active
        ws.title = "Resumo"
        company = dataset.company
        financial = dataset.financial_data

        row = 1
        ws.cell(row=row, column=1, value=f"{self.TITLE} - {company.name or 'Empresa não identificada'}")
        ws.cell(row=row, column=1).font = self.header_font
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=4)
        row += 2

        ws.cell(row=row, column=1, value="EMPRESA")
        ws.cell(row=row, column=1).font = self.subheader_font
        row += 1
        for label, value in [
            ("Razão social", company.name),
            ("CNPJ", company.tax_id),
            ("UF", company.state),
            ("Período", f"{company.period_start} a {company.period_end}".strip()),
            ("Regime tributário", company.tax_regime),
            ("Fonte", company.source),
        ]:
            self._write_row(ws, row, [label, value])
            row += 1
        row += 1

        ws.cell(row=row, column=1, value="DEMONSTRAÇÃO DO RESULTADO")
        ws.cell(row=row, column=1).font = self.subheader_font
        row += 1
        self._write_headers(ws, row, ["Conta", "Valor (R$)"])
        row += 1
        for label, value in [
            ("Receita bruta", financial.revenue.gross),
            ("Deduções", financial.revenue.deductions),
            ("Receita líquida", financial.revenue.net),
            ("Custos", financial.costs.total),
            ("Lucro bruto", financial.gross_profit),
            ("Despesas operacionais", financial.expenses.operating),
            ("Lucro operacional", financial.operating_profit),
        ]:
            self._write_row(ws, row, [label, value], self.money_format)
            row += 1

        for label, value in [
            ("Margem bruta (%)", financial.gross_margin),
            ("Margem operacional (%)", financial.operating_margin),
        ]:
            self._write_row(ws, row, [label, value], self.percent_format)
            row += 1

        ws.column_dimensions["A"].width = 28
        ws.column_dimensions["B"].width = 40

    def _create_taxes_sheet(self, wb: Workbook, dataset: ConsolidatedDataset) -> None:
        ws = wb.create_sheet(title="Tributos")
        taxes = dataset.tax_composition
        net = taxes.net_taxes
        rates = taxes.effective_rates

        row = 1
        ws.cell(row=row, column=1, value="Composição tributária")
        ws.cell(row=row, column=1).font = self.header_font
        row += 2

        self._write_headers(ws, row, ["Tributo", "Débitos", "Créditos", "Líquido", "Alíquota efetiva (%)"])
        row += 1
        for name in TAX_NAMES:
            self._write_row(ws, row, [
                name.upper(),
                getattr(taxes.debits, name),
                getattr(taxes.credits, name),
                getattr(net, name),
                getattr(rates, name),
            ], self.money_format)
            ws.cell(row=row, column=5).number_format = self.percent_format
            row += 1

        self._write_row(ws, row, [
            "TOTAL", taxes.debits.total, taxes.credits.total, net.total, taxes.effective_rate,
        ], self.money_format)
        for col in range(1, 6):
            ws.cell(row=row, column=col).font = Font(bold=True)
        ws.cell(row=row, column=5).number_format = self.percent_format
        row += 2

        self._write_row(ws, row, ["Faturamento bruto", taxes.gross_billing], self.money_format)
        row += 2

        if dataset.transition is not None:
            ws.cell(row=row, column=1, value="TRANSIÇÃO (LC 214/2025)")
            ws.cell(row=row, column=1).font = self.subheader_font
            row += 1
            self._write_headers(ws, row, ["Ano", "Sistema atual", "IVA Dual"])
            row += 1
            for year in dataset.transition.years:
                share = dataset.transition.share(year)
                self._write_row(ws, row, [year, share.current_system, share.new_regime], '0%')
                row += 1

        ws.column_dimensions["A"].width = 24
        for col_num in range(2, 6):
            ws.column_dimensions[get_column_letter(col_num)].width = 20

    def _create_quality_sheet(self, wb: Workbook, dataset: ConsolidatedDataset) -> None:
        ws = wb.create_sheet(title="Qualidade")
        quality = dataset.quality

        row = 1
        ws.cell(row=row, column=1, value=f"Qualidade dos dados: {quality.level.value} ({quality.score}/100)")
        ws.cell(row=row, column=1).font = self.header_font
        row += 2

        self._write_headers(ws, row, ["Critério", "Pontos (0-25)"])
        row += 1
        for label, value in [
            ("Completude", quality.completeness),
            ("Consistência", quality.consistency),
            ("Razoabilidade", quality.reasonableness),
            ("Diversidade de fontes", quality.diversity),
        ]:
            self._write_row(ws, row, [label, value])
            row += 1
        row += 1

        for title, lines in [
            ("RECOMENDAÇÕES", quality.recommendations),
            ("OBSERVAÇÕES", dataset.observations),
            ("AVISOS", dataset.warnings),
        ]:
            if not lines:
                continue
            ws.cell(row=row, column=1, value=title)
            ws.cell(row=row, column=1).font = self.subheader_font
            row += 1
            for line in lines:
                ws.cell(row=row, column=1, value=f"- {line}")
                row += 1
            row += 1

        ws.column_dimensions["A"].width = 60
        ws.column_dimensions["B"].width = 16

    def _create_files_sheet(self, wb: Workbook, frame: pd.DataFrame) -> None:
        ws = wb.create_sheet(title="Arquivos")
        self._write_headers(ws, 1, list(frame.columns))
        for row_num, values in enumerate(frame.itertuples(index=False), 2):
            self._write_row(ws, row_num, [v.item() if hasattr(v, "item") else v for v in values])

        ws.column_dimensions["A"].width = 22
        ws.column_dimensions["B"].width = 40
        for col_num in range(3, len(frame.columns) + 1):
            ws.column_dimensions[get_column_letter(col_num)].width = 16
