"""
Shared pytest fixtures for spedtax tests.

Provides sample SPED contents for the three variants, parsed results and
small line-building helpers.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spedtax.parsers.record_parser import SpedParser
from spedtax.parsers.models import FileVariant


def sped_line(record_type, fields):
    """Build a framed SPED line from a record type and its fields."""
    return "|" + "|".join([record_type] + list(fields)) + "|"


def positional_fields(size, values):
    """Field list of a given size with values set at specific offsets."""
    fields = [""] * size
    for index, value in values.items():
        fields[index] = value
    return fields


FISCAL_HEADER = "|0000|LAYOUT014|0|01012023|31012023|NOME EMPRESA TESTE|12345678000199|MG|12345|IE ISENTO|IM ISENTO|0|1|"


def fiscal_c100(operation, document_value, icms_value="0,00"):
    return sped_line("C100", positional_fields(28, {
        0: operation, 1: "0", 2: "PART001", 3: "55", 4: "00", 5: "001", 6: "123",
        7: "31230112345678000199550010000001231000001234", 8: "15012023", 9: "15012023",
        10: document_value, 20: icms_value,
    }))


def contributions_c100(pis_value, cofins_value):
    return sped_line("C100", positional_fields(34, {
        0: "0", 1: "1", 2: "FORN001", 3: "55", 4: "00", 10: "1000,00",
        26: pis_value, 32: cofins_value,
    }))


def j150(code, description, value, indicator="C"):
    return sped_line("J150", ["01012023", "31122023", code, description, value, indicator])


@pytest.fixture
def make_line():
    """Provide the sped_line helper."""
    return sped_line


@pytest.fixture
def make_fields():
    """Provide the positional_fields helper."""
    return positional_fields


@pytest.fixture
def fiscal_content():
    """SPED Fiscal: header, items, one outbound and one inbound document, E110."""
    lines = [
        FISCAL_HEADER,
        "|0200|ITEM001|Produto Teste 1|7891234567890||UN|00|12345678|",
        "|0200|ITEM002|Produto Teste 2|7891234567891||UN|00|12345678|",
        fiscal_c100("1", "10000,00", "1000,00"),
        fiscal_c100("0", "500,00", "60,00"),
        "|E110|1000,00|200,00|0|0|0|0|0|0|800,00|0|800,00|0|",
        "|9999|8|",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def contributions_content():
    """SPED Contribuições: header, regime, two documents, PIS/COFINS totals."""
    lines = [
        sped_line("0000", [
            "006", "0", "", "", "01012023", "31012023", "EMPRESA CONTRIB LTDA",
            "12345678000199", "SP", "3550308", "", "00", "0",
        ]),
        "|0110|1|1|1||",
        contributions_c100("16,50", "76,00"),
        contributions_c100("16,50", "76,00"),
        "|M200|120,00|0|0|0|0|0|0|120,00|0|0|0|120,00|",
        "|M600|553,00|0|0|0|0|0|0|553,00|0|0|0|553,00|",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def ecf_content():
    """ECF: header, parameters (Lucro Real) and an income statement."""
    lines = [
        sped_line("0000", [
            "LECF", "0010", "12345678000199", "EMPRESA ECF LTDA", "0", "0", "", "",
            "01012023", "31122023",
        ]),
        "|0010||N|N|1|A|01|RRRR||||",
        "|J001|0|",
        j150("3.01.01.01.01", "RECEITA BRUTA", "10000,00", "C"),
        j150("3.01.01.02.01", "DEDUCOES DA RECEITA BRUTA", "1000,00", "D"),
        j150("3.02.01.01.01", "CUSTO DAS MERCADORIAS VENDIDAS", "6000,00", "D"),
        j150("3.04.01.01", "DESPESAS ADMINISTRATIVAS", "1500,00", "D"),
        j150("3.11", "RESULTADO LIQUIDO DO PERIODO", "1500,00", "C"),
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def parser():
    """Provide a SpedParser with the built-in layouts."""
    return SpedParser()


@pytest.fixture
def fiscal_result(parser, fiscal_content):
    return parser.parse(fiscal_content, FileVariant.FISCAL, "efd_icms_ipi.txt")


@pytest.fixture
def contributions_result(parser, contributions_content):
    return parser.parse(contributions_content, FileVariant.CONTRIBUTIONS, "efd_contribuicoes.txt")


@pytest.fixture
def ecf_result(parser, ecf_content):
    return parser.parse(ecf_content, FileVariant.ECF, "ecf_2023.txt")


@pytest.fixture
def all_results(fiscal_result, contributions_result, ecf_result):
    """Parse results of all three variants."""
    return {
        FileVariant.FISCAL: fiscal_result,
        FileVariant.CONTRIBUTIONS: contributions_result,
        FileVariant.ECF: ecf_result,
    }


@pytest.fixture
def sped_files(tmp_path, fiscal_content, contributions_content, ecf_content):
    """Write the sample contents to disk (latin-1, like the PVA tools)."""
    paths = {}
    for variant, name, content in [
        (FileVariant.FISCAL, "efd_icms_ipi_012023.txt", fiscal_content),
        (FileVariant.CONTRIBUTIONS, "efd_contribuicoes_012023.txt", contributions_content),
        (FileVariant.ECF, "ecf_2023.txt", ecf_content),
    ]:
        path = tmp_path / name
        path.write_bytes(content.encode("latin-1"))
        paths[variant] = path
    return paths
