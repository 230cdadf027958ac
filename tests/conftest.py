from pathlib import Path

import pandas as pd
import pytest

from mqspec.classify import StructureClassifier
from mqspec.hierarchy import HierarchyBuilder, SpecRow
from mqspec.naming import NameNormalizer

SPEC_HEADER = ["Seg lvl", "Field Name", "Description", "Length", "Messaging Datatype", "Opt(O/M)"]
FIXED_HEADER = ["Field Name", "Start Position", "Length", "Type", "Status"]


def _write_spec(path, sections, metadata=None, header=SPEC_HEADER):
    """
    Write a hierarchical spec workbook: metadata in rows 1-7, header in row 8.

    ``sections`` maps sheet name -> list of row tuples (None = metadata-only
    sheet); ``metadata`` maps sheet name -> {cell: value}.
    """

    path = Path(path)
    metadata = metadata or {}
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        for sheet, rows in sections.items():
            if rows is None:
                pd.DataFrame().to_excel(writer, sheet_name=sheet, index=False)
            else:
                padded = [tuple(r) + (None,) * (len(header) - len(r)) for r in rows]
                pd.DataFrame(padded, columns=header).to_excel(writer, sheet_name=sheet, startrow=7, index=False)
            ws = writer.sheets[sheet]
            ws.write("B2", "Operation Name")
            for cell, value in metadata.get(sheet, {}).items():
                ws.write(cell, value)
    return path


def _write_fixed(path, rows, sheet_name="Fields", header=FIXED_HEADER):
    path = Path(path)
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        pd.DataFrame(rows, columns=header).to_excel(writer, sheet_name=sheet_name, index=False)
    return path


def _rows(*specs):
    """SpecRow records numbered from the first data row; each spec is (depth, name, ...)."""

    out = []
    for offset, spec in enumerate(specs):
        depth, name, *rest = spec
        rest += [None] * (3 - len(rest))
        description, length, data_type = rest
        out.append(
            SpecRow(
                row_number=9 + offset,
                name=name,
                depth=None if depth is None else str(depth),
                description=description,
                length=None if length is None else str(length),
                data_type=data_type,
            )
        )
    return out


def _build_tree(rows, max_nesting_depth=50, max_length=50):
    arena = HierarchyBuilder(max_nesting_depth, section="Request").build(rows)
    StructureClassifier().classify(arena)
    NameNormalizer(max_length).assign(arena)
    return arena.freeze()


@pytest.fixture
def write_spec():
    return _write_spec


@pytest.fixture
def write_fixed():
    return _write_fixed


@pytest.fixture
def spec_rows():
    return _rows


@pytest.fixture
def build_tree():
    return _build_tree


@pytest.fixture
def sample_spec(tmp_path):
    """A small spec with Request, Response and a metadata-only Shared Header sheet."""

    return _write_spec(
        tmp_path / "account_spec.xlsx",
        {
            "Request": [
                (1, "DOMICILE_BRANCH", "Branch code", 10, "A/N", "M"),
                (1, "customerInfo:CustomerInfo", "Customer block"),
                (2, "FIRST_NAME", "Given name", 40, "A/N", "M"),
                (2, "LAST_NAME", "Family name", 40, "A/N", "O"),
                (1, "accounts:Account", "Accounts"),
                (2, "occurrenceCount", "0..9"),
                (2, "groupid", "ACCT"),
                (2, "ACCOUNT_NO", "Account number", 20, "N", "M"),
                (1, "客户姓名", "Customer name", 60, "A/N", "O"),
            ],
            "Response": [
                (1, "RETURN_CODE", "Return code", 4, "N", "M"),
            ],
            "Shared Header": None,
        },
        metadata={
            "Request": {
                "C2": "Create Account",
                "C3": "OP001",
                "E3": "1.0",
                "E4": "Payments",
                "E5": "SVC-01",
                "E6": "Creates an account",
            }
        },
    )
