from io import BytesIO

import pytest
from openpyxl import Workbook, load_workbook
from sqlmodel import select

from airdesa.imports import (
    ImportErrors,
    TEMPLATE_HEADER,
    import_customers_path,
    template_csv,
    template_xlsx,
)
from airdesa.models import Customer


def _write(tmp_path, rows, header=None):
    path = tmp_path / "customers.csv"
    lines = [",".join(header or TEMPLATE_HEADER)] + [",".join(r) for r in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)


def test_template_is_header_only():
    assert template_csv().strip() == "No,Customer Code,Name,Phone,Address"


def test_import_skips_bad_rows(session, tmp_path):
    session.add(Customer(code="HPM00007", name="Existing"))
    session.commit()
    path = _write(
        tmp_path,
        [
            ["1", "hpm00010", "Budi", "0812-3456-7890", "Krajan"],
            ["2", "", "No Code", "081200000000", "Krajan"],
            ["3", "HPM00007", "Duplicate", "081200000001", "Sumber"],
            ["4", "", "", "", ""],
            ["5", "HPM00011", "Siti", "", ""],
        ],
    )

    res = import_customers_path(session, path)

    assert res["created"] == 2
    assert res["failed"] == 2
    assert [e["row"] for e in res["errors"]] == [3, 4]
    budi = session.exec(select(Customer).where(Customer.code == "HPM00010")).one()
    assert budi.phone == "6281234567890"
    assert budi.tariff_class == "R2"
    siti = session.exec(select(Customer).where(Customer.code == "HPM00011")).one()
    assert siti.phone is None


def test_import_rolls_back_when_nothing_imported(session, tmp_path):
    path = _write(tmp_path, [["1", "", "No Code", "", ""], ["2", "HPM00001", "", "", ""]])
    with pytest.raises(ImportErrors) as exc:
        import_customers_path(session, path)
    assert len(exc.value.errors) == 2
    assert session.exec(select(Customer)).all() == []


def test_duplicate_code_inside_file(session, tmp_path):
    path = _write(
        tmp_path,
        [["1", "HPM00003", "Budi", "", "Krajan"], ["2", "HPM00003", "Budi again", "", "Krajan"]],
    )
    res = import_customers_path(session, path)
    assert res["created"] == 1
    assert res["errors"][0]["row"] == 3


def test_wrong_template_rejected(session, tmp_path):
    path = _write(tmp_path, [["x", "y"]], header=["id", "name"])
    with pytest.raises(ImportErrors):
        import_customers_path(session, path)


def _write_xlsx(tmp_path, rows):
    wb = Workbook()
    ws = wb.active
    ws.append(TEMPLATE_HEADER)
    for row in rows:
        ws.append(row)
    path = tmp_path / "customers.xlsx"
    wb.save(path)
    return str(path)


def test_xlsx_template_has_header_row():
    ws = load_workbook(BytesIO(template_xlsx())).active
    assert [c.value for c in ws[1]] == TEMPLATE_HEADER
    assert ws.max_row == 1


def test_import_from_xlsx(session, tmp_path):
    path = _write_xlsx(
        tmp_path,
        [
            [1, "hpm00020", "Budi", 81234567890, "Krajan"],
            [2.0, "HPM00021", "Siti", "0812 0000 0001", None],
            [3, None, "No Code", None, None],
        ],
    )

    res = import_customers_path(session, path)

    assert res["created"] == 2
    assert [e["row"] for e in res["errors"]] == [4]
    budi = session.exec(select(Customer).where(Customer.code == "HPM00020")).one()
    assert budi.phone == "6281234567890"
    siti = session.exec(select(Customer).where(Customer.code == "HPM00021")).one()
    assert siti.phone == "6281200000001"
    assert siti.address is None
