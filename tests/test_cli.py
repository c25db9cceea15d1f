import pandas as pd
import pytest

import compensation


def _write_network(path):
    path.write_text(
        "id,full_name,sponsor_id,rank,personal_points,group_points\n"
        "1,Ana Root,,Platino,200,0\n"
        "2,Beto,1,Plata,150,2000\n"
        "3,Carla,2,,50,1000\n",
        encoding="utf-8",
    )
    return path


def test_cli_prints_tables_and_writes_workbook(tmp_path, capsys):
    source = _write_network(tmp_path / "red.csv")
    output = tmp_path / "out" / "report.xlsx"

    compensation.main(
        ["--input", str(source), "--root", "1", "--simulate-frontals", "3:1000", "--out", str(output)]
    )

    captured = capsys.readouterr().out
    assert "Ana Root (Platino): 2 distributors" in captured
    assert "130.00 MXN" in captured
    assert "Health score: 100 (healthy)" in captured
    assert "Tu comisión aumentaría 120.00" in captured
    assert output.exists()
    assert pd.ExcelFile(output).sheet_names == ["Generations", "Levels", "RollOver", "Dilution"]


def test_cli_rejects_unknown_rank(tmp_path):
    source = _write_network(tmp_path / "red.csv")

    with pytest.raises(SystemExit, match="Unknown rank"):
        compensation.main(["--input", str(source), "--root", "1", "--rank", "Bogus"])


def test_cli_reports_missing_root(tmp_path):
    source = _write_network(tmp_path / "red.csv")

    with pytest.raises(SystemExit, match="Distributor 99 not found"):
        compensation.main(["--input", str(source), "--root", "99"])
