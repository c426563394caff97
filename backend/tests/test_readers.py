from pathlib import Path

import pytest

from conftest import write_csv, write_xlsx
from padata.importers.readers import (
    build_header_index,
    normalize_header,
    read_rows,
    year_from_filename,
)


class TestReadRows:
    def test_xlsx(self, tmp_path):
        path = write_xlsx(tmp_path / "2019 PSSA State.xlsx", ["Subject", "Grade"], [["Math", 3]], header_row=2)

        rows = read_rows(path)

        assert rows[2] == ["Subject", "Grade"]
        assert rows[3] == ["Math", 3]

    def test_csv(self, tmp_path):
        path = write_csv(tmp_path / "2019 PSSA State.csv", ["Subject", "Grade"], [["Math", "3"]], header_row=1)

        rows = read_rows(path)

        assert rows[1] == ["Subject", "Grade"]
        assert rows[2] == ["Math", "3"]

    def test_csv_encoding_fallback(self, tmp_path):
        path = tmp_path / "latin.csv"
        path.write_bytes("District Name\nCaf\xe9 SD\n".encode("latin-1"))

        rows = read_rows(path)

        assert rows[1] == ["Caf\xe9 SD"]

    def test_csv_windows_punctuation(self, tmp_path):
        path = tmp_path / "cp1252.csv"
        path.write_bytes("School Name\nSt. Mary\u2019s Academy \u2013 Upper\n".encode("cp1252"))

        rows = read_rows(path)

        assert rows[1] == ["St. Mary\u2019s Academy \u2013 Upper"]

    def test_csv_bytes_undefined_in_cp1252(self, tmp_path):
        path = tmp_path / "odd.csv"
        path.write_bytes(b"District Name\nAbc\x81 SD\n")

        rows = read_rows(path)

        assert rows[1] == ["Abc\x81 SD"]

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "results.pdf"
        path.write_bytes(b"%PDF")

        with pytest.raises(ValueError):
            read_rows(path)


class TestHeaders:
    def test_normalize_header(self):
        assert normalize_header("Percent\nProficient  and above") == "Percent Proficient and above"
        assert normalize_header(None) == ""

    def test_first_occurrence_wins(self):
        index = build_header_index(["Subject", None, "Grade", "Subject"])

        assert index == {"Subject": 0, "Grade": 2}


class TestYearFromFilename:
    def test_year(self):
        assert year_from_filename("2019 PSSA School Level Data.xlsx") == 2019
        assert year_from_filename(Path("keystone_2024_final.csv").name) == 2024

    def test_no_year(self):
        assert year_from_filename("PSSA School Level Data.xlsx") is None
