"""Tests for flat BOM CSV export."""

import csv
import io

import pytest

from src.services import bom_export_service
from src.services.exceptions import PartNotFound


class TestWriteFlatBomCsv:
    """Tests for write_flat_bom_csv() / render_flat_bom_csv()."""

    def test_rows_follow_header(self, rxyz_bom):
        from src.services import bom_service

        items = bom_service.get_tree(rxyz_bom.r.id).flat_list
        stream = io.StringIO()

        count = bom_export_service.write_flat_bom_csv(items, stream)

        rows = list(csv.reader(io.StringIO(stream.getvalue())))
        assert count == 4
        assert rows[0] == ["Level", "Part Number", "Name", "Quantity", "Unit", "Path"]
        assert rows[1:] == [
            ["0", "R", "Root assembly", "1", "EA", "R"],
            ["1", "X", "Sub-assembly X", "2", "EA", "R/X"],
            ["2", "Z", "Screw Z", "5", "EA", "R/X/Z"],
            ["1", "Y", "Bracket Y", "1", "EA", "R/Y"],
        ]

    def test_empty_items_writes_header_only(self):
        text = bom_export_service.render_flat_bom_csv([])

        assert text.strip() == "Level,Part Number,Name,Quantity,Unit,Path"

    def test_names_with_commas_are_quoted(self, make_part):
        from src.services import bom_service

        asm = make_part("ASM-1", "Frame, welded")
        items = bom_service.get_tree(asm.id).flat_list

        text = bom_export_service.render_flat_bom_csv(items)

        assert '"Frame, welded"' in text
        assert list(csv.reader(io.StringIO(text)))[1][2] == "Frame, welded"


class TestExportBomCsv:
    """Tests for export_bom_csv()."""

    def test_export_writes_file(self, rxyz_bom, tmp_path):
        output = tmp_path / "exports" / "r_bom.csv"

        result = bom_export_service.export_bom_csv(rxyz_bom.r.id, str(output))

        assert result.record_count == 4
        assert result.part_number == "R"
        assert result.output_path == str(output)
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert len(rows) == 5
        assert rows[3][1] == "Z"

    def test_export_unknown_part_raises(self, test_db, tmp_path):
        with pytest.raises(PartNotFound):
            bom_export_service.export_bom_csv(99999, str(tmp_path / "none.csv"))

        assert not (tmp_path / "none.csv").exists()
