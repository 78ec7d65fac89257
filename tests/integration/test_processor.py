"""
Integration tests: spreadsheet files on disk through the whole pipeline.
"""
import pytest

from pipeline.export import export_order_lines
from pipeline.processor import OrderProcessor
from pipeline.workbook_loader import find_contact_sheet, load_grids


@pytest.fixture
def processor(test_config, today) -> OrderProcessor:
    return OrderProcessor(test_config, today=today)


@pytest.mark.integration
class TestWorkbookLoader:

    def test_xlsx_with_contact_sheet(self, write_workbook, order_grid, contact_grid):
        path = write_workbook("week19.xlsx", order_grid, contact_grid)

        grids = load_grids(path)

        assert not grids.is_empty
        assert grids.contacts is not None
        assert grids.contacts[1][0] == "Satıcı"

    def test_xlsx_without_contact_sheet(self, write_workbook, order_grid):
        grids = load_grids(write_workbook("week19.xlsx", order_grid))
        assert grids.contacts is None

    def test_contact_sheet_name_variants(self):
        assert find_contact_sheet(["Özet", "Tedarikçi Listesi"]) == "Tedarikçi Listesi"
        assert find_contact_sheet(["Tedarikçiler", "TEDARİKÇİ LİSTESİ"]) == "TEDARİKÇİ LİSTESİ"
        assert find_contact_sheet(["Tedarikçiler"]) == "Tedarikçiler"
        assert find_contact_sheet(["Özet"]) is None

    def test_unreadable_file_gives_empty_grids(self, temp_dir):
        broken = temp_dir / "broken.xlsx"
        broken.write_bytes(b"not a zip file")

        assert load_grids(broken).is_empty
        assert load_grids(temp_dir / "missing.xlsx").is_empty
        assert load_grids(temp_dir / "notes.txt").is_empty

    def test_malformed_csv_gives_empty_grids(self, temp_dir):
        path = temp_dir / "huge.csv"
        path.write_text(
            "SA Belgesi,Satıcı Adı,Açıklama\n450001,ACME MAKINA," + "x" * 200_000 + "\n",
            encoding="utf-8",
        )

        assert load_grids(path).is_empty

    def test_semicolon_csv(self, temp_dir):
        path = temp_dir / "orders.csv"
        path.write_text(
            "SA Belgesi;Satıcı;Satıcı Adı;Teslimat Tarihi\n450001;100234;ACME MAKINA;15.05.2025\n",
            encoding="utf-8-sig",
        )

        grids = load_grids(path)

        assert grids.orders[1] == ["450001", "100234", "ACME MAKINA", "15.05.2025"]
        assert grids.contacts is None


@pytest.mark.integration
class TestOrderProcessor:

    def test_load_xlsx(self, processor, write_workbook, order_grid, contact_grid):
        snapshot = processor.load(write_workbook("week19.xlsx", order_grid, contact_grid))

        assert [l.days_remaining for l in snapshot.lines] == [-6, 7, 60, 12]
        assert [c.code for c in snapshot.contacts] == ["100234", "200555"]

        book = processor.order_book(snapshot)
        assert book.contact_for("100234").rep_email == "ali@acme.example"

    def test_empty_workbook(self, processor, write_workbook):
        snapshot = processor.load(write_workbook("empty.xlsx", []))
        assert snapshot.is_empty

    def test_exported_csv_loads_back(self, processor, write_workbook, order_grid, temp_dir):
        original = processor.load(write_workbook("week19.xlsx", order_grid)).lines
        path = temp_dir / "orders.csv"
        export_order_lines(path, original)

        reloaded = processor.load(path).lines

        assert [l.key for l in reloaded] == [l.key for l in original]
        assert [l.supplier_name for l in reloaded] == [l.supplier_name for l in original]
        assert [l.days_remaining for l in reloaded] == [l.days_remaining for l in original]

    def test_compare_two_exports(self, processor, write_workbook, order_grid):
        newer = [row[:] for row in order_grid]
        newer[3][9] = "15.05.2025"        # 450001/10 promised date moved
        del newer[5]                      # 450002/10 delivered

        report = processor.compare(
            write_workbook("week18.xlsx", order_grid),
            write_workbook("week19.xlsx", newer),
        )

        assert (report.total_added, report.total_removed, report.total_updated) == (0, 1, 1)
        assert [v.vendor_id for v in report.vendors] == ["100234", "200555"]

    def test_save_and_compare_with_latest(self, processor, write_workbook, order_grid, contact_grid):
        snapshot = processor.load(write_workbook("week19.xlsx", order_grid, contact_grid))

        assert processor.compare_with_latest(snapshot) is None
        processor.save(snapshot)

        report = processor.compare_with_latest(snapshot)
        assert report.is_empty
        assert sorted(processor.store.get_contacts()) == ["100234", "200555"]

    def test_save_edited_lines(self, processor, write_workbook, order_grid):
        snapshot = processor.load(write_workbook("week19.xlsx", order_grid))
        book = processor.order_book(snapshot)
        book.update_date("450001", "20", "20.05.2025")

        snapshot_id = processor.save(snapshot, list(book.lines))

        stored = processor.store.load_lines(snapshot_id)
        assert stored[1].revised_date == "20.05.2025"
        assert stored[1].days_remaining == 19
