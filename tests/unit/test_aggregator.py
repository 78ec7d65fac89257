"""
Unit tests for per-supplier rollups.
"""
import pytest

from pipeline.aggregator import find_vendor, group_by_supplier_name, rank_vendors


@pytest.mark.unit
class TestGroupBySupplierName:

    def test_counts_per_supplier(self, make_line):
        lines = [
            make_line(item_number="10", risk="critical", days_remaining=-1),
            make_line(item_number="20", risk="warning"),
            make_line(item_number="30", risk="ok", days_remaining=40),
            make_line(po_number="450002", supplier_code="200555",
                      supplier_name="GAMA KIMYA", risk="warning"),
        ]

        acme, gama = group_by_supplier_name(lines)

        assert (acme.vendor_name, acme.item_count) == ("ACME MAKINA", 3)
        assert (acme.critical_count, acme.warning_count) == (1, 1)
        assert (gama.vendor_id, gama.item_count, gama.warning_count) == ("200555", 1, 1)

    def test_counts_match_items(self, make_line):
        lines = [make_line(item_number=str(i), risk="critical") for i in range(4)]
        (summary,) = group_by_supplier_name(lines)

        assert summary.item_count == len(summary.items) == 4
        assert summary.critical_count + summary.warning_count <= summary.item_count

    def test_codes_sharing_a_name_are_merged(self, make_line):
        lines = [
            make_line(supplier_code="100234"),
            make_line(item_number="20", supplier_code="100999"),
        ]

        (summary,) = group_by_supplier_name(lines)

        assert summary.vendor_id == "100234"
        assert summary.item_count == 2

    def test_empty(self):
        assert group_by_supplier_name([]) == []


@pytest.mark.unit
class TestRanking:

    def test_rank_by_critical_then_warning(self, make_line):
        lines = [
            make_line(supplier_name="A", risk="warning"),
            make_line(supplier_name="B", risk="critical"),
            make_line(supplier_name="C", risk="warning"),
            make_line(supplier_name="C", item_number="20", risk="warning"),
        ]

        ranked = rank_vendors(group_by_supplier_name(lines))

        assert [s.vendor_name for s in ranked] == ["B", "C", "A"]

    def test_find_vendor_by_name_or_code(self, make_line):
        summaries = group_by_supplier_name([make_line()])

        assert find_vendor(summaries, "acme makina") is summaries[0]
        assert find_vendor(summaries, "100234") is summaries[0]
        assert find_vendor(summaries, "unknown") is None
