"""
Pytest configuration and shared fixtures for the order tracker test suite.
"""
import os
import shutil
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)

# Every date-dependent test runs against this "today"
TODAY = date(2025, 5, 1)

ORDER_HEADER = [
    "SA Belgesi", "Kalem", "Satıcı", "Satıcı Adı", "Malzeme", "Kısa Metin",
    "SAS Miktarı", "Bakiye Miktarı", "Ölçü Birimi", "Teslimat Tarihi",
    "İlk Tarih", "Talep Eden", "Açıklama", "KALAN GÜN",
]

CONTACT_HEADER = [
    "Satıcı", "Satıcının adı", "Kapsam", "Alt Kapsam", "İl", "Bölge",
    "Satınalma Uzmanı", "Tedarikçi Temsilcisi", "Temsilci Tel", "Temsilci E-Mail",
]


def to_serial(value: date) -> int:
    """Spreadsheet serial number of a calendar date."""
    return 25569 + (value - date(1970, 1, 1)).days


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="tracker_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with isolated directories."""
    from config import Config

    # Keep a developer's settings file and environment out of the tests
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    monkeypatch.delenv("WARNING_THRESHOLD", raising=False)

    config = Config()
    config.warning_threshold = 10
    config.output_dir = temp_dir / "output"
    config.export_dir = temp_dir / "output" / "export"
    config.db_path = temp_dir / "output" / "tracker.db"
    config.ensure_output_dir()
    return config


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def make_line():
    """Factory for OrderLine records with sensible defaults."""
    from models.order_line import OrderLine

    def _make(**overrides) -> OrderLine:
        values = {
            "po_number": "450001",
            "item_number": "10",
            "supplier_code": "100234",
            "supplier_name": "ACME MAKINA",
            "material": "M-100",
            "description": "Rulman 6204",
            "ordered_qty": 10.0,
            "open_qty": 10.0,
            "promised_date": "10.05.2025",
            "days_remaining": 9,
            "risk": "warning",
        }
        values.update(overrides)
        return OrderLine(**values)

    return _make


@pytest.fixture
def order_grid() -> list[list]:
    """
    A raw order sheet: a title row and a blank row above the header, four
    real lines and three rows that must be dropped.
    """
    return [
        ["AÇIK SİPARİŞ RAPORU", None, None],
        [],
        list(ORDER_HEADER),
        ["450001", "10", "100234", "ACME MAKINA", "M-100", "Rulman 6204",
         10, 10, "ADT", "25.04.2025", "20.04.2025", "ayse", "", -99],
        ["450001", "20", "100234", "ACME MAKINA", "M-200", "Kayış",
         5, 2, None, to_serial(date(2025, 5, 8)), None, "ayse", "", None],
        [450002, 10, 200555, None, "M-300", "Conta",
         100, 100, "KG", datetime(2025, 6, 30), None, "mehmet", "", 60],
        ["undefined", "10", "100234", "ACME MAKINA", "M-400", "Vida",
         1, 1, "ADT", "01.05.2025", None, "", "", 0],
        [None, None, None, None, None, "Toplam", 116, 113, None, None, None, None, None, None],
        ["450003", "10", None, None, "M-500", "Somun",
         1, 1, "ADT", "01.06.2025", None, "", "", 31],
        ["450004", "10", "BETA LOJISTIK", None, "M-600", "Palet",
         20, 20, "ADT", "yakında", None, "", "", "12 gün"],
    ]


@pytest.fixture
def contact_grid() -> list[list]:
    return [
        ["TEDARİKÇİ LİSTESİ"],
        list(CONTACT_HEADER),
        ["100234", "ACME MAKİNA SAN. A.Ş.", "Mekanik", "Rulman", "İstanbul", "Marmara",
         "Zeynep", "Ali Veli", "0212 555\n1234", "ali@acme.example"],
        ["200555", "GAMA KİMYA", "Kimyasal", "", "İzmir", "Ege",
         "Zeynep", "", "", ""],
        [None, "Satıcısız satır", "", "", "", "", "", "", "", ""],
    ]


@pytest.fixture
def write_workbook(temp_dir: Path):
    """Build a real .xlsx file from grids with openpyxl."""
    from openpyxl import Workbook

    def _write(name: str, orders: list[list], contacts: list[list] | None = None,
               contact_title: str = "TEDARİKÇİ LİSTESİ") -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = "Açık Siparişler"
        for row in orders:
            ws.append(row or [None])
        if contacts is not None:
            cs = wb.create_sheet(contact_title)
            for row in contacts:
                cs.append(row)
        path = temp_dir / name
        wb.save(path)
        return path

    return _write


def _completion(content: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def fake_llm():
    """
    Attach a mocked OpenAI client to an EmailDrafter.  Each positional
    response is either reply text or an exception raised by that call.
    Returns the mocked ``chat.completions.create``.
    """
    def _attach(drafter, *responses):
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            r if isinstance(r, Exception) else _completion(r) for r in responses
        ]
        drafter._client = client
        return client.chat.completions.create

    return _attach


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
