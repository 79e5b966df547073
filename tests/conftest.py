import json
import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from recfs import FileService  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that touch several files on disk end to end",
    )


@pytest.fixture
def service() -> FileService:
    """File service with default settings."""
    return FileService()


@pytest.fixture
def json_records() -> List[dict]:
    """Ten small JSON records, ids 0..9."""
    return [{"id": i, "name": f"item-{i}", "tags": ["a", "b"][: i % 3]} for i in range(10)]


@pytest.fixture
def write_json_file(service: FileService) -> Callable[[Path, list], Path]:
    """Write records to a JSON file through the service and return its path."""

    def _write(path: Path, records: list) -> Path:
        with service.new_json_file(path) as writer:
            for record in records:
                writer.write(record)
        return path

    return _write


@pytest.fixture
def read_json_file(service: FileService) -> Callable[[Path], list]:
    """Read every record of a JSON file as Python values."""

    def _read(path: Path) -> list:
        with service.open_json_file(path) as reader:
            return [json.loads(raw) for raw in reader]

    return _read


@pytest.fixture
def csv_rows() -> List[List[str]]:
    """Header plus seven data rows with characters that need quoting."""
    return [["id", "name", "note"]] + [
        [str(i), f"name {i}", "plain" if i % 2 else 'has "quotes", commas\nand newline']
        for i in range(7)
    ]
