"""Pytest configuration and fixtures for attendance tracker tests."""

import logging
from pathlib import Path
from typing import Generator

import pytest

from src.database.connection import close_pools, init_database
from src.database.repository import Repository
from src.logutils import BufferingHandler


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, CLI)")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="function")
def temp_db(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary database with the real schema."""
    db_path = tmp_path / "test_attendance.db"
    init_database(db_path)

    yield db_path

    close_pools()


@pytest.fixture(scope="function")
def repo(temp_db: Path) -> Repository:
    """Repository bound to the temporary database."""
    return Repository(temp_db)


@pytest.fixture
def log_buffer() -> Generator[BufferingHandler, None, None]:
    """Collect records from every ``src.*`` logger.

    Named loggers do not propagate, so the handler is attached to each one
    that already exists.
    """
    handler = BufferingHandler()
    loggers = [
        logging.getLogger(name)
        for name in list(logging.root.manager.loggerDict)
        if name.startswith("src.")
    ]
    for logger in loggers:
        logger.addHandler(handler)

    yield handler

    for logger in loggers:
        logger.removeHandler(handler)


class FakeNotifier:
    """Records reports instead of sending them."""

    def __init__(self, deliver: bool = True, fail: bool = False):
        self.deliver = deliver
        self.fail = fail
        self.sent: list[tuple] = []

    def send_attendance_report(self, student_id, text, payload) -> bool:
        if self.fail:
            raise ConnectionError("chat service unreachable")
        self.sent.append((student_id, text, payload))
        return self.deliver


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def notifier_factory():
    """Build notifiers that decline delivery or raise."""
    return FakeNotifier


# =============================================================================
# HTML fixtures
# =============================================================================


def fieldset_block(serial: str, code: str, attended: str, conducted: str, percent: str,
                   color: str = "#0040FF") -> str:
    """One ExtJS subject row as rendered by the portal."""
    return f"""
    <fieldset id="fieldset-{serial}" class="x-fieldset bottom-border x-fieldset-default">
        <div class="x-fieldset-body x-column-layout-ct">
            <div class="x-column-inner">
                <div id="displayfield-{serial}1" class="x-field x-form-item x-column">
                    <div class="x-form-display-field"><span style="font-size:12px;padding: 9px;">{serial}</span></div>
                </div>
                <div id="displayfield-{serial}2" class="x-field x-form-item x-column">
                    <div class="x-form-display-field"><span style="font-size:12px">{code}</span></div>
                </div>
                <div id="displayfield-{serial}3" class="x-field x-form-item x-column">
                    <div class="x-form-display-field"><span style="font-size:12px;padding: 55px;"> {attended} </span></div>
                </div>
                <div id="displayfield-{serial}4" class="x-field x-form-item x-column">
                    <div class="x-form-display-field"><span style="font-size:12px;padding: 40px;"> {conducted} </span></div>
                </div>
                <div id="displayfield-{serial}5" class="x-field x-form-item x-column">
                    <div class="x-form-display-field"><span style="font-size:12px;color:{color}; padding: 37px;"> {percent} </span></div>
                </div>
            </div>
        </div>
    </fieldset>
    """


HEADER_BLOCK = """
    <fieldset id="fieldset-header" class="x-fieldset bottom-border x-fieldset-default">
        <span style="font-size:12px;font-weight:bold">S.NO</span>
        <span style="font-size:12px;font-weight:bold">SUBJECT CODE</span>
        <span style="font-size:12px;font-weight:bold">CLASSES ATTENDED</span>
        <span style="font-size:12px;font-weight:bold">TOTAL CONDUCTED</span>
        <span style="font-size:12px;font-weight:bold">ATTENDANCE %</span>
    </fieldset>
"""


@pytest.fixture(scope="session")
def make_block():
    """Builder for single subject fieldsets."""
    return fieldset_block


@pytest.fixture(scope="session")
def header_block() -> str:
    return HEADER_BLOCK


@pytest.fixture(scope="session")
def portal_fieldset_html() -> str:
    """Attendance widget with a header row and three subjects."""
    blocks = "".join([
        fieldset_block("1", "APTITUDE", "3", "4", "75.0"),
        fieldset_block("2", "23CSM107", "21", "27", "77.78"),
        fieldset_block("3", "23MAT104", "10", "20", "50.0", color="#FF0000"),
    ])
    return f'<div id="semesterActivity">{HEADER_BLOCK}{blocks}</div>'


@pytest.fixture(scope="session")
def portal_table_html() -> str:
    """Older table layout of the attendance page."""
    return """
    <table>
        <tr><th>S.No</th><th>Subject Code</th><th>Classes Attended</th><th>Total Conducted</th><th>Attendance %</th></tr>
        <tr><td>1</td><td>23CSM107</td><td>18</td><td>20</td><td>90.00</td></tr>
        <tr><td>2</td><td>23MAT104</td><td>12</td><td>20</td><td>60.00</td></tr>
    </table>
    """
