import logging
import types

import pytest

from essentials_di import ServiceCollection

log_capture: list[str] = []


class ListLogHandler(logging.Handler):
    def emit(self, record):
        log_capture.append(self.format(record))


@pytest.fixture(autouse=True)
def reset_logging_capture():
    log_capture.clear()


@pytest.fixture
def services():
    return ServiceCollection()


@pytest.fixture
def make_module():
    counter = {"n": 0}

    def _make(**members):
        counter["n"] += 1
        mod = types.ModuleType(f"scan_fixture_{counter['n']}")
        mod.__dict__.update(members)
        return mod

    return _make
