from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from code_combiner.logging import setup_logging

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.unit
def test_setup_logging_writes_json_lines_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "combiner.log"
    try:
        log = setup_logging(log_file, level=logging.DEBUG)
        log.info("graph_built", dependencies=3)
    finally:
        setup_logging()

    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert record["event"] == "graph_built"
    assert record["dependencies"] == 3
    assert record["level"] == "info"
    assert "timestamp" in record
