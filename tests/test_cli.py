"""
CLI tests: text and JSON output, batch runs and exit codes.
"""
import json
import logging

import pytest

from nutrition_estimator.cli import format_result, main
from nutrition_estimator.logging_utils import ROOT_LOGGER


@pytest.fixture(autouse=True)
def reset_package_logger():
    """main() points a handler at the captured stderr; drop it after each test."""
    yield
    package_logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


def test_text_report(capsys):
    assert main(["Paneer Curry with capsicum"]) == 0

    out = capsys.readouterr().out
    assert "Dish type: Veg Gravy" in out
    assert "Serving: 150g (Katori)" in out
    assert "Confidence:" in out
    assert "Corrected spelling variation" in out
    assert "... and" in out


def test_json_output_with_issue(capsys):
    assert main(["Chana masala", "--issue", "missing ingredient", "--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["dish"] == "Chana masala"
    assert payload["issues"] == ["missing ingredient"]
    assert payload["ingredients"][-1]["name"] == "salt"


def test_samples_batch_writes_output(tmp_path, capsys):
    out_file = tmp_path / "results.json"
    assert main(["--samples", "--json", "--output", str(out_file)]) == 0

    printed = json.loads(capsys.readouterr().out)
    written = json.loads(out_file.read_text())
    assert len(printed) == len(written) > 1
    assert all(r["error"] is None for r in written)


def test_batch_file(tmp_path, capsys):
    batch = tmp_path / "dishes.json"
    batch.write_text(json.dumps(["Gobhi Sabzi", {"dish": "Dal Tadka", "issues": []}]))

    assert main(["--batch", str(batch)]) == 0
    out = capsys.readouterr().out
    assert "Dish: Gobhi Sabzi" in out
    assert "Dish: Dal Tadka" in out


def test_no_arguments_is_usage_error(capsys):
    assert main([]) == 2
    assert "give a dish name" in capsys.readouterr().err


def test_format_error_result():
    from nutrition_estimator.schemas import EstimationResult

    text = format_result(EstimationResult(dish="X", confidence=0, error="RuntimeError: boom"))
    assert "ERROR: RuntimeError: boom" in text
    assert "Confidence: 0%" in text


def test_missing_config_dir_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["Gobhi Sabzi", "--config-dir", str(tmp_path)])
