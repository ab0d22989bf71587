from pathlib import Path

import pytest

from contract_suite.suite import (
    RunSpec,
    parse_run_spec,
    parse_run_spec_data,
    validate_run_spec,
)

SUITE_YAML = """\
suite:
  base_dir: build
  endpoint: http://localhost:1337/rpc
  coverage: true
units:
  - ArraysTest
  - CoinTest
"""


def write_suite(tmp_path, text=SUITE_YAML, name="suite.yaml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_suite_file(tmp_path):
    spec = parse_run_spec(write_suite(tmp_path))

    assert spec.units == ("ArraysTest", "CoinTest")
    assert spec.base_dir == tmp_path / "build"
    assert spec.endpoint == "http://localhost:1337/rpc"
    assert spec.coverage is True
    assert spec.total_units == 2


def test_absolute_base_dir_is_kept(tmp_path):
    spec = parse_run_spec_data(
        {"suite": {"endpoint": "http://x", "base_dir": str(tmp_path)}},
        root=Path("/elsewhere"),
    )
    assert spec.base_dir == tmp_path


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_run_spec(tmp_path / "nope.yaml")


def test_wrong_extension(tmp_path):
    with pytest.raises(ValueError):
        parse_run_spec(write_suite(tmp_path, name="suite.txt"))


def test_empty_file(tmp_path):
    with pytest.raises(ValueError):
        parse_run_spec(write_suite(tmp_path, text=""))


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"units": ["ATest"]},
        {"suite": "http://x"},
        {"suite": {"base_dir": "."}},
        {"suite": {"endpoint": "http://x"}, "units": "ATest"},
        {"suite": {"endpoint": "http://x"}, "units": [1]},
        {"suite": {"endpoint": "http://x", "coverage": "yes"}},
        {"suite": {"endpoint": "http://x"}, "units": ["ATest", "ATest"]},
    ],
)
def test_malformed_data(data):
    with pytest.raises(ValueError):
        parse_run_spec_data(data)


def test_run_spec_is_immutable():
    spec = RunSpec(units=["ATest"], base_dir=".", endpoint="http://x")
    assert spec.units == ("ATest",)
    assert isinstance(spec.base_dir, Path)
    with pytest.raises(AttributeError):
        spec.units = ()


def test_to_dict_round_trips_through_parser():
    spec = RunSpec(units=["ATest"], base_dir="/build", endpoint="http://x", coverage=True)
    assert parse_run_spec_data(spec.to_dict()) == spec


def test_valid_spec(build_dir):
    spec = RunSpec(units=["CoinTest"], base_dir=build_dir, endpoint="http://localhost:1337/rpc")
    result = validate_run_spec(spec)
    assert result.valid
    assert result.warnings == []
    assert str(result) == "Valid"


@pytest.mark.parametrize("endpoint", ["localhost:1337", "ftp://host/rpc", "http://"])
def test_invalid_endpoint(build_dir, endpoint):
    result = validate_run_spec(RunSpec(units=["CoinTest"], base_dir=build_dir, endpoint=endpoint))
    assert not result.valid
    assert result.errors[0].path == "suite.endpoint"


def test_empty_unit_name_is_an_error(build_dir):
    result = validate_run_spec(RunSpec(units=[" "], base_dir=build_dir, endpoint="http://x"))
    assert not result.valid
    assert result.errors[0].path == "units[0]"


def test_warnings(tmp_path):
    spec = RunSpec(units=[], base_dir=tmp_path / "missing", endpoint="http://x")
    result = validate_run_spec(spec)
    assert result.valid
    assert {w.path for w in result.warnings} == {"units", "suite.base_dir"}

    spec = RunSpec(units=["Coin"], base_dir=tmp_path, endpoint="http://x", coverage=True)
    result = validate_run_spec(spec)
    assert [w.path for w in result.warnings] == ["units[0]"]
    assert "1 warnings" in str(result)
