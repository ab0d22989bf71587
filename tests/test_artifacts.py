import pytest

from contract_suite.artifacts.loader import FileArtifactLoader, tested_unit_name
from contract_suite.errors import ArtifactError, ArtifactNotFoundError, ArtifactParseError


def test_load_returns_code_and_interface(build_dir):
    artifact = FileArtifactLoader().load(build_dir, "CoinTest")

    assert artifact.name == "CoinTest"
    assert artifact.code == "6060604052"
    assert len(artifact.interface) == 3
    assert artifact.interface[1]["name"] == "testTransfer"


def test_missing_code_file(build_dir):
    with pytest.raises(ArtifactNotFoundError):
        FileArtifactLoader().load_code(build_dir, "MissingTest")


def test_malformed_interface(build_dir):
    with pytest.raises(ArtifactParseError):
        FileArtifactLoader().load(build_dir, "ArraysTest")


def test_interface_must_be_a_list(build_dir):
    (build_dir / "Odd.abi").write_text('{"type": "function"}', encoding="utf-8")
    with pytest.raises(ArtifactParseError):
        FileArtifactLoader().load_interface(build_dir, "Odd")


def test_interface_entries_must_be_objects(build_dir):
    (build_dir / "Odd.abi").write_text('["testAdd"]', encoding="utf-8")
    with pytest.raises(ArtifactParseError):
        FileArtifactLoader().load_interface(build_dir, "Odd")


def test_empty_code_file(build_dir):
    (build_dir / "Empty.binary").write_text("  \n", encoding="utf-8")
    with pytest.raises(ArtifactParseError):
        FileArtifactLoader().load_code(build_dir, "Empty")


def test_load_trace(build_dir):
    trace = FileArtifactLoader().load_trace(build_dir, "CoinTest")
    assert trace["name"] == "SourceUnit"


def test_errors_share_a_base(build_dir):
    with pytest.raises(ArtifactError):
        FileArtifactLoader().load_trace(build_dir, "ArraysTest")


@pytest.mark.parametrize(
    "name, expected",
    [("CoinTest", "Coin"), ("Coin", "Coin"), ("Test", "Test")],
)
def test_tested_unit_name(name, expected):
    assert tested_unit_name(name) == expected
