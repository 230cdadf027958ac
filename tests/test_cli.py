import json

from mqspec.cli import main
from mqspec.errors import EXIT_CONFIG, EXIT_INPUT_VALIDATION, EXIT_PARSE, EXIT_SUCCESS


def test_parse_command_writes_json(sample_spec, tmp_path):
    output = tmp_path / "nested" / "dir" / "ir.json"

    code = main(["parse", "-i", str(sample_spec), "-o", str(output)])

    assert code == EXIT_SUCCESS
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["metadata"]["operationId"] == "OP001"
    assert payload["request"]["fields"][1]["className"] == "CustomerInfo"


def test_parse_error_exit_code_and_no_output(tmp_path, write_spec):
    spec = write_spec(tmp_path / "jump.xlsx", {"Request": [(1, "a:A"), (3, "b", "", 1, "N")]})
    output = tmp_path / "ir.json"

    code = main(["parse", "-i", str(spec), "-o", str(output)])

    assert code == EXIT_PARSE
    assert not output.exists()


def test_missing_input_exit_code(tmp_path):
    code = main(["parse", "-i", str(tmp_path / "nope.xlsx"), "-o", str(tmp_path / "ir.json")])
    assert code == EXIT_INPUT_VALIDATION


def test_bad_config_exit_code(sample_spec, tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("unexpected: true\n", encoding="utf-8")

    code = main(["parse", "-i", str(sample_spec), "-o", str(tmp_path / "ir.json"), "-c", str(config)])

    assert code == EXIT_CONFIG


def test_output_path_from_config(sample_spec, tmp_path):
    config = tmp_path / "mqspec.yaml"
    config.write_text("output:\n  path: out/ir.json\n  indent: 4\n", encoding="utf-8")

    code = main(["parse", "-i", str(sample_spec), "-c", str(config)])

    assert code == EXIT_SUCCESS
    text = (tmp_path / "out" / "ir.json").read_text(encoding="utf-8")
    assert text.startswith('{\n    "metadata"')


def test_version_command(capsys):
    assert main(["version"]) == EXIT_SUCCESS
    assert "parser:" in capsys.readouterr().out
