"""
Tests for the policy rule validation script.
"""

import json

from scripts.validate_policy_rules import main, validate_rules_file


def test_valid_json_list(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([
        {"effect": "DENY", "action": "deleteRepo"},
        {"effect": "ALLOW", "action": None, "parameterConstraints": {"repo": {"pattern": "^acme/"}}},
    ]))

    assert validate_rules_file(path) == []
    assert main([str(path)]) == 0


def test_valid_yaml_mapping(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "rules:\n"
        "  - effect: ALLOW\n"
        "    action: createIssue\n"
        "    parameterConstraints:\n"
        "      labels:\n"
        "        in: [bug, feature]\n"
    )

    assert validate_rules_file(path) == []


def test_bad_pattern_reported(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([
        {"effect": "ALLOW", "action": None, "parameterConstraints": {"repo": {"pattern": "(unclosed"}}},
    ]))

    errors = validate_rules_file(path)

    assert len(errors) == 1
    assert errors[0].startswith("rules[0].parameterConstraints.repo.pattern")
    assert main([str(path)]) == 1


def test_schema_errors_reported_per_rule(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([
        {"effect": "ALLOW", "action": None},
        {"effect": "MAYBE", "action": None},
    ]))

    errors = validate_rules_file(path)

    assert errors
    assert all(error.startswith("rules[1].") for error in errors)


def test_mapping_without_rules_key(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("policies: []\n")

    assert validate_rules_file(path) == ["Missing required field: rules"]


def test_no_arguments():
    assert main([]) == 1


def test_undecodable_file_reported(tmp_path):
    path = tmp_path / "rules.json"
    path.write_bytes(b'[{"effect": "ALLOW", "action": "\xff\xfe"}]')

    errors = validate_rules_file(path)

    assert len(errors) == 1
    assert main([str(path)]) == 1
