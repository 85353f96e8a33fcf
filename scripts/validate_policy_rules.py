#!/usr/bin/env python3
"""
Policy rule validation script.
Checks JSON or YAML rule files before they are applied to a grant or provider.

A file holds either a list of rules or a mapping with a ``rules`` key.
"""

import sys
import yaml
from pathlib import Path
from typing import List

from pydantic import ValidationError

from service_policies.app.rules.matcher import pattern_errors
from service_policies.app.rules.models import parse_rules


def validate_rules_file(rules_path: Path) -> List[str]:
    """Validate a single rules file."""
    errors = []

    try:
        with open(rules_path, 'r', encoding='utf-8') as f:
            # JSON is a subset of YAML, so one loader covers both formats.
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        errors.append(f"Invalid YAML/JSON: {e}")
        return errors
    except (OSError, UnicodeDecodeError) as e:
        errors.append(f"Error reading file: {e}")
        return errors

    if isinstance(document, dict):
        if 'rules' not in document:
            errors.append("Missing required field: rules")
            return errors
        document = document['rules']

    if document is not None and not isinstance(document, list):
        errors.append("rules must be a list")
        return errors

    rules = []
    for index, raw in enumerate(document or []):
        try:
            rules.extend(parse_rules([raw]))
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"])
                errors.append(f"rules[{index}].{location}: {error['msg']}")
    if errors:
        return errors

    errors.extend(pattern_errors(rules))
    return errors


def main(argv: List[str] = None) -> int:
    """Validate every rules file given on the command line."""
    paths = [Path(arg) for arg in (sys.argv[1:] if argv is None else argv)]

    if not paths:
        print("Usage: validate_policy_rules.py RULES_FILE [RULES_FILE ...]")
        return 1

    total_errors = 0

    for rules_path in paths:
        errors = validate_rules_file(rules_path)

        if errors:
            print(f"❌ {rules_path}: {len(errors)} validation errors")
            for error in errors:
                print(f"   - {error}")
            total_errors += len(errors)
        else:
            print(f"✅ {rules_path}: rules are valid")

    print(f"\nValidation complete: {total_errors} total errors")
    return 0 if total_errors == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
