"""Tests for policy and context file loading.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from iam_policy_eval.exceptions import MissingRequiredField
from iam_policy_eval.utils.policy import load_context_file, load_policy


# --- Fixtures ---


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    path = tmp_path / "policy.json"
    path.write_text(
        json.dumps(
            {
                "Version": "2012-10-17",
                "Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"}],
            }
        )
    )
    return path


@pytest.fixture
def context_file(tmp_path: Path) -> Path:
    path = tmp_path / "context.json"
    path.write_text(
        json.dumps(
            {
                "global": {"aws:SourceIp": "10.0.0.1", "aws:TagKeys": ["env"]},
                "resources": {
                    "arn:aws:s3:::bucket/key": {"s3:ExistingObjectTag/team": "ops", "aws:TagKeys": "owner"},
                    "arn:aws:s3:::bucket/other": {"s3:ExistingObjectTag/team": "dev"},
                },
            }
        )
    )
    return path


# --- load_policy ---


class TestLoadPolicy:
    """Tests for load_policy."""

    def test_loads_valid_policy(self, policy_file: Path):
        # Act
        document = load_policy(policy_file)

        # Assert
        assert document.version == "2012-10-17"
        assert document.statements[0].action == ("s3:GetObject",)

    def test_missing_file(self, tmp_path: Path):
        # Act & Assert
        with pytest.raises(FileNotFoundError, match="Policy file not found"):
            load_policy(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path):
        # Arrange
        path = tmp_path / "policy.json"
        path.write_text("{not json")

        # Act & Assert
        with pytest.raises(ValueError, match="Invalid JSON in policy file"):
            load_policy(path)

    def test_grammar_errors_propagate(self, tmp_path: Path):
        # Arrange
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"Version": "2012-10-17"}))

        # Act & Assert
        with pytest.raises(MissingRequiredField):
            load_policy(path)


# --- load_context_file ---


class TestLoadContextFile:
    """Tests for load_context_file."""

    def test_global_keys_only_without_resource(self, context_file: Path):
        # Act
        context = load_context_file(context_file)

        # Assert
        assert context == {"aws:sourceip": ("10.0.0.1",), "aws:tagkeys": ("env",)}

    def test_resource_section_is_added_for_matching_resource(self, context_file: Path):
        # Act
        context = load_context_file(context_file, "arn:aws:s3:::bucket/key")

        # Assert
        assert context["s3:existingobjecttag/team"] == ("ops",)
        assert context["aws:tagkeys"] == ("env", "owner")

    def test_other_resource_sections_are_ignored(self, context_file: Path):
        # Act
        context = load_context_file(context_file, "arn:aws:s3:::bucket/unlisted")

        # Assert
        assert "s3:existingobjecttag/team" not in context

    def test_malformed_context(self, tmp_path: Path):
        # Arrange
        path = tmp_path / "context.json"
        path.write_text(json.dumps({"global": {"aws:SourceIp": 7}}))

        # Act & Assert
        with pytest.raises(ValueError, match="Invalid context file"):
            load_context_file(path)
