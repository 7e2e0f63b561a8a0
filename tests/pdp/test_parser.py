"""Tests for policy document parsing.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from iam_policy_eval.exceptions import (
    InvalidFieldCombination,
    MissingRequiredField,
    ParseError,
    SchemaViolation,
    UnsupportedOperator,
)
from iam_policy_eval.pdp.parser import parse_operator_key, parse_policy
from iam_policy_eval.pdp.policy import ConditionOperator, Quantifier

# --- Fixtures ---


@pytest.fixture
def statement() -> dict[str, Any]:
    """A minimal valid statement."""
    return {
        "Sid": "ReadReports",
        "Effect": "Allow",
        "Action": "s3:GetObject",
        "Resource": "arn:aws:s3:::reports/*",
    }


def _policy(*statements: dict[str, Any], version: str = "2012-10-17") -> dict[str, Any]:
    return {"Version": version, "Statement": list(statements)}


# --- Document level ---


class TestParseDocument:
    """Tests for top-level document parsing."""

    def test_parses_minimal_document(self, statement: dict[str, Any]):
        # Act
        document = parse_policy(_policy(statement))

        # Assert
        assert document.version == "2012-10-17"
        assert len(document.statements) == 1
        parsed = document.statements[0]
        assert parsed.sid == "ReadReports"
        assert parsed.effect == "Allow"
        assert parsed.action == ("s3:GetObject",)
        assert parsed.resource == ("arn:aws:s3:::reports/*",)
        assert parsed.not_action is None

    def test_single_statement_object_is_accepted(self, statement: dict[str, Any]):
        # Act
        document = parse_policy({"Version": "2012-10-17", "Statement": statement})

        # Assert
        assert len(document.statements) == 1

    def test_empty_statement_list(self):
        # Act
        document = parse_policy(_policy())

        # Assert
        assert document.statements == ()

    def test_missing_version_defaults_to_2008(self, statement: dict[str, Any]):
        # Act
        document = parse_policy({"Statement": [statement]})

        # Assert
        assert document.version == "2008-10-17"

    def test_id_is_kept(self, statement: dict[str, Any]):
        # Act
        document = parse_policy({"Version": "2012-10-17", "Id": "S3Policy", "Statement": [statement]})

        # Assert
        assert document.id == "S3Policy"

    def test_statement_indexes_follow_document_order(self, statement: dict[str, Any]):
        # Act
        document = parse_policy(_policy(statement, {**statement, "Sid": "Second"}))

        # Assert
        assert [s.index for s in document.statements] == [0, 1]

    @pytest.mark.parametrize(
        ("tree", "error"),
        [
            ([], SchemaViolation),
            ({"Version": "2012-10-17"}, MissingRequiredField),
            ({"Version": "2020-01-01", "Statement": []}, SchemaViolation),
            ({"Version": "2012-10-17", "Statement": "nope"}, SchemaViolation),
            ({"Version": "2012-10-17", "Statement": [], "Extra": 1}, SchemaViolation),
        ],
    )
    def test_invalid_documents(self, tree: Any, error: type[ParseError]):
        # Act & Assert
        with pytest.raises(error):
            parse_policy(tree)


# --- Statement level ---


class TestParseStatement:
    """Tests for statement grammar."""

    def test_missing_effect(self, statement: dict[str, Any]):
        # Arrange
        del statement["Effect"]

        # Act & Assert
        with pytest.raises(MissingRequiredField) as exc_info:
            parse_policy(_policy(statement))
        assert exc_info.value.field == "Effect"
        assert exc_info.value.statement_index == 0

    def test_effect_is_case_sensitive(self, statement: dict[str, Any]):
        # Arrange
        statement["Effect"] = "allow"

        # Act & Assert
        with pytest.raises(SchemaViolation, match="Effect"):
            parse_policy(_policy(statement))

    def test_action_with_not_action(self, statement: dict[str, Any]):
        # Arrange
        statement["NotAction"] = "s3:PutObject"

        # Act & Assert
        with pytest.raises(InvalidFieldCombination):
            parse_policy(_policy(statement))

    def test_resource_with_not_resource(self, statement: dict[str, Any]):
        # Arrange
        statement["NotResource"] = "arn:aws:s3:::other/*"

        # Act & Assert
        with pytest.raises(InvalidFieldCombination):
            parse_policy(_policy(statement))

    def test_missing_action(self, statement: dict[str, Any]):
        # Arrange
        del statement["Action"]

        # Act & Assert
        with pytest.raises(MissingRequiredField):
            parse_policy(_policy(statement))

    def test_missing_resource(self, statement: dict[str, Any]):
        # Arrange
        del statement["Resource"]

        # Act & Assert
        with pytest.raises(MissingRequiredField):
            parse_policy(_policy(statement))

    @pytest.mark.parametrize("action", ["GetObject", "s3:", ":GetObject", 7, [], ["s3:GetObject", 1]])
    def test_invalid_actions(self, statement: dict[str, Any], action: Any):
        # Arrange
        statement["Action"] = action

        # Act & Assert
        with pytest.raises(SchemaViolation):
            parse_policy(_policy(statement))

    def test_invalid_resource(self, statement: dict[str, Any]):
        # Arrange
        statement["Resource"] = "reports/*"

        # Act & Assert
        with pytest.raises(SchemaViolation):
            parse_policy(_policy(statement))

    def test_unknown_element(self, statement: dict[str, Any]):
        # Arrange
        statement["Actions"] = "s3:*"

        # Act & Assert
        with pytest.raises(SchemaViolation, match="Actions"):
            parse_policy(_policy(statement))

    def test_error_location_names_statement_and_sid(self, statement: dict[str, Any]):
        # Arrange
        broken = {**statement, "Sid": "Broken", "Effect": "Maybe"}

        # Act & Assert
        with pytest.raises(SchemaViolation) as exc_info:
            parse_policy(_policy(statement, broken))
        assert exc_info.value.location == "Statement[1](Broken).Effect"
        assert str(exc_info.value).startswith("Statement[1](Broken).Effect: ")


# --- Principals ---


class TestParsePrincipal:
    """Tests for Principal/NotPrincipal parsing."""

    def test_wildcard_principal(self, statement: dict[str, Any]):
        # Arrange
        statement["Principal"] = "*"

        # Act
        document = parse_policy(_policy(statement))

        # Assert
        assert document.statements[0].principal.wildcard is True

    def test_typed_principals(self, statement: dict[str, Any]):
        # Arrange
        statement["Principal"] = {
            "AWS": ["123456789012", "arn:aws:iam::210987654321:role/reader"],
            "Service": "lambda.amazonaws.com",
        }

        # Act
        block = parse_policy(_policy(statement)).statements[0].principal

        # Assert
        assert block.aws == ("123456789012", "arn:aws:iam::210987654321:role/reader")
        assert block.service == ("lambda.amazonaws.com",)
        assert block.wildcard is False

    def test_principal_with_not_principal(self, statement: dict[str, Any]):
        # Arrange
        statement["Principal"] = "*"
        statement["NotPrincipal"] = {"AWS": "123456789012"}

        # Act & Assert
        with pytest.raises(InvalidFieldCombination):
            parse_policy(_policy(statement))

    @pytest.mark.parametrize(
        "principal",
        [{}, {"Users": "alice"}, {"AWS": "alice"}, {"AWS": []}, "alice"],
    )
    def test_invalid_principals(self, statement: dict[str, Any], principal: Any):
        # Arrange
        statement["Principal"] = principal

        # Act & Assert
        with pytest.raises(SchemaViolation):
            parse_policy(_policy(statement))


# --- Conditions ---


class TestParseOperatorKey:
    """Tests for condition operator key decomposition."""

    def test_plain_operator(self):
        # Act
        key = parse_operator_key("StringEquals")

        # Assert
        assert key.base is ConditionOperator.STRING_EQUALS
        assert key.if_exists is False
        assert key.quantifier is None

    def test_prefix_and_suffix(self):
        # Act
        key = parse_operator_key("ForAllValues:StringLikeIfExists")

        # Assert
        assert key.base is ConditionOperator.STRING_LIKE
        assert key.if_exists is True
        assert key.quantifier is Quantifier.FOR_ALL_VALUES
        assert str(key) == "ForAllValues:StringLikeIfExists"

    def test_for_any_values_alias(self):
        # Act & Assert
        assert parse_operator_key("ForAnyValues:StringEquals").quantifier is Quantifier.FOR_ANY_VALUE

    def test_unknown_operator(self):
        # Act & Assert
        with pytest.raises(SchemaViolation, match="StringMatches"):
            parse_operator_key("StringMatches")

    def test_operators_are_case_sensitive(self):
        # Act & Assert
        with pytest.raises(SchemaViolation):
            parse_operator_key("stringequals")

    @pytest.mark.parametrize("raw", ["NullIfExists", "ForAllValues:Null", "ForAnyValue:Null"])
    def test_null_with_modifiers_is_unsupported(self, raw: str):
        # Act & Assert
        with pytest.raises(UnsupportedOperator):
            parse_operator_key(raw)


class TestParseCondition:
    """Tests for Condition element parsing."""

    def test_condition_is_flattened(self, statement: dict[str, Any]):
        # Arrange
        statement["Condition"] = {
            "StringEquals": {"aws:PrincipalTag/team": ["ops", "dev"], "s3:prefix": "home/"},
            "Bool": {"aws:SecureTransport": True},
        }

        # Act
        block = parse_policy(_policy(statement)).statements[0].condition

        # Assert
        assert [(e.operator.raw, e.key, e.values) for e in block.entries] == [
            ("StringEquals", "aws:PrincipalTag/team", ("ops", "dev")),
            ("StringEquals", "s3:prefix", ("home/",)),
            ("Bool", "aws:SecureTransport", ("true",)),
        ]

    def test_numbers_become_text(self, statement: dict[str, Any]):
        # Arrange
        statement["Condition"] = {"NumericLessThan": {"aws:MultiFactorAuthAge": 3600}}

        # Act
        block = parse_policy(_policy(statement)).statements[0].condition

        # Assert
        assert block.entries[0].values == ("3600",)

    @pytest.mark.parametrize(
        "condition",
        [
            "StringEquals",
            {"StringEquals": {}},
            {"StringEquals": {"s3:prefix": []}},
            {"StringEquals": {"s3:prefix": {"nested": "x"}}},
            {"NumericEquals": {"s3:max-keys": "ten"}},
            {"IpAddress": {"aws:SourceIp": "10.0.0.300/8"}},
            {"DateLessThan": {"aws:CurrentTime": "2024-01-01T00:00:00"}},
            {"Null": {"aws:TokenIssueTime": ["true", "false"]}},
            {"Null": {"aws:TokenIssueTime": "maybe"}},
            {"ArnLike": {"aws:SourceArn": "not-an-arn"}},
        ],
    )
    def test_invalid_conditions(self, statement: dict[str, Any], condition: Any):
        # Arrange
        statement["Condition"] = condition

        # Act & Assert
        with pytest.raises(SchemaViolation):
            parse_policy(_policy(statement))

    def test_condition_error_location_names_operator(self, statement: dict[str, Any]):
        # Arrange
        statement["Condition"] = {"NumericEquals": {"s3:max-keys": "ten"}}

        # Act & Assert
        with pytest.raises(SchemaViolation) as exc_info:
            parse_policy(_policy(statement))
        assert exc_info.value.location == "Statement[0](ReadReports).Condition.NumericEquals"

    def test_arn_wildcard_value_is_accepted(self, statement: dict[str, Any]):
        # Arrange
        statement["Condition"] = {"ArnEquals": {"aws:SourceArn": "*"}}

        # Act & Assert
        assert parse_policy(_policy(statement)).statements[0].condition is not None

    def test_type_mismatch_logs_hint(self, statement: dict[str, Any], caplog: pytest.LogCaptureFixture):
        # Arrange
        statement["Condition"] = {"StringEquals": {"aws:TagKeys": "env"}}

        # Act
        with caplog.at_level(logging.WARNING):
            parse_policy(_policy(statement))

        # Assert
        hints = [r.msg for r in caplog.records if isinstance(r.msg, dict)]
        assert any(h["event"] == "condition_type_hint" and h["key"] == "aws:TagKeys" for h in hints)
