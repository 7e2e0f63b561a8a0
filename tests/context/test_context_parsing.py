"""Tests for request context construction."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from iam_policy_eval.context.parsing import merge_context, parse_context_pairs, parse_context_tree
from iam_policy_eval.context.request import PrincipalDescriptor, RequestContext, normalize_context_keys
from iam_policy_eval.exceptions import ArgumentError


class TestParseContextPairs:
    """Tests for KEY=VALUE parsing."""

    def test_repeated_keys_accumulate(self):
        # Act
        context = parse_context_pairs(["aws:TagKeys=env", "AWS:TagKeys=owner", "aws:SourceIp=10.0.0.1"])

        # Assert
        assert context == {"aws:tagkeys": ("env", "owner"), "aws:sourceip": ("10.0.0.1",)}

    def test_value_may_contain_equals_sign(self):
        # Act & Assert
        assert parse_context_pairs(["s3:prefix=a=b"]) == {"s3:prefix": ("a=b",)}

    def test_empty_value_is_allowed(self):
        # Act & Assert
        assert parse_context_pairs(["s3:prefix="]) == {"s3:prefix": ("",)}

    @pytest.mark.parametrize("pair", ["no-separator", "=value", " =value"])
    def test_malformed_pairs(self, pair: str):
        # Act & Assert
        with pytest.raises(ArgumentError):
            parse_context_pairs([pair])


class TestParseContextTree:
    """Tests for context file trees."""

    def test_unknown_section(self):
        # Act & Assert
        with pytest.raises(ValueError, match="Unknown context file sections"):
            parse_context_tree({"globals": {}})

    def test_tree_must_be_object(self):
        # Act & Assert
        with pytest.raises(ValueError):
            parse_context_tree(["aws:SourceIp"])

    def test_resources_must_be_object(self):
        # Act & Assert
        with pytest.raises(ValueError, match="'resources' must be an object"):
            parse_context_tree({"resources": []}, "arn:aws:s3:::bucket")


class TestMergeContext:
    """Tests for merge_context."""

    def test_later_sources_append_values(self):
        # Act
        merged = merge_context({"a": ("1",)}, {"A": ("2",), "b": ("3",)})

        # Assert
        assert merged == {"a": ("1", "2"), "b": ("3",)}


class TestRequestContext:
    """Tests for the RequestContext model."""

    def test_keys_are_normalized(self):
        # Act
        request = RequestContext(
            action="s3:GetObject",
            resource="arn:aws:s3:::bucket/key",
            context_keys={"aws:SourceIp": "10.0.0.1", "AWS:SOURCEIP": ["10.0.0.2"]},
        )

        # Assert
        assert request.get_values("aws:sourceip") == ("10.0.0.1", "10.0.0.2")
        assert request.get_values("aws:SourceVpc") is None

    def test_request_is_immutable(self):
        # Arrange
        request = RequestContext(action="s3:GetObject", resource="*")

        # Act & Assert
        with pytest.raises(ValidationError):
            request.action = "s3:PutObject"

    def test_invalid_context_value(self):
        # Act & Assert
        with pytest.raises(ValidationError):
            RequestContext(action="s3:GetObject", resource="*", context_keys={"k": 1})

    def test_principal_descriptor(self):
        # Act
        principal = PrincipalDescriptor(kind="Service", value="ec2.amazonaws.com")

        # Assert
        assert str(principal) == "Service:ec2.amazonaws.com"

    def test_normalize_rejects_mixed_lists(self):
        # Act & Assert
        with pytest.raises(ValueError):
            normalize_context_keys({"k": ["a", 1]})
