"""Tests for ToolValidator."""

from agentloop.tools.validation import ToolValidator
from tests.mock_tools import EchoTool, ExtraKeysTool, FailingTool


class TestToolValidator:
    """Test suite for ToolValidator.validate()."""

    def test_valid_args_pass(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello"})
        assert ok is True
        assert err is None

    def test_empty_schema_accepts_empty_object(self):
        ok, err = ToolValidator.validate(FailingTool(), {})
        assert ok is True
        assert err is None

    def test_missing_required_arg_fails(self):
        ok, err = ToolValidator.validate(EchoTool(), {})
        assert ok is False
        assert err is not None
        assert "message" in err.lower() or "required" in err.lower()

    def test_extra_unknown_keys_rejected(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello", "rogue": "value"})
        assert ok is False
        assert err is not None

    def test_additional_properties_true_allows_extra_keys(self):
        ok, err = ToolValidator.validate(
            ExtraKeysTool(), {"base_param": "hello", "extra": "stuff", "another": 42}
        )
        assert ok is True
        assert err is None

    def test_type_mismatch_string_vs_integer(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": 12345})
        assert ok is False
        assert err is not None

    def test_type_mismatch_string_vs_object(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": {"nested": True}})
        assert ok is False

    def test_non_object_arguments_rejected(self):
        ok, err = ToolValidator.validate(EchoTool(), ["message", "hello"])
        assert ok is False
        assert "list" in err

    def test_null_arguments_rejected(self):
        ok, err = ToolValidator.validate(EchoTool(), None)
        assert ok is False
        assert "NoneType" in err
