"""Unit tests for the typed argument model."""

import pytest

from dartshub.argument import Argument, mask_secret, parse_bool, parse_type
from dartshub.constants import ARGUMENT_ERROR_KEY
from dartshub.errors import ArgumentError


class TestParseType:
    """Type strings carry their constraint in brackets."""

    def test_int_range(self):
        t = parse_type("int[0..1000]")
        assert t.kind == "int"
        assert (t.low, t.high) == ("0", "1000")
        assert t.has_range

    def test_float_range(self):
        t = parse_type("float[0.0..1.0]")
        assert t.kind == "float"
        assert t.has_range

    def test_plain_string_has_no_range(self):
        assert not parse_type("string").has_range

    def test_selection_choices(self):
        t = parse_type("selection[lidarts,nakka,dartboards]")
        assert t.kind == "selection"
        assert t.choices == ("lidarts", "nakka", "dartboards")

    def test_type_is_case_insensitive(self):
        assert parse_type("INT[1..5]").kind == "int"

    @pytest.mark.parametrize("bad", ["", "number", "int[5..1]", "int[a..b]", "bool[1..2]"])
    def test_invalid_types(self, bad):
        with pytest.raises(ValueError):
            parse_type(bad)


class TestCheckValue:
    """Values are checked against their type constraint."""

    def test_int_in_range(self):
        Argument(name="DLL", type="int[0..1000]").check_value("1000")

    def test_int_out_of_range(self):
        arg = Argument(name="DLL", type="int[0..1000]", name_human="downloads-limit")
        with pytest.raises(ArgumentError) as exc:
            arg.check_value("5000")
        assert str(exc.value).startswith(ARGUMENT_ERROR_KEY + "downloads-limit: ")
        assert exc.value.argument is arg

    def test_int_not_a_number(self):
        with pytest.raises(ArgumentError):
            Argument(name="HP", type="int").check_value("80a")

    def test_float_accepts_comma(self):
        Argument(name="V", type="float[0.0..1.0]").check_value("0,5")

    def test_float_out_of_range(self):
        with pytest.raises(ArgumentError):
            Argument(name="V", type="float[0.0..1.0]").check_value("1.5")

    def test_string_length_range(self):
        arg = Argument(name="S", type="string[2..4]")
        arg.check_value("abc")
        with pytest.raises(ArgumentError):
            arg.check_value("abcdef")

    def test_selection_membership(self):
        arg = Argument(name="extern_platform", type="selection[lidarts,nakka]")
        arg.check_value("nakka")
        with pytest.raises(ArgumentError):
            arg.check_value("dartboards")

    def test_bool_words(self):
        arg = Argument(name="R", type="bool")
        for word in ("True", "false", "1", "0", "YES", "n"):
            arg.check_value(word)
        with pytest.raises(ArgumentError):
            arg.check_value("maybe")

    def test_path_rejects_nul(self):
        with pytest.raises(ArgumentError):
            Argument(name="M", type="path").check_value("C:\\x\x00y")

    def test_unknown_type_is_argument_error(self):
        with pytest.raises(ArgumentError):
            Argument(name="X", type="number").check_value("1")

    def test_required_empty(self):
        with pytest.raises(ArgumentError):
            Argument(name="U", type="string", required=True).validate()

    def test_required_empty_allowed(self):
        Argument(name="U", type="string", required=True, empty_allowed_on_required=True).validate()


class TestParseBool:
    def test_values(self):
        assert parse_bool("Y") is True
        assert parse_bool("no") is False


class TestMasking:
    """Password-like values show at most their first character."""

    def test_mask_long_value(self):
        assert mask_secret("verylongpassword") == "v********"

    def test_mask_medium_value(self):
        assert mask_secret("secret") == "s*****"

    def test_mask_short_value(self):
        assert mask_secret("abc") == "***"

    def test_mask_empty(self):
        assert mask_secret("") == ""

    def test_password_like_by_type(self):
        assert Argument(name="P", type="password").is_password_like()

    def test_password_like_by_label(self):
        assert Argument(name="X", type="string", name_human="api-token").is_password_like()

    def test_not_password_like(self):
        assert not Argument(name="B", type="string", name_human="board-id").is_password_like()


class TestValueChanged:
    def test_first_value_is_not_a_change(self):
        arg = Argument(name="U", type="string")
        arg.set_value("me")
        assert not arg.is_value_changed

    def test_replacing_value_is_a_change(self):
        arg = Argument(name="U", type="string", value="me")
        arg.set_value("you")
        assert arg.is_value_changed

    def test_clearing_value_is_not_a_change(self):
        arg = Argument(name="U", type="string", value="me")
        arg.set_value("")
        assert not arg.is_value_changed


class TestArgumentSerialization:
    def test_defaults_are_omitted(self):
        d = Argument(name="C", type="string").to_dict()
        assert d == {"name": "C", "type": "string"}

    def test_runtime_value_not_stored(self):
        arg = Argument(name="extern_platform", type="selection[a,b]", is_runtime_argument=True, value="a")
        assert "value" not in arg.to_dict()

    def test_from_dict_lowercases_type(self):
        arg = Argument.from_dict({"name": "R", "type": "Bool", "valueMapping": {"True": "1"}})
        assert arg.type == "bool"
        assert arg.value_mapping == {"True": "1"}
        assert arg.name_human == "R"

    def test_from_dict_requires_type(self):
        with pytest.raises(ValueError):
            Argument.from_dict({"name": "R"})
