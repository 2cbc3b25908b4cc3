"""Unit tests for command-line rendering of a Configuration."""

import pytest

from dartshub.argument import Argument, bool_argument
from dartshub.configuration import Configuration, quote_token, split_multi
from dartshub.errors import ArgumentError


def caller_config(*args):
    return Configuration(prefix="-", delimiter=" ", arguments=list(args))


class TestRender:
    """Rendering follows Configuration order and skips what is unset."""

    def test_bool_value_mapping(self):
        cfg = caller_config(Argument(name="R", type="bool", value="True", value_mapping={"True": "1", "False": "0"}))
        assert cfg.render() == "-R 1"

    def test_out_of_range_optional_value_is_dropped(self):
        cfg = caller_config(
            Argument(name="U", type="string", value="me"),
            Argument(name="DLL", type="int[0..1000]", value="5000"),
        )
        rendered = cfg.render()
        assert "5000" not in rendered
        assert "-DLL" not in rendered
        assert rendered == "-U me"

    def test_comma_float_rendered_with_dot(self):
        cfg = caller_config(Argument(name="V", type="float[0.0..1.0]", value="0,5"))
        assert cfg.render() == "-V 0.5"
        assert float(cfg.render().split()[-1]) == 0.5

    def test_out_of_range_required_value_raises(self):
        cfg = caller_config(Argument(name="DLL", type="int[0..1000]", required=True, value="5000"))
        with pytest.raises(ArgumentError):
            cfg.render()

    def test_order_is_preserved(self):
        cfg = caller_config(
            Argument(name="B", type="string", value="2"),
            Argument(name="A", type="string", value="1"),
            Argument(name="C", type="string", value="3"),
        )
        assert cfg.render() == "-B 2 -A 1 -C 3"

    def test_empty_optional_is_skipped(self):
        cfg = caller_config(Argument(name="C", type="string"), Argument(name="U", type="string", value="x"))
        assert cfg.render() == "-U x"

    def test_empty_required_raises(self):
        cfg = caller_config(Argument(name="U", type="string", required=True, name_human="autodarts-username"))
        with pytest.raises(ArgumentError) as exc:
            cfg.render()
        assert exc.value.detail == "autodarts-username: is required"

    def test_empty_allowed_on_required_renders_bare_name(self):
        cfg = caller_config(Argument(name="flag", type="string", required=True, empty_allowed_on_required=True))
        assert cfg.render() == "flag"

    def test_value_with_spaces_is_quoted(self):
        cfg = caller_config(Argument(name="M", type="path", value="C:\\My Sounds"))
        assert cfg.render() == '-M "C:\\My Sounds"'

    def test_delimiter_equals(self):
        cfg = Configuration(prefix="--", delimiter="=", arguments=[Argument(name="port", type="int", value="8080")])
        assert cfg.render() == "--port=8080"


class TestMultiValues:
    """A multi argument yields one token per element, in input order."""

    def test_n_elements_n_tokens(self):
        cfg = caller_config(Argument(name="WEPS", type="string", is_multi=True, value="10.0.0.1 10.0.0.2\n10.0.0.3"))
        assert cfg.render() == "-WEPS 10.0.0.1 -WEPS 10.0.0.2 -WEPS 10.0.0.3"

    def test_quoted_element_stays_together(self):
        cfg = caller_config(Argument(name="HF", type="string", is_multi=True, value='solid "fire flicker"'))
        assert cfg.render() == '-HF solid -HF "fire flicker"'

    def test_split_then_render_recovers_elements(self):
        elements = ["ps|1", "x:2", "y"]
        cfg = caller_config(Argument(name="G", type="string", is_multi=True, value=" ".join(elements)))
        tokens = cfg.render().split(" ")
        assert tokens[1::2] == elements
        assert tokens[0::2] == ["-G"] * 3


class TestRuntimeArguments:
    def _extern(self):
        return Configuration(prefix="--", delimiter=" ", arguments=[
            Argument(name="extern_platform", type="selection[lidarts,nakka,dartboards]", required=True,
                     is_runtime_argument=True),
            Argument(name="lidarts_user", type="string", required_on_argument="extern_platform=lidarts"),
        ])

    def test_runtime_argument_without_value_is_skipped(self):
        assert self._extern().render() == ""

    def test_runtime_override(self):
        cfg = self._extern()
        cfg.argument("lidarts_user").value = "me@x"
        assert cfg.render({"extern_platform": "lidarts"}) == "--extern_platform lidarts --lidarts_user me@x"

    def test_required_on_argument_applies(self):
        with pytest.raises(ArgumentError):
            self._extern().render({"extern_platform": "lidarts"})

    def test_required_on_argument_other_value(self):
        assert self._extern().render({"extern_platform": "nakka"}) == "--extern_platform nakka"

    def test_override_ignored_for_stored_arguments(self):
        cfg = caller_config(Argument(name="U", type="string", value="me"))
        assert cfg.render({"U": "other"}) == "-U me"


class TestMasking:
    def test_masked_render_hides_password(self):
        cfg = caller_config(
            Argument(name="U", type="string", value="me"),
            Argument(name="P", type="password", value="hunter2secret"),
        )
        assert cfg.render() == "-U me -P hunter2secret"
        masked = cfg.render(masked=True)
        assert masked == "-U me -P h********"
        assert "hunter2secret" not in masked


class TestRawMode:
    def _local(self, path=None, args=None):
        return Configuration(prefix="", delimiter="", is_raw=True, arguments=[
            Argument(name="path-to-executable", type="file", required=True, value=path),
            Argument(name="arguments", type="string", value=args),
        ])

    def test_raw_returns_second_value(self):
        assert self._local("/bin/tool", "-a 1 --b").render() == "-a 1 --b"

    def test_raw_requires_first(self):
        with pytest.raises(ArgumentError):
            self._local(None, "-a").render()


class TestConfigurationModel:
    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            caller_config(Argument(name="A", type="string"), Argument(name="A", type="int"))

    def test_add_argument_only_once(self):
        cfg = caller_config(Argument(name="A", type="string"))
        assert not cfg.add_argument(Argument(name="A", type="int"))
        assert cfg.add_argument(Argument(name="B", type="int"))

    def test_is_changed_resets(self):
        cfg = caller_config(Argument(name="A", type="string", value="1"))
        cfg.argument("A").set_value("2")
        assert cfg.is_changed()
        assert not cfg.is_changed()

    def test_round_trip_dict(self):
        cfg = caller_config(bool_argument("R", "random-caller", "Random"))
        again = Configuration.from_dict(cfg.to_dict())
        assert again.to_dict() == cfg.to_dict()


class TestHelpers:
    def test_split_multi_unbalanced_quote(self):
        assert split_multi('a "b c') == ["a", '"b', "c"]

    def test_quote_token(self):
        assert quote_token("plain") == "plain"
        assert quote_token("two words") == '"two words"'
