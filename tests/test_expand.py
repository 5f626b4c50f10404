import pytest

from phoenixsh.env import Environment
from phoenixsh.expand import Expander, expand
from phoenixsh.tokens import Token, TokenType


@pytest.fixture
def env():
    environment = Environment()
    environment.set("HOME", "/home/user")
    environment.set("USER", "user")
    environment.set("EMPTY", "")
    environment.set("NAME_2x", "named")
    return environment


@pytest.fixture
def expander(env):
    return Expander(env, 7)


def test_plain_variable(expander, env):
    assert expander.expand_value("$HOME") == env.get("HOME")


def test_variable_in_double_quotes(expander, env):
    assert expander.expand_value('"$HOME"') == env.get("HOME")


def test_single_quotes_keep_dollar(expander):
    assert expander.expand_value("'$HOME'") == "$HOME"


def test_exit_status(expander):
    assert expander.expand_value("$?") == "7"


def test_exit_status_in_single_quotes(expander):
    assert expander.expand_value("'$?'") == "$?"


def test_concatenated_variables(expander, env):
    assert expander.expand_value("$HOME$USER") == env.get("HOME") + env.get("USER")


def test_variable_name_stops_at_punctuation(expander, env):
    assert expander.expand_value("$USER-b") == env.get("USER") + "-b"


def test_underscore_and_digits_in_name(expander, env):
    assert expander.expand_value("$NAME_2x") == env.get("NAME_2x")


def test_empty_quotes_expand_to_nothing(expander):
    assert expander.expand_value("''") is None


def test_unknown_variable_expands_to_nothing(expander):
    assert expander.expand_value("$NOPE") is None


def test_unknown_variable_after_text(expander):
    assert expander.expand_value("pre$NOPE") == "pre"


def test_empty_variable_gives_empty_string(expander):
    assert expander.expand_value("$EMPTY") == ""


def test_positional_parameter_is_dropped(expander):
    assert expander.expand_value("$1abc") == "abc"


def test_lone_dollar_kept(expander):
    assert expander.expand_value("$") == "$"


def test_dollar_percent_kept(expander):
    assert expander.expand_value("$%") == "$%"


def test_dollar_bang_dropped(expander):
    assert expander.expand_value("x$!") == "x"


def test_quotes_of_other_kind_are_kept(expander):
    assert expander.expand_value('"it\'s"') == "it's"
    assert expander.expand_value("'say \"hi\"'") == 'say "hi"'


def test_word_without_quotes_or_dollar_is_untouched(expander):
    assert expander.expand_value("plain") == "plain"
    assert expander.expand_value("") == ""


def test_unquoted_space_leaves_word_unchanged(expander):
    assert expander.expand_value("'a' b") == "'a' b"


def test_dollar_before_space_is_literal(expander):
    assert expander.expand_value('"$ x"') == "$ x"


def test_value_starting_with_equals_loses_it():
    environment = Environment()
    environment.set("EQ", "=v")
    assert Expander(environment, 0).expand_value("$EQ") == "v"


def test_expand_tokens_keeps_types(expander, env):
    tokens = [Token("echo"), Token("$HOME"), Token("|", TokenType.PIPE), Token("wc")]
    result = expander.expand_tokens(tokens)
    assert [t.type for t in result] == [t.type for t in tokens]
    assert [t.value for t in result] == ["echo", env.get("HOME"), "|", "wc"]


def test_expand_lone_unknown_variable_gives_nothing(env):
    assert expand([Token("$NOPE")], env, 0) == []


def test_expand_unknown_variable_among_others(env):
    assert expand([Token("echo"), Token("$NOPE")], env, 0) == [Token("echo"), Token(None)]


def test_expand_lone_dollar_is_kept(env):
    assert expand([Token("$")], env, 0) == [Token("$")]


def test_expand_uses_exit_status(env):
    assert expand([Token("echo"), Token('"$?"')], env, 3) == [Token("echo"), Token("3")]