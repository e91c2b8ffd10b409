import json
from io import StringIO

import pytest
from click.testing import CliRunner

from dfa.main import entry, read_words

DFA_FILE = (
    "states: q1 q2 q3\n"
    "alphabet: 0 1\n"
    "startstate: q1\n"
    "finalstate: q2\n"
    "transition: q1 0 q1\n"
    "transition: q1 1 q2\n"
    "transition: q2 0 q3\n"
    "transition: q2 1 q2\n"
    "transition: q3 0 q2\n"
    "transition: q3 1 q2\n"
)

NFA_JSON = {
    "states": ["q0", "q1", "q2", "q3"],
    "alphabet": ["a", "b"],
    "start_state": "q0",
    "final_states": ["q0"],
    "transitions": [
        {"s1": "q0", "symbol": "epsilon", "s2": "q1"},
        {"s1": "q1", "symbol": "a", "s2": "q1"},
        {"s1": "q1", "symbol": "a", "s2": "q2"},
        {"s1": "q1", "symbol": "b", "s2": "q2"},
        {"s1": "q2", "symbol": "a", "s2": "q0"},
        {"s1": "q2", "symbol": "a", "s2": "q2"},
        {"s1": "q2", "symbol": "b", "s2": "q3"},
        {"s1": "q3", "symbol": "b", "s2": "q1"},
    ],
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def dfa_file(tmp_path):
    path = tmp_path / "machine.dfa"
    path.write_text(DFA_FILE)
    return path


@pytest.fixture
def nfa_file(tmp_path):
    path = tmp_path / "machine.json"
    path.write_text(json.dumps(NFA_JSON))
    return path


def test_classifies_words(runner, dfa_file):
    result = runner.invoke(
        entry, ["-d", str(dfa_file)], input="11111\n00000\na11111\n\nignored\n"
    )
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "11111 -> ACCEPT",
        "00000 -> NOT ACCEPT",
        "a11111 -> INVALID ALPHABET",
    ]


def test_converts_nfa(runner, nfa_file):
    result = runner.invoke(
        entry, ["-d", str(nfa_file)], input="aba\nbba\nepsilon\n"
    )
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "aba -> ACCEPT",
        "bba -> NO TRANSITION",
        "epsilon -> ACCEPT",
    ]


def test_strict(runner, nfa_file):
    result = runner.invoke(entry, ["-d", str(nfa_file), "-s"], input="epsilon\n")
    assert result.exit_code == 0
    assert result.output.splitlines() == ["epsilon -> INVALID ALPHABET"]


def test_verbose(runner, dfa_file):
    result = runner.invoke(entry, ["-d", str(dfa_file), "-v"], input="10\n")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "---BEGIN DFA DEFINITION---"
    assert "Starting State: q1" in lines
    assert "Current State: q1 Symbol: 1 -> New State: q2" in lines
    assert "Current State: q2 Symbol: 0 -> New State: q3" in lines
    assert lines[-1] == "10 -> NOT ACCEPT"


def test_reads_and_writes_files(runner, dfa_file, tmp_path):
    words = tmp_path / "words.txt"
    words.write_text("1\n0\n")
    out = tmp_path / "out.txt"
    result = runner.invoke(
        entry, ["-d", str(dfa_file), "-i", str(words), "-o", str(out)]
    )
    assert result.exit_code == 0
    assert out.read_text().splitlines() == ["1 -> ACCEPT", "0 -> NOT ACCEPT"]


def test_environment_variables(runner, dfa_file):
    result = runner.invoke(entry, [], input="1\n", env={"DFA_DFA_FILE": str(dfa_file)})
    assert result.exit_code == 0
    assert result.output.splitlines() == ["1 -> ACCEPT"]


def test_help(runner):
    result = runner.invoke(entry, ["-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output
    assert "--dfa-file" in result.output


def test_missing_file_option(runner):
    result = runner.invoke(entry, [], input="1\n")
    assert result.exit_code == 1
    assert "No DFA file path specified." in result.output


@pytest.mark.parametrize(
    "name, contents, message",
    [
        ("machine.txt", DFA_FILE, "Only .dfa and .json files are valid."),
        ("machine.dfa", "", "Input file empty."),
        ("machine.dfa", "foo: bar\n", "Failed to parse input file: line 1: invalid section"),
        ("machine.dfa", DFA_FILE + "transition: q1 0\n", "exactly 3 tokens"),
        ("machine.dfa", DFA_FILE + "transition: q1 0 q9\n", "unknown state 'q9'"),
        ("machine.json", "{", "Failed to parse input file: failed to parse JSON"),
    ],
)
def test_construction_errors(runner, tmp_path, name, contents, message):
    path = tmp_path / name
    path.write_text(contents)
    result = runner.invoke(entry, ["-d", str(path)], input="1\n")
    assert result.exit_code == 1
    assert message in result.output


def test_nonexistent_file(runner, tmp_path):
    result = runner.invoke(entry, ["-d", str(tmp_path / "missing.dfa")])
    assert result.exit_code == 1
    assert "Specified DFA file path doesn't exist." in result.output


@pytest.mark.parametrize(
    "text, expected",
    [
        ("a\nb\n", ["a", "b"]),
        ("a\nb", ["a", "b"]),
        ("a\r\n\r\nb\n", ["a"]),
        ("\na\n", []),
        ("", []),
    ],
)
def test_read_words(text, expected):
    assert list(read_words(StringIO(text))) == expected
