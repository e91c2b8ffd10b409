import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Final, Union

from dfa.description import AutomatonDescription, DescriptionParsingError

logger = logging.getLogger(__name__)

STATES: Final = "states:"
ALPHABET: Final = "alphabet:"
START_STATE: Final = "startstate:"
FINAL_STATE: Final = "finalstate:"

REQUIRED_SECTIONS: Final = (STATES, ALPHABET, START_STATE, FINAL_STATE)
REQUIRED_KEYS: Final = ("states", "alphabet", "start_state", "final_states")


class DescriptionParser(ABC):
    """Turns the text of a description file into an AutomatonDescription"""

    def __init__(self, source: str):
        self._source = source
        self.description = AutomatonDescription()
        self.parse()
        self.description.validate()

    @abstractmethod
    def parse(self) -> None:
        pass


class TextDescriptionParser(DescriptionParser):
    """
    Parser for the line oriented format, one directive per line

    Examples
    --------
    >>> parser = TextDescriptionParser(
    ...     "states: q0 q1\\n"
    ...     "alphabet: a\\n"
    ...     "startstate: q0\\n"
    ...     "finalstate: q1\\n"
    ...     "transition: q0 a q1\\n"
    ... )
    >>> sorted(parser.description.states)
    ['q0', 'q1']
    >>> parser.description.transitions
    [Transition(s1='q0', symbol='a', s2='q1')]
    """

    def parse(self) -> None:
        seen: set[str] = set()

        for lineno, line in enumerate(self._source.splitlines(), start=1):
            section, sep, rest = line.partition(" ")
            if not sep:
                raise DescriptionParsingError(
                    f"line {lineno}: could not find a space after the section header"
                )
            tokens = rest.split()
            if not tokens:
                raise DescriptionParsingError(f"line {lineno}: no tokens")

            self._parse_section(lineno, section, tokens, seen)
            seen.add(section)

        if missing := [section for section in REQUIRED_SECTIONS if section not in seen]:
            raise DescriptionParsingError(
                f"missing required sections: {', '.join(missing)}"
            )

    def _parse_section(
        self, lineno: int, section: str, tokens: list[str], seen: set[str]
    ) -> None:
        description = self.description
        match section:
            case "states:":
                description.states.update(tokens)
            case "alphabet:":
                description.alphabet.update(tokens)
            case "finalstate:":
                description.final_states.update(tokens)
            case "startstate:":
                if len(tokens) != 1:
                    raise DescriptionParsingError(
                        f"line {lineno}: expected a single start state, got {len(tokens)}"
                    )
                if START_STATE in seen and description.start_state != tokens[0]:
                    raise DescriptionParsingError(
                        f"line {lineno}: start state redefined as {tokens[0]!r}"
                    )
                description.start_state = tokens[0]
            case "transition:":
                if len(tokens) != 3:
                    raise DescriptionParsingError(
                        f"line {lineno}: a transition takes exactly 3 tokens "
                        f"(s1 symbol s2), got {len(tokens)}"
                    )
                description.add_transition(*tokens)
            case _:
                raise DescriptionParsingError(
                    f"line {lineno}: invalid section {section!r}"
                )


class JsonDescriptionParser(DescriptionParser):
    """Parser for the structured format, a single JSON object"""

    def parse(self) -> None:
        try:
            document = json.loads(self._source)
        except json.JSONDecodeError as e:
            raise DescriptionParsingError(f"failed to parse JSON: {e}") from e

        if not isinstance(document, dict):
            raise DescriptionParsingError("expected a JSON object at the top level")

        if missing := [key for key in REQUIRED_KEYS if key not in document]:
            raise DescriptionParsingError(
                f"missing required fields: {', '.join(missing)}"
            )

        description = self.description
        description.states.update(self._strings(document, "states"))
        description.alphabet.update(self._strings(document, "alphabet"))
        description.final_states.update(self._strings(document, "final_states"))

        if not isinstance(start_state := document["start_state"], str):
            raise DescriptionParsingError("start_state should be a string")
        description.start_state = start_state

        transitions = document.get("transitions", [])
        if not isinstance(transitions, list):
            raise DescriptionParsingError("transitions should be an array")
        for index, transition in enumerate(transitions):
            if not (
                isinstance(transition, dict)
                and all(
                    isinstance(transition.get(key), str)
                    for key in ("s1", "symbol", "s2")
                )
            ):
                raise DescriptionParsingError(
                    f"transition {index} should be an object with string "
                    f"fields s1, symbol and s2, got {transition!r}"
                )
            description.add_transition(
                transition["s1"], transition["symbol"], transition["s2"]
            )

    @staticmethod
    def _strings(document: dict[str, Any], key: str) -> list[str]:
        values = document[key]
        if not isinstance(values, list) or not all(
            isinstance(value, str) for value in values
        ):
            raise DescriptionParsingError(f"{key} should be an array of strings")
        return values


PARSERS: Final = {".dfa": TextDescriptionParser, ".json": JsonDescriptionParser}


def parser_for(path: Union[str, Path]) -> type[DescriptionParser]:
    suffix = Path(path).suffix
    if suffix not in PARSERS:
        raise DescriptionParsingError(
            f"unsupported extension {suffix!r}, only .dfa and .json files are valid"
        )
    return PARSERS[suffix]


def parse_file(path: Union[str, Path]) -> AutomatonDescription:
    """
    Read and parse the description file at `path`, choosing the format
    from the file extension
    """
    parser_cls = parser_for(path)
    text = Path(path).read_text(encoding="utf-8")
    logger.debug("parsing %s with %s", path, parser_cls.__name__)
    return parser_cls(text).description
