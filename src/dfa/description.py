import logging
from dataclasses import dataclass, field
from typing import Optional

from dfa.utils import EPSILON, Symbol, Transition

logger = logging.getLogger(__name__)


class AutomatonError(Exception):
    ...


class DescriptionParsingError(AutomatonError):
    ...


class InvariantViolation(AutomatonError):
    ...


@dataclass(slots=True)
class AutomatonDescription:
    """
    A neutral, possibly nondeterministic description of a finite automaton,
    as produced by one of the surface parsers.

    Attributes
    ----------
    states: set[str]
        The declared state names
    alphabet: set[Symbol]
        The input symbols, never containing ``epsilon``
    start_state: Optional[str]
        The name of the start state
    final_states: set[str]
        The names of the accepting states
    transitions: list[Transition]
        Every (s1, symbol, s2) triple in input order, nondeterministic and
        epsilon transitions included
    """

    states: set[str] = field(default_factory=set)
    alphabet: set[Symbol] = field(default_factory=set)
    start_state: Optional[str] = None
    final_states: set[str] = field(default_factory=set)
    transitions: list[Transition] = field(default_factory=list)

    def add_transition(self, s1: str, symbol: Symbol, s2: str):
        self.transitions.append(Transition(s1, symbol, s2))

    def validate(self) -> "AutomatonDescription":
        """
        Check that the description is well formed

        Raises
        ------
        DescriptionParsingError
            If a required field is missing
        InvariantViolation
            If a field refers to an undeclared state or symbol
        """
        if not self.states:
            raise DescriptionParsingError("missing required field: states")
        if not self.alphabet:
            raise DescriptionParsingError("missing required field: alphabet")
        if self.start_state is None:
            raise DescriptionParsingError("missing required field: start state")

        if EPSILON in self.alphabet:
            raise InvariantViolation(f"{EPSILON!r} is reserved and can't be a symbol")
        if self.start_state not in self.states:
            raise InvariantViolation(f"start state {self.start_state!r} is not a state")
        if undeclared := self.final_states - self.states:
            raise InvariantViolation(
                f"final states {sorted(undeclared)} are not states"
            )

        for s1, symbol, s2 in self.transitions:
            for state in (s1, s2):
                if state not in self.states:
                    raise InvariantViolation(
                        f"transition {s1} {symbol} {s2} refers to unknown state {state!r}"
                    )
            if symbol != EPSILON and symbol not in self.alphabet:
                raise InvariantViolation(
                    f"transition {s1} {symbol} {s2} uses unknown symbol {symbol!r}"
                )

        logger.debug(
            "validated description: %d states, %d symbols, %d transitions",
            len(self.states),
            len(self.alphabet),
            len(self.transitions),
        )
        return self
