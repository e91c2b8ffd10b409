import functools
import json
import logging
from collections import defaultdict
from functools import reduce
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional, Union

import graphviz
from more_itertools import first

from dfa.description import AutomatonDescription
from dfa.matcher import Recognizer, Tracer, Word, guard
from dfa.parser import parse_file
from dfa.utils import EPSILON, Acceptance, AutomatonFlag, StateId, Symbol

logger = logging.getLogger(__name__)

TransitionTable = dict[StateId, dict[Symbol, StateId]]


class NFA(defaultdict[str, defaultdict[Symbol, set[str]]], Recognizer):
    """Formally, an NFA is a 5-tuple (Q, Σ, q0, T, δ) where
        • Q is finite set of states;
        • Σ is alphabet of input symbols;
        • q0 is start state;
        • T is subset of Q giving the ``accept`` states;
        and
        • δ is the transition function.
    Now the transition function specifies a set of states rather than a state: it maps
    Q × (Σ ∪ {ε}) to { subsets of Q }.

    The NFA maps each state to a mapping from symbols to the set of successor states.
    It is read only once built: lookups never insert missing states.

    Examples
    --------
    >>> description = AutomatonDescription(
    ...     states={"q0", "q1"},
    ...     alphabet={"a"},
    ...     start_state="q0",
    ...     final_states={"q1"},
    ... )
    >>> description.add_transition("q0", "epsilon", "q1")
    >>> nfa = NFA(description)
    >>> nfa.epsilon_closure(["q0"])
    StateId(['q0', 'q1'])
    >>> nfa.accepts("")
    <Acceptance.ACCEPTS: 'ACCEPT'>
    """

    def __init__(
        self,
        description: Optional[AutomatonDescription] = None,
        flags: AutomatonFlag = AutomatonFlag.NOFLAG,
    ):
        super(NFA, self).__init__(functools.partial(defaultdict, set))
        Recognizer.__init__(self, flags)
        self.alphabet: set[Symbol] = set()
        self.states: set[str] = set()
        self.accepting_states: set[str] = set()
        self.start_state: Optional[str] = None
        if description is not None:
            self.alphabet = set(description.alphabet)
            self.states = set(description.states)
            self.accepting_states = set(description.final_states)
            self.start_state = description.start_state
            for s1, symbol, s2 in description.transitions:
                self.add_transition(s1, symbol, s2)

    def add_transition(self, start: str, symbol: Symbol, end: str):
        self[start][symbol].add(end)

    def epsilon(self, start: str, end: str):
        self.add_transition(start, EPSILON, end)

    def transition(self, state: str, symbol: Symbol) -> frozenset[str]:
        if state in self and symbol in self[state]:
            return frozenset(self[state][symbol])
        return frozenset()

    def has_epsilons(self) -> bool:
        return any(EPSILON in row for row in self.values())

    def is_deterministic(self) -> bool:
        """True if there are no epsilon transitions and every (state, symbol) pair has at most one successor"""
        return not self.has_epsilons() and all(
            len(ends) <= 1 for row in self.values() for ends in row.values()
        )

    def epsilon_closure(self, states: Iterable[str]) -> StateId:
        """
        This is the set of all the nodes which can be reached by following epsilon labeled edges
        This is done here using a depth first search

        https://castle.eiu.edu/~mathcs/mat4885/index/Webview/examples/epsilon-closure.pdf
        """

        seen: set[str] = set()
        stack = list(states)

        while stack:
            if (state := stack.pop()) in seen:
                continue

            seen.add(state)
            stack.extend(self.transition(state, EPSILON))

        return StateId(seen)

    def move(self, states: Iterable[str], symbol: Symbol) -> frozenset[str]:
        return reduce(
            frozenset.union,
            (self.transition(state, symbol) for state in states),
            frozenset(),
        )

    def start_closure(self) -> StateId:
        return self.epsilon_closure((self.start_state,))

    def subset_construction(self) -> TransitionTable:
        """
        Discover the composite states reachable from the closure of the start state,
        together with their transitions

        States are only expanded once they are reached, so states of the NFA that
        can't be reached from the start state never make it into the table.
        """
        start = self.start_closure()
        seen, stack = {start}, [start]
        symbols = sorted(self.alphabet)

        transitions: TransitionTable = {}

        while stack:
            closure = stack.pop()
            row = transitions[closure] = {}
            # next we want to see which states are reachable from each of the states in the epsilon closure
            for symbol in symbols:
                if moved := self.move(closure, symbol):
                    row[symbol] = move_closure = self.epsilon_closure(moved)
                    if move_closure not in seen:
                        seen.add(move_closure)
                        stack.append(move_closure)
            logger.debug("expanded %s: %d transitions", closure, len(row))

        return transitions

    def accepts(self, word: Word, tracer: Optional[Tracer] = None) -> Acceptance:
        """
        Simulate the NFA directly, carrying the epsilon closed set of current states
        """
        tracer = guard(tracer)
        current = self.start_closure()
        if tracer is not None:
            tracer.start(current)

        for symbol in self.tokenize(word):
            if symbol not in self.alphabet:
                return Acceptance.INVALID_ALPHABET
            if not (moved := self.move(current, symbol)):
                return Acceptance.NO_TRANSITION
            following = self.epsilon_closure(moved)
            if tracer is not None:
                tracer.step(current, symbol, following)
            current = following

        if current.isdisjoint(self.accepting_states):
            return Acceptance.REJECTS
        return Acceptance.ACCEPTS

    def n_transitions(self) -> int:
        return sum(len(ends) for row in self.values() for ends in row.values())

    def __repr__(self):
        return (
            f"NFA(states={tuple(sorted(self.states))}, "
            f"symbols={sorted(self.alphabet)}, "
            f"start_state={self.start_state!r}, "
            f"transitions={ {start: dict(row) for start, row in self.items()} }, "
            f"accept_states={sorted(self.accepting_states)})"
        )


class DFA(dict[StateId, dict[Symbol, StateId]], Recognizer):
    """
    A deterministic automaton whose states are StateIds

    Once constructed the automaton is only ever read, so a single instance can be
    shared by any number of recognitions.

    Examples
    --------
    >>> description = AutomatonDescription(
    ...     states={"q1", "q2"},
    ...     alphabet={"0", "1"},
    ...     start_state="q1",
    ...     final_states={"q2"},
    ... )
    >>> description.add_transition("q1", "1", "q2")
    >>> dfa = DFA.from_description(description)
    >>> dfa.accepts("1")
    <Acceptance.ACCEPTS: 'ACCEPT'>
    >>> dfa.accepts("11")
    <Acceptance.NO_TRANSITION: 'NO TRANSITION'>
    >>> dfa.accepts("12")
    <Acceptance.INVALID_ALPHABET: 'INVALID ALPHABET'>
    """

    def __init__(
        self,
        symbols: Iterable[Symbol],
        states: Iterable[StateId],
        accepting_states: Iterable[StateId],
        start_state: StateId,
        transitions: Mapping[StateId, Mapping[Symbol, StateId]],
        *,
        flags: AutomatonFlag = AutomatonFlag.NOFLAG,
    ):
        super().__init__((start, dict(row)) for start, row in transitions.items())
        Recognizer.__init__(self, flags)
        self.alphabet: frozenset[Symbol] = frozenset(symbols)
        self.states: frozenset[StateId] = frozenset(states)
        self.accepting_states: frozenset[StateId] = frozenset(accepting_states)
        self.start_state = start_state

    @staticmethod
    def from_nfa(nfa: NFA) -> "DFA":
        if nfa.is_deterministic():
            logger.debug("description is deterministic, keeping it as is")
            return DFA(
                nfa.alphabet,
                map(StateId, nfa.states),
                map(StateId, nfa.accepting_states),
                StateId(nfa.start_state),
                {
                    StateId(start): {
                        symbol: StateId(first(ends)) for symbol, ends in row.items()
                    }
                    for start, row in nfa.items()
                },
                flags=nfa.flags,
            )

        logger.debug("description is an NFA, running the subset construction")
        transitions = nfa.subset_construction()
        start_state = nfa.start_closure()
        states = transitions.keys() | {start_state}
        # a composite state accepts iff one of the states it is made of accepts
        accepting_states = {
            state for state in states if not state.isdisjoint(nfa.accepting_states)
        }
        logger.debug(
            "converted an NFA with %d states into a DFA with %d states",
            len(nfa.states),
            len(states),
        )
        return DFA(
            nfa.alphabet,
            states,
            accepting_states,
            start_state,
            transitions,
            flags=nfa.flags,
        )

    @staticmethod
    def from_description(
        description: AutomatonDescription,
        flags: AutomatonFlag = AutomatonFlag.NOFLAG,
    ) -> "DFA":
        return DFA.from_nfa(NFA(description.validate(), flags))

    @staticmethod
    def from_file(
        path: Union[str, Path], flags: AutomatonFlag = AutomatonFlag.NOFLAG
    ) -> "DFA":
        return DFA.from_description(parse_file(path), flags)

    def transition(self, state: StateId, symbol: Symbol) -> Optional[StateId]:
        if state in self:
            return self[state].get(symbol)
        return None

    def accepts(self, word: Word, tracer: Optional[Tracer] = None) -> Acceptance:
        tracer = guard(tracer)
        state = self.start_state
        if tracer is not None:
            tracer.start(state)

        for symbol in self.tokenize(word):
            if symbol not in self.alphabet:
                return Acceptance.INVALID_ALPHABET
            if (following := self.transition(state, symbol)) is None:
                return Acceptance.NO_TRANSITION
            if tracer is not None:
                tracer.step(state, symbol, following)
            state = following

        if state in self.accepting_states:
            return Acceptance.ACCEPTS
        return Acceptance.REJECTS

    def n_transitions(self) -> int:
        return sum(len(row) for row in self.values())

    def iter_transitions(self) -> Iterator[tuple[StateId, Symbol, StateId]]:
        for start in sorted(self, key=str):
            for symbol, end in sorted(self[start].items()):
                yield start, symbol, end

    def describe(self) -> Iterator[str]:
        """Lines describing the whole machine, as printed in verbose mode"""
        yield "---BEGIN DFA DEFINITION---"
        yield "States:"
        yield "\t" + " ".join(sorted(map(str, self.states)))
        yield "Alphabet:"
        yield "\t" + " ".join(sorted(self.alphabet))
        yield "Start State:"
        yield f"\t{self.start_state}"
        yield "Final States:"
        yield "\t" + " ".join(sorted(map(str, self.accepting_states)))
        yield "Transitions:"
        for start in sorted(self, key=str):
            yield str(start)
            for symbol, end in sorted(self[start].items()):
                yield f"\t{symbol} -> {end}"

    def __repr__(self):
        return (
            f"DFA(states={sorted(map(str, self.states))}, "
            f"symbols={sorted(self.alphabet)}, "
            f"start_state={self.start_state}, "
            f"transitions={self.n_transitions()}, "
            f"accept_states={sorted(map(str, self.accepting_states))})"
        )

    def to_json(self, indent: Optional[int] = 4) -> str:
        """
        Serialize the DFA in the structured description format

        Composite states are named after their rendering, e.g. ``{q0, q1}``
        """
        return json.dumps(
            {
                "states": sorted(map(str, self.states)),
                "alphabet": sorted(self.alphabet),
                "start_state": str(self.start_state),
                "final_states": sorted(map(str, self.accepting_states)),
                "transitions": [
                    {"s1": str(start), "symbol": symbol, "s2": str(end)}
                    for start, symbol, end in self.iter_transitions()
                ],
            },
            indent=indent,
        )

    def graph(
        self,
        directory: Optional[Union[str, Path]] = None,
        filename: str = "dfa",
        view: bool = False,
    ) -> graphviz.Digraph:
        dot = graphviz.Digraph(
            self.__class__.__name__,
            format="pdf",
            engine="dot",
        )
        dot.attr("graph", rankdir="LR")
        dot.attr("node", fontname="verdana")
        dot.attr("edge", fontname="verdana")

        for state in sorted(self.states, key=str):
            dot.node(
                str(state),
                color="green" if state == self.start_state else "",
                shape="doublecircle" if state in self.accepting_states else "circle",
                style="filled",
            )

        for start, symbol, end in self.iter_transitions():
            dot.edge(str(start), str(end), label=symbol, color="black")

        dot.node("__start", label="", shape="none")
        dot.edge("__start", str(self.start_state), arrowhead="vee")

        if directory is not None:
            dot.render(view=view, directory=str(directory), filename=filename)
        return dot
