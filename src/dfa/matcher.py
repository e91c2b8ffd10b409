import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, Optional, Sequence, Union

import click
from tqdm import tqdm

from dfa.utils import EPSILON, Acceptance, AutomatonFlag, StateId, Symbol

logger = logging.getLogger(__name__)

Word = Union[str, Sequence[Symbol]]


class Tracer(ABC):
    """Write only observer of a single recognition"""

    @abstractmethod
    def start(self, state: StateId) -> None:
        pass

    @abstractmethod
    def step(self, source: StateId, symbol: Symbol, target: StateId) -> None:
        pass


class EchoTracer(Tracer):
    def __init__(self, echo: Callable[[str], None] = click.echo):
        self.echo = echo

    def start(self, state: StateId) -> None:
        self.echo(f"Starting State: {state}")

    def step(self, source: StateId, symbol: Symbol, target: StateId) -> None:
        self.echo(f"Current State: {source} Symbol: {symbol} -> New State: {target}")


class RecordingTracer(Tracer):
    """Keeps the start state and every step taken, mostly useful in tests"""

    def __init__(self):
        self.start_state: Optional[StateId] = None
        self.steps: list[tuple[StateId, Symbol, StateId]] = []

    def start(self, state: StateId) -> None:
        self.start_state = state

    def step(self, source: StateId, symbol: Symbol, target: StateId) -> None:
        self.steps.append((source, symbol, target))


class SafeTracer(Tracer):
    """Forwards to another tracer and logs its failures instead of raising them"""

    def __init__(self, tracer: Tracer):
        self.tracer = tracer

    def start(self, state: StateId) -> None:
        try:
            self.tracer.start(state)
        except Exception:
            logger.exception("tracer failed on start state %s", state)

    def step(self, source: StateId, symbol: Symbol, target: StateId) -> None:
        try:
            self.tracer.step(source, symbol, target)
        except Exception:
            logger.exception("tracer failed on %s -%s-> %s", source, symbol, target)


def guard(tracer: Optional[Tracer]) -> Optional[SafeTracer]:
    if tracer is None or isinstance(tracer, SafeTracer):
        return tracer
    return SafeTracer(tracer)


class Recognizer(ABC):
    def __init__(self, flags: AutomatonFlag = AutomatonFlag.NOFLAG):
        self._flags = flags

    @property
    def flags(self) -> AutomatonFlag:
        return self._flags

    def tokenize(self, word: Word) -> tuple[Symbol, ...]:
        """
        Split `word` into symbols, one per character

        Unless STRICT_TOKENS is set, the word ``epsilon`` is the empty word.
        Sequences are taken to be tokenized already.

        Examples
        --------
        >>> from dfa.fsm import NFA
        >>> NFA().tokenize("abc")
        ('a', 'b', 'c')
        >>> NFA().tokenize("epsilon")
        ()
        >>> NFA(flags=AutomatonFlag.STRICT_TOKENS).tokenize("epsilon")
        ('e', 'p', 's', 'i', 'l', 'o', 'n')
        """
        if word == EPSILON and not self._flags.is_strict():
            return ()
        return tuple(word)

    @abstractmethod
    def accepts(self, word: Word, tracer: Optional[Tracer] = None) -> Acceptance:
        """
        Run `word` through the automaton and report the outcome

        Parameters
        ----------
        word: Word
            a string, tokenized one character at a time, or a sequence of symbols
        tracer: Optional[Tracer]
            notified of the start state and of every transition taken

        Notes
        -----
        The first halting condition encountered from the left decides the outcome.
        Recognition never raises.
        """

        pass

    def classify(
        self, words: Iterable[str], tracer: Optional[Tracer] = None
    ) -> Iterator[tuple[str, Acceptance]]:
        show_progress = bool(self._flags & AutomatonFlag.DEBUG)
        for word in tqdm(words, unit="word", disable=not show_progress):
            yield word, self.accepts(word, tracer)

    def is_accepted(self, word: Word) -> bool:
        return self.accepts(word) is Acceptance.ACCEPTS
