from enum import Enum, IntFlag, auto
from typing import Iterable, NamedTuple, Union

Symbol = str

# the empty string, taken without consuming input
EPSILON: Symbol = "epsilon"


class Transition(NamedTuple):
    s1: str
    symbol: Symbol
    s2: str

    def is_epsilon(self) -> bool:
        return self.symbol == EPSILON


class AutomatonFlag(IntFlag):
    NOFLAG = auto()
    STRICT_TOKENS = auto()  # the word "epsilon" is seven symbols, not the empty word
    VERBOSE = auto()
    DEBUG = auto()

    def is_strict(self) -> bool:
        return bool(self & AutomatonFlag.STRICT_TOKENS)

    def is_verbose(self) -> bool:
        return bool(self & AutomatonFlag.VERBOSE)


class Acceptance(Enum):
    """Outcome of running a word through an automaton"""

    ACCEPTS = "ACCEPT"
    REJECTS = "NOT ACCEPT"
    INVALID_ALPHABET = "INVALID ALPHABET"
    NO_TRANSITION = "NO TRANSITION"

    def __str__(self):
        return self.value


class StateId(frozenset):
    """
    The identity of a DFA state: a non-empty, unordered set of NFA state names

    Two state ids are equal iff they hold the same names, and their hashes only
    depend on those names. The names are sorted and length-prefixed before hashing
    so that no two different sets share a canonical key.

    Examples
    --------
    >>> StateId(["q1", "q0"]) == StateId(["q0", "q1"])
    True
    >>> hash(StateId(["q1", "q0"])) == hash(StateId(["q0", "q1"]))
    True
    >>> str(StateId("q0"))
    'q0'
    >>> str(StateId(["q2", "q0", "q1"]))
    '{q0, q1, q2}'
    """

    def __new__(cls, names: Union[str, Iterable[str]]):
        if isinstance(names, str):
            names = (names,)
        self = super().__new__(cls, names)
        if not self:
            raise ValueError("a state id must name at least one state")
        self.canonical = "".join(f"{len(name)}:{name}" for name in sorted(self))
        return self

    def __hash__(self):
        return hash(self.canonical)

    # only ever equal to another StateId, so equal objects always hash alike
    def __eq__(self, other):
        return isinstance(other, StateId) and self.canonical == other.canonical

    def __ne__(self, other):
        return not self == other

    def __reduce__(self):
        return self.__class__, (sorted(self),)

    def is_composite(self) -> bool:
        return len(self) > 1

    def __str__(self):
        if len(self) == 1:
            return next(iter(self))
        return "{" + ", ".join(sorted(self)) + "}"

    def __repr__(self):
        return f"{self.__class__.__name__}({sorted(self)!r})"
