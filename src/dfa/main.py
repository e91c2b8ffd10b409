import logging
import sys
from pathlib import Path
from typing import IO, Iterator, NoReturn, Optional

import click
import graphviz

from dfa.description import AutomatonError, DescriptionParsingError
from dfa.fsm import DFA
from dfa.matcher import EchoTracer
from dfa.parser import parser_for
from dfa.utils import AutomatonFlag

logger = logging.getLogger(__name__)


def read_words(stream: IO) -> Iterator[str]:
    """Words are read one per line, up to the first empty line"""
    for line in stream:
        if not (word := line.rstrip("\r\n")):
            break
        yield word


def fail(message: str) -> NoReturn:
    click.echo(message)
    raise click.exceptions.Exit(1)


@click.command(
    name="dfa",
    help="Run words through a finite automaton described in a .dfa or .json file",
    context_settings={"help_option_names": ["-h", "--help"], "auto_envvar_prefix": "DFA"},
)
@click.option(
    "--dfa-file",
    "-d",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="DFA definition file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    show_default=True,
    default=False,
    help="Display the machine definition and every transition taken",
)
@click.option(
    "--strict",
    "-s",
    is_flag=True,
    show_default=True,
    default=False,
    help="Read the word 'epsilon' as seven symbols rather than the empty word",
)
@click.option(
    "--input-file", "-i", type=click.File(), default="-", help="Words, one per line"
)
@click.option(
    "--out", "-o", type=click.File("w"), default="-", help="Output of the results"
)
@click.option(
    "--graph",
    "-g",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Render the automaton with graphviz into this directory",
)
@click.option(
    "--debug",
    is_flag=True,
    show_default=True,
    default=False,
    help="Turn on debug mode",
)
def entry(
    dfa_file: Optional[Path],
    verbose: bool,
    strict: bool,
    input_file: IO,
    out: IO,
    graph: Optional[Path],
    debug: bool,
):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    flags = AutomatonFlag.NOFLAG
    if strict:
        flags |= AutomatonFlag.STRICT_TOKENS
    if verbose:
        flags |= AutomatonFlag.VERBOSE
    if debug:
        flags |= AutomatonFlag.DEBUG

    if dfa_file is None:
        fail("No DFA file path specified.")
    if not dfa_file.exists():
        fail("Specified DFA file path doesn't exist.")
    try:
        parser_cls = parser_for(dfa_file)
    except DescriptionParsingError:
        fail("Only .dfa and .json files are valid.")

    try:
        contents = dfa_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        fail(f"Failed to read file: {e}")
    if not contents:
        fail("Input file empty.")

    try:
        dfa = DFA.from_description(parser_cls(contents).description, flags)
    except AutomatonError as e:
        fail(f"Failed to parse input file: {e}")

    def echo(message: str):
        click.echo(message, file=out)

    if dfa.flags.is_verbose():
        for line in dfa.describe():
            echo(line)

    if graph is not None:
        try:
            dfa.graph(directory=graph, filename=dfa_file.stem)
        except graphviz.ExecutableNotFound as e:
            fail(f"Failed to render graph: {e}")
        logger.debug("rendered %s into %s", dfa_file.stem, graph)

    tracer = EchoTracer(echo) if dfa.flags.is_verbose() else None
    for word, acceptance in dfa.classify(read_words(input_file), tracer):
        echo(f"{word} -> {acceptance}")


if __name__ == "__main__":
    entry()
