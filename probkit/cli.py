#!/usr/bin/env python3
"""
probkit: probability toolkit

Command-line interface for training and querying Bayesian networks from
typed CSV tables.

Usage:
    probkit info <csv>                              Show columns, types and rows
    probkit train <csv> --edge A:B ...              Train a network and print its tables
    probkit query <csv> --edge A:B ... --event N=v  Evaluate P(event | given)
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap

from probkit.bayes import BayesNet
from probkit.errors import ProbkitError
from probkit.events import CondEvent, Event, EventCatenation
from probkit.table import Table
from probkit.variant import scan_as


# ============================================================================
# Formatting helpers
# ============================================================================

class C:
    """ANSI colors."""
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    RESET = "\033[0m"

    @staticmethod
    def off():
        C.BOLD = C.DIM = C.RED = C.GREEN = C.YELLOW = C.CYAN = C.RESET = ""


def header(text: str) -> str:
    return f"\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}\n{C.BOLD}  {text}{C.RESET}\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}"


def ok(text: str) -> str:
    return f"  {C.GREEN}✓{C.RESET} {text}"


def warn(text: str) -> str:
    return f"  {C.YELLOW}⚠{C.RESET} {text}"


def fail(text: str) -> str:
    return f"  {C.RED}✗{C.RESET} {text}"


def dim(text: str) -> str:
    return f"{C.DIM}{text}{C.RESET}"


# ============================================================================
# Argument parsing helpers
# ============================================================================

def load_table(args) -> Table:
    return Table.read_csv(
        args.csv,
        has_header=not args.no_header,
        has_types=not args.no_types,
        delimiter=args.delimiter,
    )


def parse_edge(text: str) -> tuple[str, str]:
    cause, sep, effect = text.partition(":")
    if not sep or not cause.strip() or not effect.strip():
        raise argparse.ArgumentTypeError(f"Edge '{text}' is not of the form CAUSE:EFFECT")
    return cause.strip(), effect.strip()


def parse_assignment(text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Assignment '{text}' is not of the form NAME=VALUE")
    return name.strip(), value.strip()


def make_events(table: Table, assignments: list[tuple[str, str]]) -> EventCatenation:
    """Equality events with values scanned as their column's type."""
    events = []
    for name, text in assignments:
        scalar_type = table.column_type(name).scalar_type
        events.append(Event(name, scan_as(scalar_type, text)))
    return EventCatenation(events)


def build_network(table: Table, args) -> BayesNet:
    net = BayesNet()
    for cause, effect in args.edge:
        net.add_cause_effect(cause, effect)
    net.train_with_csv(table, has_probability_column=not args.no_weights)
    return net


# ============================================================================
# Commands
# ============================================================================

def cmd_info(args):
    """Show the columns of a CSV table."""
    table = load_table(args)

    print(header(f"INFO: {args.csv}"))
    print(f"  {C.DIM}Rows: {table.lines}  |  Columns: {table.columns}{C.RESET}")

    for name, column_type in zip(table.header, table.types):
        values = sorted({str(v) for v in table.column(name)})
        shown = ", ".join(values[:8])
        more = f" ...and {len(values) - 8} more" if len(values) > 8 else ""
        print(f"\n  {C.BOLD}{name}{C.RESET}  {column_type.value}")
        print(f"    {dim(shown + more)}")

    if table.has_weight_column:
        print(ok(f"Last column '{table.header[-1]}' can weight the rows"))


def cmd_train(args):
    """Train a network and print its tables."""
    table = load_table(args)
    net = build_network(table, args)

    print(header(f"TRAIN: {args.csv}"))
    print(f"  {C.DIM}Nodes: {len(net)}  |  Rows: {table.lines}{C.RESET}")
    print(f"\n  {C.BOLD}Order:{C.RESET} {f' {C.CYAN}→{C.RESET} '.join(net.breadth_first_node_names())}")

    for name in net.breadth_first_node_names():
        node = net.get_node(name)
        parents = net.parent_names(name)
        print(f"\n  {C.BOLD}{name}{C.RESET}  {dim('given ' + ', '.join(parents) if parents else 'root')}")
        if node.distribution is not None:
            for line in str(node.distribution).splitlines():
                print(f"    {line}")

    if net.fully_defined():
        print(ok("Network is fully defined"))
    else:
        print(warn("Network is not fully defined"))


def cmd_query(args):
    """Evaluate P(event | given) on a trained network."""
    table = load_table(args)
    net = build_network(table, args)
    ce = CondEvent(make_events(table, args.event), make_events(table, args.given))

    print(header(f"QUERY: {ce}"))

    requisite, irrelevant = net.bayes_ball(ce)
    if requisite != ce:
        print(f"  {C.DIM}Requisite: {requisite}{C.RESET}")
    if irrelevant:
        print(f"  {C.DIM}Irrelevant: {', '.join(irrelevant.names())}{C.RESET}")

    p = net.P(requisite)
    print(f"\n  {C.BOLD}{ce}{C.RESET} = {C.GREEN}{p:.6g}{C.RESET}")


# ============================================================================
# CLI setup
# ============================================================================

def add_table_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("csv", help="CSV file: header row, type row, data rows")
    p.add_argument("--no-header", action="store_true", help="The file has no header row")
    p.add_argument("--no-types", action="store_true", help="The file has no type row; infer types")
    p.add_argument("--delimiter", default=",", help="Cell delimiter (default: ,)")


def add_network_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--edge", action="append", type=parse_edge, default=[], required=True,
                   metavar="CAUSE:EFFECT", help="Dependency between two columns (repeatable)")
    p.add_argument("--no-weights", action="store_true",
                   help="Count rows instead of using the last float column as weights")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="probkit",
        description="probkit: Bayesian networks over typed CSV tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
        examples:
          probkit info sprinkler.csv
          probkit train sprinkler.csv --edge Cloud:Rain --edge Cloud:Sprinkler \\
              --edge Rain:WetGrass --edge Sprinkler:WetGrass
          probkit query sprinkler.csv --edge Cloud:Rain --edge Rain:WetGrass \\
              --event Rain=heavy --given Cloud=yes
        """),
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log training details")

    sub = parser.add_subparsers(dest="command", help="Command to run")

    # info
    p = sub.add_parser("info", help="Show columns, types and rows of a CSV table")
    add_table_arguments(p)

    # train
    p = sub.add_parser("train", help="Train a network and print its tables")
    add_table_arguments(p)
    add_network_arguments(p)

    # query
    p = sub.add_parser("query", aliases=["P"], help="Evaluate P(event | given)")
    add_table_arguments(p)
    add_network_arguments(p)
    p.add_argument("--event", action="append", type=parse_assignment, required=True,
                   metavar="NAME=VALUE", help="Event assignment (repeatable)")
    p.add_argument("--given", action="append", type=parse_assignment, default=[],
                   metavar="NAME=VALUE", help="Condition assignment (repeatable)")

    args = parser.parse_args(argv)

    if args.no_color:
        C.off()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    # Dispatch
    commands = {
        "info": cmd_info,
        "train": cmd_train,
        "query": cmd_query, "P": cmd_query,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    try:
        handler(args)
    except FileNotFoundError as e:
        print(fail(f"File not found: {e}"))
        return 1
    except (ProbkitError, KeyError, ValueError) as e:
        print(fail(f"Error: {e}"))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
