# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from textwrap import dedent
from typing import Any, List, Optional, TextIO

import svdtree
from svdtree.device import Cluster, Device, Field, Peripheral, Register


def cli(argv: Optional[List[str]] = None) -> None:
    top = argparse.ArgumentParser(
        description=dedent(
            """\
            Inspect and edit the registers described by a System View Description (SVD) file.
            """
        ),
        allow_abbrev=False,
    )
    top.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help=(
            "Output verbose logs. Can be given multiple times to increase the verbosity. "
            "By default only critical messages are output."
        ),
    )

    sub = top.add_subparsers(title="subcommands")

    show = sub.add_parser(
        "show",
        help="Print elements of the device with their addresses and values.",
        description=dedent(
            """\
            Print a peripheral, cluster, register or field and every element within it,
            with absolute addresses and formatted reset values.
            """
        ),
        allow_abbrev=False,
    )
    show.set_defaults(_command="show")
    _add_svd_options(show)
    show.add_argument(
        "path",
        nargs="?",
        help="Path to the element to print, e.g. UART0.CTRL. If not given, the whole device is printed.",
    )
    show.add_argument(
        "-f",
        "--format",
        choices=[f.value for f in svdtree.NumberFormat],
        help="Format used to display values.",
    )

    set_ = sub.add_parser(
        "set",
        help="Update a field and print the resulting register value.",
        description=dedent(
            """\
            Write a value to a field, starting from the register reset value or a given
            register value, and print the resulting register value.
            """
        ),
        allow_abbrev=False,
    )
    set_.set_defaults(_command="set")
    _add_svd_options(set_)
    set_.add_argument("path", help="Path to the field, e.g. UART0.CTRL.ENABLE.")
    set_.add_argument(
        "value", help="New field value. Either a number or an enumerated value name."
    )
    set_.add_argument(
        "-r",
        "--register-value",
        type=integer,
        help="Register value to start from, given as hex or decimal. Defaults to the reset value.",
    )
    set_.add_argument(
        "-f",
        "--format",
        choices=[f.value for f in svdtree.NumberFormat],
        help="Format used to display the resulting register value.",
    )

    args = top.parse_args(argv)

    log_level = {
        0: logging.CRITICAL,
        1: logging.WARNING,
        2: logging.INFO,
        3: logging.DEBUG,
    }.get(args.verbose, logging.DEBUG)
    svdtree.log.setLevel(log_level)

    if not hasattr(args, "_command"):
        top.print_usage()
        sys.exit(2)

    if args._command == "show":
        cmd_show(args)
    elif args._command == "set":
        cmd_set(args)
    else:
        top.print_usage()
        sys.exit(2)

    sys.exit(0)


def _add_svd_options(parser: argparse.ArgumentParser) -> None:
    svd_group = parser.add_argument_group("SVD options")
    svd_group.add_argument(
        "-s",
        "--svd-file",
        required=True,
        type=Path,
        help="Path to the device SVD file.",
    )
    svd_group.add_argument(
        "--svd-parse-options",
        type=json.loads,
        help=(
            "JSON object used to override fields in the Options object to customize svdtree "
            "parsing behavior. Mainly intended for advanced use cases such as working around "
            "difficult SVD files."
        ),
    )


def integer(val: str) -> int:
    return int(val, 0)


def _parse_device(args: argparse.Namespace) -> Device:
    options = svdtree.Options()
    if args.svd_parse_options:
        overrides = dict(args.svd_parse_options)
        if "default_format" in overrides:
            overrides["default_format"] = svdtree.NumberFormat(overrides["default_format"])
        options = dataclasses.replace(options, **overrides)

    return svdtree.parse(args.svd_file, options=options)


def _find(device: Device, path: str) -> Any:
    node = device.find_by_path(path)
    if node is None:
        print(f"No element found at {path}", file=sys.stderr)
        sys.exit(1)
    return node


def cmd_show(args: argparse.Namespace) -> None:
    device = _parse_device(args)
    number_format = svdtree.NumberFormat(args.format) if args.format else None

    if args.path:
        print_node(_find(device, args.path), number_format)
    else:
        for peripheral in device.values():
            print_node(peripheral, number_format)


def cmd_set(args: argparse.Namespace) -> None:
    device = _parse_device(args)
    field = _find(device, args.path)

    if not isinstance(field, Field):
        print(f"{args.path} is not a field", file=sys.stderr)
        sys.exit(1)

    register = field.register
    try:
        if args.register_value is not None:
            register.set_content(args.register_value)
        field.update(field.parse_value(args.value))
    except svdtree.SvdMemoryError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    number_format = svdtree.NumberFormat(args.format) if args.format else None
    print(register.formatted_value(number_format))


def print_node(
    node: Any,
    number_format: Optional[svdtree.NumberFormat] = None,
    depth: int = 0,
    out: Optional[TextIO] = None,
) -> None:
    """Print a node and its descendants as an indented tree."""
    out = out or sys.stdout
    indent = "  " * depth

    if isinstance(node, Field):
        value = node.format_value(node.content, number_format)
        print(f"{indent}{node.name} {node.bit_range_str} = {value}", file=out)
        return

    if isinstance(node, Register):
        value = node.formatted_value(number_format)
        print(f"{indent}{node.name} @ 0x{node.address:08X} = {value}", file=out)
    elif isinstance(node, (Peripheral, Cluster)):
        print(f"{indent}{node.name} @ 0x{node.address:08X}", file=out)

    for child in node.children:
        print_node(child, number_format, depth + 1, out)


# Entry point when running with python -m svdtree
if __name__ == "__main__":
    cli()
