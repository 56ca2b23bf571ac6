"""Command-line interface for hbsyntax."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pybars import PybarsError

COMMANDS = ("tokens", "vars", "render")
FORMATS = ("json", "text")


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    command: str
    input_file: Path
    output_file: Path | None
    format: str
    data: dict[str, Any]
    debug: bool
    verbose: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="hbsyntax",
        description="Analyse and render Handlebars templates",
    )
    p.add_argument("command", choices=COMMANDS, help="What to do with the template")
    p.add_argument("input", help="Input template file")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "--format",
        choices=FORMATS,
        default=None,
        help="Output format for tokens/vars (default: json)",
    )
    p.add_argument("--data", metavar="FILE", help="JSON file with render variables")
    p.add_argument(
        "-s",
        "--set",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a render variable (repeatable)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover hbsyntax.toml)",
    )
    p.add_argument("--debug", action="store_true", help="Dump scanner tokens and expressions to stderr")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return p


def parse_set_arg(s: str) -> tuple[str, str]:
    """Parse a NAME=VALUE string into (name, value)."""
    if "=" not in s:
        raise argparse.ArgumentTypeError(f"invalid variable format (expected NAME=VALUE): {s}")
    name, _, value = s.partition("=")
    return name, value


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "hbsyntax.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def load_data(path: Path) -> dict[str, Any]:
    """Load render variables from a JSON file holding a single object."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return data


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags. Render variables are layered as
    ``[render] data_file`` < ``[data]`` < ``--data`` < ``--set``.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    # Output format: config < CLI
    fmt = "json"
    cfg_output = config.get("output")
    if isinstance(cfg_output, dict):
        cfg_format = cfg_output.get("format")
        if cfg_format in FORMATS:
            fmt = cfg_format
        elif cfg_format is not None:
            raise argparse.ArgumentTypeError(f"invalid output format in config: {cfg_format!r}")
    if args.format is not None:
        fmt = args.format

    # Render variables: config < CLI
    data: dict[str, Any] = {}
    cfg_render = config.get("render")
    if isinstance(cfg_render, dict):
        data_file = cfg_render.get("data_file")
        if isinstance(data_file, str):
            data.update(load_data(input_dir / data_file))
    cfg_data = config.get("data")
    if isinstance(cfg_data, dict):
        data.update(cfg_data)
    if args.data:
        data.update(load_data(Path(args.data)))
    for raw in args.set:
        name, value = parse_set_arg(raw)
        data[name] = value

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        command=args.command,
        input_file=input_file,
        output_file=output_file,
        format=fmt,
        data=data,
        debug=args.debug,
        verbose=args.verbose,
    )


def run(options: CliOptions) -> str:
    """Read the input template and produce the command's output text."""
    from hbsyntax.debug import dump_expressions, dump_tokens
    from hbsyntax.parser import extract, parse_expressions
    from hbsyntax.render import interpolate
    from hbsyntax.scanner import Scanner
    from hbsyntax.tokenizer import scan, tokenize

    source = options.input_file.read_text(encoding="utf-8")

    if options.debug:
        dump_tokens(scan(source, Scanner()))
        dump_expressions(parse_expressions(source))

    if options.command == "tokens":
        tokens = tokenize(source)
        if options.format == "text":
            return "".join(
                f"{t.start:>6} {t.end:>6}  {t.type:<14} {t.value!r}\n" for t in tokens
            )
        return json.dumps([t.to_dict() for t in tokens], indent=2) + "\n"

    if options.command == "vars":
        result = extract(source)
        if options.format == "text":
            lines = []
            for var in result.variables:
                line = f"{var.path}  {var.type}"
                if var.block_type:
                    line += f"  #{var.block_type}"
                if var.context:
                    line += f"  in {var.context}"
                lines.append(line + "\n")
            return "".join(lines)
        return json.dumps(result.to_dict(), indent=2) + "\n"

    return interpolate(source, options.data)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        options = resolve_options(args)
    except (argparse.ArgumentTypeError, tomllib.TOMLDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError
        print(f"error: {exc}", file=sys.stderr)
        return 1

    try:
        output = run(options)
    except (OSError, PybarsError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if options.output_file:
        options.output_file.write_text(output, encoding="utf-8")
    else:
        sys.stdout.write(output)

    return 0
