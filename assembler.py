#!/usr/bin/env python3
import argparse
import logging
import sys
from collections import namedtuple

import pandas as pd
from rich.console import Console
from rich.logging import RichHandler

from encoders import NOP_WORD, encode_instruction, to_hex
from errors import Diagnostic, DuplicateLabel, format_diagnostic
from export import FORMATS, render, write_output

logger = logging.getLogger(__name__)

COMMENT_MARKERS = ("#", "//")
INSTRUCTION_SIZE = 4
# nop words inserted after every instruction in debug mode
DEBUG_PADDING = 3

# Each entry is an instruction waiting for the second pass.
PendingInstruction = namedtuple("PendingInstruction", ["address", "tokens", "line"])

AssemblyResult = namedtuple("AssemblyResult", ["words", "diagnostics", "symbols", "fatal"])


def strip_comment(line):
    for marker in COMMENT_MARKERS:
        line = line.split(marker, 1)[0]
    return line.strip()


# Returns ("label", name), ("instruction", tokens) or None for a line that
# is empty once its comment is removed.
def preprocess_line(line):
    line = strip_comment(line)
    if not line:
        return None
    if line.endswith(":"):
        return ("label", line[:-1])
    return ("instruction", line.replace(",", " ").split())


class RiscVAssembler:
    def __init__(self, debug=False):
        self.debug = debug
        self.reset()

    def reset(self):
        self.symbols = {}   # label -> byte address
        self.pending = []
        self.words = []
        self.diagnostics = []
        self.fatal = False
        self._rows = []

    @property
    def instruction_stride(self):
        if self.debug:
            return INSTRUCTION_SIZE * (1 + DEBUG_PADDING)
        return INSTRUCTION_SIZE

    def first_pass(self, lines):
        # First pass: collect labels and assign addresses
        current_address = 0
        for idx, line in enumerate(lines):
            parsed = preprocess_line(line)
            if parsed is None:
                continue
            kind, value = parsed
            if kind == "label":
                if value in self.symbols:
                    raise DuplicateLabel(value, idx + 1)
                self.symbols[value] = current_address
                logger.debug("Label %s at 0x%08X", value, current_address)
            else:
                self.pending.append(PendingInstruction(current_address, value, idx + 1))
                current_address += self.instruction_stride
        logger.debug("First pass done: %d labels, %d instructions",
                     len(self.symbols), len(self.pending))

    def second_pass(self):
        # Second pass: encode each instruction against the finished symbol table
        for instr in self.pending:
            result = encode_instruction(instr.tokens, instr.address, self.symbols)
            if result.error is not None:
                diag = Diagnostic(instr.line, str(result.error))
                logger.warning("Line %s: %s", diag.line, diag.message)
                self.diagnostics.append(diag)
                continue
            word = to_hex(result.word)
            logger.debug("0x%08X: %s -> %s", instr.address, " ".join(instr.tokens), word)
            self.words.append(word)
            self._rows.append((instr.line, "{:08X}".format(instr.address),
                               " ".join(instr.tokens), word))
            if self.debug:
                self.words.extend([to_hex(NOP_WORD)] * DEBUG_PADDING)
        # pending records are consumed by this pass
        self.pending = []

    def run(self, source):
        self.reset()
        try:
            self.first_pass(source.split("\n"))
        except DuplicateLabel as e:
            logger.error("Line %s: %s", e.line, e)
            self.fatal = True
            self.pending = []
            self.diagnostics = [Diagnostic(e.line, str(e))]
            return self.result()
        self.second_pass()
        return self.result()

    def result(self):
        return AssemblyResult(list(self.words), list(self.diagnostics),
                              dict(self.symbols), self.fatal)

    def listing(self):
        return pd.DataFrame(self._rows, columns=["line", "address", "source", "word"])

    def symbol_frame(self):
        rows = [(label, "{:08X}".format(addr)) for label, addr in self.symbols.items()]
        return pd.DataFrame(rows, columns=["label", "address"])


# Words come back as 8-digit uppercase hex strings in program order,
# diagnostics ordered by source line.
def assemble(source, debug=False):
    return RiscVAssembler(debug=debug).run(source)


def build_parser():
    parser = argparse.ArgumentParser(description="Two-pass RV32I assembler")
    parser.add_argument("input", help="Input assembly file path.")
    parser.add_argument("-o", "--output",
                        help="Output file path. Defaults to standard output.")
    parser.add_argument("-f", "--format", choices=sorted(FORMATS), default="hex",
                        help="Output format (default: hex).")
    parser.add_argument("-d", "--debug", action="store_true",
                        help="Follow every instruction with three nop words.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose output.")
    parser.add_argument("--listing", action="store_true",
                        help="Print the assembled program as a table.")
    parser.add_argument("--symbols", action="store_true",
                        help="Print the symbol table.")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)]
    )

    try:
        with open(args.input, "r") as f:
            source = f.read()
    except OSError as e:
        print("Error reading input file:", e, file=sys.stderr)
        return 1

    asm = RiscVAssembler(debug=args.debug)
    result = asm.run(source)

    if args.symbols:
        print(asm.symbol_frame().to_string(index=False))
    if args.listing:
        print(asm.listing().to_string(index=False))

    if result.diagnostics:
        for diag in result.diagnostics:
            print(format_diagnostic(diag), file=sys.stderr)
        return 1

    if args.output is None:
        print(render(result.words, args.format))
        return 0
    try:
        write_output(result.words, args.output, args.format)
    except OSError as e:
        print("Error writing output file:", e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
