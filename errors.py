from collections import namedtuple

# A problem reported against a single source line.
Diagnostic = namedtuple("Diagnostic", ["line", "message"])


def format_diagnostic(diag):
    return "Line {}: {}".format(diag.line, diag.message)


class AssemblyError(ValueError):
    pass


# Fatal: raised during the first pass and aborts the whole run.
class DuplicateLabel(AssemblyError):
    def __init__(self, label, line=None):
        super().__init__("Duplicate label '{}'".format(label))
        self.label = label
        self.line = line


class UnknownInstruction(AssemblyError):
    def __init__(self, mnemonic):
        super().__init__("Unknown instruction: {}".format(mnemonic))
        self.mnemonic = mnemonic


class InvalidRegister(AssemblyError):
    def __init__(self, token):
        super().__init__("Invalid register: {}".format(token))
        self.token = token


class MissingRegister(AssemblyError):
    def __init__(self):
        super().__init__("Missing register")


class InvalidImmediate(AssemblyError):
    def __init__(self, token):
        super().__init__("Invalid immediate: {}".format(token))
        self.token = token


class MissingImmediate(AssemblyError):
    def __init__(self, what="immediate"):
        super().__init__("Missing {}".format(what))


class InvalidOperandSyntax(AssemblyError):
    def __init__(self, token, expected="offset(register)"):
        super().__init__("Invalid operand '{}', expected {}".format(token, expected))
        self.token = token


class UndefinedLabel(AssemblyError):
    def __init__(self, label):
        super().__init__("Undefined label: {}".format(label))
        self.label = label


class OperandCountMismatch(AssemblyError):
    def __init__(self, mnemonic, expected, got):
        super().__init__("{} expects {} operands, got {}".format(mnemonic, expected, got))
        self.mnemonic = mnemonic
