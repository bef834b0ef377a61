import re

from errors import (InvalidImmediate, InvalidOperandSyntax, InvalidRegister,
                    MissingImmediate, MissingRegister)

# ABI register names. s0 and fp name the same register.
registers = {
    "zero": 0,
    "ra": 1,
    "sp": 2,
    "gp": 3,
    "tp": 4,
    "t0": 5,
    "t1": 6,
    "t2": 7,
    "s0": 8, "fp": 8,
    "s1": 9,
    "a0": 10,
    "a1": 11,
    "a2": 12,
    "a3": 13,
    "a4": 14,
    "a5": 15,
    "a6": 16,
    "a7": 17,
    "s2": 18,
    "s3": 19,
    "s4": 20,
    "s5": 21,
    "s6": 22,
    "s7": 23,
    "s8": 24,
    "s9": 25,
    "s10": 26,
    "s11": 27,
    "t3": 28,
    "t4": 29,
    "t5": 30,
    "t6": 31
}

IMMEDIATE_RE = re.compile(r"^[+-]?(0x[0-9a-f]+|[0-9]+)$", re.IGNORECASE)
MEMORY_RE = re.compile(r"^([+-]?(?:0x[0-9a-fA-F]+|[0-9]+))\(([A-Za-z0-9]+)\)$")


# ABI name or xN token. The index of xN is not range checked.
def parse_register(reg_str):
    if reg_str is None or reg_str == "":
        raise MissingRegister()
    name = reg_str.strip().lower()
    if name in registers:
        return registers[name]
    if name.startswith("x") and name[1:].isdecimal():
        return int(name[1:], 10)
    raise InvalidRegister(reg_str)


# Signed decimal or 0x-prefixed hexadecimal.
def parse_immediate(imm_str):
    if imm_str is None or imm_str == "":
        raise MissingImmediate()
    imm_str = imm_str.strip()
    if not IMMEDIATE_RE.match(imm_str):
        raise InvalidImmediate(imm_str)
    sign = -1 if imm_str.startswith("-") else 1
    digits = imm_str.lstrip("+-")
    if digits.lower().startswith("0x"):
        return sign * int(digits, 16)
    return sign * int(digits, 10)


def match_memory_operand(token):
    # None when the token is not of the form imm(reg)
    if token is None:
        return None
    return MEMORY_RE.match(token.strip())


# Split imm(reg) into (immediate, register index).
def parse_memory_operand(token):
    if token is None or token == "":
        raise MissingImmediate("offset(register) operand")
    m = match_memory_operand(token)
    if not m:
        raise InvalidOperandSyntax(token)
    imm_str, reg_str = m.groups()
    return parse_immediate(imm_str), parse_register(reg_str)
