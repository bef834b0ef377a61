from collections import namedtuple

from errors import (AssemblyError, MissingImmediate, OperandCountMismatch,
                    UndefinedLabel, UnknownInstruction)
from operands import (match_memory_operand, parse_immediate,
                      parse_memory_operand, parse_register)

# Outcome of encoding one instruction: exactly one of word/error is set.
EncodeResult = namedtuple("EncodeResult", ["word", "error"])

# addi x0, x0, 0
NOP_WORD = 0x00000013

R_instructions = {
    "add":  {"funct7": 0x00, "funct3": 0x0},
    "sub":  {"funct7": 0x20, "funct3": 0x0},
    "xor":  {"funct7": 0x00, "funct3": 0x4},
    "or":   {"funct7": 0x00, "funct3": 0x6},
    "and":  {"funct7": 0x00, "funct3": 0x7},
    "sll":  {"funct7": 0x00, "funct3": 0x1},
    "srl":  {"funct7": 0x00, "funct3": 0x5},
    "sra":  {"funct7": 0x20, "funct3": 0x5},
    "slt":  {"funct7": 0x00, "funct3": 0x2},
    "sltu": {"funct7": 0x00, "funct3": 0x3}
}

# special_funct7 replaces the upper bits of a shift amount
I_instructions = {
    "addi": {"opcode": 0x13, "funct3": 0x0},
    "xori": {"opcode": 0x13, "funct3": 0x4},
    "ori":  {"opcode": 0x13, "funct3": 0x6},
    "andi": {"opcode": 0x13, "funct3": 0x7},
    "slli": {"opcode": 0x13, "funct3": 0x1},
    "srli": {"opcode": 0x13, "funct3": 0x5},
    "srai": {"opcode": 0x13, "funct3": 0x5, "special_funct7": 0x20},
    "lb":   {"opcode": 0x03, "funct3": 0x0},
    "lh":   {"opcode": 0x03, "funct3": 0x1},
    "lw":   {"opcode": 0x03, "funct3": 0x2},
    "lbu":  {"opcode": 0x03, "funct3": 0x4},
    "lhu":  {"opcode": 0x03, "funct3": 0x5},
    "jalr": {"opcode": 0x67, "funct3": 0x0}
}

S_instructions = {
    "sb": {"funct3": 0x0},
    "sh": {"funct3": 0x1},
    "sw": {"funct3": 0x2}
}

B_instructions = {
    "beq":  {"funct3": 0x0},
    "bne":  {"funct3": 0x1},
    "blt":  {"funct3": 0x4},
    "bge":  {"funct3": 0x5},
    "bltu": {"funct3": 0x6},
    "bgeu": {"funct3": 0x7}
}

J_instructions = {
    "jal": {"opcode": 0x6F}
}

R_OPCODE = 0x33
S_OPCODE = 0x23
B_OPCODE = 0x63


def to_hex(word):
    return format(word & 0xFFFFFFFF, "08X")


def _operand(tokens, index):
    # tokens[0] is the mnemonic
    return tokens[index] if index < len(tokens) else None


def _check_max_operands(tokens, limit):
    if len(tokens) - 1 > limit:
        raise OperandCountMismatch(tokens[0], limit, len(tokens) - 1)


# R-type: {funct7}{rs2}{rs1}{funct3}{rd}{opcode}
def encode_R_type(mnemonic, tokens):
    info = R_instructions[mnemonic]
    _check_max_operands(tokens, 3)
    rd = parse_register(_operand(tokens, 1))
    rs1 = parse_register(_operand(tokens, 2))
    rs2 = parse_register(_operand(tokens, 3))
    return ((info["funct7"] << 25) | (rs2 << 20) | (rs1 << 15)
            | (info["funct3"] << 12) | (rd << 7) | R_OPCODE)


# I-type: {imm[11:0]}{rs1}{funct3}{rd}{opcode}
# Accepts both "rd, rs1, imm" and "rd, imm(rs1)".
def encode_I_type(mnemonic, tokens):
    info = I_instructions[mnemonic]
    rd = parse_register(_operand(tokens, 1))
    if match_memory_operand(_operand(tokens, 2)):
        _check_max_operands(tokens, 2)
        immediate, rs1 = parse_memory_operand(tokens[2])
    else:
        _check_max_operands(tokens, 3)
        rs1 = parse_register(_operand(tokens, 2))
        immediate = parse_immediate(_operand(tokens, 3))
    special_funct7 = info.get("special_funct7", 0)
    if special_funct7:
        immediate = (immediate & 0x1F) | (special_funct7 << 5)
    # masking to 12 bits also truncates negative values to two's complement
    return (((immediate & 0xFFF) << 20) | (rs1 << 15)
            | (info["funct3"] << 12) | (rd << 7) | info["opcode"])


# S-type: {imm[11:5]}{rs2}{rs1}{funct3}{imm[4:0]}{opcode}
# The source register comes first: "sw rs2, imm(rs1)".
def encode_S_type(mnemonic, tokens):
    info = S_instructions[mnemonic]
    _check_max_operands(tokens, 2)
    rs2 = parse_register(_operand(tokens, 1))
    immediate, rs1 = parse_memory_operand(_operand(tokens, 2))
    imm_high = (immediate >> 5) & 0x7F
    imm_low = immediate & 0x1F
    return ((imm_high << 25) | (rs2 << 20) | (rs1 << 15)
            | (info["funct3"] << 12) | (imm_low << 7) | S_OPCODE)


# Absolute address of a branch or jump target. A known label wins, otherwise
# the operand is read as a signed offset from the current address.
def resolve_target(target, current_address, labels):
    if target is None or target == "":
        raise MissingImmediate("target")
    if target in labels:
        return labels[target]
    try:
        return current_address + parse_immediate(target)
    except AssemblyError:
        raise UndefinedLabel(target) from None


# B-type: {imm[12]}{imm[10:5]}{rs2}{rs1}{funct3}{imm[4:1]}{imm[11]}{opcode}
def encode_B_type(mnemonic, tokens, current_address, labels):
    info = B_instructions[mnemonic]
    _check_max_operands(tokens, 3)
    rs1 = parse_register(_operand(tokens, 1))
    rs2 = parse_register(_operand(tokens, 2))
    offset = resolve_target(_operand(tokens, 3), current_address, labels) - current_address
    bit12 = (offset >> 12) & 0x1
    bit11 = (offset >> 11) & 0x1
    bits10_5 = (offset >> 5) & 0x3F
    bits4_1 = (offset >> 1) & 0xF
    return ((bit12 << 31) | (bits10_5 << 25) | (rs2 << 20) | (rs1 << 15)
            | (info["funct3"] << 12) | (bits4_1 << 8) | (bit11 << 7) | B_OPCODE)


# J-type: {imm[20]}{imm[10:1]}{imm[11]}{imm[19:12]}{rd}{opcode}
# "jal target" links through ra.
def encode_J_type(mnemonic, tokens, current_address, labels):
    info = J_instructions[mnemonic]
    _check_max_operands(tokens, 2)
    if len(tokens) <= 2:
        rd = 1
        target = _operand(tokens, 1)
    else:
        rd = parse_register(_operand(tokens, 1))
        target = _operand(tokens, 2)
    offset = resolve_target(target, current_address, labels) - current_address
    imm_20 = (offset >> 20) & 0x1
    imm_19_12 = (offset >> 12) & 0xFF
    imm_11 = (offset >> 11) & 0x1
    imm_10_1 = (offset >> 1) & 0x3FF
    return ((imm_20 << 31) | (imm_10_1 << 21) | (imm_11 << 20)
            | (imm_19_12 << 12) | (rd << 7) | info["opcode"])


# Encode one tokenized instruction into a 32-bit word; raises AssemblyError.
def encode_tokens(tokens, current_address, labels):
    mnemonic = tokens[0].lower()
    if mnemonic == "nop":
        return NOP_WORD
    if mnemonic in R_instructions:
        word = encode_R_type(mnemonic, tokens)
    elif mnemonic in I_instructions:
        word = encode_I_type(mnemonic, tokens)
    elif mnemonic in S_instructions:
        word = encode_S_type(mnemonic, tokens)
    elif mnemonic in B_instructions:
        word = encode_B_type(mnemonic, tokens, current_address, labels)
    elif mnemonic in J_instructions:
        word = encode_J_type(mnemonic, tokens, current_address, labels)
    else:
        raise UnknownInstruction(mnemonic)
    # out-of-range register indices may push bits past bit 31
    return word & 0xFFFFFFFF


def encode_instruction(tokens, current_address, labels):
    try:
        return EncodeResult(encode_tokens(tokens, current_address, labels), None)
    except AssemblyError as e:
        return EncodeResult(None, e)
