import pytest

from encoders import NOP_WORD, encode_instruction, encode_tokens, to_hex
from errors import (InvalidImmediate, InvalidOperandSyntax, InvalidRegister,
                    MissingImmediate, MissingRegister, OperandCountMismatch,
                    UndefinedLabel, UnknownInstruction)


def encode(text, address=0, labels=None):
    tokens = text.replace(",", " ").split()
    return to_hex(encode_tokens(tokens, address, labels or {}))


def sign_extend(value, bits):
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


@pytest.mark.parametrize("text, expected", [
    ("add x1, x2, x3", "003100B3"),
    ("sub t0, t1, t2", "407302B3"),
    ("ADD ra, sp, gp", "003100B3"),
    ("addi x1, x0, 5", "00500093"),
    ("addi x1, x1, -1", "FFF08093"),
    ("lw x5, 8(x6)", "00832283"),
    ("lw x5, x6, 8", "00832283"),
    ("slli x1, x2, 3", "00311093"),
    ("srai x1, x2, 3", "40315093"),
    ("jalr x0, 0(ra)", "00008067"),
    ("sw x5, 8(x6)", "00532423"),
    ("sw t0, -4(sp)", "FE512E23"),
    ("sb x1, 0(x2)", "00110023"),
    ("jal x0, 0", "0000006F"),
    ("nop", "00000013"),
])
def test_known_encodings(text, expected):
    assert encode(text) == expected


def test_nop_word():
    assert NOP_WORD == 0x13
    assert encode("NOP") == "00000013"


def test_srai_overrides_upper_immediate_bits():
    # only the low five bits of the shift amount survive
    assert encode("srai x1, x2, 35") == encode("srai x1, x2, 3")


def test_branch_to_label_forward_and_backward():
    labels = {"fwd": 8, "back": 0}
    assert encode("beq x1, x2, fwd", 0, labels) == "00208463"
    assert encode("beq x1, x0, back", 4, labels) == "FE008EE3"


def test_branch_relative_offset_fallback():
    assert encode("beq x1, x2, 8", 100) == "00208463"


def test_jal_forms():
    labels = {"loop": 0, "ahead": 12}
    assert encode("jal x1, 8") == "008000EF"
    assert encode("jal ra, loop", 4, labels) == "FFDFF0EF"
    # bare target links through x1
    assert encode("jal loop", 4, labels) == "FFDFF0EF"
    assert encode("jal x0, ahead", 4, labels) == encode("jal x0, 8")


def test_label_wins_over_numeric_reading():
    assert encode("jal x0, 16", 0, {"16": 4}) == encode("jal x0, 4")


@pytest.mark.parametrize("rd, rs1, imm", [(1, 2, 0), (31, 0, -2048), (5, 17, 2047)])
def test_i_type_fields_decode_back(rd, rs1, imm):
    word = encode_tokens(["addi", "x%d" % rd, "x%d" % rs1, str(imm)], 0, {})
    assert word & 0x7F == 0x13
    assert (word >> 7) & 0x1F == rd
    assert (word >> 15) & 0x1F == rs1
    assert sign_extend(word >> 20, 12) == imm


@pytest.mark.parametrize("offset", [-4096, -8, 2, 4094, 2048])
def test_b_type_offset_decodes_back(offset):
    word = encode_tokens(["bne", "x3", "x4", str(offset)], 0, {})
    imm = (((word >> 31) & 0x1) << 12) | (((word >> 7) & 0x1) << 11) \
        | (((word >> 25) & 0x3F) << 5) | (((word >> 8) & 0xF) << 1)
    assert sign_extend(imm, 13) == offset
    assert (word >> 12) & 0x7 == 0x1
    assert (word >> 15) & 0x1F == 3
    assert (word >> 20) & 0x1F == 4


@pytest.mark.parametrize("offset", [-1048576, -4, 2048, 1048574])
def test_j_type_offset_decodes_back(offset):
    word = encode_tokens(["jal", "x5", str(offset)], 0, {})
    imm = (((word >> 31) & 0x1) << 20) | (((word >> 12) & 0xFF) << 12) \
        | (((word >> 20) & 0x1) << 11) | (((word >> 21) & 0x3FF) << 1)
    assert sign_extend(imm, 21) == offset
    assert (word >> 7) & 0x1F == 5


def test_s_type_immediate_decodes_back():
    word = encode_tokens(["sh", "x9", "-100(x8)"], 0, {})
    imm = (((word >> 25) & 0x7F) << 5) | ((word >> 7) & 0x1F)
    assert sign_extend(imm, 12) == -100
    assert (word >> 20) & 0x1F == 9
    assert (word >> 15) & 0x1F == 8
    assert (word >> 12) & 0x7 == 0x1


def test_out_of_range_register_stays_within_32_bits():
    word = encode_tokens(["add", "x40", "x0", "x0"], 0, {})
    assert word <= 0xFFFFFFFF
    assert word == ((40 << 7) | 0x33) & 0xFFFFFFFF


@pytest.mark.parametrize("text, error", [
    ("foo x1, x2", UnknownInstruction),
    ("add x1, x2", MissingRegister),
    ("add x1, x2, x3, x4", OperandCountMismatch),
    ("add x1, x2, q3", InvalidRegister),
    ("addi x1, x2", MissingImmediate),
    ("addi x1, x2, abc", InvalidImmediate),
    ("lw x1, 0(x2), x3", OperandCountMismatch),
    ("sw x5, x6", InvalidOperandSyntax),
    ("sw x5", MissingImmediate),
    ("beq x1, x2, nowhere", UndefinedLabel),
    ("jal x1, nowhere", UndefinedLabel),
    ("jal", MissingImmediate),
    ("jal x1, x2, 4", OperandCountMismatch),
])
def test_encoding_errors(text, error):
    with pytest.raises(error):
        encode(text)


def test_encode_instruction_returns_word_or_error():
    ok = encode_instruction(["add", "x1", "x2", "x3"], 0, {})
    assert ok.word == 0x003100B3
    assert ok.error is None

    bad = encode_instruction(["jal", "x1", "nowhere"], 0, {})
    assert bad.word is None
    assert isinstance(bad.error, UndefinedLabel)
    assert "nowhere" in str(bad.error)
