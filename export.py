# Renderers for assembled machine words (8-digit hex strings). The words
# are written out as given, without validation.

MIF_HEADER = (
    "DEPTH = 256;\n"
    "WIDTH = 32;\n"
    "ADDRESS_RADIX = HEX;\n"
    "DATA_RADIX = HEX;\n"
    "CONTENT\n"
    "BEGIN\n"
)


def to_hex_listing(words):
    return "\n".join(words)


def to_mif(words):
    content = MIF_HEADER
    for index, word in enumerate(words):
        if word.strip() == "":
            continue
        # the address column is the word index, not the byte address
        content += "{:X} : {};\n".format(index, word)
    content += "END;\n"
    return content


def to_binary_listing(words):
    return "\n".join(format(int(word, 16), "032b") for word in words)


FORMATS = {
    "hex": to_hex_listing,
    "mif": to_mif,
    "bin": to_binary_listing
}


def render(words, fmt="hex"):
    return FORMATS[fmt](words)


def write_output(words, output_file, fmt="hex"):
    text = render(words, fmt)
    if text and not text.endswith("\n"):
        text += "\n"
    with open(output_file, "w") as f:
        f.write(text)
