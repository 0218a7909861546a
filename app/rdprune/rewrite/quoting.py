"""Path quoting used by the record grammars.

Mirror metadata and file statistics escape only backslash and newline.
ACL and extended attribute markers octal-escape every byte outside visible
ASCII, plus backslash and "=". Both work byte by byte and leave "/"
untouched.
"""

_OCTAL_RESERVED = frozenset(b"\\=")


def to_bytes(text: str) -> bytes:
    """Encode a name losslessly (undecodable bytes survive via surrogateescape)."""
    return text.encode("utf-8", "surrogateescape")


def from_bytes(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


def quote_metadata_path(name: str) -> str:
    """Quote a name the way mirror_metadata and file_statistics store it."""
    return name.replace("\\", "\\\\").replace("\n", "\\n")


def unquote_metadata_path(quoted: str) -> str:
    """Inverse of quote_metadata_path()."""
    out: list[str] = []
    i = 0
    while i < len(quoted):
        char = quoted[i]
        if char == "\\" and i + 1 < len(quoted):
            nxt = quoted[i + 1]
            if nxt == "n":
                out.append("\n")
                i += 2
                continue
            if nxt == "\\":
                out.append("\\")
                i += 2
                continue
        out.append(char)
        i += 1
    return "".join(out)


def quote_acl_path(name: str) -> str:
    """Quote a name the way "# file:" markers store it."""
    out: list[str] = []
    for byte in to_bytes(name):
        if byte <= 32 or byte > 126 or byte in _OCTAL_RESERVED:
            out.append(f"\\{byte:03o}")
        else:
            out.append(chr(byte))
    return "".join(out)


def display_name(name: str) -> str:
    """Human readable single-line form of a name (backslash escapes)."""
    return quote_metadata_path(name)
