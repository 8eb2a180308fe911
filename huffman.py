import heapq
import itertools
import os
from typing import Dict, List, Optional, Tuple

from bitstream import CorruptStreamError, InputBitStream, OutputBitStream

PSEUDO_EOF = 256 # end-of-stream sentinel, always in the table with count 1
INTERNAL_MARKER = 257 # character of every merge node
COMPRESSED_SUFFIX = ".huf"
DECOMPRESSED_TAG = "_unc"
CHUNK_SIZE = 4096

__all__ = [
    "CorruptStreamError", "HuffmanNode", "PSEUDO_EOF", "INTERNAL_MARKER",
    "build_frequency_map", "build_encoding_tree", "build_encoding_map",
    "encode", "decode", "compress", "decompress", "decompressed_name",
    "weighted_path_length", "code_table",
]


class HuffmanNode: # Node for Huffman tree
    def __init__(self, character, count, zero=None, one=None):
        self.character = character # byte value, PSEUDO_EOF, or INTERNAL_MARKER
        self.count = count
        self.zero = zero
        self.one = one

    @property
    def is_leaf(self) -> bool:
        return self.character != INTERNAL_MARKER

    def __repr__(self):
        if self.is_leaf:
            return f"HuffmanNode({self.character}, {self.count})"
        return f"HuffmanNode(internal, {self.count}, {self.zero!r}, {self.one!r})"


def _iter_bytes(source):
    # yields bytes in order from a binary file object or a bytes-like value
    if hasattr(source, "read"):
        while True:
            chunk = source.read(CHUNK_SIZE)
            if not chunk:
                return
            yield from chunk
    else:
        if isinstance(source, str):
            source = source.encode("utf-8")
        yield from bytes(source)


def build_frequency_map(source, is_file: bool) -> Dict[int, int]:
    """
    Count every byte of source, then add the pseudo EOF entry
    source is a path when is_file is True, otherwise bytes (or str, as UTF-8)
    """
    frequency_map: Dict[int, int] = {}
    if is_file:
        with open(source, "rb") as f:
            for b in _iter_bytes(f):
                frequency_map[b] = frequency_map.get(b, 0) + 1
    else:
        for b in _iter_bytes(source):
            frequency_map[b] = frequency_map.get(b, 0) + 1
    frequency_map[PSEUDO_EOF] = 1
    return frequency_map


def build_encoding_tree(frequency_map: Dict[int, int]) -> HuffmanNode:
    """
    Greedy merge of the two lowest-count nodes until one root is left

    Equal counts pop in the order the nodes were pushed, so the same table
    (same entry order) always gives the same tree.
    """
    if not frequency_map:
        raise ValueError("cannot build a Huffman tree from an empty frequency map")

    order = itertools.count() # tie-break: first pushed, first popped
    priority_queue = [(count, next(order), HuffmanNode(symbol, count))
                      for symbol, count in frequency_map.items()]
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        _, _, first = heapq.heappop(priority_queue)
        _, _, second = heapq.heappop(priority_queue)
        merged = HuffmanNode(INTERNAL_MARKER, first.count + second.count, first, second)
        heapq.heappush(priority_queue, (merged.count, next(order), merged))

    return priority_queue[0][2] # root of the tree


def build_encoding_map(tree: HuffmanNode) -> Dict[int, str]:
    encoding_map: Dict[int, str] = {}

    def walk(node, path): # path is the root-to-node bit string
        if node.is_leaf:
            encoding_map[node.character] = path
            return
        walk(node.zero, path + "0")
        walk(node.one, path + "1")

    walk(tree, "")
    return encoding_map


def encode(source, encoding_map: Dict[int, str], output: Optional[OutputBitStream] = None,
           make_file: bool = False) -> Tuple[str, int]:
    """
    Encode every byte of source followed by the pseudo EOF code
    Returns (bit string, number of bits); also writes the bits to output when make_file is set
    """
    pieces: List[str] = []
    size = 0
    for b in _iter_bytes(source):
        code = encoding_map.get(b)
        if code is None:
            raise ValueError(f"no Huffman code for symbol {b}")
        pieces.append(code)
        size += len(code)
    eof_code = encoding_map.get(PSEUDO_EOF)
    if eof_code is None:
        raise ValueError("no Huffman code for the end-of-stream symbol")
    pieces.append(eof_code)
    size += len(eof_code)
    result = "".join(pieces)

    if make_file:
        if output is None:
            raise ValueError("make_file requires an output bit stream")
        for ch in result:
            output.write_bit(0 if ch == "0" else 1)
    return result, size


def decode(input: InputBitStream, tree: HuffmanNode, output=None) -> bytes:
    """
    Walk the tree bit by bit, emitting a byte at every leaf, until the pseudo EOF leaf
    output is an optional binary file object that receives each byte as it is decoded
    """
    if tree.is_leaf and tree.character != PSEUDO_EOF:
        raise ValueError("tree has no end-of-stream leaf")

    decoded = bytearray()
    node = tree
    while True:
        if node.is_leaf:
            if node.character == PSEUDO_EOF:
                return bytes(decoded)
            decoded.append(node.character)
            if output is not None:
                output.write(bytes((node.character,)))
            node = tree # reset to root for the next symbol
            continue

        bit = input.read_bit()
        if bit is None:
            raise CorruptStreamError(
                f"bit stream ended before end-of-stream code ({len(decoded)} bytes decoded)")
        node = node.one if bit else node.zero


def decompressed_name(filename: str) -> str:
    """example.txt.huf -> example_unc.txt"""
    if not filename.endswith(COMPRESSED_SUFFIX):
        raise ValueError(f"{filename} does not end with {COMPRESSED_SUFFIX}")
    base, ext = os.path.splitext(filename[:-len(COMPRESSED_SUFFIX)])
    return base + DECOMPRESSED_TAG + ext


def compress(filename: str) -> str:
    """
    Compress filename into filename + ".huf" (frequency table header, then code bits)
    Returns the bit string that was written
    """
    frequency_map = build_frequency_map(filename, True)
    encoding_tree = build_encoding_tree(frequency_map)
    encoding_map = build_encoding_map(encoding_tree)

    out_name = filename + COMPRESSED_SUFFIX
    with OutputBitStream(out_name) as output, open(filename, "rb") as input_file:
        try:
            output.write_frequency_map(frequency_map)
            result, _ = encode(input_file, encoding_map, output, make_file=True)
        except Exception:
            output.abort() # no half-written .huf left behind
            os.unlink(out_name)
            raise
    return result


def decompress(filename: str) -> bytes:
    """
    Reverse compress(): read the header, rebuild the tree and decode into
    decompressed_name(filename). Returns the decoded bytes
    """
    output_name = decompressed_name(filename)
    with InputBitStream(filename) as input:
        frequency_map = input.read_frequency_map()
        encoding_tree = build_encoding_tree(frequency_map)
        with open(output_name, "wb") as output:
            try:
                return decode(input, encoding_tree, output)
            except Exception:
                output.close()
                os.unlink(output_name)
                raise


def weighted_path_length(frequency_map: Dict[int, int], encoding_map: Dict[int, str]) -> int:
    # total encoded bits for a source with exactly these counts
    return sum(count * len(encoding_map[symbol]) for symbol, count in frequency_map.items())


special_ascii = {0: "NULL", 9: "TAB", 10: "LF", 13: "CR", 32: "SPACE", 127: "DEL", PSEUDO_EOF: "EOF"}

def display_symbol(symbol: int) -> str:
    if 32 < symbol < 127:
        return repr(chr(symbol))
    return special_ascii.get(symbol, "")


def code_table(frequency_map: Dict[int, int], encoding_map: Dict[int, str]) -> List[Tuple[int, str, int, str]]:
    """Rows of (symbol, display, count, code), most frequent first"""
    symbols = sorted(encoding_map, key=lambda s: (-frequency_map[s], s))
    return [(s, display_symbol(s), frequency_map[s], encoding_map[s]) for s in symbols]
