"""
Command line front end for the Huffman compressor

How to run:
  python huf.py compress notes.txt          # writes notes.txt.huf
  python huf.py decompress notes.txt.huf    # writes notes_unc.txt
  python huf.py code notes.txt              # prints the code table
  python huf.py test notes.txt              # round trip, compare, clean up
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

import huffman as huff


def cmd_compress(path: str) -> int:
    bits = huff.compress(path)
    out_path = path + huff.COMPRESSED_SUFFIX
    original = os.path.getsize(path)
    compressed = os.path.getsize(out_path)
    print(f"Wrote {out_path}")
    print(f"Bits: {len(bits)} / {8 * original}")
    if original > 0:
        print(f"Ratio = {100.0 * compressed / original:6.2f}%")
    return 0


def cmd_decompress(path: str) -> int:
    data = huff.decompress(path)
    print(f"Wrote {huff.decompressed_name(path)} ({len(data)} bytes)")
    return 0


def cmd_code(path: str, limit: Optional[int]) -> int:
    ft = huff.build_frequency_map(path, True)
    code_map = huff.build_encoding_map(huff.build_encoding_tree(ft))
    rows = huff.code_table(ft, code_map)
    if limit is not None:
        rows = rows[:limit]

    print(" symbol     char       count     Huffman code")
    print(60 * "-")
    for symbol, disp, count, code in rows:
        print(f"{symbol:7d}     {disp:<8s} {count:9d}     {code}")
    print(f"Weighted path length: {huff.weighted_path_length(ft, code_map)} bits")
    return 0


def cmd_test(path: str, keep: bool) -> int:
    compressed = path + huff.COMPRESSED_SUFFIX
    out = huff.decompressed_name(compressed)
    try:
        huff.compress(path)
        data = huff.decompress(compressed)
        with open(path, "rb") as f:
            ok = f.read() == data
    finally:
        if not keep:
            for p in (compressed, out):
                if os.path.exists(p):
                    os.unlink(p)

    if ok:
        print(f"Round trip OK ({len(data)} bytes)")
        return 0
    print("Round trip MISMATCH", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman file compressor")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("compress", help="compress FILE into FILE.huf")
    p.add_argument("file")

    p = sub.add_parser("decompress", help="decompress NAME.EXT.huf into NAME_unc.EXT")
    p.add_argument("file")

    p = sub.add_parser("code", help="print the Huffman code computed for FILE")
    p.add_argument("file")
    p.add_argument("--limit", type=int, default=None, help="Only show the N most frequent symbols")

    p = sub.add_parser("test", help="compress, decompress and compare FILE")
    p.add_argument("file")
    p.add_argument("--keep", action="store_true", help="Keep the .huf and _unc files")

    args = ap.parse_args(argv)

    try:
        if args.command == "compress":
            return cmd_compress(args.file)
        if args.command == "decompress":
            return cmd_decompress(args.file)
        if args.command == "code":
            return cmd_code(args.file, args.limit)
        return cmd_test(args.file, args.keep)
    except (OSError, ValueError) as e: # CorruptStreamError is a ValueError
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
