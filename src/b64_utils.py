#!/usr/bin/env python
"""
Command line front end for heapless_base64.

Supported commands:

1. encode

    b64_utils.py encode -i data.bin -o data.b64

2. decode

    b64_utils.py decode -i data.b64 -o data.bin

Without -o the result goes to stdout. Messages go to stderr.

The input file is read in one go. The output is streamed out of the encoder/decoder
through a fixed size block, so there is never a second copy of the whole result.
Decoding is strict: no whitespace or newlines are allowed in the input.
"""

import sys
import argparse

from common_funcs import xprint, write_chunked
from heapless_base64 import Base64Decoder, Base64Encoder, Base64DecodeError

# Size of the block used to hand output to the writer
write_block_size = 4096


def read_file_bytes(fname: str) -> bytes:
    with open(fname, "rb") as reader:
        return reader.read()


def write_output(source: Base64Encoder | Base64Decoder, outfile: str | None) -> int:
    if outfile is None:
        count = write_chunked(source, sys.stdout.buffer, write_block_size)
        sys.stdout.buffer.flush()
        return count
    with open(outfile, "wb") as writer:
        return write_chunked(source, writer, write_block_size)


def process_encode_decode(kind: str, infile: str, outfile: str | None) -> None:
    """
    Encode or decode file based on the `kind`.
    """
    input_data = read_file_bytes(infile)
    if kind == "encode":
        source: Base64Encoder | Base64Decoder = Base64Encoder(input_data)
    elif kind == "decode":
        source = Base64Decoder(input_data)
    else:
        raise RuntimeError(f"Buggy! unknown {kind=}")
    count = write_output(source, outfile)
    xprint(f"Processed {infile}: {len(input_data)} => {count} bytes")


def handle_encode(args: argparse.Namespace) -> None:
    process_encode_decode("encode", args.input, args.output)


def handle_decode(args: argparse.Namespace) -> None:
    try:
        process_encode_decode("decode", args.input, args.output)
    except Base64DecodeError:
        xprint(f"Error while decoding file '{args.input}'")
        raise


def get_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    parser.set_defaults(func=lambda x: parser.print_help())
    subparsers = parser.add_subparsers()

    subparser = subparsers.add_parser("encode", help="encode a file to base64")
    subparser.set_defaults(func=handle_encode)
    opt = subparser.add_argument
    opt("-i", "--input", required=True, help="input file (any bytes)")
    opt("-o", "--output", default=None, help="output file (default: stdout)")

    subparser = subparsers.add_parser("decode", help="decode a base64 file")
    subparser.set_defaults(func=handle_decode)
    opt = subparser.add_argument
    opt("-i", "--input", required=True, help="input file (base64 text, no line breaks)")
    opt("-o", "--output", default=None, help="output file (default: stdout)")

    args = parser.parse_args(argv)
    return args


def main(argv: list[str] | None = None) -> int:
    args = get_args(argv)
    try:
        args.func(args)
    except Base64DecodeError as ex:
        xprint(f"Decode failed: {ex}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
