#! /usr/bin/env python3

# © 2025 Unit Circle Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# An implementation of zbase32
# See: https://philzimmermann.com/docs/human-oriented-base-32-encoding.txt
#
# Which is based on RFC3548
# See: https://datatracker.ietf.org/doc/html/rfc3548
#
# Uses a modified character set to improve readability.  Bits are taken most
# significant first, so a prefix of an encoding is an encoding of a prefix of
# the data.
#
# Both directions can work on an exact number of bits rather than whole bytes
# or whole characters.  Without a bit count, encode pads the final character
# with zero bits and decode drops the trailing bits that do not make up a
# whole byte.
#
# Result of encode is URL safe.
#
# Example usage:
# echo -n peter | ./zbase32.py encode
# echo qb1ze3m1 | ./zbase32.py decode

import argparse
import logging
import sys

ALPHABET = "ybndrfg8ejkmcpqxot1uwisza345h769"
rev_alphabet = {k: v for v, k in enumerate(ALPHABET)}


class Error(ValueError):
    pass


class InvalidCharacter(Error):
    def __init__(self, char, position):
        super().__init__(f"invalid zbase32 character {char!r} at position {position}")
        self.char = char
        self.position = position


class InvalidPadding(Error):
    def __init__(self, bits):
        super().__init__(f"non-zero padding in {bits} discarded bits")
        self.bits = bits


def _text(s):
    # bytes are taken one character per byte so anything outside ASCII
    # ends up reported as an invalid character
    if isinstance(s, (bytes, bytearray, memoryview)):
        return bytes(s).decode("latin-1")
    return s


def encode(data, bits=None):
    """Encode the first `bits` bits of `data` (all of it by default).

    Returns ceil(bits / 5) characters.  The last character is padded with
    zero bits and any bits of `data` past `bits` are ignored.
    """
    b = bytes(data)
    nbits_in = len(b) * 8
    if bits is None:
        bits = nbits_in
    elif bits < 0 or bits > nbits_in:
        raise ValueError(f"bits({bits}) out of range for {len(b)} bytes")

    r = []
    v = 0
    nbits = 0
    i = 0
    for _ in range((bits + 4) // 5):
        if nbits < 5:
            # past the end of data shift in zeros
            v = (v << 8) | (b[i] if i < len(b) else 0)
            i += 1
            nbits += 8
        nbits -= 5
        r.append((v >> nbits) & 0x1F)
        v &= (1 << nbits) - 1

    extra = -bits % 5
    if extra:
        r[-1] &= (0x1F << extra) & 0x1F
    return "".join(ALPHABET[x] for x in r)


def decode(s, bits=None, strict=False):
    """Decode zbase32 text.

    By default decodes as many whole bytes as the text holds.  With `bits`
    returns ceil(bits / 8) bytes holding exactly the first `bits` bits.

    Bits that are dropped are expected to be zero but are only checked when
    `strict` is set, in which case InvalidPadding is raised.  Every character
    is checked, InvalidCharacter is raised for the first one not in the
    alphabet.
    """
    s = _text(s)
    total = len(s) * 5
    if bits is None:
        bits = total - total % 8
    elif bits < 0 or bits > total:
        raise ValueError(f"bits({bits}) out of range for {len(s)} characters")

    b = bytearray()
    v = 0
    nbits = 0
    for pos, c in enumerate(s):
        d = rev_alphabet.get(c)
        if d is None:
            raise InvalidCharacter(c, pos)
        v = (v << 5) | d
        nbits += 5
        if nbits >= 8:
            nbits -= 8
            b.append(v >> nbits)
            v &= (1 << nbits) - 1

    # v now holds the nbits (< 8) left over after the last whole byte
    nbytes = (bits + 7) // 8
    if nbytes > len(b):
        keep = bits - len(b) * 8
        dropped = v & ((1 << (nbits - keep)) - 1)
        b.append(((v >> (nbits - keep)) << (8 - keep)) & 0xFF)
    else:
        dropped = v or any(b[nbytes:])
        del b[nbytes:]
        if bits % 8:
            mask = (0xFF << (8 - bits % 8)) & 0xFF
            dropped = dropped or b[-1] & ~mask
            b[-1] &= mask

    if strict and dropped:
        raise InvalidPadding(total - bits)
    return bytes(b)


def validate(s):
    s = _text(s)
    return all(c in rev_alphabet for c in s)


def _read(args):
    if args.input:
        with open(args.input, "rb") as f:
            return f.read()
    return sys.stdin.buffer.read()


def cmd_encode(args):
    data = _read(args)
    logging.debug(f"encoding {len(data)} bytes, bits={args.bits}")
    sys.stdout.write(encode(data, args.bits) + "\n")


def cmd_decode(args):
    text = _read(args).strip()
    logging.debug(f"decoding {len(text)} characters, bits={args.bits}")
    data = decode(text, args.bits, strict=args.strict)
    sys.stdout.buffer.write(data)
    sys.stdout.flush()


def cmd_validate(args):
    text = _read(args).strip()
    ok = validate(text)
    logging.debug(f"validated {len(text)} characters: {ok}")
    return 0 if ok else 1


def bit_count(string):
    # takes a non-negative integer bit count
    # otherwise raises an argument error
    try:
        n = int(string)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid bit count({string})")
    if n < 0:
        raise argparse.ArgumentTypeError(f"invalid bit count({n}) - must be >= 0")
    return n


def parser():
    p = argparse.ArgumentParser("zbase32")
    p.add_argument("--debug", action="store_true", help="debug output")

    sub = p.add_subparsers(required=True, dest="cmd")
    sp = sub.add_parser("encode", help="encode raw bytes to zbase32 text")
    sp.add_argument("-i", "--input", help="read from [INPUT] instead of stdin")
    sp.add_argument("-b", "--bits", type=bit_count, help="only encode the first [BITS] bits")
    sp.set_defaults(func=cmd_encode)

    sp = sub.add_parser("decode", help="decode zbase32 text to raw bytes")
    sp.add_argument("-i", "--input", help="read from [INPUT] instead of stdin")
    sp.add_argument("-b", "--bits", type=bit_count, help="only decode the first [BITS] bits")
    sp.add_argument(
        "-s",
        "--strict",
        action="store_true",
        help="reject input whose discarded padding bits are not zero",
    )
    sp.set_defaults(func=cmd_decode)

    sp = sub.add_parser("validate", help="exit with 0 if input is valid zbase32 text")
    sp.add_argument("-i", "--input", help="read from [INPUT] instead of stdin")
    sp.set_defaults(func=cmd_validate)
    return p


def main(argv=None):
    args = parser().parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr, level=logging.DEBUG if args.debug else logging.WARNING
    )
    try:
        return args.func(args) or 0
    except ValueError as e:
        logging.debug(f"{args.cmd} failed", exc_info=1)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
