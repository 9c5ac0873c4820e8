"""
protolator command line
=======================

Translate between binary protobuf messages and deep JSON::

    protolator decode --descriptor-set app.pb --type app.Envelope < env.bin > env.json
    protolator encode --descriptor-set app.pb --type app.Envelope < env.json > env.bin

``app.pb`` is a FileDescriptorSet (``protoc --include_imports -o app.pb ...``).
"""
from __future__ import annotations

import argparse
import io
import os
import sys
from pathlib import Path
from typing import List, Optional, Type

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError, Message

from protolator.deterministic import mostly_deterministic_marshal
from protolator.engine import deep_marshal_json, deep_unmarshal_json
from protolator.errors import ProtolatorError
from protolator_shared.env_loader import load_env_file
from protolator_shared.logging_setup import env_flag, get_logger, setup_logging

_LOG = get_logger(__name__)


def load_message_class(descriptor_set: Path, type_name: str) -> Type[Message]:
    fds = descriptor_pb2.FileDescriptorSet()
    try:
        fds.ParseFromString(descriptor_set.read_bytes())
    except DecodeError as exc:
        raise ProtolatorError(f"{descriptor_set}: not a FileDescriptorSet: {exc}") from exc

    pool = descriptor_pool.DescriptorPool()
    for file_proto in fds.file:
        pool.AddSerializedFile(file_proto.SerializeToString())
    try:
        descriptor = pool.FindMessageTypeByName(type_name)
    except KeyError as exc:
        raise ProtolatorError(f"unknown message type {type_name} in {descriptor_set}") from exc
    _LOG.debug("Loaded %s from %s (%d files)", type_name, descriptor_set, len(fds.file))
    return message_factory.GetMessageClass(descriptor)


def _read_input(path: Optional[str]) -> bytes:
    if path in (None, "-"):
        return sys.stdin.buffer.read()
    return Path(path).read_bytes()


def _write_output(path: Optional[str], data: bytes) -> None:
    if path in (None, "-"):
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    Path(path).write_bytes(data)


def _decode(args: argparse.Namespace, msg_cls: Type[Message]) -> bytes:
    msg = msg_cls()
    raw = _read_input(args.input)
    try:
        msg.ParseFromString(raw)
    except DecodeError as exc:
        raise ProtolatorError(f"{msg.DESCRIPTOR.full_name}: {exc}") from exc
    buf = io.BytesIO()
    indent = env_flag("PROTOLATOR_JSON_INDENT") and not args.compact
    deep_marshal_json(buf, msg, indent=indent)
    return buf.getvalue()


def _encode(args: argparse.Namespace, msg_cls: Type[Message]) -> bytes:
    msg = msg_cls()
    deep_unmarshal_json(io.BytesIO(_read_input(args.input)), msg)
    return mostly_deterministic_marshal(msg)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser("protolator", description="Deep protobuf <-> JSON translator")
    p.add_argument("--env-file", default=os.getenv("PROTOLATOR_ENV_FILE"),
                   help=".env file with defaults (existing variables win)")
    p.add_argument("--verbose", "-v", action="store_true", help="log at DEBUG")
    sub = p.add_subparsers(dest="command", required=True)

    for name, helptext in (("decode", "binary message -> JSON"), ("encode", "JSON -> binary message")):
        sp = sub.add_parser(name, help=helptext)
        sp.add_argument("--descriptor-set", required=True, type=Path)
        sp.add_argument("--type", required=True, dest="type_name",
                        help="fully-qualified message name, e.g. common.Envelope")
        sp.add_argument("--input", "-i", default=None)
        sp.add_argument("--output", "-o", default=None)
        if name == "decode":
            sp.add_argument("--compact", action="store_true",
                            help="single-line JSON (also PROTOLATOR_JSON_INDENT=0)")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_env_file(args.env_file)
    setup_logging(env="debug" if args.verbose else None)

    try:
        msg_cls = load_message_class(args.descriptor_set, args.type_name)
        if args.command == "decode":
            data = _decode(args, msg_cls)
        else:
            data = _encode(args, msg_cls)
        _write_output(args.output, data)
    except (ProtolatorError, OSError) as exc:
        _LOG.error("%s failed: %s", args.command, exc)
        return 1

    _LOG.debug("%s of %s done (%d bytes)", args.command, args.type_name, len(data))
    return 0
