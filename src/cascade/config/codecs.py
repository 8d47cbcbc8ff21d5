"""Decoders turning descriptor bytes into nested configuration trees."""

from __future__ import annotations

import io
import json
import shlex
import xml.etree.ElementTree as ET
from collections.abc import Callable
from datetime import date

import yaml
from dotenv import dotenv_values
from result import Err, Ok, Result

from cascade.common import create_logger
from cascade.utils import set_path
from cascade.utils.types import Tree

from .models import CodecError, DecodeError, Descriptor, UnsupportedFormatError

logger = create_logger("config.codecs")

type Codec = Callable[[bytes], Tree]
type Decoder = Callable[[Descriptor], Result[Tree, CodecError]]


def decode(descriptor: Descriptor) -> Result[Tree, CodecError]:
    """Decode a descriptor with the codec registered for its format."""
    codec = CODECS.get(descriptor.format)
    if codec is None:
        return Err(
            UnsupportedFormatError(
                name=descriptor.name,
                format=descriptor.format,
                message=f"Unsupported format '{descriptor.format}' for '{descriptor.name}'.",
            )
        )

    try:
        tree = codec(descriptor.data)
    except (ValueError, TypeError, yaml.YAMLError, ET.ParseError) as exc:
        logger.warning("Descriptor decode failed", name=descriptor.name, format=descriptor.format, error=str(exc))
        return Err(
            DecodeError(
                name=descriptor.name,
                format=descriptor.format,
                message=f"Failed to decode '{descriptor.name}' as {descriptor.format}: {exc}",
            )
        )

    return Ok(tree)


def decode_json(data: bytes) -> Tree:
    parsed = json.loads(data) if data.strip() else {}
    return _require_mapping(parsed, "json")


def decode_yaml(data: bytes) -> Tree:
    parsed = yaml.safe_load(data)
    if parsed is None:
        return {}
    return _normalize_yaml(_require_mapping(parsed, "yaml"))


def decode_xml(data: bytes) -> Tree:
    root = ET.fromstring(data)
    node = _element_to_node(root)
    if isinstance(node, dict):
        return node
    return {root.tag: node}


def decode_env(data: bytes) -> Tree:
    """Decode env lines; ``SERVICE_NAME=x`` becomes ``{"service": {"name": "x"}}``."""
    tree: Tree = {}
    for key, value in dotenv_values(stream=io.StringIO(data.decode("utf-8")), interpolate=False).items():
        if value is None:
            continue
        segments = [segment for segment in key.lower().split("_") if segment]
        if not segments:
            continue
        set_path(tree, segments, value)
    return tree


def decode_flag(data: bytes) -> Tree:
    """Decode a shell-quoted argument vector of ``--dotted.key=value`` flags."""
    tree: Tree = {}
    args = shlex.split(data.decode("utf-8"))
    index = 0
    while index < len(args):
        arg = args[index]
        index += 1
        if not arg.startswith("-") or arg in ("-", "--"):
            continue

        name = arg.lstrip("-")
        if "=" in name:
            name, value = name.split("=", 1)
        elif index < len(args) and not args[index].startswith("-"):
            value = args[index]
            index += 1
        else:
            value = "true"

        segments = name.split(".")
        if any(not segment for segment in segments):
            logger.debug("Skipping malformed flag", flag=arg)
            continue
        set_path(tree, segments, value)
    return tree


CODECS: dict[str, Codec] = {
    "env": decode_env,
    "flag": decode_flag,
    "json": decode_json,
    "xml": decode_xml,
    "yaml": decode_yaml,
    "yml": decode_yaml,
}

SUPPORTED_FORMATS: tuple[str, ...] = tuple(CODECS)


def format_from_filename(filename: str) -> str:
    _, dot, extension = filename.rpartition(".")
    return extension if dot else ""


def _require_mapping(parsed: object, format: str) -> Tree:
    if not isinstance(parsed, dict):
        raise ValueError(f"{format} document root must be a mapping of keys to values")
    return parsed


def _normalize_yaml(node: object) -> object:
    """Stringify keys and timestamps so the tree only holds JSON-compatible scalars."""
    if isinstance(node, dict):
        return {str(key): _normalize_yaml(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_normalize_yaml(item) for item in node]
    if isinstance(node, date):
        return node.isoformat()
    return node


def _element_to_node(element: ET.Element) -> object:
    children = list(element)
    text = (element.text or "").strip()
    if not children and not element.attrib:
        return text

    node: Tree = dict(element.attrib)
    for child in children:
        value = _element_to_node(child)
        if child.tag not in node:
            node[child.tag] = value
            continue
        existing = node[child.tag]
        if isinstance(existing, list):
            existing.append(value)
        else:
            node[child.tag] = [existing, value]

    if text:
        node["#text"] = text
    return node
