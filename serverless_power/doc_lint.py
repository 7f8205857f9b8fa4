"""Lint steering files and the power manifest.

Rules:
    fence-language    code fence opened without a language (error)
    fence-unclosed    code fence never closed (error)
    broken-reference  referenced .md file does not exist (error)
    yaml-invalid      fenced yaml block does not parse (warning)
    json-invalid      fenced json block does not parse (warning)
    unknown-tool      backticked sam_/esm_ name not in the tool catalog (warning)
    manifest          POWER.md metadata or mcp.json descriptor problem (error)
    manifest-missing  POWER.md or mcp.json absent (error)
"""
import json
import os
import re

import yaml

from serverless_power.errors import ManifestError
from serverless_power.manifest import MCP_CONFIG_FILE, POWER_FILE, find_serverless_server, finding, load_power
from serverless_power.steering import STEERING_DIR
from serverless_power.tool_catalog import TOOLS, tool_names_in_text

_FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})(.*)$")
_LINK_RE = re.compile(r"\[[^\]]*\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
_CODE_REF_RE = re.compile(r"`([\w./-]+\.md)`")
_EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "ftp://")
YAML_LANGS = ("yaml", "yml")
JSON_LANGS = ("json",)


class CfnYamlLoader(yaml.SafeLoader):
    """SafeLoader that understands CloudFormation short-form intrinsics (!Ref, !Sub, ...)."""


def _construct_cfn_tag(loader, tag_suffix, node):
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    if tag_suffix == "Ref":
        return {"Ref": value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    return {f"Fn::{tag_suffix}": value}


CfnYamlLoader.add_multi_constructor("!", _construct_cfn_tag)


def parse_cfn_yaml(text):
    """Parse YAML that may use CloudFormation short-form tags."""
    return yaml.load(text, Loader=CfnYamlLoader)


def _code_blocks(lines):
    """Yield (start_line, lang, body_lines, closed, end_line) for each fenced block."""
    open_fence = None
    for lineno, line in enumerate(lines, start=1):
        m = _FENCE_RE.match(line)
        if open_fence is None:
            if m:
                info = m.group(2).strip()
                open_fence = {"marker": m.group(1), "line": lineno, "lang": info.split()[0].lower() if info else "",
                              "body": []}
            continue
        marker = open_fence["marker"]
        if m and m.group(1)[0] == marker[0] and len(m.group(1)) >= len(marker) and not m.group(2).strip():
            yield open_fence["line"], open_fence["lang"], open_fence["body"], True, lineno
            open_fence = None
        else:
            open_fence["body"].append(line)
    if open_fence is not None:
        yield open_fence["line"], open_fence["lang"], open_fence["body"], False, len(lines)


def _resolve_reference(target, file_dir, root):
    candidates = [
        os.path.join(file_dir, target),
        os.path.join(root, target),
        os.path.join(root, STEERING_DIR, target),
    ]
    return any(os.path.isfile(os.path.normpath(c)) for c in candidates)


def _references(line):
    for m in _LINK_RE.finditer(line):
        target = m.group(1)
        if target.startswith(_EXTERNAL_PREFIXES) or target.startswith("#"):
            continue
        target = target.split("#", 1)[0]
        if target.endswith(".md"):
            yield target
    for m in _CODE_REF_RE.finditer(line):
        yield m.group(1)


def lint_text(text, rel_path, file_dir, root):
    """Lint one Markdown document. ``rel_path`` is what findings report as the file."""
    findings = []
    lines = text.splitlines()
    in_code = set()
    for start, lang, body, closed, end in _code_blocks(lines):
        in_code.update(range(start, end + 1))
        if not lang:
            findings.append(finding("fence-language", "error", rel_path, start,
                                    "Code fence has no language"))
        if not closed:
            findings.append(finding("fence-unclosed", "error", rel_path, start,
                                    "Code fence is never closed"))
            continue
        content = "\n".join(body)
        if lang in YAML_LANGS:
            try:
                parse_cfn_yaml(content)
            except yaml.YAMLError as e:
                findings.append(finding("yaml-invalid", "warning", rel_path, start,
                                        f"YAML block does not parse: {str(e).splitlines()[0]}"))
        elif lang in JSON_LANGS and "..." not in content:
            try:
                json.loads(content)
            except json.JSONDecodeError as e:
                findings.append(finding("json-invalid", "warning", rel_path, start,
                                        f"JSON block does not parse: {e.msg} (block line {e.lineno})"))

    # Blank out fenced lines so prose checks keep their line numbers.
    prose = [("" if i in in_code else line) for i, line in enumerate(lines, start=1)]
    for lineno, line in enumerate(prose, start=1):
        for target in _references(line):
            if not _resolve_reference(target, file_dir, root):
                findings.append(finding("broken-reference", "error", rel_path, lineno,
                                        f"Referenced file '{target}' does not exist"))
    for name, lineno in tool_names_in_text("\n".join(prose)):
        if name not in TOOLS:
            findings.append(finding("unknown-tool", "warning", rel_path, lineno,
                                    f"'{name}' is not a documented serverless tool"))
    return findings


def lint_file(path, root):
    """Lint one Markdown file inside the power directory ``root``."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    rel_path = os.path.relpath(path, root).replace(os.sep, "/")
    return lint_text(text, rel_path, os.path.dirname(path), root)


def _power_files(power_dir):
    files = []
    if os.path.isfile(os.path.join(power_dir, POWER_FILE)):
        files.append(os.path.join(power_dir, POWER_FILE))
    steering_dir = os.path.join(power_dir, STEERING_DIR)
    if os.path.isdir(steering_dir):
        files.extend(os.path.join(steering_dir, n) for n in sorted(os.listdir(steering_dir)) if n.endswith(".md"))
    return files


def lint_manifest(power_dir):
    """Manifest findings: missing files, unparseable files, invalid metadata or descriptors."""
    missing = [name for name in (POWER_FILE, MCP_CONFIG_FILE)
               if not os.path.isfile(os.path.join(power_dir, name))]
    if missing:
        return [finding("manifest-missing", "error", name, None, f"{name} not found") for name in missing]
    try:
        power = load_power(power_dir)
    except ManifestError as e:
        file = MCP_CONFIG_FILE if MCP_CONFIG_FILE in str(e) else POWER_FILE
        return [finding("manifest", "error", file, None, str(e))]
    findings = list(power["findings"])
    try:
        find_serverless_server(power["servers"])
    except ManifestError as e:
        findings.append(finding("manifest", "error", MCP_CONFIG_FILE, None, str(e)))
    return findings


def lint_power(power_dir):
    """Lint the manifest and every Markdown file of a power directory."""
    root = os.path.abspath(power_dir)
    files = _power_files(root)
    findings = lint_manifest(root)
    for path in files:
        findings.extend(lint_file(path, root))
    errors = sum(1 for f in findings if f["severity"] == "error")
    warnings = sum(1 for f in findings if f["severity"] == "warning")
    return {
        "power_dir": root,
        "files": [os.path.relpath(p, root).replace(os.sep, "/") for p in files],
        "findings": findings,
        "errors": errors,
        "warnings": warnings,
        "ok": errors == 0,
    }
