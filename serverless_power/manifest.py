"""POWER.md frontmatter and mcp.json connection descriptor."""
import json
import os
import re

import yaml

from serverless_power.errors import ManifestError

POWER_FILE = "POWER.md"
MCP_CONFIG_FILE = "mcp.json"

SERVERLESS_PACKAGE = "awslabs.aws-serverless-mcp-server"
ALLOW_WRITE_FLAG = "--allow-write"
ALLOW_SENSITIVE_FLAG = "--allow-sensitive-data-access"
# Order in which mode flags are appended to a launch command.
MODE_FLAGS = (ALLOW_WRITE_FLAG, ALLOW_SENSITIVE_FLAG)
REQUIRED_ENV = ("AWS_PROFILE", "AWS_REGION")

REQUIRED_METADATA = ("name", "displayName", "description", "keywords", "author")
_KEBAB_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def finding(rule, severity, file, line, message):
    """One lint/validation finding. Shared by the manifest checks and doc_lint."""
    return {"rule": rule, "severity": severity, "file": file, "line": line, "message": message}


def parse_frontmatter(text: str):
    """Split a leading ``---`` YAML block from a Markdown document.

    Returns (metadata, body). A document without frontmatter yields ({}, text).
    Raises ManifestError when the block is unterminated, not YAML, or not a mapping.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].lstrip("\ufeff").strip() != "---":
        return {}, text
    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() in ("---", "..."):
            end = i
            break
    if end is None:
        raise ManifestError("Frontmatter starts with '---' but is never closed")
    raw = "".join(lines[1:end])
    try:
        meta = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ManifestError(f"Frontmatter is not valid YAML: {e}") from e
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ManifestError(f"Frontmatter must be a mapping, got {type(meta).__name__}")
    return meta, "".join(lines[end + 1:])


def validate_metadata(meta, file=POWER_FILE):
    """Check required power metadata keys and their shapes."""
    findings = []
    for key in REQUIRED_METADATA:
        value = meta.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            findings.append(finding("manifest", "error", file, 1, f"Missing required metadata key '{key}'"))
    name = meta.get("name")
    if isinstance(name, str) and name.strip() and not _KEBAB_RE.match(name):
        findings.append(finding("manifest", "error", file, 1, f"Power name '{name}' must be kebab-case"))
    elif name is not None and not isinstance(name, str):
        findings.append(finding("manifest", "error", file, 1, "Power name must be a string"))
    keywords = meta.get("keywords")
    if keywords is not None:
        if not isinstance(keywords, list) or not keywords:
            findings.append(finding("manifest", "error", file, 1, "'keywords' must be a non-empty list"))
        elif not all(isinstance(k, str) and k.strip() for k in keywords):
            findings.append(finding("manifest", "error", file, 1, "'keywords' entries must be non-empty strings"))
    return findings


def load_mcp_config(power_dir):
    """Read mcp.json and return its ``mcpServers`` mapping."""
    path = os.path.join(power_dir, MCP_CONFIG_FILE)
    if not os.path.isfile(path):
        raise ManifestError(f"{MCP_CONFIG_FILE} not found in {power_dir}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            doc = json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestError(f"{MCP_CONFIG_FILE} is not valid JSON: {e}") from e
    servers = doc.get("mcpServers") if isinstance(doc, dict) else None
    if not isinstance(servers, dict) or not servers:
        raise ManifestError(f"{MCP_CONFIG_FILE} must contain a non-empty 'mcpServers' object")
    return servers


def _is_serverless(name, descriptor):
    args = descriptor.get("args") if isinstance(descriptor, dict) else None
    if isinstance(args, list) and any(isinstance(a, str) and a.startswith(SERVERLESS_PACKAGE) for a in args):
        return True
    return "serverless" in name


def validate_server_descriptor(name, descriptor, file=MCP_CONFIG_FILE):
    """Check one mcpServers entry. The serverless server gets package and env checks too."""
    findings = []
    if not isinstance(descriptor, dict):
        return [finding("manifest", "error", file, None, f"Server '{name}' must be an object")]
    command = descriptor.get("command")
    if not isinstance(command, str) or not command.strip():
        findings.append(finding("manifest", "error", file, None, f"Server '{name}' needs a 'command' string"))
    args = descriptor.get("args", [])
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        findings.append(finding("manifest", "error", file, None, f"Server '{name}' 'args' must be a list of strings"))
        args = []
    env = descriptor.get("env", {})
    if not isinstance(env, dict) or not all(isinstance(v, str) for v in env.values()):
        findings.append(finding("manifest", "error", file, None, f"Server '{name}' 'env' must map names to strings"))
        env = {}
    if _is_serverless(name, descriptor):
        if not any(a == SERVERLESS_PACKAGE or a.startswith(SERVERLESS_PACKAGE + "@") for a in args):
            findings.append(finding("manifest", "error", file, None,
                                    f"Server '{name}' does not launch {SERVERLESS_PACKAGE}"))
        for key in REQUIRED_ENV:
            if key not in env:
                findings.append(finding("manifest", "error", file, None,
                                        f"Server '{name}' env is missing {key}"))
    return findings


def find_serverless_server(servers):
    """Return (name, descriptor) of the serverless MCP server entry."""
    for name, descriptor in servers.items():
        if _is_serverless(name, descriptor):
            return name, descriptor
    raise ManifestError(f"No {SERVERLESS_PACKAGE} entry in mcpServers")


def load_power(power_dir):
    """Load POWER.md and mcp.json from a power directory.

    Returns:
        dict with path, metadata, body, servers and validation findings.
    """
    path = os.path.join(power_dir, POWER_FILE)
    if not os.path.isfile(path):
        raise ManifestError(f"{POWER_FILE} not found in {power_dir}")
    with open(path, "r", encoding="utf-8") as f:
        meta, body = parse_frontmatter(f.read())
    servers = load_mcp_config(power_dir)
    findings = validate_metadata(meta)
    for name, descriptor in servers.items():
        findings.extend(validate_server_descriptor(name, descriptor))
    return {
        "path": os.path.abspath(power_dir),
        "metadata": meta,
        "body": body,
        "servers": servers,
        "findings": findings,
    }


def server_modes(args):
    """Which permission modes a server argument list turns on."""
    args = args or []
    return {
        "allow_write": ALLOW_WRITE_FLAG in args,
        "allow_sensitive_data_access": ALLOW_SENSITIVE_FLAG in args,
    }


def build_launch_command(descriptor, allow_write=None, allow_sensitive_data_access=None,
                         profile=None, region=None):
    """Build the argv and environment that start the serverless MCP server.

    Args:
        descriptor: mcpServers entry (command, args, env).
        allow_write: True/False to force --allow-write on/off; None keeps the descriptor's choice.
        allow_sensitive_data_access: same for --allow-sensitive-data-access.
        profile: overrides AWS_PROFILE.
        region: overrides AWS_REGION.

    Returns:
        dict with argv, env and the resulting modes.
    """
    args = list(descriptor.get("args") or [])
    modes = server_modes(args)
    if allow_write is not None:
        modes["allow_write"] = bool(allow_write)
    if allow_sensitive_data_access is not None:
        modes["allow_sensitive_data_access"] = bool(allow_sensitive_data_access)

    argv = [descriptor["command"]]
    for arg in args:
        if arg in MODE_FLAGS:
            continue
        argv.append(arg)
    if modes["allow_write"]:
        argv.append(ALLOW_WRITE_FLAG)
    if modes["allow_sensitive_data_access"]:
        argv.append(ALLOW_SENSITIVE_FLAG)

    env = dict(descriptor.get("env") or {})
    if profile:
        env["AWS_PROFILE"] = profile
    if region:
        env["AWS_REGION"] = region
    return {"argv": argv, "env": env, **modes}
