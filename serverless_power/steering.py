"""Steering files: list, read by name, split into sections, search."""
import os
import re
from collections import Counter

from serverless_power.errors import SteeringNotFoundError
from serverless_power.manifest import POWER_FILE

STEERING_DIR = "steering"
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})")
_TERM_RE = re.compile(r"[\w.-]+")
# Heading hits count this many times a body hit.
HEADING_WEIGHT = 3
EXCERPT_CHARS = 600


def split_sections(text: str):
    """Split Markdown into sections at ATX headings, ignoring fenced code."""
    sections = [{"heading": "", "level": 0, "line": 1, "lines": []}]
    fence = None
    for lineno, line in enumerate(text.splitlines(), start=1):
        m = _FENCE_RE.match(line)
        if m:
            marker = m.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence) and not line.strip()[len(marker):].strip():
                fence = None
            sections[-1]["lines"].append(line)
            continue
        h = _HEADING_RE.match(line) if fence is None else None
        if h:
            sections.append({"heading": h.group(2), "level": len(h.group(1)), "line": lineno, "lines": []})
        else:
            sections[-1]["lines"].append(line)
    out = []
    for s in sections:
        body = "\n".join(s["lines"]).strip()
        if s["heading"] == "" and not body:
            continue
        out.append({"heading": s["heading"], "level": s["level"], "line": s["line"], "body": body})
    return out


def _steering_path(power_dir):
    return os.path.join(power_dir, STEERING_DIR)


def list_steering(power_dir):
    """List steering files with their title and headings, sorted by name."""
    directory = _steering_path(power_dir)
    if not os.path.isdir(directory):
        return []
    entries = []
    for file_name in sorted(os.listdir(directory)):
        if not file_name.endswith(".md"):
            continue
        with open(os.path.join(directory, file_name), "r", encoding="utf-8") as f:
            sections = split_sections(f.read())
        headings = [s["heading"] for s in sections if s["heading"]]
        title = next((s["heading"] for s in sections if s["level"] == 1), file_name[:-3])
        entries.append({
            "name": file_name[:-3],
            "file": f"{STEERING_DIR}/{file_name}",
            "title": title,
            "headings": headings,
        })
    return entries


def resolve_steering_name(power_dir, name):
    """Map a steering name (``foo``, ``foo.md``, ``steering/foo.md``) to a file path."""
    cleaned = (name or "").strip().replace("\\", "/")
    if not cleaned:
        raise SteeringNotFoundError("Steering file name is required")
    if cleaned in (POWER_FILE, POWER_FILE[:-3]):
        path = os.path.join(power_dir, POWER_FILE)
        if os.path.isfile(path):
            return path
        raise SteeringNotFoundError(f"{POWER_FILE} not found in {power_dir}")
    if cleaned.startswith(STEERING_DIR + "/"):
        cleaned = cleaned[len(STEERING_DIR) + 1:]
    if "/" in cleaned or ".." in cleaned:
        raise SteeringNotFoundError(f"Invalid steering file name: {name}")
    if not cleaned.endswith(".md"):
        cleaned += ".md"
    path = os.path.join(_steering_path(power_dir), cleaned)
    if not os.path.isfile(path):
        available = ", ".join(e["name"] for e in list_steering(power_dir)) or "none"
        raise SteeringNotFoundError(f"Steering file '{name}' not found (available: {available})")
    return path


def read_steering(power_dir, name):
    """Return the Markdown text of a steering file."""
    path = resolve_steering_name(power_dir, name)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _terms(text):
    """Lower-cased words of text; sentence dots and dashes at word edges are dropped."""
    return [t for t in (w.strip(".-") for w in _TERM_RE.findall(text.lower())) if t]


def search_steering(power_dir, query, limit=5):
    """Find the steering sections that best match a query.

    Scoring counts case-insensitive whole-term occurrences in the section body,
    with heading occurrences weighted by HEADING_WEIGHT. "sam" does not match
    "sample". Ties keep file order, then document order.
    """
    terms = _terms(query or "")
    if not terms:
        raise ValueError("query must contain at least one word")
    if limit < 1:
        raise ValueError("limit must be at least 1")
    hits = []
    for entry in list_steering(power_dir):
        text = read_steering(power_dir, entry["name"])
        for index, section in enumerate(split_sections(text)):
            heading = Counter(_terms(section["heading"]))
            body = Counter(_terms(section["body"]))
            score = sum(body[t] for t in terms) + HEADING_WEIGHT * sum(heading[t] for t in terms)
            if score <= 0:
                continue
            hits.append((-score, entry["name"], index, {
                "name": entry["name"],
                "file": entry["file"],
                "heading": section["heading"],
                "line": section["line"],
                "score": score,
                "excerpt": section["body"][:EXCERPT_CHARS],
            }))
    hits.sort(key=lambda h: h[:3])
    return [h[3] for h in hits[:limit]]
