"""serverless-power-lint: lint a power directory from the command line or CI."""
import argparse
import json
import os
import sys

from serverless_power import default_power_dir
from serverless_power.doc_lint import lint_power


def format_text(result):
    lines = []
    for f in result["findings"]:
        location = f["file"] if f["line"] is None else f"{f['file']}:{f['line']}"
        lines.append(f"{location}: {f['severity']}: [{f['rule']}] {f['message']}")
    lines.append(f"{len(result['files'])} files, {result['errors']} errors, {result['warnings']} warnings")
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Lint the steering files and manifest of a power")
    parser.add_argument("power_dir", nargs="?", default=None,
                        help="Power directory (default: SERVERLESS_POWER_DIR or the bundled power)")
    parser.add_argument("--format", choices=["text", "json"], default="text")
    parser.add_argument("--strict", action="store_true", help="Fail on warnings too")
    args = parser.parse_args(argv)

    power_dir = args.power_dir or default_power_dir()
    if not os.path.isdir(power_dir):
        print(f"Power directory not found: {power_dir}", file=sys.stderr)
        return 2
    result = lint_power(power_dir)
    if args.format == "json":
        print(json.dumps(result, indent=2))
    else:
        print(format_text(result))
    if result["errors"] or (args.strict and result["warnings"]):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
