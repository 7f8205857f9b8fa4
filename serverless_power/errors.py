"""Exceptions raised by the power library modules.

MCP tools turn these into ``{"success": False, "error": ...}`` results; the
lint CLI reports them and exits non-zero.
"""


class PowerError(Exception):
    """Base class for power content errors."""


class ManifestError(PowerError):
    """POWER.md or mcp.json is missing or malformed."""


class SteeringNotFoundError(PowerError):
    """A steering file name does not resolve inside the power directory."""


class UnknownToolError(PowerError):
    """A tool name is not part of the documented serverless tool surface."""

    def __init__(self, name, suggestions=None):
        self.name = name
        self.suggestions = list(suggestions or [])
        msg = f"Unknown serverless tool: {name}"
        if self.suggestions:
            msg += f" (did you mean: {', '.join(self.suggestions)}?)"
        super().__init__(msg)
