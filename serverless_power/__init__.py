"""AWS Serverless power: steering files, manifest and a companion MCP server."""
import os

__version__ = "0.1.0"

# Steering files and manifest shipped with the package.
BUNDLED_POWER_DIR = os.path.join(os.path.dirname(__file__), "power")


def default_power_dir():
    """Power directory from SERVERLESS_POWER_DIR, else the bundled one."""
    return os.environ.get("SERVERLESS_POWER_DIR") or BUNDLED_POWER_DIR
