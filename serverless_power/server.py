# serverless_power/server.py
import argparse
import os
import sys
import time

from loguru import logger
from mcp.server.fastmcp import FastMCP

from serverless_power import __version__, aws_env, default_power_dir, doc_lint, manifest, steering, tool_catalog
from serverless_power.errors import PowerError

# Power directory served by the tools; --power-dir or SERVERLESS_POWER_DIR override the bundled one.
POWER_DIR = default_power_dir()
# stdio for IDE/agent launch, streamable-http for hosted use.
MCP_TRANSPORT = os.environ.get("MCP_TRANSPORT", "stdio")
LOG_LEVEL = os.environ.get("FASTMCP_LOG_LEVEL", "WARNING")

mcp = FastMCP(
    "serverless-power",
    instructions="""AWS Serverless power

    Guidance for building, deploying and troubleshooting AWS Lambda and SAM applications
    with the AWS Serverless MCP Server (awslabs.aws-serverless-mcp-server).

    - Start with get_power_manifest and list_steering_files, then read the steering file
      that matches the task (getting-started, web-app-deployment, event-source-mappings,
      optimization, troubleshooting).
    - Before calling a serverless tool, check_serverless_tool_call validates the arguments
      and whether the server runs with --allow-write / --allow-sensitive-data-access.
    - When a call fails, search_steering with the error text finds the remedy, and
      check_aws_environment verifies credentials, region, SAM CLI and Docker.
    """,
    stateless_http=True,
)

# Expose ASGI app for hosted deployments
app = mcp.streamable_http_app


def _log_timing(tool: str, t_start: float, extra: str = ""):
    """Log duration of a tool call (seconds)."""
    duration_s = round(time.time() - t_start, 3)
    msg = f"{tool}: {duration_s}s"
    if extra:
        msg += f" | {extra}"
    logger.debug(msg)


def _error(e):
    return {"success": False, "error": str(e)}


def _serverless_descriptor():
    servers = manifest.load_mcp_config(POWER_DIR)
    return manifest.find_serverless_server(servers)


@mcp.tool()
def get_power_manifest() -> dict:
    """
    Get the power metadata (name, keywords, author), the MCP server connection
    descriptors from mcp.json, and the list of steering files.
    """
    try:
        power = manifest.load_power(POWER_DIR)
        return {
            "success": True,
            "metadata": power["metadata"],
            "servers": power["servers"],
            "steering": steering.list_steering(POWER_DIR),
            "findings": power["findings"],
        }
    except PowerError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"get_power_manifest failed: {e}")
        return _error(e)


@mcp.tool()
def list_steering_files() -> dict:
    """List steering files with their titles and section headings."""
    try:
        return {"success": True, "steering": steering.list_steering(POWER_DIR)}
    except OSError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"list_steering_files failed: {e}")
        return _error(e)


@mcp.tool()
def read_steering_file(name: str) -> dict:
    """
    Read a steering file by name.

    Args:
        name: Steering file name, e.g. "troubleshooting", "event-source-mappings.md"
              or "POWER.md" for the manifest itself.

    Returns:
        dict with the Markdown content of the file.
    """
    try:
        return {"success": True, "name": name, "content": steering.read_steering(POWER_DIR, name)}
    except PowerError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"read_steering_file failed for {name}: {e}")
        return _error(e)


@mcp.tool()
def search_steering(query: str, limit: int = 5) -> dict:
    """
    Search steering sections for a symptom, error message or topic.
    Use the error text of a failed serverless tool call to find its remedy.

    Args:
        query: Words to look for (case-insensitive).
        limit: Maximum number of sections to return (default 5).
    """
    t0 = time.time()
    try:
        results = steering.search_steering(POWER_DIR, query, limit=limit)
        _log_timing("search_steering", t0, extra=f"hits={len(results)}")
        return {"success": True, "query": query, "results": results}
    except ValueError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"search_steering failed: {e}")
        return _error(e)


@mcp.tool()
def list_serverless_tools(category: str = None) -> dict:
    """
    List the tools of the AWS Serverless MCP Server documented by this power.

    Args:
        category: Optional filter: sam, webapp, esm or observability.
    """
    try:
        return {"success": True, "tools": tool_catalog.list_tools(category)}
    except ValueError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"list_serverless_tools failed: {e}")
        return _error(e)


@mcp.tool()
def describe_serverless_tool(name: str) -> dict:
    """Get required/optional arguments, an example call and permission needs of a serverless tool."""
    try:
        return {"success": True, "tool": tool_catalog.get_tool(name)}
    except PowerError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"describe_serverless_tool failed for {name}: {e}")
        return _error(e)


@mcp.tool()
def check_serverless_tool_call(name: str, arguments: dict = None, allow_write: bool = None,
                               allow_sensitive_data_access: bool = None) -> dict:
    """
    Check a serverless tool call before sending it.

    Args:
        name: Tool name, e.g. "sam_deploy".
        arguments: Arguments you intend to pass.
        allow_write: Whether the server runs with --allow-write (default: from mcp.json).
        allow_sensitive_data_access: Whether the server runs with --allow-sensitive-data-access
                                     (default: from mcp.json).

    Returns:
        dict with valid, errors and warnings.
    """
    try:
        if allow_write is None or allow_sensitive_data_access is None:
            _, descriptor = _serverless_descriptor()
            modes = manifest.server_modes(descriptor.get("args"))
            if allow_write is None:
                allow_write = modes["allow_write"]
            if allow_sensitive_data_access is None:
                allow_sensitive_data_access = modes["allow_sensitive_data_access"]
        result = tool_catalog.check_tool_call(
            name, arguments, allow_write=allow_write, allow_sensitive_data_access=allow_sensitive_data_access
        )
        return {"success": True, "name": name, **result}
    except PowerError as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"check_serverless_tool_call failed for {name}: {e}")
        return _error(e)


@mcp.tool()
def get_server_launch_config(allow_write: bool = None, allow_sensitive_data_access: bool = None,
                             profile: str = None, region: str = None) -> dict:
    """
    Build the command line and environment that start the AWS Serverless MCP Server,
    plus the matching mcpServers entry for an MCP client configuration.

    Args:
        allow_write: Force --allow-write on or off (default: keep mcp.json setting).
        allow_sensitive_data_access: Force --allow-sensitive-data-access on or off.
        profile: AWS_PROFILE to use.
        region: AWS_REGION to use.
    """
    try:
        name, descriptor = _serverless_descriptor()
        launch = manifest.build_launch_command(
            descriptor,
            allow_write=allow_write,
            allow_sensitive_data_access=allow_sensitive_data_access,
            profile=profile,
            region=region,
        )
        entry = {"command": launch["argv"][0], "args": launch["argv"][1:], "env": launch["env"]}
        return {"success": True, "server": name, **launch, "mcpServers": {name: entry}}
    except (PowerError, KeyError) as e:
        return _error(e)
    except Exception as e:
        logger.exception(f"get_server_launch_config failed: {e}")
        return _error(e)


@mcp.tool()
def lint_power_docs() -> dict:
    """
    Lint the power: code fences declare a language, cross-references to steering
    files resolve, embedded YAML/JSON parses, tool names exist, manifest is complete.
    """
    t0 = time.time()
    try:
        result = doc_lint.lint_power(POWER_DIR)
    except Exception as e:
        logger.exception(f"lint_power_docs failed: {e}")
        return _error(e)
    _log_timing("lint_power_docs", t0, extra=f"errors={result['errors']} warnings={result['warnings']}")
    return {"success": True, **result}


@mcp.tool()
def check_aws_environment(profile: str = None, region: str = None) -> dict:
    """
    Check the prerequisites of the serverless MCP server: AWS credentials (STS
    GetCallerIdentity), region, and the sam, docker and uvx commands.
    Each failure carries the remedy from the troubleshooting guide.
    """
    t0 = time.time()
    try:
        result = aws_env.check_environment(profile=profile, region=region)
    except Exception as e:
        logger.exception(f"check_aws_environment failed: {e}")
        return _error(e)
    _log_timing("check_aws_environment", t0)
    return result


@mcp.resource("power://manifest", description="POWER.md of the AWS Serverless power.")
def power_manifest_resource() -> str:
    return steering.read_steering(POWER_DIR, manifest.POWER_FILE)


@mcp.resource("steering://{name}", description="A steering file of the AWS Serverless power, by name.")
def steering_resource(name: str) -> str:
    return steering.read_steering(POWER_DIR, name)


def main() -> int:
    """Entry point for the serverless-power-mcp command."""
    global POWER_DIR
    logger.remove()
    logger.add(sys.stderr, level=LOG_LEVEL)

    parser = argparse.ArgumentParser(description="AWS Serverless power MCP server")
    parser.add_argument("--transport", choices=["stdio", "streamable-http"], default=MCP_TRANSPORT)
    parser.add_argument("--power-dir", default=POWER_DIR, help="Directory holding POWER.md, mcp.json and steering/")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for streamable-http")
    parser.add_argument("--port", type=int, default=8000, help="Port for streamable-http")
    args = parser.parse_args()

    if not os.path.isdir(args.power_dir):
        logger.error(f"Power directory not found: {args.power_dir}")
        return 2
    POWER_DIR = args.power_dir
    mcp.settings.host = args.host
    mcp.settings.port = args.port

    try:
        logger.info(f"Starting serverless-power {__version__} ({args.transport}) with {POWER_DIR}")
        mcp.run(transport=args.transport)
        return 0
    except Exception as e:
        logger.error(f"Error starting serverless-power MCP server: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
