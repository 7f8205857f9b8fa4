"""Documented tool surface of the AWS Serverless MCP Server.

Nothing here calls those tools; the catalog describes names, argument
shapes and permission gating so an agent (or the linter) can check a call
before it is sent.
"""
import difflib
import re

from serverless_power.errors import UnknownToolError

CATEGORIES = ("sam", "webapp", "esm", "observability")

TOOLS = {
    "sam_init": {
        "category": "sam",
        "description": "Initialize a new SAM project from a runtime and application template.",
        "required": ["project_name", "runtime", "project_directory", "dependency_manager"],
        "optional": ["architecture", "package_type", "application_template", "application_insights",
                     "base_image", "config_env", "config_file", "debug", "extra_content", "location",
                     "no_tracing", "save_params", "tracing"],
        "choices": {"architecture": ["x86_64", "arm64"], "package_type": ["Zip", "Image"]},
        "example": {"project_name": "orders-api", "runtime": "python3.12",
                    "project_directory": "/workspace", "dependency_manager": "pip"},
        "requires_write": False,
        "sensitive": False,
        "steering": "getting-started",
    },
    "sam_build": {
        "category": "sam",
        "description": "Build a SAM project and resolve function dependencies.",
        "required": ["project_directory"],
        "optional": ["template_file", "base_dir", "build_dir", "build_image", "container_env_var_file",
                     "container_env_vars", "debug", "manifest", "no_use_container", "parameter_overrides",
                     "profile", "region", "save_params", "use_container"],
        "choices": {},
        "example": {"project_directory": "/workspace/orders-api", "use_container": False},
        "requires_write": False,
        "sensitive": False,
        "steering": "getting-started",
    },
    "sam_deploy": {
        "category": "sam",
        "description": "Deploy a built SAM application through CloudFormation.",
        "required": ["application_name", "project_directory"],
        "optional": ["template_file", "capabilities", "config_env", "config_file", "debug", "metadata",
                     "parameter_overrides", "profile", "region", "resolve_s3", "s3_bucket", "s3_prefix",
                     "tags"],
        "choices": {},
        "example": {"application_name": "orders-api", "project_directory": "/workspace/orders-api",
                    "capabilities": ["CAPABILITY_IAM"]},
        "requires_write": True,
        "sensitive": False,
        "steering": "getting-started",
    },
    "sam_local_invoke": {
        "category": "sam",
        "description": "Invoke a function locally in a Lambda-like Docker container.",
        "required": ["project_directory", "resource_name"],
        "optional": ["template_file", "container_env_vars", "docker_network", "environment_variables_file",
                     "event_data", "event_file", "layer_cache_basedir", "log_file", "parameter",
                     "profile", "region"],
        "choices": {},
        "example": {"project_directory": "/workspace/orders-api", "resource_name": "OrdersFunction",
                    "event_file": "events/get-orders.json"},
        "requires_write": False,
        "sensitive": False,
        "steering": "getting-started",
    },
    "sam_logs": {
        "category": "observability",
        "description": "Fetch CloudWatch logs of a deployed function.",
        "required": ["resource_name"],
        "optional": ["stack_name", "start_time", "end_time", "output", "cw_log_group", "config_env",
                     "config_file", "profile", "region", "save_params"],
        "choices": {"output": ["text", "json"]},
        "example": {"resource_name": "OrdersFunction", "stack_name": "orders-api", "start_time": "5mins ago"},
        "requires_write": False,
        "sensitive": True,
        "steering": "troubleshooting",
    },
    "deploy_webapp": {
        "category": "webapp",
        "description": "Deploy a frontend, backend or fullstack web application with Lambda Web Adapter.",
        "required": ["deployment_type", "project_name", "project_root"],
        "optional": ["region", "backend_configuration", "frontend_configuration"],
        "choices": {"deployment_type": ["backend", "frontend", "fullstack"]},
        "example": {"deployment_type": "backend", "project_name": "orders-web",
                    "project_root": "/workspace/orders-web"},
        "requires_write": True,
        "sensitive": False,
        "steering": "web-app-deployment",
    },
    "configure_domain": {
        "category": "webapp",
        "description": "Attach a custom domain with ACM certificate and Route 53 record.",
        "required": ["project_name", "domain_name"],
        "optional": ["create_certificate", "create_route53_record", "region"],
        "choices": {},
        "example": {"project_name": "orders-site", "domain_name": "orders.example.com"},
        "requires_write": True,
        "sensitive": False,
        "steering": "web-app-deployment",
    },
    "esm_guidance": {
        "category": "esm",
        "description": "Setup, networking and troubleshooting guidance for event source mappings.",
        "required": [],
        "optional": ["event_source", "guidance_type", "networking_question"],
        "choices": {
            "event_source": ["dynamodb", "kinesis", "kafka", "sqs", "unspecified"],
            "guidance_type": ["setup", "networking", "troubleshooting"],
        },
        "example": {"event_source": "sqs", "guidance_type": "setup"},
        "requires_write": False,
        "sensitive": False,
        "steering": "event-source-mappings",
    },
    "esm_optimize": {
        "category": "esm",
        "description": "Analyze and tune batch size, concurrency and windows of an event source mapping.",
        "required": ["action"],
        "optional": ["esm_uuid", "function_name", "optimization_targets", "configuration", "region"],
        "choices": {"action": ["analyze", "validate", "generate_template"]},
        "example": {"action": "analyze", "esm_uuid": "a1b2c3d4-5678-90ab-cdef-11111EXAMPLE",
                    "optimization_targets": ["throughput", "cost"]},
        "requires_write": True,
        "sensitive": False,
        "steering": "optimization",
    },
    "esm_kafka_troubleshoot": {
        "category": "esm",
        "description": "Diagnose MSK and self-managed Kafka event source mappings.",
        "required": ["kafka_type"],
        "optional": ["error_message", "esm_uuid", "function_name", "cluster_arn", "region"],
        "choices": {"kafka_type": ["msk", "self-managed"]},
        "example": {"kafka_type": "msk", "error_message": "PROBLEM: Connection error."},
        "requires_write": False,
        "sensitive": False,
        "steering": "event-source-mappings",
    },
    "get_metrics": {
        "category": "observability",
        "description": "Read CloudWatch metrics of the resources of a deployed project.",
        "required": ["project_name"],
        "optional": ["start_date", "end_date", "period", "resources", "region", "stat", "dimensions"],
        "choices": {"stat": ["Average", "Sum", "Minimum", "Maximum", "SampleCount", "p90", "p95", "p99"]},
        "example": {"project_name": "orders-api", "period": 300, "resources": ["lambda", "apiGateway"]},
        "requires_write": False,
        "sensitive": False,
        "steering": "optimization",
    },
}

# Backticked identifiers shaped like serverless tool names.
_TOOL_SHAPE_RE = re.compile(r"`((?:sam|esm)_[a-z][a-z0-9_]*|[a-z]+(?:_[a-z0-9]+)+)`")
_TOOL_PREFIX_RE = re.compile(r"^(?:sam|esm)_")


def _summary(name, spec):
    return {
        "name": name,
        "category": spec["category"],
        "description": spec["description"],
        "requires_write": spec["requires_write"],
        "sensitive": spec["sensitive"],
    }


def list_tools(category=None):
    """Summaries of the documented tools, optionally for one category."""
    if category is not None and category not in CATEGORIES:
        raise ValueError(f"Unknown category '{category}' (expected one of: {', '.join(CATEGORIES)})")
    return [_summary(name, spec) for name, spec in TOOLS.items()
            if category is None or spec["category"] == category]


def get_tool(name):
    """Full catalog entry for a tool name."""
    spec = TOOLS.get(name)
    if spec is None:
        raise UnknownToolError(name, difflib.get_close_matches(name or "", list(TOOLS), n=3))
    return {"name": name, **spec}


def check_tool_call(name, arguments=None, allow_write=False, allow_sensitive_data_access=False):
    """Check a proposed tool call against the catalog and the server's modes.

    Returns:
        dict with valid (bool), errors and warnings (lists of str).
    """
    spec = get_tool(name)
    arguments = arguments or {}
    errors = []
    warnings = []
    if not isinstance(arguments, dict):
        return {"valid": False, "errors": ["arguments must be an object"], "warnings": []}
    for arg in spec["required"]:
        if arguments.get(arg) in (None, ""):
            errors.append(f"Missing required argument '{arg}'")
    known = set(spec["required"]) | set(spec["optional"])
    for arg in arguments:
        if arg not in known:
            hint = difflib.get_close_matches(arg, sorted(known), n=1)
            msg = f"Unknown argument '{arg}'"
            if hint:
                msg += f" (did you mean '{hint[0]}'?)"
            warnings.append(msg)
    for arg, allowed in spec["choices"].items():
        value = arguments.get(arg)
        if value is not None and value not in allowed:
            errors.append(f"Argument '{arg}' must be one of: {', '.join(allowed)}")
    if spec["requires_write"] and not allow_write:
        errors.append(f"{name} makes changes and needs the server started with --allow-write")
    if spec["sensitive"] and not allow_sensitive_data_access:
        errors.append(f"{name} returns sensitive data and needs --allow-sensitive-data-access")
    return {"valid": not errors, "errors": errors, "warnings": warnings}


def tool_names_in_text(text):
    """Backticked tool-shaped identifiers in Markdown text, as (name, line) pairs.

    A span counts when it is a catalog name or carries the ``sam_``/``esm_`` prefix.
    """
    found = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        for m in _TOOL_SHAPE_RE.finditer(line):
            name = m.group(1)
            if name in TOOLS or _TOOL_PREFIX_RE.match(name):
                found.append((name, lineno))
    return found
