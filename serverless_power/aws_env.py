"""Prerequisite checks behind the troubleshooting guide: credentials, region, CLIs."""
import os
import shutil

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound
from botocore.loaders import create_loader
from loguru import logger

DEFAULT_REGION = "us-east-1"
REQUIRED_CLIS = ("sam", "docker", "uvx")

REMEDIES = {
    "no_credentials": "Run `aws configure` (or `aws sso login --profile <name>`) and set AWS_PROFILE to that profile.",
    "profile_not_found": "List profiles with `aws configure list-profiles` and fix AWS_PROFILE.",
    "expired_token": "Refresh the session with `aws sso login --profile <name>` or renew the temporary credentials.",
    "no_region": "Set AWS_REGION in the server environment or pass a region.",
    "sam": "Install the AWS SAM CLI and put `sam` on the PATH.",
    "docker": "Start Docker; sam_local_invoke and container builds need it.",
    "uvx": "Install uv so that `uvx` can launch the serverless MCP server.",
}
_EXPIRED_CODES = ("ExpiredToken", "ExpiredTokenException", "RequestExpired")


def get_session(profile=None, region=None):
    """boto3 session for a profile/region; None falls back to the default chain."""
    return boto3.Session(profile_name=profile or None, region_name=region or None)


def get_sts_client(profile=None, region=None):
    """Get STS client; region from arg, profile, or us-east-1."""
    session = get_session(profile=profile, region=region)
    return session.client("sts", region_name=session.region_name or DEFAULT_REGION)


def check_credentials(profile=None, region=None):
    """Call STS GetCallerIdentity with the given profile.

    Returns:
        dict with success, account and arn, or error and remedy.
    """
    try:
        identity = get_sts_client(profile=profile, region=region).get_caller_identity()
        return {
            "success": True,
            "profile": profile,
            "account": identity.get("Account"),
            "arn": identity.get("Arn"),
            "user_id": identity.get("UserId"),
        }
    except ProfileNotFound as e:
        return {"success": False, "profile": profile, "error": str(e), "remedy": REMEDIES["profile_not_found"]}
    except NoCredentialsError as e:
        return {"success": False, "profile": profile, "error": str(e), "remedy": REMEDIES["no_credentials"]}
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        remedy = REMEDIES["expired_token"] if code in _EXPIRED_CODES else REMEDIES["no_credentials"]
        return {"success": False, "profile": profile, "error": str(e), "error_code": code, "remedy": remedy}
    except BotoCoreError as e:
        logger.warning(f"Credential check failed: {e}")
        return {"success": False, "profile": profile, "error": str(e), "remedy": REMEDIES["no_credentials"]}


def known_regions():
    """Region names listed in botocore's bundled endpoint data, all partitions."""
    endpoints = create_loader().load_data("endpoints")
    regions = set()
    for partition in endpoints.get("partitions", []):
        regions.update(partition.get("regions", {}))
    return regions


def check_region(region=None, profile=None):
    """Resolve the target region from the argument, environment, or profile."""
    resolved = region or os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
    if not resolved:
        try:
            resolved = get_session(profile=profile).region_name
        except ProfileNotFound:
            resolved = None
    if not resolved:
        return {"success": False, "region": None, "error": "No AWS region configured",
                "remedy": REMEDIES["no_region"], "warnings": []}
    warnings = []
    if resolved not in known_regions():
        warnings.append(f"Region '{resolved}' is not a known AWS region")
    return {"success": True, "region": resolved, "warnings": warnings}


def check_cli(name):
    """Whether a command-line tool is on the PATH."""
    path = shutil.which(name)
    result = {"name": name, "found": path is not None, "path": path}
    if path is None:
        result["remedy"] = REMEDIES.get(name, f"Install {name} and put it on the PATH.")
    return result


def check_environment(profile=None, region=None, clis=REQUIRED_CLIS):
    """Aggregate credential, region and CLI checks.

    success is True when credentials and region check out; missing CLIs are warnings.
    """
    profile = profile or os.environ.get("AWS_PROFILE")
    region_result = check_region(region=region, profile=profile)
    credentials = check_credentials(profile=profile, region=region_result.get("region"))
    tools = [check_cli(name) for name in clis]
    warnings = list(region_result.get("warnings", []))
    warnings.extend(f"{t['name']} not found on PATH: {t['remedy']}" for t in tools if not t["found"])
    return {
        "success": credentials["success"] and region_result["success"],
        "credentials": credentials,
        "region": region_result,
        "cli": tools,
        "warnings": warnings,
    }
