import json
import os
import shutil

import pytest

from serverless_power import BUNDLED_POWER_DIR

POWER_MD = """---
name: demo-power
displayName: Demo
description: Demo power for tests.
keywords:
  - lambda
author: Tests
---

# Demo

Read [setup](steering/setup.md) first.
"""

SETUP_MD = """# Setup

## Credentials

Run `aws configure` before `sam_build`.

```bash
aws sts get-caller-identity
```
"""

MCP_CONFIG = {
    "mcpServers": {
        "aws-serverless": {
            "command": "uvx",
            "args": ["awslabs.aws-serverless-mcp-server@latest", "--allow-write"],
            "env": {"AWS_PROFILE": "default", "AWS_REGION": "us-east-1"},
        }
    }
}


@pytest.fixture
def bundled_power(tmp_path):
    """Copy of the shipped power directory that tests may modify."""
    target = tmp_path / "power"
    shutil.copytree(BUNDLED_POWER_DIR, target)
    return str(target)


@pytest.fixture
def make_power(tmp_path):
    """Build a small power directory; keyword args override file contents."""

    def _make(power_md=POWER_MD, mcp_config=MCP_CONFIG, steering=None):
        root = tmp_path / "demo"
        (root / "steering").mkdir(parents=True)
        if power_md is not None:
            (root / "POWER.md").write_text(power_md, encoding="utf-8")
        if mcp_config is not None:
            text = mcp_config if isinstance(mcp_config, str) else json.dumps(mcp_config)
            (root / "mcp.json").write_text(text, encoding="utf-8")
        files = {"setup.md": SETUP_MD} if steering is None else steering
        for name, content in files.items():
            (root / "steering" / name).write_text(content, encoding="utf-8")
        return str(root)

    return _make


@pytest.fixture
def isolated_aws(tmp_path, monkeypatch):
    """Point boto3 at empty config files and clear AWS env vars."""
    monkeypatch.setenv("AWS_CONFIG_FILE", os.path.join(str(tmp_path), "aws-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", os.path.join(str(tmp_path), "aws-credentials"))
    for var in ("AWS_PROFILE", "AWS_DEFAULT_PROFILE", "AWS_REGION", "AWS_DEFAULT_REGION",
                "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN"):
        monkeypatch.delenv(var, raising=False)
