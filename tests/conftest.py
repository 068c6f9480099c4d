"""
Pytest configuration for Task Brain tests.

This module provides:
1. A temporary workspace per test
2. A fully wired TaskBrainApp over that workspace
3. Sample ticket documents
"""

import tempfile
from pathlib import Path

import pytest

from taskbrain.app import build_app
from taskbrain.config import TaskBrainConfig


# -----------------------------------------------------------------------------
# Workspace Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_dir):
    """Configuration independent of TASKBRAIN_* environment variables."""
    return TaskBrainConfig(base_path=temp_dir)


@pytest.fixture
def app(config):
    """All components wired over the temporary workspace."""
    return build_app(config=config)


@pytest.fixture
def store(app):
    return app.store


# -----------------------------------------------------------------------------
# Sample Documents
# -----------------------------------------------------------------------------
SAMPLE_NOTES = """# Feature Notes: TASK-00001

## Requirements
- [x] Login with the identity provider

## Learnings
- Token refresh must happen before expiry
* Provider rate limits at 10 rps
1. Cache the discovery document

## Gotchas
- Clock skew breaks token validation
- [Add gotchas here]

## Wiki Updates
- Authentication: tokens are validated against the JWKS endpoint

## Runbook Updates
- Rotate keys: run the key rotation job monthly
"""

SAMPLE_CONTEXT = """# Task Context: TASK-00001

## Summary
Adds OAuth2 login to the web client.

## Recent Progress
- Implemented the authorization redirect
- Added token storage

## Open Questions
- Should refresh tokens be rotated?

## Decisions Made
- Store tokens in memory only

## Next Steps
- Wire logout

## Related Resources
- https://oauth.net/2/pkce/
"""

SAMPLE_DESIGN = """# Design: OAuth login

**Task:** TASK-00001

## Overview
Browser clients authenticate through the authorization code flow.

## Components

### AuthClient
- **Purpose:** Runs the authorization code exchange
- **Interface:** login(), logout()

### TokenCache
- **Purpose:** [Describe purpose]

## Technical Decisions

| Decision | Rationale | Source | Date |
|----------|-----------|--------|------|
| Use authorization code flow | Implicit flow is deprecated | design review | 2026-01-10 |
| Store tokens in memory only | Avoids XSS exposure | security | 2026-01-11 |

## Related ADRs
- ADR-0001
"""


@pytest.fixture
def populated_task(app):
    """A feat task with sample notes, context and design written into its ticket."""
    task = app.store.create_task("feat", "OAuth login")
    ticket_dir = Path(task.ticket_path)
    (ticket_dir / "notes.md").write_text(SAMPLE_NOTES)
    (ticket_dir / "context.md").write_text(SAMPLE_CONTEXT)
    (ticket_dir / "design.md").write_text(SAMPLE_DESIGN)
    return task
