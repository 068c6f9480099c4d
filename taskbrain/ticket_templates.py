"""
Scaffolding written into a new ticket directory.

Notes templates vary by task type; every one ends with the knowledge
sections that archival harvests (Learnings, Gotchas, Wiki Updates,
Runbook Updates).
"""

from typing import Dict

from .task_model import TaskType

KNOWLEDGE_SECTIONS = """
## Learnings

## Gotchas

## Wiki Updates

## Runbook Updates
"""

NOTES_TEMPLATES: Dict[TaskType, str] = {
    TaskType.FEAT: """# Feature Notes: {task_id}

## Requirements
- [ ] [Requirement]

## Acceptance Criteria
- [ ] [Criterion]

## Implementation Notes
""",
    TaskType.BUG: """# Bug Notes: {task_id}

## Description

## Steps to Reproduce
1. [Step]

## Expected Behavior

## Actual Behavior

## Root Cause Analysis

## Fix Notes
""",
    TaskType.SPIKE: """# Spike Notes: {task_id}

## Objective

## Research Questions
- [ ] [Question]

## Findings

## Recommendations

## Time-Box
""",
    TaskType.REFACTOR: """# Refactor Notes: {task_id}

## Motivation

## Current State

## Target State

## Affected Components

## Risks
""",
}

DESIGN_TEMPLATE = """# Design: {title}

**Task:** {task_id}

## Overview
[High-level description of the approach]

## Components

## Technical Decisions

| Decision | Rationale | Source | Date |
|----------|-----------|--------|------|

## Related ADRs

## Stakeholder Requirements
"""

CONTEXT_TEMPLATE = """# Task Context: {task_id}

## Summary

## Current Focus

## Recent Progress

## Open Questions

## Decisions Made

## Blockers

## Next Steps

## Related Resources
"""


def render_notes(task_type: TaskType, task_id: str) -> str:
    return NOTES_TEMPLATES[task_type].format(task_id=task_id) + KNOWLEDGE_SECTIONS


def render_design(task_id: str, title: str) -> str:
    return DESIGN_TEMPLATE.format(task_id=task_id, title=title)


def render_context(task_id: str) -> str:
    return CONTEXT_TEMPLATE.format(task_id=task_id)
