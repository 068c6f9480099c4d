"""
Conflict Detector Tests
"""

from pathlib import Path

import pytest

from taskbrain.conflict_detector import CONFLICT_KEYWORD_THRESHOLD
from taskbrain.knowledge_model import ADRStatus, ConflictType, Decision, Severity


def write_design(ticket_dir: Path, rows):
    table = "\n".join(f"| {decision} | {rationale} | | |" for decision, rationale in rows)
    (ticket_dir / "design.md").write_text(
        "# Design\n\n## Technical Decisions\n\n"
        "| Decision | Rationale | Source | Date |\n|----------|-----------|--------|------|\n"
        f"{table}\n"
    )


class TestADRConflicts:

    @pytest.fixture
    def adr(self, app):
        return app.adrs.create_adr(
            Decision(title="Database", decision="Use PostgreSQL for relational storage"),
            "TASK-00001",
        )

    def test_two_shared_keywords_is_high_severity(self, app, adr):
        conflicts = app.conflicts.check_for_conflicts(
            "TASK-00005", "Move relational storage to MongoDB"
        )
        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.type == ConflictType.ADR_VIOLATION
        assert conflict.severity == Severity.HIGH
        assert conflict.source == adr.name
        assert conflict.matched_keywords == ["relational", "storage"]
        assert "relational, storage" in conflict.description
        assert adr.name in conflict.recommendation

    def test_one_shared_keyword_is_no_conflict(self, app, adr):
        assert CONFLICT_KEYWORD_THRESHOLD == 2
        assert app.conflicts.check_for_conflicts("TASK-00005", "Tune PostgreSQL vacuum") == []

    def test_no_shared_keywords(self, app, adr):
        assert app.conflicts.check_for_conflicts("TASK-00005", "Redesign the login page") == []

    def test_only_accepted_adrs_count(self, app):
        app.adrs.create_adr(
            Decision(title="Queue", decision="Adopt Kafka for event streaming"),
            "TASK-00001",
            status=ADRStatus.PROPOSED,
        )
        assert app.conflicts.check_for_conflicts("TASK-00002", "Replace Kafka event streaming") == []


class TestPreviousDecisions:

    def test_other_task_design_decision(self, app):
        other = app.store.create_task("feat", "Sessions")
        write_design(Path(other.ticket_path), [("Store sessions in Redis", "Fast expiry")])
        current = app.store.create_task("feat", "Auth")

        conflicts = app.conflicts.check_for_conflicts(current.id, "Keep sessions in Redis cluster")
        assert [(c.type, c.severity, c.source) for c in conflicts] == [
            (ConflictType.PREVIOUS_DECISION, Severity.MEDIUM, other.id)
        ]
        assert f"{other.id}/design.md" in conflicts[0].recommendation

    def test_own_design_is_ignored(self, app):
        task = app.store.create_task("feat", "Sessions")
        write_design(Path(task.ticket_path), [("Store sessions in Redis", "Fast expiry")])
        assert app.conflicts.check_for_conflicts(task.id, "Keep sessions in Redis") == []

    def test_archived_tasks_are_scanned(self, app):
        other = app.store.create_task("feat", "Sessions")
        write_design(Path(other.ticket_path), [("Store sessions in Redis", "Fast expiry")])
        app.archiver.archive_task(other.id)

        conflicts = app.conflicts.check_for_conflicts("TASK-00099", "sessions move out of Redis")
        assert [c.source for c in conflicts] == [other.id]

    def test_empty_template_table_never_conflicts(self, app):
        app.store.create_task("feat", "Fresh")
        proposal = "Record each decision with rationale, source and date"
        assert app.conflicts.check_for_conflicts("TASK-00099", proposal) == []


class TestWikiConflicts:

    def test_wiki_page(self, app, temp_dir):
        wiki = temp_dir / "docs" / "wiki"
        wiki.mkdir(parents=True)
        (wiki / "retention.md").write_text(
            "# Data Retention\n\nCustomer invoices must be retained for seven years.\n"
        )
        conflicts = app.conflicts.check_for_conflicts("TASK-00001", "Purge customer invoices nightly")
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.STAKEHOLDER_REQUIREMENT
        assert conflicts[0].severity == Severity.MEDIUM
        assert '"Data Retention"' in conflicts[0].description

    def test_corpus_order(self, app, temp_dir):
        app.adrs.create_adr(
            Decision(title="Billing", decision="Invoices are generated by the billing service"),
            "TASK-00001",
        )
        other = app.store.create_task("feat", "Billing")
        write_design(Path(other.ticket_path), [("Billing service owns invoices", "")])
        wiki = temp_dir / "docs" / "wiki"
        wiki.mkdir(parents=True)
        (wiki / "billing.md").write_text("# Billing\n\nInvoices come from the billing service.\n")

        conflicts = app.conflicts.check_for_conflicts("TASK-00099", "billing service stops sending invoices")
        assert [c.type for c in conflicts] == [
            ConflictType.ADR_VIOLATION,
            ConflictType.PREVIOUS_DECISION,
            ConflictType.STAKEHOLDER_REQUIREMENT,
        ]

    def test_empty_workspace(self, app):
        assert app.conflicts.check_for_conflicts("TASK-00001", "anything at all here") == []
