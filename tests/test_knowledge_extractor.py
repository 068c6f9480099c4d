"""
Knowledge Extraction Tests

Test Categories:
1. Section scanning and list items
2. Significant keywords
3. Extraction from ticket documents
4. Handoff generation
5. Wiki updates
"""

from datetime import date
from pathlib import Path

import pytest

from taskbrain.errors import TaskNotFoundError, ValidationError
from taskbrain.keywords import MIN_KEYWORD_LENGTH, keyword_list, shared_keywords, significant_keywords
from taskbrain.knowledge_model import DecisionSource, ExtractedKnowledge, WikiUpdate
from taskbrain.markdown_sections import (
    extract_list_items,
    extract_section,
    extract_table_rows,
    slugify,
)
from taskbrain.task_model import Communication, CommunicationTag


# =============================================================================
# Section Scanning
# =============================================================================

class TestSectionScanner:

    def test_simple_learnings(self):
        assert extract_list_items("## Learnings\n- A\n- B", "## Learnings") == ["A", "B"]

    def test_missing_section_is_empty(self):
        assert extract_list_items("# Notes\n\nnothing here\n", "## Learnings") == []
        assert extract_section("", "## Summary") == ""

    def test_all_bullet_markers(self):
        content = "## Items\n- dash\n* star\n+ plus\n1. dot\n2) paren\nplain line\n"
        assert extract_list_items(content, "## Items") == ["dash", "star", "plus", "dot", "paren"]

    def test_checkboxes_and_placeholders(self):
        content = "## Items\n- [ ] open\n- [x] closed\n- [Placeholder text]\n"
        assert extract_list_items(content, "## Items") == ["open", "closed"]

    def test_stops_at_same_or_higher_level(self):
        content = (
            "## Learnings\n- first\n### Detail\n- nested\n"
            "## Gotchas\n- not a learning\n# Top\n- nor this\n"
        )
        assert extract_list_items(content, "## Learnings") == ["first", "nested"]

    def test_ignores_headings_inside_code_fences(self):
        content = "## Learnings\n- before\n```\n## Not a heading\n```\n- after\n"
        assert extract_list_items(content, "## Learnings") == ["before", "after"]

    def test_heading_must_match_exactly(self):
        content = "## Decisions Made\n- context decision\n"
        assert extract_list_items(content, "## Decisions") == []

    def test_table_rows_skip_header_and_separator(self):
        content = (
            "## Technical Decisions\n\n"
            "| Decision | Rationale |\n|---|---|\n| Use Postgres | Mature |\n\n"
            "trailing text\n"
        )
        assert extract_table_rows(content, "## Technical Decisions") == [["Use Postgres", "Mature"]]

    def test_slugify(self):
        assert slugify("Use OAuth2 with PKCE!") == "use-oauth2-with-pkce"
        assert slugify("???") == "untitled"
        assert len(slugify("x" * 100)) == 60


# =============================================================================
# Keywords
# =============================================================================

class TestKeywords:

    def test_tokenization(self):
        assert keyword_list("Use PostgreSQL, not MySQL; the DB-layer uses pgbouncer.") == [
            "postgresql", "mysql", "layer", "uses", "pgbouncer"
        ]

    def test_short_tokens_and_stop_words_dropped(self):
        keywords = significant_keywords("This would make the API fast with caching")
        assert keywords == frozenset({"fast", "caching"})
        assert all(len(k) >= MIN_KEYWORD_LENGTH for k in keywords)

    def test_shared_keywords_sorted(self):
        assert shared_keywords("Redis cache for sessions", "sessions stored in Redis") == [
            "redis", "sessions"
        ]


# =============================================================================
# Extraction
# =============================================================================

class TestExtractFromTask:

    def test_notes_sections(self, app, populated_task):
        knowledge = app.knowledge.extract_from_task(populated_task.id)
        assert knowledge.learnings[:3] == [
            "Token refresh must happen before expiry",
            "Provider rate limits at 10 rps",
            "Cache the discovery document",
        ]
        assert knowledge.gotchas == ["Clock skew breaks token validation"]

    def test_design_learnings(self, app, populated_task):
        learnings = app.knowledge.extract_from_task(populated_task.id).learnings
        assert "Browser clients authenticate through the authorization code flow." in learnings
        assert "AuthClient: Runs the authorization code exchange" in learnings
        assert not any(l.startswith("TokenCache") for l in learnings)

    def test_decisions_deduplicated_first_source_wins(self, app, populated_task):
        decisions = app.knowledge.extract_from_task(populated_task.id).decisions
        assert [(d.decision, d.source) for d in decisions] == [
            ("Store tokens in memory only", DecisionSource.CONTEXT),
            ("Use authorization code flow", DecisionSource.DESIGN),
        ]
        assert decisions[1].context == "Implicit flow is deprecated"

    def test_communication_decisions(self, app):
        task = app.store.create_task("feat", "Auth")
        app.communications.add_communication(task.id, Communication(
            date=date(2026, 5, 1), source="email", contact="Dana", topic="Token format",
            content="Use JWT access tokens", tags=[CommunicationTag.DECISION],
        ))
        app.communications.add_communication(task.id, Communication(
            date=date(2026, 5, 2), source="slack", contact="Eli", topic="Question",
            content="Do we need SSO?", tags=[CommunicationTag.QUESTION],
        ))
        decisions = app.knowledge.extract_from_task(task.id).decisions
        assert len(decisions) == 1
        assert decisions[0].title == "Token format"
        assert decisions[0].decision == "Use JWT access tokens"
        assert decisions[0].source == DecisionSource.COMMUNICATION
        assert decisions[0].context == "From email communication with Dana on 2026-05-01"

    def test_wiki_and_runbook_updates(self, app, populated_task):
        knowledge = app.knowledge.extract_from_task(populated_task.id)
        assert [(w.topic, w.content) for w in knowledge.wiki_updates] == [
            ("Authentication", "tokens are validated against the JWKS endpoint")
        ]
        assert [(r.section, r.content) for r in knowledge.runbook_updates] == [
            ("Rotate keys", "run the key rotation job monthly")
        ]

    def test_fresh_template_yields_nothing(self, app):
        task = app.store.create_task("spike", "Empty")
        knowledge = app.knowledge.extract_from_task(task.id)
        assert knowledge.learnings == []
        assert knowledge.decisions == []
        assert knowledge.gotchas == []
        assert knowledge.wiki_updates == []

    def test_missing_documents_are_not_errors(self, app):
        task = app.store.create_task("feat", "Sparse")
        for name in ("notes.md", "context.md", "design.md"):
            (Path(task.ticket_path) / name).unlink()
        assert app.knowledge.extract_from_task(task.id) == ExtractedKnowledge(task_id=task.id)

    def test_key_learnings_fallback(self, app):
        task = app.store.create_task("feat", "Old notes")
        (Path(task.ticket_path) / "notes.md").write_text("## Key Learnings\n- legacy heading\n")
        assert app.knowledge.extract_from_task(task.id).learnings == ["legacy heading"]

    def test_unknown_task(self, app):
        with pytest.raises(TaskNotFoundError):
            app.knowledge.extract_from_task("TASK-00123")

    def test_archived_task_still_readable(self, app, populated_task):
        app.archiver.archive_task(populated_task.id)
        knowledge = app.knowledge.extract_from_task(populated_task.id)
        assert knowledge.gotchas == ["Clock skew breaks token validation"]


# =============================================================================
# Handoff
# =============================================================================

class TestGenerateHandoff:

    def test_fields(self, app, populated_task):
        handoff = app.knowledge.generate_handoff(populated_task.id)
        assert handoff.task_id == populated_task.id
        assert handoff.summary == "Adds OAuth2 login to the web client."
        assert handoff.completed_work == [
            "Implemented the authorization redirect", "Added token storage"
        ]
        assert handoff.open_items == ["Wire logout", "Should refresh tokens be rotated?"]
        assert "notes.md" in handoff.related_docs
        assert "https://oauth.net/2/pkce/" in handoff.related_docs

    def test_render_has_fixed_sections(self, app, populated_task):
        generator = app.knowledge.handoff_generator
        content = generator.render(app.knowledge.generate_handoff(populated_task.id))
        headings = [line for line in content.splitlines() if line.startswith("## ")]
        assert headings == [
            "## Summary", "## Completed Work", "## Open Items", "## Key Learnings",
            "## Decisions Made", "## Gotchas", "## Related Documentation", "## Provenance",
        ]

    def test_generation_does_not_write(self, app, populated_task):
        app.knowledge.generate_handoff(populated_task.id)
        assert not (Path(populated_task.ticket_path) / "handoff.md").exists()


# =============================================================================
# Wiki
# =============================================================================

class TestUpdateWiki:

    def test_create_then_append(self, app, temp_dir):
        first = ExtractedKnowledge(task_id="TASK-00001", wiki_updates=[
            WikiUpdate(topic="Caching", content="Use Redis for sessions", task_id="TASK-00001")
        ])
        second = ExtractedKnowledge(task_id="TASK-00002", wiki_updates=[
            WikiUpdate(topic="Caching", content="Set a TTL on every key", task_id="TASK-00002")
        ])
        app.knowledge.update_wiki(first)
        [page] = app.knowledge.update_wiki(second)

        content = page.read_text()
        assert page == temp_dir / "docs" / "wiki" / "caching.md"
        assert content.startswith("# Caching\n\nUse Redis for sessions")
        assert "## Update from TASK-00002\n\nSet a TTL on every key" in content
        assert "*Learned from TASK-00001*" in content
        assert "*Learned from TASK-00002*" in content

    def test_explicit_path(self, app, temp_dir):
        knowledge = ExtractedKnowledge(task_id="TASK-00001", wiki_updates=[
            WikiUpdate(topic="Deploys", content="Blue/green", task_id="TASK-00001",
                       wiki_path="docs/wiki/ops/deploys.md")
        ])
        [page] = app.knowledge.update_wiki(knowledge)
        assert page == (temp_dir / "docs" / "wiki" / "ops" / "deploys.md").resolve()
        assert page.read_text().startswith("# Deploys")

    def test_path_outside_workspace_rejected(self, app):
        knowledge = ExtractedKnowledge(task_id="TASK-00001", wiki_updates=[
            WikiUpdate(topic="Escape", content="nope", task_id="TASK-00001",
                       wiki_path="../outside.md")
        ])
        with pytest.raises(ValidationError):
            app.knowledge.update_wiki(knowledge)
