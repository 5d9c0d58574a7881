"""Tests for the SQLite stores."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from webcode.core import Message, OutputPanelState, Project, PromptTemplate, QuickAction, Session
from webcode.db import from_db_time, to_db_time

OWNER = "alice"
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_db_time_treats_naive_as_utc():
    naive = datetime(2024, 5, 1, 12, 0)
    assert to_db_time(naive) == to_db_time(T0)
    assert from_db_time(to_db_time(T0)) == T0
    assert to_db_time(None) is None
    assert from_db_time("") is None


class TestSessionStore:
    def test_list_orders_by_updated_desc(self, stores):
        for i, sid in enumerate(["a", "b", "c"]):
            stores.sessions.upsert_session(OWNER, Session(sid, updated_at=T0 + timedelta(minutes=i)))

        assert [s.session_id for s in stores.sessions.list_sessions(OWNER)] == ["c", "b", "a"]

    def test_messages_keep_insertion_order(self, stores):
        stores.sessions.upsert_session(OWNER, Session("s1"))
        stores.sessions.insert_messages(
            OWNER, "s1", [Message("user", "first"), Message("assistant", "second")]
        )

        listed = stores.sessions.list_sessions(OWNER)[0]
        fetched = stores.sessions.get_session(OWNER, "s1")
        assert [m.content for m in listed.messages] == ["first", "second"]
        assert [m.content for m in fetched.messages] == ["first", "second"]

    def test_same_id_for_two_owners(self, stores):
        stores.sessions.upsert_session(OWNER, Session("s1", title="mine"))
        stores.sessions.upsert_session("bob", Session("s1", title="his"))
        stores.sessions.insert_messages("bob", "s1", [Message("user", "hi")])

        assert stores.sessions.get_session(OWNER, "s1").title == "mine"
        assert stores.sessions.get_session(OWNER, "s1").messages == []
        assert stores.sessions.delete_session("bob", "s1") is True
        assert stores.sessions.exists(OWNER, "s1")

    def test_delete_reports_missing(self, stores):
        assert stores.sessions.delete_session(OWNER, "missing") is False
        assert stores.sessions.delete_messages(OWNER, "missing") == 0

    def test_set_workspace_valid_keeps_updated_at(self, stores):
        stores.sessions.upsert_session(OWNER, Session("s1", updated_at=T0))
        stores.sessions.set_workspace_valid(OWNER, "s1", False)

        stored = stores.sessions.get_session(OWNER, "s1")
        assert stored.is_workspace_valid is False
        assert stored.updated_at == T0

    def test_upsert_overwrites_metadata(self, stores):
        stores.sessions.upsert_session(OWNER, Session("s1", title="one", project_id="p1"))
        stores.sessions.upsert_session(OWNER, Session("s1", title="two"))

        stored = stores.sessions.get_session(OWNER, "s1")
        assert stored.title == "two"
        assert stored.project_id is None
        assert stores.sessions.count(OWNER) == 1


class TestOutputStore:
    def test_upsert_and_delete(self, stores):
        stores.outputs.upsert(OWNER, OutputPanelState("s1", raw_output="abc", events_json="[]"))
        stores.outputs.upsert(OWNER, OutputPanelState("s1", raw_output="xyz", displayed_event_count=50))

        state = stores.outputs.get(OWNER, "s1")
        assert state.raw_output == "xyz"
        assert state.displayed_event_count == 50
        assert stores.outputs.count(OWNER) == 1
        assert stores.outputs.delete(OWNER, "s1") is True
        assert stores.outputs.delete(OWNER, "s1") is False
        assert stores.outputs.get(OWNER, "s1") is None


class TestTemplateStore:
    def test_variables_and_filters(self, stores):
        stores.templates.upsert(
            OWNER, PromptTemplate("t1", title="A", category="testing", variables=["code", "framework"])
        )
        stores.templates.upsert(
            OWNER, PromptTemplate("t2", title="B", category="review", is_favorite=True)
        )

        assert stores.templates.get(OWNER, "t1").variables == ["code", "framework"]
        assert [t.id for t in stores.templates.list_by_category(OWNER, "testing")] == ["t1"]
        assert [t.id for t in stores.templates.list_favorites(OWNER)] == ["t2"]
        assert stores.templates.get("bob", "t1") is None

    def test_bad_variables_json_yields_empty_list(self, stores, db):
        stores.templates.upsert(OWNER, PromptTemplate("t1", variables=["x"]))
        with db.connect() as conn:
            conn.execute("UPDATE prompt_template SET variables_json = 'not json'")

        assert stores.templates.get(OWNER, "t1").variables == []

    def test_delete(self, stores):
        stores.templates.upsert(OWNER, PromptTemplate("t1"))
        assert stores.templates.delete(OWNER, "t1") is True
        assert stores.templates.delete(OWNER, "t1") is False


class TestQuickActionStore:
    def test_listed_by_order(self, stores):
        stores.quick_actions.upsert(OWNER, QuickAction("b", title="B", content="run b", order=2))
        stores.quick_actions.upsert(OWNER, QuickAction("a", title="A", content="run a", order=1))

        actions = stores.quick_actions.list_actions(OWNER)
        assert [a.id for a in actions] == ["a", "b"]
        assert actions[0].content == "run a"

    def test_replace_all(self, stores):
        stores.quick_actions.upsert(OWNER, QuickAction("old"))
        stores.quick_actions.replace_all(OWNER, [QuickAction("x", order=1), QuickAction("y", order=0)])

        assert [a.id for a in stores.quick_actions.list_actions(OWNER)] == ["y", "x"]

    def test_replace_all_rolls_back_on_error(self, stores):
        stores.quick_actions.upsert(OWNER, QuickAction("keep"))

        with pytest.raises(sqlite3.Error):
            stores.quick_actions.replace_all(OWNER, [QuickAction("bad", order=object())])

        assert [a.id for a in stores.quick_actions.list_actions(OWNER)] == ["keep"]

    def test_clear_is_owner_scoped(self, stores):
        stores.quick_actions.upsert(OWNER, QuickAction("a"))
        stores.quick_actions.upsert("bob", QuickAction("a"))

        assert stores.quick_actions.clear(OWNER) == 1
        assert stores.quick_actions.count("bob") == 1


class TestInputHistoryStore:
    def test_recent_newest_first(self, stores):
        for i in range(5):
            stores.input_history.add(OWNER, f"cmd {i}", T0 + timedelta(seconds=i))

        recent = stores.input_history.recent(OWNER, limit=3)
        assert [item.text for item in recent] == ["cmd 4", "cmd 3", "cmd 2"]

    def test_search_is_substring_and_case_sensitive(self, stores):
        stores.input_history.add(OWNER, "git status", T0)
        stores.input_history.add(OWNER, "Run the tests", T0 + timedelta(seconds=1))
        stores.input_history.add(OWNER, "run git log", T0 + timedelta(seconds=2))

        assert [i.text for i in stores.input_history.search(OWNER, "git")] == ["run git log", "git status"]
        assert [i.text for i in stores.input_history.search(OWNER, "Run")] == ["Run the tests"]
        assert stores.input_history.search("bob", "git") == []

    def test_clear(self, stores):
        stores.input_history.add(OWNER, "one")
        stores.input_history.add("bob", "two")

        assert stores.input_history.clear(OWNER) == 1
        assert stores.input_history.count(OWNER) == 0
        assert stores.input_history.count("bob") == 1


class TestSettingStore:
    def test_set_overwrites_single_row(self, stores):
        stores.settings.set(OWNER, "theme", "dark")
        stores.settings.set(OWNER, "theme", "light")
        stores.settings.set(OWNER, "lang", None)

        assert stores.settings.get(OWNER, "theme") == "light"
        assert stores.settings.exists(OWNER, "lang")
        assert stores.settings.get(OWNER, "lang") is None
        assert stores.settings.all(OWNER) == {"lang": None, "theme": "light"}
        assert stores.settings.count(OWNER) == 2

    def test_delete(self, stores):
        stores.settings.set(OWNER, "theme", "dark")
        assert stores.settings.delete(OWNER, "theme") is True
        assert stores.settings.delete(OWNER, "theme") is False


class TestProjectStore:
    def test_round_trip_and_name_lookup(self, stores):
        project = Project("p1", "demo", "https://example.com/demo.git", last_sync_at=T0)
        stores.projects.upsert(OWNER, project)

        stored = stores.projects.get(OWNER, "p1")
        assert stored.name == "demo"
        assert stored.last_sync_at == T0
        assert stores.projects.exists_by_name(OWNER, "demo")
        assert not stores.projects.exists_by_name(OWNER, "demo", exclude_id="p1")
        assert not stores.projects.exists_by_name("bob", "demo")

    def test_duplicate_name_violates_unique_index(self, stores):
        stores.projects.upsert(OWNER, Project("p1", "demo", "u1"))

        with pytest.raises(sqlite3.IntegrityError):
            stores.projects.upsert(OWNER, Project("p2", "demo", "u2"))

    def test_list_and_delete(self, stores):
        stores.projects.upsert(OWNER, Project("p1", "one", "u1", updated_at=T0))
        stores.projects.upsert(OWNER, Project("p2", "two", "u2", updated_at=T0 + timedelta(hours=1)))

        assert [p.project_id for p in stores.projects.list_projects(OWNER)] == ["p2", "p1"]
        assert stores.projects.delete(OWNER, "p1") is True
        assert stores.projects.delete(OWNER, "p1") is False
