"""Tests for the per-agent state and comment overlay."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_inputs, make_settings
from core.exceptions import ValidationError
from core.models import Property, PropertyAgentState
from domain.agent_state import AgentStateService
from domain.properties import PropertyService


@pytest.fixture
def loaded_list(db_session, settings, sample_list):
    """``sample_list`` with four properties; returns their ids newest first."""
    PropertyService(db_session, settings).upload_properties(sample_list.id, make_inputs(4), "automation")
    page = AgentStateService(db_session, settings).get_properties_with_agent_state(
        "agent-1", sample_list.id
    )
    return [row["id"] for row in page.data]


class TestReadOverlay:
    def test_properties_default_to_new_with_empty_comment(self, db_session, settings, sample_list, loaded_list):
        page = AgentStateService(db_session, settings).get_properties_with_agent_state(
            "agent-1", sample_list.id
        )

        assert page.total == 4
        assert page.has_more is False
        assert page.cursor is None
        assert all(row["state"] == "new" and row["comment"] == "" for row in page.data)
        assert page.state_counts == {"new": 4, "contacted": 0, "captured": 0, "rejected": 0}

    def test_raw_payload_fields_are_surfaced(self, db_session, settings, sample_list):
        prop = Property(
            list_id=sample_list.id,
            price=1000,
            raw_payload={"titulo": "Ático", "ubicacion": "Chamberí", "descripcion": "Con terraza"},
        )
        db_session.add(prop)
        db_session.flush()

        row = AgentStateService(db_session, settings).get_properties_with_agent_state(
            "agent-1", sample_list.id
        ).data[0]

        assert row["title"] == "Ático"
        assert row["location"] == "Chamberí"
        assert row["description"] == "Con terraza"

    def test_overlay_is_private_per_agent(self, db_session, settings, sample_list, loaded_list):
        service = AgentStateService(db_session, settings)
        service.update_property_state("agent-1", loaded_list[0], "contacted")

        mine = service.get_properties_with_agent_state("agent-1", sample_list.id)
        theirs = service.get_properties_with_agent_state("agent-2", sample_list.id)

        assert mine.state_counts["contacted"] == 1
        assert theirs.state_counts["contacted"] == 0
        assert {row["state"] for row in theirs.data} == {"new"}

    def test_state_filter(self, db_session, settings, sample_list, loaded_list):
        service = AgentStateService(db_session, settings)
        service.update_property_state("agent-1", loaded_list[0], "captured")
        service.update_property_state("agent-1", loaded_list[1], "new")

        captured = service.get_properties_with_agent_state("agent-1", sample_list.id, state_filter="captured")
        new = service.get_properties_with_agent_state("agent-1", sample_list.id, state_filter="new")

        assert [row["id"] for row in captured.data] == [loaded_list[0]]
        assert captured.total == 1
        # Explicit "new" rows and rows without an overlay both count as new
        assert new.total == 3
        # Counts always cover the whole list
        assert new.state_counts == {"new": 3, "contacted": 0, "captured": 1, "rejected": 0}

    def test_invalid_state_filter(self, db_session, settings, sample_list):
        with pytest.raises(ValidationError):
            AgentStateService(db_session, settings).get_properties_with_agent_state(
                "agent-1", sample_list.id, state_filter="sold"
            )

    def test_pagination(self, db_session, settings, sample_list, loaded_list):
        service = AgentStateService(db_session, settings)

        first = service.get_properties_with_agent_state("agent-1", sample_list.id, limit=3)
        second = service.get_properties_with_agent_state("agent-1", sample_list.id, cursor=first.cursor, limit=3)

        assert first.has_more is True
        assert len(first.data) == 3
        assert second.has_more is False
        assert len(second.data) == 1
        assert [row["id"] for row in first.data + second.data] == loaded_list

    def test_pagination_breaks_created_at_ties_by_id(self, db_session, settings, sample_list):
        created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            db_session.add(Property(
                list_id=sample_list.id,
                price=100000 + i,
                source_url=f"https://example.com/same-instant/{i}",
                created_at=created_at,
            ))
        db_session.flush()
        service = AgentStateService(db_session, settings)

        seen = []
        cursor = None
        while True:
            page = service.get_properties_with_agent_state(
                "agent-1", sample_list.id, cursor=cursor, limit=2, state_filter="new"
            )
            seen.extend(row["id"] for row in page.data)
            if not page.has_more:
                break
            cursor = page.cursor

        assert len(seen) == len(set(seen)) == 5
        assert seen == sorted(seen, reverse=True)

    def test_page_size_is_capped(self, db_session, sample_list, loaded_list):
        settings = make_settings(MAX_PAGE_SIZE=2)
        page = AgentStateService(db_session, settings).get_properties_with_agent_state(
            "agent-1", sample_list.id, limit=50
        )
        assert len(page.data) == 2
        assert page.has_more is True


class TestWriteOverlay:
    def test_state_update_creates_row(self, db_session, settings, loaded_list):
        service = AgentStateService(db_session, settings)

        view = service.update_property_state("agent-1", loaded_list[0], "contacted")

        assert view.state == "contacted"
        assert view.comment is None
        assert view.to_dict()["comment"] == ""
        stored = service.get_property_agent_state("agent-1", loaded_list[0])
        assert stored.state == "contacted"

    def test_comment_keeps_state_and_state_keeps_comment(self, db_session, settings, loaded_list):
        service = AgentStateService(db_session, settings)

        service.update_property_state("agent-1", loaded_list[0], "contacted")
        view = service.update_property_comment("agent-1", loaded_list[0], "Llamar por la tarde")
        assert view.state == "contacted"

        view = service.update_property_state("agent-1", loaded_list[0], "captured")
        assert view.comment == "Llamar por la tarde"

    def test_comment_first_starts_as_new(self, db_session, settings, loaded_list):
        view = AgentStateService(db_session, settings).update_property_comment(
            "agent-1", loaded_list[0], "Nota"
        )
        assert view.state == "new"
        assert view.comment == "Nota"

    def test_one_row_per_agent_and_property(self, db_session, settings, loaded_list):
        service = AgentStateService(db_session, settings)
        service.update_property_state("agent-1", loaded_list[0], "contacted")
        service.update_property_state("agent-1", loaded_list[0], "rejected")

        rows = db_session.query(PropertyAgentState).filter(
            PropertyAgentState.property_id == loaded_list[0]
        ).all()
        assert len(rows) == 1
        assert rows[0].state == "rejected"

    def test_invalid_state(self, db_session, settings, loaded_list):
        with pytest.raises(ValidationError):
            AgentStateService(db_session, settings).update_property_state("agent-1", loaded_list[0], "sold")

    def test_comment_too_long(self, db_session, loaded_list):
        settings = make_settings(MAX_COMMENT_LENGTH=10)
        with pytest.raises(ValidationError):
            AgentStateService(db_session, settings).update_property_comment(
                "agent-1", loaded_list[0], "x" * 11
            )

    def test_overlay_removed_with_property(self, db_session, settings, sample_list, loaded_list):
        AgentStateService(db_session, settings).update_property_state("agent-1", loaded_list[0], "contacted")

        PropertyService(db_session, settings).delete_property(sample_list.id, loaded_list[0])

        assert db_session.query(PropertyAgentState).count() == 0
