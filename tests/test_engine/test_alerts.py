"""Tests for next-engagement alerts."""

import pytest

from touchline.db.database import Database
from touchline.db.models import EngagementPurpose
from touchline.engine.alerts import (
    EngagementAlert,
    get_alerts_for_range,
    get_due_alerts,
    get_engagement_alerts,
    group_alerts_by_day,
    render_alert_digest,
)

TODAY = "2024-02-05"


@pytest.fixture
def scheduled_db(memory_db: Database, add_contact) -> Database:
    """Contacts scheduled around 2024-02-05 (a Monday)."""
    rows = [
        ("Olga", "2024-02-01", EngagementPurpose.UNRESPONSIVE, False),
        ("Tess", "2024-02-05", EngagementPurpose.PERIODIC_CHECK_IN, False),
        ("Tom", "2024-02-06", None, False),
        ("Wendy", "2024-02-07", EngagementPurpose.UNRESPONSIVE, False),
        ("Dora", "2024-02-05", EngagementPurpose.UNRESPONSIVE, True),
    ]
    for name, day, purpose, suppressed in rows:
        contact_id = add_contact(
            memory_db,
            first_name=name,
            last_name="",
            email=f"{name.lower()}@example.com",
            do_not_contact_again=suppressed,
        )
        memory_db.write_next_engagement(contact_id, day, purpose)
    return memory_db


def _alert(name: str, day: str, days: int) -> EngagementAlert:
    return EngagementAlert(
        contact_id=len(name),
        name=name,
        email=None,
        due_date=day,
        purpose=None,
        days_until_due=days,
    )


class TestQueries:
    """Test alert queries."""

    def test_all_alerts_sorted_without_suppressed(self, scheduled_db: Database):
        """Suppressed contacts never appear; order is day then name."""
        alerts = get_engagement_alerts(scheduled_db, today=TODAY)
        assert [a.name for a in alerts] == ["Olga", "Tess", "Tom", "Wendy"]
        assert [a.days_until_due for a in alerts] == [-4, 0, 1, 2]
        assert alerts[0].is_overdue

    def test_due_alerts(self, scheduled_db: Database):
        """Due today or earlier."""
        assert [a.name for a in get_due_alerts(scheduled_db, today=TODAY)] == ["Olga", "Tess"]

    def test_days_overdue(self, scheduled_db: Database):
        """Only alerts at least N days past due."""
        alerts = get_due_alerts(scheduled_db, today=TODAY, days_overdue=3)
        assert [a.name for a in alerts] == ["Olga"]

    def test_range(self, scheduled_db: Database):
        """Inclusive date range."""
        alerts = get_alerts_for_range(scheduled_db, "2024-02-05", "2024-02-06", today=TODAY)
        assert [a.name for a in alerts] == ["Tess", "Tom"]

    def test_legacy_schema_has_no_alerts(self, legacy_db: Database, add_contact):
        """Nothing is scheduled before the engine columns exist."""
        add_contact(legacy_db)
        assert get_engagement_alerts(legacy_db, today=TODAY) == []

    def test_purpose_labels(self, scheduled_db: Database):
        """Each purpose has a readable label."""
        labels = [a.purpose_label for a in get_engagement_alerts(scheduled_db, today=TODAY)]
        assert labels == ["No reply yet", "Check in", "Follow up", "No reply yet"]


class TestGrouping:
    """Test group_alerts_by_day."""

    def test_labels_in_order(self):
        """Overdue, today, tomorrow, then weekday dates."""
        alerts = [
            _alert("Wendy", "2024-02-07", 2),
            _alert("Tess", "2024-02-05", 0),
            _alert("Olga", "2024-02-01", -4),
            _alert("Nina", "2024-02-03", -2),
            _alert("Tom", "2024-02-06", 1),
        ]
        groups = group_alerts_by_day(alerts, TODAY)
        assert [label for label, _ in groups] == [
            "Overdue",
            "Due today",
            "Due tomorrow",
            "Wednesday, Feb 07",
        ]
        assert [a.name for a in groups[0][1]] == ["Olga", "Nina"]

    def test_empty(self):
        """No alerts, no groups."""
        assert group_alerts_by_day([], TODAY) == []


class TestDigest:
    """Test render_alert_digest."""

    def test_renders_groups_and_names(self, scheduled_db: Database):
        """The digest lists every alert under its group."""
        html = render_alert_digest(get_engagement_alerts(scheduled_db, today=TODAY), TODAY)
        assert "Engagements for 2024-02-05" in html
        assert "Due today" in html
        assert "Tess" in html
        assert "Dora" not in html
        assert "1 overdue" in html

    def test_escapes_names(self):
        """Contact data is HTML-escaped."""
        html = render_alert_digest([_alert("<b>Eve</b>", TODAY, 0)], TODAY)
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html
        assert "<b>Eve</b>" not in html

    def test_empty_digest(self):
        """An empty list renders a friendly message."""
        assert "Nothing due" in render_alert_digest([], TODAY)
