"""Next-engagement alerts.

Reads the stored next engagement dates and turns them into a worklist:
who is due, grouped by day, and an HTML digest of the same list rendered
with Jinja2.

Usage:
    from touchline.engine.alerts import get_engagement_alerts, render_alert_digest

    alerts = get_engagement_alerts(db)
    html = render_alert_digest(alerts)
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import jinja2

from touchline.core.exceptions import SchemaNotReadyError
from touchline.core.logging import get_logger
from touchline.db.database import Database
from touchline.db.models import Contact, EngagementPurpose
from touchline.engine.calendar_days import add_days, day_diff, today_calendar_day

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "alerts"
DIGEST_TEMPLATE = "engagement_digest"

_PURPOSE_LABELS = {
    EngagementPurpose.UNRESPONSIVE: "No reply yet",
    EngagementPurpose.PERIODIC_CHECK_IN: "Check in",
}

_env: Optional[jinja2.Environment] = None


@dataclass
class EngagementAlert:
    """One contact due for engagement.

    Attributes:
        contact_id: Contact primary key
        name: Display name
        email: Contact email
        due_date: Next engagement calendar day (YYYY-MM-DD)
        purpose: Why the day was chosen, if classified
        days_until_due: Negative when overdue
        note: Manual follow-up note, if any
    """

    contact_id: int
    name: str
    email: Optional[str]
    due_date: str
    purpose: Optional[EngagementPurpose]
    days_until_due: int
    note: Optional[str] = None

    @property
    def is_overdue(self) -> bool:
        return self.days_until_due < 0

    @property
    def purpose_label(self) -> str:
        if self.purpose is None:
            return "Follow up"
        return _PURPOSE_LABELS[self.purpose]


def _to_alert(contact: Contact, today: str) -> EngagementAlert:
    assert contact.id is not None and contact.next_engagement_date is not None
    return EngagementAlert(
        contact_id=contact.id,
        name=contact.display_name,
        email=contact.email,
        due_date=contact.next_engagement_date,
        purpose=contact.next_engagement_purpose,
        days_until_due=day_diff(contact.next_engagement_date, today),
        note=contact.manual_follow_up_note,
    )


def _query(
    db: Database,
    today: str,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    limit: int = 500,
) -> list[EngagementAlert]:
    try:
        contacts = db.get_contacts_with_next_engagement(
            date_from=date_from, date_to=date_to, limit=limit
        )
    except SchemaNotReadyError as e:
        logger.debug(
            "Alerts unavailable until schema migration",
            extra={"context": {"column": e.column}},
        )
        return []
    return [_to_alert(contact, today) for contact in contacts]


def get_engagement_alerts(
    db: Database, today: Optional[str] = None, limit: int = 500
) -> list[EngagementAlert]:
    """All contacts with a stored next engagement, soonest first.

    Do-not-contact contacts are never included.

    Args:
        db: Database instance
        today: Reference day, defaults to the current UTC day
        limit: Maximum alerts

    Returns:
        Alerts sorted by due day, then name
    """
    today = today or today_calendar_day()
    return _query(db, today, limit=limit)


def get_due_alerts(
    db: Database, today: Optional[str] = None, days_overdue: int = 0
) -> list[EngagementAlert]:
    """Alerts due at least days_overdue days ago (0 means due today or earlier)."""
    today = today or today_calendar_day()
    return _query(db, today, date_to=add_days(today, -days_overdue))


def get_alerts_for_range(
    db: Database, date_from: str, date_to: str, today: Optional[str] = None
) -> list[EngagementAlert]:
    """Alerts whose due day falls within [date_from, date_to]."""
    today = today or today_calendar_day()
    return _query(db, today, date_from=date_from, date_to=date_to)


def _day_label(due_date: str, today: str) -> str:
    days = day_diff(due_date, today)
    if days < 0:
        return "Overdue"
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    return date.fromisoformat(due_date).strftime("%A, %b %d")


def group_alerts_by_day(
    alerts: list[EngagementAlert], today: Optional[str] = None
) -> list[tuple[str, list[EngagementAlert]]]:
    """Group alerts under display labels, in due order.

    Every overdue alert lands in a single "Overdue" group at the top.

    Args:
        alerts: Alerts to group
        today: Reference day, defaults to the current UTC day

    Returns:
        List of (label, alerts) pairs
    """
    today = today or today_calendar_day()
    groups: dict[str, list[EngagementAlert]] = {}
    for alert in sorted(alerts, key=lambda a: (a.due_date, a.name.lower(), a.contact_id)):
        groups.setdefault(_day_label(alert.due_date, today), []).append(alert)
    return list(groups.items())


def _get_env() -> jinja2.Environment:
    """Get or create the Jinja2 environment."""
    global _env
    if _env is None:
        _env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )
    return _env


def render_alert_digest(alerts: list[EngagementAlert], today: Optional[str] = None) -> str:
    """Render the alert digest as HTML.

    Args:
        alerts: Alerts to include
        today: Reference day, defaults to the current UTC day

    Returns:
        Rendered HTML body

    Raises:
        jinja2.TemplateNotFound: If the digest template is missing
    """
    today = today or today_calendar_day()
    template = _get_env().get_template(f"{DIGEST_TEMPLATE}.html.j2")
    rendered: str = template.render(
        today=today,
        groups=group_alerts_by_day(alerts, today),
        total=len(alerts),
        overdue=sum(1 for a in alerts if a.is_overdue),
    )
    logger.info(
        "Rendered alert digest",
        extra={"context": {"alerts": len(alerts), "today": today}},
    )
    return rendered
