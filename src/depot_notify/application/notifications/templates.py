"""Application notifications – Jinja2 email templates.

Templates live in a :class:`jinja2.DictLoader`. Each named template has a
``.subject`` and ``.html`` part and optionally a ``.txt`` part; HTML parts
extend one shared layout. Unknown names fall back to the ``plain``
template, which wraps the notification message in a paragraph.
"""
from __future__ import annotations

import dataclasses
from typing import Any

import jinja2

from depot_notify.kernel.time import utc_now

__all__ = ["TEMPLATE_NAMES", "EmailTemplateRenderer", "RenderedEmail"]


_LAYOUT = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #1a1a1a; color: white; padding: 20px; text-align: center; }
    .content { background: #f9f9f9; padding: 30px; }
    .footer { background: #1a1a1a; color: white; padding: 15px; text-align: center; font-size: 12px; }
    .button { display: inline-block; padding: 12px 24px; background: #007bff; color: white; text-decoration: none; border-radius: 4px; margin: 10px 0; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{{ brand_name }}</h1></div>
    <div class="content">
      <h2>{% block heading %}{% endblock %}</h2>
      {% block content %}{% endblock %}
      {% block action %}{% endblock %}
    </div>
    <div class="footer">
      <p>&copy; {{ year }} {{ brand_name }}. All rights reserved.</p>
      <p>This is an automated notification. Please do not reply to this email.</p>
    </div>
  </div>
</body>
</html>
"""

_SOURCES: dict[str, str] = {
    "layout.html": _LAYOUT,
    # -- plain ---------------------------------------------------------------
    "plain.subject": "{{ title }}",
    "plain.html": "<p>{{ message }}</p>",
    "plain.txt": "{{ message }}",
    # -- booking-confirmed ---------------------------------------------------
    "booking-confirmed.subject": 'Booking Confirmed - #{{ bookingId or "N/A" }}',
    "booking-confirmed.html": """\
{% extends "layout.html" %}
{% block heading %}Booking Confirmed{% endblock %}
{% block content %}
<p>Dear {{ customerName or "Customer" }},</p>
<p>Your booking has been confirmed!</p>
<p><strong>Booking Details:</strong></p>
<ul>
  <li><strong>Booking ID:</strong> {{ bookingId or "N/A" }}</li>
  <li><strong>Type:</strong> {{ bookingType or "N/A" }}</li>
  <li><strong>Quantity:</strong> {{ quantity or "N/A" }}</li>
  <li><strong>Status:</strong> {{ status or "Confirmed" }}</li>
  {% if expectedDate %}<li><strong>Expected Date:</strong> {{ expectedDate }}</li>{% endif %}
</ul>
<p>You can view your booking details in your dashboard.</p>
{% endblock %}
{% block action %}<p><a href="{{ dashboardUrl }}" class="button">View Booking</a></p>{% endblock %}
""",
    "booking-confirmed.txt": """\
Booking Confirmed - #{{ bookingId or "N/A" }}

Dear {{ customerName or "Customer" }},

Your booking has been confirmed!

Booking Details:
- Booking ID: {{ bookingId or "N/A" }}
- Type: {{ bookingType or "N/A" }}
- Quantity: {{ quantity or "N/A" }}
- Status: {{ status or "Confirmed" }}
{% if expectedDate %}- Expected Date: {{ expectedDate }}
{% endif %}
View your booking: {{ dashboardUrl }}""",
    # -- booking-reminder ----------------------------------------------------
    "booking-reminder.subject": 'Booking Reminder - #{{ bookingId or "N/A" }}',
    "booking-reminder.html": """\
{% extends "layout.html" %}
{% block heading %}Booking Reminder{% endblock %}
{% block content %}
<p>Dear {{ customerName or "Customer" }},</p>
<p>This is a reminder about your upcoming booking.</p>
<p><strong>Booking Details:</strong></p>
<ul>
  <li><strong>Booking ID:</strong> {{ bookingId or "N/A" }}</li>
  <li><strong>Type:</strong> {{ bookingType or "N/A" }}</li>
  <li><strong>Scheduled Date:</strong> {{ scheduledDate or "N/A" }}</li>
</ul>
<p>Please ensure you're prepared for your scheduled booking.</p>
{% endblock %}
{% block action %}<p><a href="{{ dashboardUrl }}" class="button">View Booking</a></p>{% endblock %}
""",
    # -- invoice-created -----------------------------------------------------
    "invoice-created.subject": 'New Invoice - #{{ invoiceId or "N/A" }}',
    "invoice-created.html": """\
{% extends "layout.html" %}
{% block heading %}New Invoice{% endblock %}
{% block content %}
<p>Dear {{ customerName or "Customer" }},</p>
<p>A new invoice has been generated for your account.</p>
<p><strong>Invoice Details:</strong></p>
<ul>
  <li><strong>Invoice ID:</strong> {{ invoiceId or "N/A" }}</li>
  <li><strong>Amount:</strong> {{ amount or "$0.00" }}</li>
  <li><strong>Due Date:</strong> {{ dueDate or "N/A" }}</li>
  <li><strong>Status:</strong> {{ status or "Pending" }}</li>
</ul>
<p>Please review and pay your invoice before the due date.</p>
{% endblock %}
{% block action %}<p><a href="{{ dashboardUrl }}" class="button">View Invoice</a></p>{% endblock %}
""",
    # -- invoice-due ---------------------------------------------------------
    "invoice-due.subject": 'Invoice Due Soon - #{{ invoiceId or "N/A" }}',
    "invoice-due.html": """\
{% extends "layout.html" %}
{% block heading %}Invoice Due Reminder{% endblock %}
{% block content %}
<p>Dear {{ customerName or "Customer" }},</p>
<p>This is a reminder that your invoice is due soon.</p>
<p><strong>Invoice Details:</strong></p>
<ul>
  <li><strong>Invoice ID:</strong> {{ invoiceId or "N/A" }}</li>
  <li><strong>Amount:</strong> {{ amount or "$0.00" }}</li>
  <li><strong>Due Date:</strong> {{ dueDate or "N/A" }}</li>
  {% if daysUntilDue %}<li><strong>Days Until Due:</strong> {{ daysUntilDue }}</li>{% endif %}
</ul>
<p>Please make payment before the due date to avoid any late fees.</p>
{% endblock %}
{% block action %}<p><a href="{{ dashboardUrl }}" class="button">Pay Invoice</a></p>{% endblock %}
""",
    # -- task-assigned -------------------------------------------------------
    "task-assigned.subject": 'New Task Assigned - {{ taskTitle or "Task" }}',
    "task-assigned.html": """\
{% extends "layout.html" %}
{% block heading %}Task Assigned{% endblock %}
{% block content %}
<p>Dear {{ workerName or "Worker" }},</p>
<p>A new task has been assigned to you.</p>
<p><strong>Task Details:</strong></p>
<ul>
  <li><strong>Task:</strong> {{ taskTitle or "N/A" }}</li>
  <li><strong>Type:</strong> {{ taskType or "N/A" }}</li>
  <li><strong>Priority:</strong> {{ priority or "Normal" }}</li>
  {% if dueDate %}<li><strong>Due Date:</strong> {{ dueDate }}</li>{% endif %}
</ul>
<p>Please review and complete the task as soon as possible.</p>
{% endblock %}
{% block action %}<p><a href="{{ dashboardUrl }}" class="button">View Task</a></p>{% endblock %}
""",
    # -- incident-reported ---------------------------------------------------
    "incident-reported.subject": 'Incident Reported - #{{ incidentId or "N/A" }}',
    "incident-reported.html": """\
{% extends "layout.html" %}
{% block heading %}Incident Reported{% endblock %}
{% block content %}
<p>Dear {{ recipientName or "User" }},</p>
<p>A new incident has been reported{% if severity %} with {{ severity }} severity{% endif %}.</p>
<p><strong>Incident Details:</strong></p>
<ul>
  <li><strong>Incident ID:</strong> {{ incidentId or "N/A" }}</li>
  <li><strong>Type:</strong> {{ incidentType or "N/A" }}</li>
  <li><strong>Description:</strong> {{ description or "N/A" }}</li>
  {% if location %}<li><strong>Location:</strong> {{ location }}</li>{% endif %}
  {% if reportedBy %}<li><strong>Reported By:</strong> {{ reportedBy }}</li>{% endif %}
</ul>
<p>Please review and take appropriate action.</p>
{% endblock %}
{% block action %}<p><a href="{{ dashboardUrl }}" class="button">View Incident</a></p>{% endblock %}
""",
    # -- system --------------------------------------------------------------
    "system.subject": '{{ title or "System Notification" }}',
    "system.html": """\
{% extends "layout.html" %}
{% block heading %}{{ title or "System Notification" }}{% endblock %}
{% block content %}
<p>Dear {{ userName or "User" }},</p>
<p>{{ message or "You have a new system notification." }}</p>
{% if details %}<p><strong>Details:</strong></p><p>{{ details }}</p>{% endif %}
{% endblock %}
""",
}

#: Names accepted by :meth:`EmailTemplateRenderer.render`.
TEMPLATE_NAMES: frozenset[str] = frozenset(
    name.rsplit(".", 1)[0] for name in _SOURCES if name.endswith(".subject") and name != "plain.subject"
)


@dataclasses.dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


class EmailTemplateRenderer:
    """Render notification emails from the built-in template set.

    Parameters
    ----------
    site_url:
        Base URL used for the ``dashboardUrl`` link in every template.
    brand_name:
        Shown in the layout header and footer.
    """

    def __init__(self, site_url: str = "http://localhost:3000", brand_name: str = "Warehouse") -> None:
        self._site_url = site_url.rstrip("/")
        self._brand_name = brand_name
        self._env = jinja2.Environment(
            loader=jinja2.DictLoader(_SOURCES),
            autoescape=jinja2.select_autoescape(enabled_extensions=("html",), default_for_string=False),
        )

    @property
    def dashboard_url(self) -> str:
        return f"{self._site_url}/dashboard"

    def has_template(self, name: str | None) -> bool:
        return name in TEMPLATE_NAMES

    def render(
        self,
        template: str | None,
        *,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        recipient_name: str | None = None,
    ) -> RenderedEmail:
        """Render *template*, or wrap *message* when the name is unknown or ``None``.

        The context is *data* plus ``title``/``message`` defaults and the
        recipient-derived keys ``userName``, ``customerName`` and
        ``dashboardUrl``, which always win over *data*.
        """
        name = template if self.has_template(template) else "plain"
        context: dict[str, Any] = {"title": title, "message": message}
        context.update(data or {})
        context.update(
            userName=recipient_name,
            customerName=recipient_name,
            dashboardUrl=self.dashboard_url,
            brand_name=self._brand_name,
            year=utc_now().year,
        )

        subject = self._env.get_template(f"{name}.subject").render(context).strip()
        html = self._env.get_template(f"{name}.html").render(context).strip()
        try:
            text = self._env.get_template(f"{name}.txt").render(context).strip()
        except jinja2.TemplateNotFound:
            text = message
        return RenderedEmail(subject=subject or title, html=html, text=text)
