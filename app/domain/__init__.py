"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  organization.py — Practices (tenants), staff users, invitations
  client.py       — Practice clients
  checklist.py    — Checklist templates, per-client checklist items, collection sessions
  document.py     — Uploaded documents and client-facing document alerts
  deadline.py     — Tax deadlines, reminders, escalation workflows, compliance alerts
  vendor.py       — Client vendors and W-9 status
  call.py         — Voice-agent call logs
  audit.py        — Immutable audit trail (never updated or deleted)
  mixins.py       — Shared TimestampMixin, TenantMixin
"""

from app.domain.audit import AuditTrail
from app.domain.call import CallLog
from app.domain.checklist import ChecklistItem, ChecklistTemplate, CollectionSession
from app.domain.client import Client
from app.domain.deadline import (
    ClientInactivityAlert,
    ComplianceAlert,
    EscalationWorkflow,
    ReminderSchedule,
    TaxDeadline,
)
from app.domain.document import Document, DocumentAlert
from app.domain.organization import Invitation, Organization, User
from app.domain.vendor import Vendor, W9Status

__all__ = [
    "AuditTrail",
    "CallLog",
    "ChecklistItem",
    "ChecklistTemplate",
    "Client",
    "ClientInactivityAlert",
    "CollectionSession",
    "ComplianceAlert",
    "Document",
    "DocumentAlert",
    "EscalationWorkflow",
    "Invitation",
    "Organization",
    "ReminderSchedule",
    "TaxDeadline",
    "User",
    "Vendor",
    "W9Status",
]
