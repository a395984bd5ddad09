"""Pydantic schemas package.

Folder intent:
  common.py      — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  client.py      — Client CRUD DTOs
  profile.py     — Client tax profile + personalized checklist (checklist engine I/O)
  checklist.py   — Checklist templates, client checklist items, progress
  document.py    — Uploads, classification results, document alerts
  tracking.py    — In-memory tracking dashboard
  deadline.py    — Tax deadlines, escalation workflows, compliance alerts
  vendor.py      — Vendors, W-9 status, 1099 compliance report
  voice.py       — VAPI assistants, calls, webhook payloads
  invitation.py  — Team invitations, email configuration check
"""
