"""Services package — all business logic lives here, never in routers.

Files:
  clients.py             — Client CRUD
  checklist_engine.py    — Pure checklist generation, conditional rules, progress
  document_collection.py — Templates, client checklists, document alerts
  classification.py      — Keyword + OpenAI document classification
  text_extraction.py     — pdfplumber / plain-text extraction for uploads
  documents.py           — Upload storage, checklist matching, review
  tracking.py            — In-memory document tracking system (one per organization)
  deadline_alerts.py     — Tax deadlines, reminders, inactivity, escalations
  compliance.py          — Vendor payments, W-9 lifecycle, 1099 reporting
  vapi_client.py         — VAPI HTTP client and assistant presets
  calls.py               — VAPI webhook handling and call logs
  email_service.py       — Resend / SendGrid / log delivery and templates
  invitations.py         — Staff invitations and password hashing

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
