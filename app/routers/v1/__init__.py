"""v1 router package — all /api/v1/* endpoints live here.

Files:
  clients.py             — Client CRUD
  document_collection.py — Templates, client checklists, progress, document alerts
  documents.py           — Uploads and review
  tracking.py            — In-memory document tracking dashboard
  deadlines.py           — Tax deadlines, compliance alerts, scheduled checks
  compliance.py          — Vendors, W-9 / 1099 compliance
  voice.py               — VAPI proxy and stored call logs
  invitations.py         — Team invitations
  email.py               — Email provider status

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to app/services/.
"""
