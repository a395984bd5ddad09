"""Routers package — HTTP endpoint definitions.

Files:
  webhooks.py — Inbound webhooks from hosted services (/api/webhooks/vapi)
  v1/         — Versioned API routes (/api/v1/*)
"""
