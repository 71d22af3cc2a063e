"""v1 router package — all /api/v1/* endpoints live here.

Files:
  suppliers.py          — supplier CRUD, directory listing, websocket search
  segments.py           — segment lookup CRUD
  reconcile_intents.py  — pending sequential writes and their replay

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to the services package.
"""
