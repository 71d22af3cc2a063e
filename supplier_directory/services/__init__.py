"""Services package — all business logic lives here, never in routers.

Files:
  validation.py         — input checks shared by the reconciler and segment service
  reconciler.py         — AssociationReconciler: supplier writes + association replacement
  directory_query.py    — DirectoryQueryEngine: native and hybrid paginated listing
  search_controller.py  — DebouncedSearchController in front of the query engine
  segment.py            — Segment lookup CRUD

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
