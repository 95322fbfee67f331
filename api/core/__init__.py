"""
Shared, cross-cutting code for the back office API.

`core/` holds small building blocks that several features use: DB wiring,
env settings, logging, and the clients for outbound services (object
storage, transactional email). Feature SQL and business rules stay in the
feature package (e.g. `properties/`, `importer/`).
"""
